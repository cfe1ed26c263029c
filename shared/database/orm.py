"""
Database tables for documents and their conversation log
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DocumentRow(Base):
    """Uploaded documents. ``key`` is unique so duplicate upload callbacks collapse to one row."""
    __tablename__ = "documents"

    id = Column(String(36), primary_key=True, default=_new_id)
    key = Column(String(500), unique=True, nullable=False, index=True)
    name = Column(String(500), nullable=False)
    url = Column(Text, nullable=False)
    owner_id = Column(String(200), nullable=False, index=True)
    upload_status = Column(String(16), nullable=False, default="PENDING")
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)


class MessageRow(Base):
    """Append-only conversation log, ordered by (created_at, seq)."""
    __tablename__ = "messages"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(36), unique=True, nullable=False, default=_new_id)
    text = Column(Text, nullable=False)
    is_user_message = Column(Boolean, nullable=False)
    file_id = Column(String(36), ForeignKey("documents.id"), nullable=False, index=True)
    user_id = Column(String(200), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)
