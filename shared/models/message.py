"""Pydantic models for the conversation log."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict

# Placeholder id of the assistant message while its answer is still streaming.
SENTINEL_MESSAGE_ID = "ai-response"


class Message(BaseModel):
    """A single entry of a document's append-only conversation log."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    text: str
    is_user_message: bool
    file_id: str | None = None
    user_id: str | None = None
    created_at: datetime


class MessagePage(BaseModel):
    """One page of the newest-first message listing.

    Attributes:
        messages:    Messages of this page, newest first.
        next_cursor: Id of the first message of the following (older) page,
                     or None when this is the last page.
    """

    messages: list[Message] = []
    next_cursor: str | None = None


class ChatTurn(BaseModel):
    role: str
    content: str
