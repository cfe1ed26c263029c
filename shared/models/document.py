"""Pydantic models for documents, chunks and vector records.

Hierarchy:
  Document     : one uploaded PDF and its indexing status.
  PageRecord   : text of a single parsed page.
  Chunk        : a bounded slice of page text, ready for embedding.
  VectorRecord : the content-hashed vector stored in a document's namespace.
  VectorMatch  : a ranked hit returned by a namespace query.
  UploadNotification: the upload-complete callback that starts ingestion.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class UploadStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"

    def can_transition_to(self, target: "UploadStatus") -> bool:
        """Return True if moving from this status to ``target`` is allowed.

        FAILED may re-enter PROCESSING for a retry; every other move is forward only.
        """
        allowed = {
            UploadStatus.PENDING: {UploadStatus.PROCESSING},
            UploadStatus.PROCESSING: {UploadStatus.SUCCESS, UploadStatus.FAILED},
            UploadStatus.FAILED: {UploadStatus.PROCESSING},
            UploadStatus.SUCCESS: set(),
        }
        return target in allowed[self]


class Document(BaseModel):
    """An uploaded document as stored in the document table.

    Attributes:
        id:            Primary identifier, also the source of the namespace name.
        key:           Storage key from the upload transport (unique).
        name:          Display name of the file.
        url:           Location the raw bytes can be fetched from.
        owner_id:      Identifier of the owning user.
        upload_status: Current indexing status.
        created_at:    Creation timestamp.
    """

    model_config = ConfigDict(from_attributes=True)

    id: str
    key: str
    name: str
    url: str
    owner_id: str
    upload_status: UploadStatus = UploadStatus.PENDING
    created_at: datetime | None = None


class PageRecord(BaseModel):
    text: str
    page_number: int


class Chunk(BaseModel):
    """A bounded slice of a page's text.

    ``text`` is what gets embedded and hashed; ``excerpt`` is the byte-truncated
    page text kept as vector metadata for display and prompt context.
    """

    page_number: int
    text: str
    excerpt: str


class VectorMetadata(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: str
    page_number: int = Field(alias="pageNumber")


class VectorRecord(BaseModel):
    """A vector addressed by the content hash of its chunk.

    Records with an identical ``id`` overwrite each other inside a namespace.
    """

    id: str = Field(min_length=1)
    values: list[float] = Field(min_length=1)
    metadata: VectorMetadata


class VectorMatch(BaseModel):
    id: str
    score: float
    metadata: VectorMetadata | None = None


class UploadNotification(BaseModel):
    """Upload-complete callback of the upload transport, enriched with the caller's identity.

    Attributes:
        key:           Storage key of the uploaded bytes (unique per document).
        name:          Display name of the file.
        url:           Location the bytes can be fetched from.
        owner_id:      Identifier of the uploading user.
        is_subscribed: Subscription state, selects the page ceiling.
    """

    key: str = Field(min_length=1)
    name: str = Field(min_length=1)
    url: str = Field(min_length=1)
    owner_id: str = Field(min_length=1)
    is_subscribed: bool = False
