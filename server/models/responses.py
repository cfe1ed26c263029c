from datetime import datetime

from pydantic import BaseModel

from shared.models.document import Document, UploadStatus


class AcceptedResponse(BaseModel):
    status: str = "accepted"
    key: str | None = None
    file_id: str | None = None


class FileResponse(BaseModel):
    id: str
    key: str
    name: str
    upload_status: UploadStatus
    created_at: datetime | None = None

    @classmethod
    def from_document(cls, document: Document) -> "FileResponse":
        return cls(
            id=document.id,
            key=document.key,
            name=document.name,
            upload_status=document.upload_status,
            created_at=document.created_at,
        )


class FileListResponse(BaseModel):
    files: list[FileResponse]
    total: int
