from fastapi import APIRouter, Depends, Request

from server.dependencies.auth import get_user_id, verify_api_key
from server.models.responses import FileListResponse, FileResponse
from shared.errors import NotFoundError

router = APIRouter(prefix="/files", tags=["files"])


@router.get("")
async def list_files(
    request: Request,
    user_id: str = Depends(get_user_id),
    _: None = Depends(verify_api_key),
) -> FileListResponse:
    documents = await request.app.state.document_store.do_list_for_owner(user_id)
    return FileListResponse(files=[FileResponse.from_document(d) for d in documents], total=len(documents))


@router.get("/{file_id}")
async def get_file(
    request: Request,
    file_id: str,
    user_id: str = Depends(get_user_id),
    _: None = Depends(verify_api_key),
) -> FileResponse:
    """Return one of the caller's files. Polled by the UI while the upload is PROCESSING.

    Raises:
        NotFoundError: If the file does not exist or belongs to someone else.
    """
    document = await request.app.state.document_store.do_get_for_owner(file_id, user_id)
    if document is None:
        raise NotFoundError(f"File '{file_id}' not found.")
    return FileResponse.from_document(document)
