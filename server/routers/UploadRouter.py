from fastapi import APIRouter, BackgroundTasks, Depends, Request

from server.dependencies.auth import get_user_id, verify_api_key
from server.models.requests import RetryRequest, UploadCompleteRequest
from server.models.responses import AcceptedResponse, FileResponse
from shared.errors import NotFoundError
from shared.models.document import UploadNotification, UploadStatus

router = APIRouter(prefix="/uploads", tags=["uploads"])


@router.post("/complete")
async def upload_complete(
    request: Request,
    body: UploadCompleteRequest,
    background_tasks: BackgroundTasks,
    user_id: str = Depends(get_user_id),
    _: None = Depends(verify_api_key),
) -> AcceptedResponse:
    """Accept an upload-complete callback and ingest the file in the background.

    Notifications for an already known key are accepted and ignored.

    Args:
        request (Request): FastAPI request (provides app.state.ingestion_service).
        body (UploadCompleteRequest): Storage key, display name, URL and subscription state.
        background_tasks (BackgroundTasks): FastAPI background task queue.
        user_id (str): Caller identity, becomes the document owner.
        _ (None): Auth dependency result (unused).

    Returns:
        AcceptedResponse: Acknowledgement with the storage key.
    """
    ingestion_service = request.app.state.ingestion_service
    upload = UploadNotification(
        key=body.key,
        name=body.name,
        url=body.url,
        owner_id=user_id,
        is_subscribed=body.is_subscribed,
    )
    background_tasks.add_task(ingestion_service.do_ingest, upload)
    return AcceptedResponse(key=body.key)


@router.post("/{file_id}/retry")
async def retry_upload(
    request: Request,
    file_id: str,
    background_tasks: BackgroundTasks,
    body: RetryRequest | None = None,
    user_id: str = Depends(get_user_id),
    _: None = Depends(verify_api_key),
) -> FileResponse:
    """Re-ingest a FAILED file in the background.

    Files in any other status are answered with their current status.
    """
    document = await request.app.state.document_store.do_get_for_owner(file_id, user_id)
    if document is None:
        raise NotFoundError(f"File '{file_id}' not found.")
    if document.upload_status == UploadStatus.FAILED:
        is_subscribed = body.is_subscribed if body else False
        background_tasks.add_task(request.app.state.ingestion_service.do_retry, file_id, user_id, is_subscribed)
    return FileResponse.from_document(document)
