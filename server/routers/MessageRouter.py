from contextlib import aclosing
from typing import AsyncIterator

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse

from server.dependencies.auth import get_user_id, verify_api_key
from server.models.requests import SendMessageRequest
from services.retrieval.RetrievalService import PreparedAnswer, RetrievalService
from shared.errors import UpstreamFailureError
from shared.helper.HelperStream import encode_error_frame, encode_text_frame
from shared.models.message import MessagePage

router = APIRouter(tags=["messages"])

MAX_PAGE_SIZE = 100


async def _stream_frames(retrieval_service: RetrievalService, prepared: PreparedAnswer) -> AsyncIterator[str]:
    try:
        async with aclosing(retrieval_service.stream_answer(prepared)) as stream:
            async for text in stream:
                yield encode_text_frame(text)
    except UpstreamFailureError as e:
        # the response has started, report in-band
        yield encode_error_frame(e.message)


@router.post("/message")
async def send_message(
    request: Request,
    body: SendMessageRequest,
    user_id: str = Depends(get_user_id),
    _: None = Depends(verify_api_key),
) -> StreamingResponse:
    """Ask a question about a file and stream the answer.

    The question is stored and the prompt built before the response starts;
    errors up to that point are answered with their status code. The answer
    follows as ``0:`` text frames, a failed generation ends with a ``3:`` frame.

    Args:
        request (Request): FastAPI request (provides app.state.retrieval_service).
        body (SendMessageRequest): File id and question.
        user_id (str): Caller identity, must own the file.
        _ (None): Auth dependency result (unused).

    Returns:
        StreamingResponse: The framed answer stream.
    """
    retrieval_service = request.app.state.retrieval_service
    prepared = await retrieval_service.do_prepare(body.file_id, body.message, user_id)
    return StreamingResponse(
        _stream_frames(retrieval_service, prepared),
        media_type="text/plain; charset=utf-8",
    )


@router.get("/messages")
async def list_messages(
    request: Request,
    file_id: str,
    cursor: str | None = None,
    limit: int | None = Query(default=None, ge=1, le=MAX_PAGE_SIZE),
    user_id: str = Depends(get_user_id),
    _: None = Depends(verify_api_key),
) -> MessagePage:
    """Return one newest-first page of the conversation about ``file_id``."""
    retrieval_service = request.app.state.retrieval_service
    page_size = limit or request.app.state.messages_page_size
    return await retrieval_service.do_fetch_history(file_id, user_id, page_size, cursor)
