"""Error taxonomy shared by the ingestion and retrieval pipelines.

Every error carries the HTTP status code the API surface answers with, so
routers never need to translate exceptions themselves.
"""


class DocChatError(Exception):
    """Base class for all expected pipeline errors."""

    status_code: int = 500

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__


class UnauthorizedError(DocChatError):
    """The caller identity is missing or invalid."""

    status_code = 401


class NotFoundError(DocChatError):
    """The document does not exist or does not belong to the caller."""

    status_code = 404


class ValidationError(DocChatError):
    """The request body is malformed."""

    status_code = 422


class QuotaExceededError(DocChatError):
    """The document has more pages than the caller's plan allows."""

    status_code = 403


class UpstreamFailureError(DocChatError):
    """An embedding, completion or vector index call failed."""

    status_code = 502


class ParseFailureError(DocChatError):
    """The uploaded document could not be decoded."""

    status_code = 422


def error_for_status(status_code: int, message: str) -> DocChatError:
    """Map an HTTP status code returned by the API back onto the taxonomy.

    Args:
        status_code (int): The HTTP status of a failed response.
        message (str): The detail text returned by the server.

    Returns:
        DocChatError: The matching error instance (UpstreamFailureError for unknown codes).
    """
    mapping: dict[int, type[DocChatError]] = {
        401: UnauthorizedError,
        403: QuotaExceededError,
        404: NotFoundError,
        422: ValidationError,
    }
    return mapping.get(status_code, UpstreamFailureError)(message)
