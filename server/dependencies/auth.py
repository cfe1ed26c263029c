from fastapi import Header, Request

from shared.errors import UnauthorizedError


async def verify_api_key(request: Request, x_api_key: str | None = Header(default=None)) -> None:
    """Verify the X-Api-Key header against the configured API key.

    Args:
        request (Request): The FastAPI request object (provides app.state).
        x_api_key (str | None): The value of the X-Api-Key header.

    Raises:
        UnauthorizedError: If the key is missing or does not match.
    """
    helper_config = request.app.state.helper_config
    expected_key = helper_config.get_string_val("API_SERVER_API_KEY")
    if x_api_key != expected_key:
        raise UnauthorizedError("Invalid or missing API key")


async def get_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """Return the caller identity supplied by the auth collaborator in X-User-Id.

    Raises:
        UnauthorizedError: If the header is missing or blank.
    """
    if not x_user_id or not x_user_id.strip():
        raise UnauthorizedError("Missing caller identity")
    return x_user_id.strip()
