import json
from typing import AsyncIterator

import httpx

from shared.clients.ClientInterface import ClientInterface
from shared.errors import DocChatError, UpstreamFailureError, error_for_status
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.models.message import MessagePage


class ChatApiClient(ClientInterface):
    """HTTP client of the docchat_bridge API, used by chat front-ends."""

    def __init__(self, helper_config: HelperConfig, user_id: str | None = None):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None, val_type="string")
        self._api_key = self.get_config_val("API_KEY", default=None, val_type="string")
        self.user_id = user_id or self.get_config_val("USER_ID", default=None, val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "chat"

    def _get_engine_name(self) -> str:
        return "Docchat"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="API_KEY", val_type="string", default=None),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        headers = {"X-Api-Key": self._api_key}
        if self.user_id:
            headers["X-User-Id"] = self.user_id
        return headers

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/healthz"

    def _get_endpoint_message(self) -> str:
        return "/message"

    def _get_endpoint_messages(self) -> str:
        return "/messages"

    ##########################################
    ################# ERRORS #################
    ##########################################

    @staticmethod
    def _to_error(response: httpx.Response, body: bytes) -> DocChatError:
        detail = body.decode("utf-8", errors="replace")
        try:
            detail = str(json.loads(body).get("detail", detail))
        except (ValueError, AttributeError):
            pass
        return error_for_status(response.status_code, detail)

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_stream_message(self, file_id: str, message: str) -> AsyncIterator[bytes]:
        """Send a question and yield the raw answer stream as it arrives.

        Raises:
            DocChatError: The matching taxonomy error if the server rejects the request.
            UpstreamFailureError: If the connection fails or drops mid-stream.
        """
        async with self.do_stream_request(
            method="POST",
            json={"file_id": file_id, "message": message},
            endpoint=self._get_endpoint_message(),
        ) as response:
            if not response.is_success:
                raise self._to_error(response, await response.aread())
            try:
                async for chunk in response.aiter_bytes():
                    yield chunk
            except (httpx.HTTPError, httpx.StreamError) as e:
                raise UpstreamFailureError(f"Answer stream interrupted: {e}") from e

    async def do_fetch_messages(self, file_id: str, limit: int, cursor: str | None = None) -> MessagePage:
        """Fetch one newest-first page of a file's messages.

        Raises:
            DocChatError: The matching taxonomy error on a non-2xx answer.
        """
        params: dict = {"file_id": file_id, "limit": limit}
        if cursor:
            params["cursor"] = cursor
        response = await self.do_request(method="GET", endpoint=self._get_endpoint_messages(), params=params)
        if not response.is_success:
            raise self._to_error(response, response.content)
        return MessagePage.model_validate(response.json())
