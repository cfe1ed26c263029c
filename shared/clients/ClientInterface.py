from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import httpx
from httpx._types import QueryParamTypes, RequestContent

from shared.errors import UpstreamFailureError
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class ClientInterface(ABC):
    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self.timeout = helper_config.get_number_val(f"{self.get_client_type().upper()}_TIMEOUT", default=30.0)

        self._client: httpx.AsyncClient | None = None
        self.validate_full_configuration()

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def validate_full_configuration(self) -> None:
        """
        Validates that all required configuration values for the client are set and valid.

        Raises:
            ValueError: If any required configuration value is missing or invalid.
        """
        for config in self._get_required_config():
            _ = self.get_config_val(raw_key=config.env_key, default=config.default, val_type=config.val_type)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def get_client_type(self) -> str:
        """
        Returns the type of the client in lowercase. E.g. "rag"
        """
        return self._get_client_type().lower()

    @abstractmethod
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "rag"
        """
        pass

    def get_engine_name(self) -> str:
        """
        Returns the name of the engine used by the client in lowercase. E.g. "qdrant"
        """
        return self._get_engine_name().lower()

    @abstractmethod
    def _get_engine_name(self) -> str:
        """
        Returns the name of the engine used by the client. E.g. "Qdrant"
        """
        pass

    ################ CONFIG ##################
    @abstractmethod
    def _get_required_config(self) -> list[EnvConfig]:
        """
        Returns all settings the client needs.

        Returns:
            list[EnvConfig]: The details of each setting, without the client prefix.
        """
        pass

    def _get_config_key_name(self, raw_key: str) -> str:
        """
        Returns:
            str: The full setting name for the client. E.g. "RAG_QDRANT_API_KEY"
        """
        key_prefix = f"{self.get_client_type().upper()}_{self.get_engine_name().upper()}"
        return f"{key_prefix}_{raw_key.upper()}"

    def get_config_val(self, raw_key: str, default: Any = None, val_type: str = "string") -> Any:
        """
        Retrieves the value of a client setting.

        Args:
            raw_key (str): The setting name without prefix, e.g. "BASE_URL"
            default (Any): Returned when the setting is absent
            val_type (str): "string", "number", "bool" or "list"

        Raises:
            ValueError: On an unknown val_type or a missing required setting.
        """
        key = self._get_config_key_name(raw_key)
        if val_type == "string":
            return self._helper_config.get_string_val(key, default=default)
        elif val_type == "number":
            return self._helper_config.get_number_val(key, default=default)
        elif val_type == "bool":
            return self._helper_config.get_bool_val(key, default=default)
        elif val_type == "list":
            return self._helper_config.get_list_val(key, default=default)
        raise ValueError(f"Unsupported config value type '{val_type}' for key '{raw_key}' in {self.get_client_type().upper()} client '{self.get_engine_name()}'.")

    ################ AUTH ##################
    @abstractmethod
    def _get_auth_header(self) -> dict:
        """
        Returns the authentication header for the backend, empty if no key is configured.
        """
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_base_url(self) -> str:
        """
        Returns the base URL of the backend server (e.g. "http://localhost:6333")
        """
        pass

    @abstractmethod
    def _get_endpoint_healthcheck(self) -> str:
        """
        Returns the endpoint path for healthcheck requests (e.g. "/healthz")
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_healthcheck(self) -> httpx.Response:
        """Send a healthcheck request to the backend.

        Returns:
            httpx.Response: The response from the healthcheck request.
        """
        return await self.do_request(method="GET", endpoint=self._get_endpoint_healthcheck())

    ##########################################
    ############ CORE REQUESTS ###############
    ##########################################

    async def boot(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        """Create the HTTP client.

        Args:
            transport: Optional transport replacing the network, e.g. httpx.MockTransport.
        """
        self._client = httpx.AsyncClient(timeout=self.timeout, transport=transport)

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _build_request_kwargs(
        self,
        endpoint: str,
        content: RequestContent | None,
        json: dict | None,
        params: QueryParamTypes | None,
        additional_headers: dict | None,
    ) -> dict:
        if self._client is None:
            raise RuntimeError("HTTP client not initialised. Call boot() before making requests.")

        endpoint = "/" + endpoint.strip().lstrip("/") if endpoint.strip() else ""

        # httpx sets Content-Type itself for json bodies
        headers: dict = {}
        headers.update(self._get_auth_header())
        if additional_headers:
            headers.update(additional_headers)

        kwargs: dict = {
            "url": f"{self._get_base_url().rstrip('/')}{endpoint}",
            "headers": headers,
            "params": params,
        }
        if content is not None:
            kwargs["content"] = content
        elif json is not None:
            kwargs["json"] = json
        return kwargs

    async def do_request(
        self,
        method: str = "GET",
        content: RequestContent | None = None,
        json: dict | None = None,
        params: QueryParamTypes | None = None,
        endpoint: str = "",
        additional_headers: dict | None = None,
        raise_on_error: bool = False,
    ) -> httpx.Response:
        """Send an HTTP request to the backend.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE, …).
            content: Raw bytes / string body.
            json: JSON-serialisable body.
            params: URL query parameters.
            endpoint: Path appended to the base URL (leading slash optional).
            additional_headers: Extra headers that override the defaults.
            raise_on_error: Raise on a non-2xx status instead of returning the response.

        Returns:
            httpx.Response: The raw response.

        Raises:
            UpstreamFailureError: If the backend is unreachable, or answers non-2xx while raise_on_error is set.
        """
        kwargs = self._build_request_kwargs(endpoint, content, json, params, additional_headers)
        try:
            response = await self._client.request(method, **kwargs)
        except httpx.HTTPError as e:
            self.logging.error("Request to %s failed: %s", kwargs["url"], e)
            raise UpstreamFailureError(f"{self.get_client_type()} backend '{self.get_engine_name()}' unreachable: {e}") from e

        if raise_on_error and not response.is_success:
            self.logging.error(
                "Request to %s failed with status %d: %s",
                kwargs["url"],
                response.status_code,
                response.text[:200],
            )
            raise UpstreamFailureError(f"Request to {kwargs['url']} failed with status {response.status_code}")

        return response

    @asynccontextmanager
    async def do_stream_request(
        self,
        method: str = "POST",
        json: dict | None = None,
        params: QueryParamTypes | None = None,
        endpoint: str = "",
        additional_headers: dict | None = None,
    ) -> AsyncIterator[httpx.Response]:
        """Open a streaming HTTP request; the body is read by the caller.

        The response is closed when the context exits, which also aborts the
        transfer if the caller stops early.

        Raises:
            UpstreamFailureError: If the connection cannot be established.
        """
        kwargs = self._build_request_kwargs(endpoint, None, json, params, additional_headers)
        request = self._client.build_request(method, **kwargs)
        try:
            response = await self._client.send(request, stream=True)
        except httpx.HTTPError as e:
            self.logging.error("Streaming request to %s failed: %s", kwargs["url"], e)
            raise UpstreamFailureError(f"{self.get_client_type()} backend '{self.get_engine_name()}' unreachable: {e}") from e
        try:
            yield response
        finally:
            await response.aclose()
