import json
from abc import abstractmethod
from typing import AsyncIterator

import httpx

from shared.clients.ClientInterface import ClientInterface
from shared.errors import UpstreamFailureError
from shared.helper.HelperConfig import HelperConfig


class LLMClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

        # completion config
        self.chat_model = helper_config.get_string_val(f"{self.get_client_type().upper()}_CHAT_MODEL", default="llama3.1")
        self.temperature = helper_config.get_number_val(f"{self.get_client_type().upper()}_TEMPERATURE", default=1.0)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "llm"

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_completion(self) -> str:
        """Returns the endpoint path for streaming completion requests (e.g. "/api/generate")."""
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_completion_payload(self, prompt: str) -> dict:
        """Build the backend-specific body of a streaming completion request.

        Args:
            prompt (str): The fully rendered prompt.

        Returns:
            dict: JSON-serialisable request body.
        """
        pass

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    @abstractmethod
    def extract_stream_event(self, event: dict) -> tuple[str, bool]:
        """Interpret one decoded line of the completion stream.

        Args:
            event (dict): The JSON object of one stream line.

        Returns:
            tuple[str, bool]: The text increment (may be empty) and whether this
                line is the end-of-stream signal.

        Raises:
            UpstreamFailureError: If the line reports a backend error.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_stream_completion(self, prompt: str) -> AsyncIterator[str]:
        """Stream the completion of ``prompt`` as text increments.

        Increments are yielded as soon as their line arrives. Closing the
        generator early closes the underlying HTTP response.

        Raises:
            UpstreamFailureError: On a non-2xx answer, a malformed or error line,
                a dropped connection, or a stream that ends without its
                end-of-stream signal.
        """
        async with self.do_stream_request(
            method="POST",
            json=self.get_completion_payload(prompt),
            endpoint=self._get_endpoint_completion(),
        ) as response:
            if not response.is_success:
                body = (await response.aread()).decode("utf-8", errors="replace")
                self.logging.error("Completion request failed: status %d, body: %s", response.status_code, body[:200])
                raise UpstreamFailureError("Completion request failed with status %d." % response.status_code)

            finished = False
            try:
                async for line in response.aiter_lines():
                    if not line.strip():
                        continue
                    try:
                        event = json.loads(line)
                    except json.JSONDecodeError as e:
                        raise UpstreamFailureError(f"Malformed completion stream line: {line[:80]!r}") from e
                    text, finished = self.extract_stream_event(event)
                    if text:
                        yield text
                    if finished:
                        break
            except (httpx.HTTPError, httpx.StreamError) as e:
                raise UpstreamFailureError(f"Completion stream interrupted: {e}") from e

            if not finished:
                raise UpstreamFailureError("Completion stream ended without an end-of-stream signal.")
