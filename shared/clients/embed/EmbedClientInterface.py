from abc import abstractmethod

from shared.clients.ClientInterface import ClientInterface
from shared.errors import UpstreamFailureError
from shared.helper.HelperConfig import HelperConfig


class EmbedClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

        # model config
        self.embed_model = helper_config.get_string_val(f"{self.get_client_type().upper()}_MODEL", default="nomic-embed-text")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "embed"

    ################ ENDPOINTS ##################
    @abstractmethod
    def get_endpoint_embedding(self) -> str:
        """
        Returns the endpoint path for embedding requests (e.g. "/api/embed")
        """
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_embed_payload(self, text: str) -> dict:
        """Build the backend-specific request body for embedding a single text.

        Args:
            text (str): The text to embed, whitespace already normalised by the caller.

        Returns:
            dict: JSON-serialisable request body.
        """
        pass

    ##########################################
    ################# OTHER ##################
    ##########################################

    @abstractmethod
    def extract_embedding_from_response(self, response_data: dict) -> list[float]:
        """Extract the embedding vector from a raw embedding API response.

        Args:
            response_data (dict): The parsed JSON response body.

        Returns:
            list[float]: The embedding vector.

        Raises:
            UpstreamFailureError: If the response carries no usable vector.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_embed(self, text: str) -> list[float]:
        """Embed one text and return its vector.

        No caching happens here; identical chunks are deduplicated upstream by
        their content hash.

        Args:
            text (str): The text to embed.

        Returns:
            list[float]: The embedding vector (fixed dimensionality per model).

        Raises:
            UpstreamFailureError: If the request fails or the response is malformed.
        """
        response = await self.do_request(
            method="POST",
            endpoint=self.get_endpoint_embedding(),
            json=self.get_embed_payload(text),
        )
        if not response.is_success:
            self.logging.error(
                "Embedding request failed: status %d, body: %s",
                response.status_code,
                response.text[:200],
            )
            raise UpstreamFailureError("Embedding request failed with status %d." % response.status_code)
        return self.extract_embedding_from_response(response.json())
