from abc import abstractmethod

import httpx
from pydantic import ValidationError as PydanticValidationError

from shared.clients.ClientInterface import ClientInterface
from shared.errors import UpstreamFailureError
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import VectorMatch, VectorRecord


class RAGClientInterface(ClientInterface):
    """Namespace-scoped vector index.

    Every document owns exactly one namespace; upserts and queries never
    cross namespace boundaries.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self.distance = helper_config.get_string_val(f"{self.get_client_type().upper()}_DISTANCE", default="Cosine")
        # namespaces known to exist, saves an existence check per upsert batch
        self._known_namespaces: set[str] = set()

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "rag"

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_namespace(self, namespace: str) -> str:
        """
        Returns the endpoint path used to create a namespace (e.g. "/collections/docs_abc")
        """
        pass

    @abstractmethod
    def _get_endpoint_check_namespace_existence(self, namespace: str) -> str:
        """
        Returns the endpoint path for namespace existence checks (e.g. "/collections/docs_abc/exists")
        """
        pass

    @abstractmethod
    def _get_endpoint_points(self, namespace: str) -> str:
        """
        Returns the endpoint path for point upserts (e.g. "/collections/docs_abc/points")
        """
        pass

    @abstractmethod
    def _get_endpoint_search(self, namespace: str) -> str:
        """
        Returns the endpoint path for similarity search (e.g. "/collections/docs_abc/points/search")
        """
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_create_namespace_payload(self, vector_size: int) -> dict:
        """Builds the request body that creates a namespace for vectors of ``vector_size``."""
        pass

    @abstractmethod
    def get_upsert_payload(self, records: list[VectorRecord]) -> dict:
        """Builds the backend-specific upsert body for already deduplicated records."""
        pass

    @abstractmethod
    def get_query_payload(self, vector: list[float], top_k: int, include_metadata: bool) -> dict:
        """Builds the backend-specific similarity search body."""
        pass

    ################ RESPONSE PARSER ##################
    @abstractmethod
    def extract_namespace_exists(self, raw_response: dict) -> bool:
        pass

    @abstractmethod
    def extract_raw_matches(self, raw_response: dict) -> list[dict]:
        """Extracts the hits of a search response as dicts with keys id, score and metadata.

        ``metadata`` uses the wire names {"text", "pageNumber"} and may be None.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_namespace_existence_check(self, namespace: str) -> bool:
        resp = await self.do_request(
            method="GET",
            endpoint=self._get_endpoint_check_namespace_existence(namespace),
            raise_on_error=True,
        )
        return self.extract_namespace_exists(resp.json())

    async def do_ensure_namespace(self, namespace: str, vector_size: int) -> None:
        """Create the namespace unless it exists already.

        Two ingestions racing on the same namespace are tolerated: a failed
        create is accepted if the namespace exists afterwards.
        """
        if namespace in self._known_namespaces:
            return
        if not await self.do_namespace_existence_check(namespace):
            resp = await self.do_request(
                method="PUT",
                json=self.get_create_namespace_payload(vector_size),
                endpoint=self._get_endpoint_namespace(namespace),
            )
            if not resp.is_success and not await self.do_namespace_existence_check(namespace):
                self.logging.error(
                    "Creating namespace '%s' failed with status %d: %s",
                    namespace, resp.status_code, resp.text[:200],
                )
                raise UpstreamFailureError(f"Could not create namespace '{namespace}' (status {resp.status_code}).")
            self.logging.info("Created vector namespace '%s' (size=%d, distance=%s).", namespace, vector_size, self.distance)
        self._known_namespaces.add(namespace)

    async def do_upsert(self, namespace: str, records: list[VectorRecord]) -> int:
        """Insert or overwrite records in a namespace.

        Records sharing an id overwrite each other; inside one call the last
        occurrence wins.

        Args:
            namespace (str): Target namespace, created on first use.
            records (list[VectorRecord]): Records to write.

        Returns:
            int: Number of distinct records written.

        Raises:
            UpstreamFailureError: If the backend rejects the request.
        """
        if not records:
            return 0
        deduplicated = list({record.id: record for record in records}.values())
        await self.do_ensure_namespace(namespace, vector_size=len(deduplicated[0].values))
        await self.do_request(
            method="PUT",
            json=self.get_upsert_payload(deduplicated),
            endpoint=self._get_endpoint_points(namespace),
            params={"wait": "true"},
            raise_on_error=True,
        )
        return len(deduplicated)

    async def do_query(self, namespace: str, vector: list[float], top_k: int, include_metadata: bool = True) -> list[VectorMatch]:
        """Return up to ``top_k`` records of a namespace, most similar first.

        Ties are ordered by the backend and must not be relied upon. A
        namespace that was never written to yields an empty list.

        Raises:
            UpstreamFailureError: If the request fails or a hit is malformed.
        """
        resp = await self.do_request(
            method="POST",
            json=self.get_query_payload(vector, top_k, include_metadata),
            endpoint=self._get_endpoint_search(namespace),
        )
        if resp.status_code == httpx.codes.NOT_FOUND:
            self.logging.debug("Namespace '%s' does not exist yet, no matches.", namespace)
            return []
        if not resp.is_success:
            self.logging.error("Query on namespace '%s' failed with status %d: %s", namespace, resp.status_code, resp.text[:200])
            raise UpstreamFailureError(f"Vector query on namespace '{namespace}' failed with status {resp.status_code}.")

        matches: list[VectorMatch] = []
        for raw in self.extract_raw_matches(resp.json()):
            try:
                matches.append(VectorMatch.model_validate(raw))
            except PydanticValidationError as e:
                raise UpstreamFailureError(f"Malformed match returned for namespace '{namespace}': {e}") from e
        return matches[:top_k]
