import uuid

from shared.helper.HelperConfig import HelperConfig
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.models.config import EnvConfig
from shared.models.document import VectorRecord

# Fixed namespace for point ids of records whose id is not a 32 char hex digest.
# Changing this value would orphan every such point already stored.
_POINT_ID_NAMESPACE = uuid.UUID("3b8f1c52-7d0e-4a6b-9f21-5c4e8d7a0b13")


class RAGClientQdrant(RAGClientInterface):
    """Qdrant backend. Each namespace is its own collection named "<prefix>_<namespace>"."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None, val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")
        self._collection_prefix = self.get_config_val("COLLECTION_PREFIX", default="docchat", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Qdrant"

    def get_collection_name(self, namespace: str) -> str:
        return f"{self._collection_prefix}_{namespace}"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
            EnvConfig(env_key="COLLECTION_PREFIX", val_type="string", default="docchat"),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._api_key:
            return {"api-key": f"{self._api_key}"}
        return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/healthz"

    def _get_endpoint_namespace(self, namespace: str) -> str:
        return f"/collections/{self.get_collection_name(namespace)}"

    def _get_endpoint_check_namespace_existence(self, namespace: str) -> str:
        return f"/collections/{self.get_collection_name(namespace)}/exists"

    def _get_endpoint_points(self, namespace: str) -> str:
        return f"/collections/{self.get_collection_name(namespace)}/points"

    def _get_endpoint_search(self, namespace: str) -> str:
        return f"/collections/{self.get_collection_name(namespace)}/points/search"

    ##########################################
    ############### POINT IDS ################
    ##########################################

    @staticmethod
    def to_point_id(record_id: str) -> str:
        """Map a record id onto a Qdrant point id (UUID).

        MD5 content hashes are 32 hex chars and map 1:1 onto a UUID, so the
        point id stays stable across re-ingestion.
        """
        try:
            return str(uuid.UUID(hex=record_id))
        except ValueError:
            return str(uuid.uuid5(_POINT_ID_NAMESPACE, record_id))

    ##########################################
    ########### PAYLOAD BUILDER ##############
    ##########################################

    def get_create_namespace_payload(self, vector_size: int) -> dict:
        return {"vectors": {"size": vector_size, "distance": self.distance}}

    def get_upsert_payload(self, records: list[VectorRecord]) -> dict:
        return {
            "points": [
                {
                    "id": self.to_point_id(record.id),
                    "vector": record.values,
                    "payload": {
                        "record_id": record.id,
                        **record.metadata.model_dump(by_alias=True),
                    },
                }
                for record in records
            ]
        }

    def get_query_payload(self, vector: list[float], top_k: int, include_metadata: bool) -> dict:
        return {"vector": vector, "limit": top_k, "with_payload": include_metadata, "with_vector": False}

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def extract_namespace_exists(self, raw_response: dict) -> bool:
        return bool(raw_response.get("result", {}).get("exists"))

    def extract_raw_matches(self, raw_response: dict) -> list[dict]:
        matches: list[dict] = []
        for point in raw_response.get("result") or []:
            payload = point.get("payload")
            record_id = (payload or {}).get("record_id") or uuid.UUID(str(point.get("id"))).hex
            metadata = None
            if payload:
                metadata = {"text": payload.get("text"), "pageNumber": payload.get("pageNumber")}
            matches.append({"id": record_id, "score": point.get("score"), "metadata": metadata})
        return matches
