from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.errors import UpstreamFailureError
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class LLMClientOllama(LLMClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None, val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Ollama"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._api_key:
            return {"Authorization": f"Bearer {self._api_key}"}
        return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return ""

    def _get_endpoint_completion(self) -> str:
        return "/api/generate"

    ################ PAYLOAD BUILDER ##################
    def get_completion_payload(self, prompt: str) -> dict:
        """Build the Ollama /api/generate body.

        Returns:
            dict: {"model": "...", "prompt": "...", "stream": True, "options": {...}}
        """
        return {
            "model": self.chat_model,
            "prompt": prompt,
            "stream": True,
            "options": {"temperature": self.temperature},
        }

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def extract_stream_event(self, event: dict) -> tuple[str, bool]:
        """Read one NDJSON line of an Ollama /api/generate stream.

        Lines look like {"response": "Par", "done": false}; the last one has
        "done": true. A line with an "error" key aborts the stream.
        """
        if "error" in event:
            raise UpstreamFailureError(f"Ollama completion failed: {event['error']}")
        return event.get("response") or "", bool(event.get("done"))
