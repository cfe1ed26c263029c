import httpx

from shared.errors import UpstreamFailureError
from shared.helper.HelperConfig import HelperConfig


class FileFetcher:
    """Downloads uploaded files from the storage URL handed over by the upload transport."""

    def __init__(self, helper_config: HelperConfig) -> None:
        self.logging = helper_config.get_logger()
        self.timeout = helper_config.get_number_val("FILE_FETCH_TIMEOUT", default=60.0)
        self.max_bytes = helper_config.get_positive_int_val("FILE_FETCH_MAX_BYTES", default=16 * 1024 * 1024)
        self._client: httpx.AsyncClient | None = None

    async def boot(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._client = httpx.AsyncClient(timeout=self.timeout, transport=transport, follow_redirects=True)

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def do_fetch(self, url: str) -> bytes:
        """Fetch the raw bytes behind ``url``.

        Raises:
            UpstreamFailureError: If the download fails, answers non-2xx or exceeds FILE_FETCH_MAX_BYTES.
        """
        if self._client is None:
            raise RuntimeError("HTTP client not initialised. Call boot() before fetching files.")
        body = bytearray()
        try:
            async with self._client.stream("GET", url) as response:
                if not response.is_success:
                    raise UpstreamFailureError(f"Fetching uploaded file failed with status {response.status_code}.")
                declared = response.headers.get("Content-Length")
                if declared and declared.isdigit() and int(declared) > self.max_bytes:
                    raise UpstreamFailureError(f"Uploaded file exceeds {self.max_bytes} bytes.")
                async for chunk in response.aiter_bytes():
                    body.extend(chunk)
                    # stop reading as soon as the cap is passed
                    if len(body) > self.max_bytes:
                        raise UpstreamFailureError(f"Uploaded file exceeds {self.max_bytes} bytes.")
        except httpx.HTTPError as e:
            self.logging.error("Fetching %s failed: %s", url, e)
            raise UpstreamFailureError(f"Could not fetch uploaded file: {e}") from e
        self.logging.debug("Fetched %d bytes from %s", len(body), url)
        return bytes(body)
