import asyncio

import httpx
import pytest

from shared.clients.file.FileFetcher import FileFetcher
from shared.errors import UpstreamFailureError

PDF_URL = "https://files.example/f/abc.pdf"


def _fetch(fetcher: FileFetcher, transport: httpx.MockTransport) -> bytes:
    async def scenario():
        await fetcher.boot(transport=transport)
        try:
            return await fetcher.do_fetch(PDF_URL)
        finally:
            await fetcher.close()

    return asyncio.run(scenario())


def test_fetch_returns_body(make_config):
    transport = httpx.MockTransport(lambda request: httpx.Response(200, content=b"%PDF-1.7 body"))
    fetcher = FileFetcher(make_config(FILE_FETCH_MAX_BYTES=1024))
    assert _fetch(fetcher, transport) == b"%PDF-1.7 body"


def test_fetch_stops_reading_once_cap_is_passed(make_config):
    served: list[int] = []

    async def body():
        for index in range(100):
            served.append(index)
            yield b"x" * 10

    transport = httpx.MockTransport(lambda request: httpx.Response(200, content=body()))
    fetcher = FileFetcher(make_config(FILE_FETCH_MAX_BYTES=25))

    with pytest.raises(UpstreamFailureError, match="exceeds 25 bytes"):
        _fetch(fetcher, transport)
    assert len(served) == 3


def test_fetch_rejects_declared_oversize(make_config):
    transport = httpx.MockTransport(lambda request: httpx.Response(200, content=b"x" * 100))
    fetcher = FileFetcher(make_config(FILE_FETCH_MAX_BYTES=50))
    with pytest.raises(UpstreamFailureError, match="exceeds 50 bytes"):
        _fetch(fetcher, transport)


@pytest.mark.parametrize("status_code", [404, 500])
def test_fetch_non_success_status_fails(make_config, status_code):
    transport = httpx.MockTransport(lambda request: httpx.Response(status_code))
    fetcher = FileFetcher(make_config())
    with pytest.raises(UpstreamFailureError, match=str(status_code)):
        _fetch(fetcher, transport)


def test_fetch_transport_error_fails(make_config):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    fetcher = FileFetcher(make_config())
    with pytest.raises(UpstreamFailureError, match="Could not fetch"):
        _fetch(fetcher, httpx.MockTransport(handler))
