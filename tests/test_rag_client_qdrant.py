import asyncio
import json
import uuid

import httpx
import pytest

from shared.clients.rag.RAGClientManager import RAGClientManager
from shared.clients.rag.qdrant.RAGClientQdrant import RAGClientQdrant
from shared.errors import UpstreamFailureError
from shared.helper.HelperContent import compute_content_hash
from shared.models.document import VectorMetadata, VectorRecord


class FakeQdrant:
    """Minimal Qdrant REST behaviour: collections, upsert and search."""

    def __init__(self) -> None:
        self.collections: dict[str, dict[str, dict]] = {}
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        parts = request.url.path.strip("/").split("/")
        if parts == ["healthz"]:
            return httpx.Response(200, text="ok")
        name = parts[1]
        if parts[2:] == ["exists"]:
            return httpx.Response(200, json={"result": {"exists": name in self.collections}})
        if parts[2:] == [] and request.method == "PUT":
            self.collections.setdefault(name, {})
            return httpx.Response(200, json={"result": True})
        if name not in self.collections:
            return httpx.Response(404, json={"status": {"error": "Not found"}})
        body = json.loads(request.content)
        if parts[2:] == ["points"]:
            for point in body["points"]:
                self.collections[name][point["id"]] = point
            return httpx.Response(200, json={"result": {"status": "completed"}})
        if parts[2:] == ["points", "search"]:
            hits = [
                {"id": point["id"], "score": sum(a * b for a, b in zip(body["vector"], point["vector"])), "payload": point["payload"]}
                for point in self.collections[name].values()
            ]
            hits.sort(key=lambda hit: hit["score"], reverse=True)
            return httpx.Response(200, json={"result": hits[: body["limit"]]})
        return httpx.Response(400)


def _record(text: str, vector: list[float], page: int = 1) -> VectorRecord:
    return VectorRecord(id=compute_content_hash(text), values=vector, metadata=VectorMetadata(text=text, page_number=page))


def _client(make_config) -> RAGClientQdrant:
    return RAGClientQdrant(helper_config=make_config(RAG_QDRANT_BASE_URL="http://qdrant:6333"))


def test_upsert_creates_collection_and_query_maps_ids_back(make_config):
    qdrant = FakeQdrant()
    client = _client(make_config)

    async def scenario():
        await client.boot(transport=httpx.MockTransport(qdrant.handler))
        try:
            written = await client.do_upsert("doc1", [_record("Paris is the capital of France.", [1.0, 0.0])])
            matches = await client.do_query("doc1", [1.0, 0.0], top_k=4)
        finally:
            await client.close()
        return written, matches

    written, matches = asyncio.run(scenario())

    assert written == 1
    assert "docchat_doc1" in qdrant.collections
    assert len(matches) == 1
    assert matches[0].id == compute_content_hash("Paris is the capital of France.")
    assert matches[0].metadata.text == "Paris is the capital of France."
    assert matches[0].metadata.page_number == 1


def test_upsert_same_id_overwrites_and_last_in_batch_wins(make_config):
    qdrant = FakeQdrant()
    client = _client(make_config)
    record_id = compute_content_hash("same text")
    first = VectorRecord(id=record_id, values=[1.0, 0.0], metadata=VectorMetadata(text="first", page_number=1))
    last = VectorRecord(id=record_id, values=[0.0, 1.0], metadata=VectorMetadata(text="last", page_number=2))

    async def scenario():
        await client.boot(transport=httpx.MockTransport(qdrant.handler))
        try:
            written = await client.do_upsert("doc1", [first, last])
            await client.do_upsert("doc1", [last])
        finally:
            await client.close()
        return written

    assert asyncio.run(scenario()) == 1
    points = qdrant.collections["docchat_doc1"]
    assert list(points) == [str(uuid.UUID(hex=record_id))]
    assert points[str(uuid.UUID(hex=record_id))]["payload"]["text"] == "last"


def test_query_on_unknown_namespace_is_empty(make_config):
    qdrant = FakeQdrant()
    client = _client(make_config)

    async def scenario():
        await client.boot(transport=httpx.MockTransport(qdrant.handler))
        try:
            return await client.do_query("never-written", [1.0, 0.0], top_k=4)
        finally:
            await client.close()

    assert asyncio.run(scenario()) == []


def test_namespaces_are_isolated(make_config):
    qdrant = FakeQdrant()
    client = _client(make_config)

    async def scenario():
        await client.boot(transport=httpx.MockTransport(qdrant.handler))
        try:
            await client.do_upsert("doc1", [_record("only in doc1", [1.0, 0.0])])
            await client.do_upsert("doc2", [_record("only in doc2", [1.0, 0.0])])
            return await client.do_query("doc2", [1.0, 0.0], top_k=4)
        finally:
            await client.close()

    matches = asyncio.run(scenario())
    assert [m.metadata.text for m in matches] == ["only in doc2"]


def test_malformed_hit_is_rejected(make_config):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"result": [{"id": str(uuid.uuid4()), "score": 0.9, "payload": {"text": "no page"}}]})

    client = _client(make_config)

    async def scenario():
        await client.boot(transport=httpx.MockTransport(handler))
        try:
            await client.do_query("doc1", [1.0], top_k=4)
        finally:
            await client.close()

    with pytest.raises(UpstreamFailureError):
        asyncio.run(scenario())


def test_server_error_becomes_upstream_failure(make_config):
    client = _client(make_config)

    async def scenario():
        await client.boot(transport=httpx.MockTransport(lambda request: httpx.Response(500, text="boom")))
        try:
            await client.do_upsert("doc1", [_record("x", [1.0])])
        finally:
            await client.close()

    with pytest.raises(UpstreamFailureError):
        asyncio.run(scenario())


def test_point_id_mapping():
    digest = compute_content_hash("abc")
    assert uuid.UUID(RAGClientQdrant.to_point_id(digest)).hex == digest
    # non-hex ids still map deterministically
    assert RAGClientQdrant.to_point_id("not-a-hash") == RAGClientQdrant.to_point_id("not-a-hash")


def test_manager_selects_engine(make_config):
    manager = RAGClientManager(helper_config=make_config(RAG_ENGINE="qdrant", RAG_QDRANT_BASE_URL="http://q:6333"))
    assert isinstance(manager.get_client(), RAGClientQdrant)
    with pytest.raises(ValueError):
        RAGClientManager(helper_config=make_config(RAG_ENGINE="pinecone"))


def test_missing_base_url_is_rejected(make_config):
    with pytest.raises(ValueError):
        RAGClientQdrant(helper_config=make_config())
