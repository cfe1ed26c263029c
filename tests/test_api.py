import asyncio
import json

import httpx

import services.ingestion.IngestionService as ingestion_module
from client.api.ChatApiClient import ChatApiClient
from client.chat.ChatSession import ChatSession
from client.chat.StreamingMergeController import StreamingMergeController
from server.api_server import create_app
from services.ingestion.IngestionService import IngestionService
from services.retrieval.RetrievalService import RetrievalService
from shared.models.document import PageRecord
from shared.models.message import SENTINEL_MESSAGE_ID
from tests.fakes import FakeEmbedClient, FakeFileFetcher, FakeLLMClient, FakeRAGClient, open_stores

API_KEY = "secret"
HEADERS = {"X-Api-Key": API_KEY, "X-User-Id": "user-1"}
PDF_URL = "http://files/doc.pdf"


def _run_api(make_config, database_url, scenario, llm=None):
    config = make_config(DATABASE_URL=database_url, API_SERVER_API_KEY=API_KEY, CHAT_DOCCHAT_BASE_URL="http://api", CHAT_DOCCHAT_API_KEY=API_KEY)
    rag = FakeRAGClient()
    embed = FakeEmbedClient()

    async def wrapper():
        database, documents, messages = await open_stores(config)
        app = create_app(with_lifespan=False)
        app.state.helper_config = config
        app.state.document_store = documents
        app.state.message_store = messages
        app.state.messages_page_size = 10
        app.state.ingestion_service = IngestionService(
            helper_config=config,
            document_store=documents,
            file_fetcher=FakeFileFetcher({PDF_URL: b"%PDF-stub"}),
            embed_client=embed,
            rag_client=rag,
        )
        app.state.retrieval_service = RetrievalService(
            helper_config=config,
            document_store=documents,
            message_store=messages,
            embed_client=embed,
            rag_client=rag,
            llm_client=llm or FakeLLMClient(),
        )
        transport = httpx.ASGITransport(app=app)
        try:
            async with httpx.AsyncClient(transport=transport, base_url="http://api") as client:
                return await scenario(client, config, transport)
        finally:
            await database.close()

    return asyncio.run(wrapper())


def _pages(monkeypatch):
    pages = [PageRecord(text="Paris is the capital of France.", page_number=1)]
    monkeypatch.setattr(ingestion_module, "parse_pdf_pages", lambda content: pages)


async def _upload(client: httpx.AsyncClient, key: str = "k1") -> str:
    response = await client.post(
        "/uploads/complete",
        json={"key": key, "name": "doc.pdf", "url": PDF_URL, "is_subscribed": False},
        headers=HEADERS,
    )
    assert response.status_code == 200
    assert response.json()["status"] == "accepted"
    files = (await client.get("/files", headers=HEADERS)).json()["files"]
    return next(f["id"] for f in files if f["key"] == key)


def test_auth_is_required(make_config, database_url):
    async def scenario(client, config, transport):
        no_key = await client.get("/files", headers={"X-User-Id": "user-1"})
        no_user = await client.get("/files", headers={"X-Api-Key": API_KEY})
        health = await client.get("/healthz")
        return no_key, no_user, health

    no_key, no_user, health = _run_api(make_config, database_url, scenario)
    assert no_key.status_code == 401
    assert no_user.status_code == 401
    assert no_key.json()["detail"]
    assert health.json()["status"] == "ok"


def test_upload_is_ingested_and_listed_once(make_config, database_url, monkeypatch):
    _pages(monkeypatch)

    async def scenario(client, config, transport):
        file_id = await _upload(client)
        await _upload(client)
        listing = (await client.get("/files", headers=HEADERS)).json()
        detail = await client.get(f"/files/{file_id}", headers=HEADERS)
        foreign = await client.get(f"/files/{file_id}", headers={**HEADERS, "X-User-Id": "user-2"})
        return listing, detail, foreign

    listing, detail, foreign = _run_api(make_config, database_url, scenario)
    assert listing["total"] == 1
    assert detail.json()["upload_status"] == "SUCCESS"
    assert foreign.status_code == 404


def test_message_streams_frames_and_pages_history(make_config, database_url, monkeypatch):
    _pages(monkeypatch)

    async def scenario(client, config, transport):
        file_id = await _upload(client)
        response = await client.post("/message", json={"file_id": file_id, "message": "Capital of France?"}, headers=HEADERS)
        page = await client.get("/messages", params={"file_id": file_id, "limit": 1}, headers=HEADERS)
        return response, page.json()

    response, page = _run_api(make_config, database_url, scenario)

    lines = [line for line in response.text.split("\n") if line]
    assert all(line.startswith("0:") for line in lines)
    assert "".join(json.loads(line[2:]) for line in lines) == "Paris is the capital."
    assert page["messages"][0]["text"] == "Paris is the capital."
    assert page["messages"][0]["is_user_message"] is False
    assert page["next_cursor"]


def test_message_errors(make_config, database_url, monkeypatch):
    _pages(monkeypatch)

    async def scenario(client, config, transport):
        file_id = await _upload(client)
        missing = await client.post("/message", json={"file_id": "nope", "message": "Hi"}, headers=HEADERS)
        empty = await client.post("/message", json={"file_id": file_id, "message": ""}, headers=HEADERS)
        too_many = await client.get("/messages", params={"file_id": file_id, "limit": 1000}, headers=HEADERS)
        return missing, empty, too_many

    missing, empty, too_many = _run_api(make_config, database_url, scenario)
    assert missing.status_code == 404
    assert empty.status_code == 422
    assert too_many.status_code == 422


def test_generation_failure_is_reported_in_band(make_config, database_url, monkeypatch):
    _pages(monkeypatch)

    async def scenario(client, config, transport):
        file_id = await _upload(client)
        response = await client.post("/message", json={"file_id": file_id, "message": "Hi"}, headers=HEADERS)
        page = (await client.get("/messages", params={"file_id": file_id}, headers=HEADERS)).json()
        return response, page

    response, page = _run_api(make_config, database_url, scenario, llm=FakeLLMClient(fail_after=1))

    lines = [line for line in response.text.split("\n") if line]
    assert lines[0].startswith("0:")
    assert lines[-1].startswith("3:")
    assert [m["is_user_message"] for m in page["messages"]] == [True]


def test_retry_of_successful_upload_returns_current_status(make_config, database_url, monkeypatch):
    _pages(monkeypatch)

    async def scenario(client, config, transport):
        file_id = await _upload(client)
        retried = await client.post(f"/uploads/{file_id}/retry", headers=HEADERS)
        unknown = await client.post("/uploads/unknown/retry", headers=HEADERS)
        return retried, unknown

    retried, unknown = _run_api(make_config, database_url, scenario)
    assert retried.json()["upload_status"] == "SUCCESS"
    assert unknown.status_code == 404


def test_chat_client_merges_answer_from_server(make_config, database_url, monkeypatch):
    _pages(monkeypatch)

    async def scenario(client, config, transport):
        file_id = await _upload(client)
        api_client = ChatApiClient(helper_config=config, user_id="user-1")
        await api_client.boot(transport=transport)
        controller = StreamingMergeController(helper_config=config, api_client=api_client)
        session = ChatSession(file_id=file_id, input_text="Capital of France?")
        try:
            await controller.do_load(session)
            ok = await controller.do_submit(session)
            merged = [(m.id, m.text) for m in session.cache.messages()]
            await controller.wait_for_refresh(session)
            refreshed = [(m.id, m.text) for m in session.cache.messages()]
        finally:
            await api_client.close()
        return ok, merged, refreshed

    ok, merged, refreshed = _run_api(make_config, database_url, scenario)

    assert ok is True
    assert merged[0] == (SENTINEL_MESSAGE_ID, "Paris is the capital.")
    assert merged[1][1] == "Capital of France?"
    assert [text for _, text in refreshed] == ["Paris is the capital.", "Capital of France?"]
    assert all(message_id != SENTINEL_MESSAGE_ID for message_id, _ in refreshed)
