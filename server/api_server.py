"""FastAPI application entry point for docchat_bridge."""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shared.logging.logging_setup import setup_logging
from shared.helper.HelperConfig import HelperConfig
from shared.errors import DocChatError
from shared.clients.ClientInterface import ClientInterface
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.rag.RAGClientManager import RAGClientManager
from shared.clients.llm.LLMClientManager import LLMClientManager
from shared.clients.file.FileFetcher import FileFetcher
from shared.database.DatabaseManager import DatabaseManager
from shared.database.DocumentStore import DocumentStore
from shared.database.MessageStore import MessageStore
from services.ingestion.IngestionService import IngestionService
from services.retrieval.RetrievalService import RetrievalService
from server.routers.UploadRouter import router as upload_router
from server.routers.FileRouter import router as file_router
from server.routers.MessageRouter import router as message_router

logging = setup_logging()
app_version = os.getenv("APP_VERSION", "unknown")

MESSAGES_PAGE_SIZE = 10


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # when the app starts
    app.state.logging = logging
    app.state.helper_config = HelperConfig(logger=logging)
    helper_config = app.state.helper_config

    embed_client = EmbedClientManager(helper_config=helper_config).get_client()
    rag_client = RAGClientManager(helper_config=helper_config).get_client()
    llm_client = LLMClientManager(helper_config=helper_config).get_client()
    file_fetcher = FileFetcher(helper_config=helper_config)

    logging.info("Booting all clients...")
    for client in [embed_client, rag_client, llm_client]:
        await client.boot()
    await file_fetcher.boot()
    logging.info("All clients booted successfully.")

    database = DatabaseManager(helper_config=helper_config)
    await database.init_db()

    document_store = DocumentStore(database)
    message_store = MessageStore(database)
    app.state.document_store = document_store
    app.state.message_store = message_store
    app.state.messages_page_size = helper_config.get_positive_int_val("MESSAGES_PAGE_SIZE", default=MESSAGES_PAGE_SIZE)

    app.state.ingestion_service = IngestionService(
        helper_config=helper_config,
        document_store=document_store,
        file_fetcher=file_fetcher,
        embed_client=embed_client,
        rag_client=rag_client,
    )
    app.state.retrieval_service = RetrievalService(
        helper_config=helper_config,
        document_store=document_store,
        message_store=message_store,
        embed_client=embed_client,
        rag_client=rag_client,
        llm_client=llm_client,
    )

    await check_connections(embed_client, rag_client, llm_client)

    # while the app is running...
    yield

    # when the app shuts down, close all connections
    logging.info("Shutting down, closing all clients...")
    for client in [embed_client, rag_client, llm_client]:
        await client.close()
    await file_fetcher.close()
    await database.close()
    logging.info("All clients closed.")


async def handle_docchat_error(request: Request, exc: DocChatError) -> JSONResponse:
    if exc.status_code >= 500:
        logging.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


def create_app(with_lifespan: bool = True) -> FastAPI:
    """Build the FastAPI application.

    Args:
        with_lifespan (bool): Wire clients, database and services on startup.
            Without it the caller fills ``app.state`` itself.
    """
    app = FastAPI(
        title="docchat_bridge",
        description=(
            "Chat with your PDFs. Uploaded documents are chunked, embedded and indexed "
            "into a per-document vector namespace; questions are answered by an LLM "
            "from the retrieved excerpts and the recent conversation, streamed via POST /message."
        ),
        version=app_version,
        lifespan=lifespan if with_lifespan else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(DocChatError, handle_docchat_error)

    app.include_router(upload_router)
    app.include_router(file_router)
    app.include_router(message_router)

    @app.get("/healthz", tags=["health"])
    async def healthz() -> dict:
        return {"status": "ok", "version": app_version}

    return app


async def check_connections(
    embed_client: ClientInterface,
    rag_client: ClientInterface,
    llm_client: ClientInterface,
) -> None:
    """Check connectivity to all configured backends on startup.

    All three are fatal: nothing can be ingested or answered without them.

    Raises:
        Exception: If a backend is not reachable.
    """
    for name, client in (("Embed", embed_client), ("RAG", rag_client), ("LLM", llm_client)):
        result: httpx.Response = await client.do_healthcheck()
        if not result.is_success:
            raise Exception(
                f"{name} client '{client.__class__.__name__}' is not reachable "
                f"(status {result.status_code})."
            )


app = create_app()


if __name__ == "__main__":
    import uvicorn

    logging.info(
        "Starting docchat_bridge API Server v%s from root dir: %s on port 8000...",
        app_version,
        os.environ.get("ROOT_DIR", "unknown"),
    )
    uvicorn.run(app, host="0.0.0.0", port=8000)
