"""Ingestion service.

Turns an uploaded PDF into content-addressed vectors inside the document's
namespace and keeps the document's upload status in step:

    NOT_CREATED → PROCESSING → SUCCESS | FAILED   (FAILED → PROCESSING on retry)
"""

import asyncio

from services.ingestion.Chunker import Chunker
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.file.FileFetcher import FileFetcher
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.database.DocumentStore import DocumentStore
from shared.errors import DocChatError, NotFoundError, QuotaExceededError
from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperContent import compute_content_hash, normalize_whitespace, to_namespace
from shared.helper.HelperPdf import parse_pdf_pages
from shared.models.document import Chunk, Document, UploadNotification, UploadStatus, VectorMetadata, VectorRecord
from shared.models.plan import plan_for_subscription

EMBED_CONCURRENCY = 5    # max parallel embedding requests per document
UPSERT_BATCH_SIZE = 100  # max records per vector index upsert call


class IngestionService:
    """Orchestrates upload → fetch → parse → chunk → embed → upsert for one document."""

    def __init__(
        self,
        helper_config: HelperConfig,
        document_store: DocumentStore,
        file_fetcher: FileFetcher,
        embed_client: EmbedClientInterface,
        rag_client: RAGClientInterface,
        chunker: Chunker | None = None,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._documents = document_store
        self._file_fetcher = file_fetcher
        self._embed_client = embed_client
        self._rag_client = rag_client
        self._chunker = chunker or Chunker.from_config(helper_config)
        self.embed_concurrency = helper_config.get_positive_int_val("INGEST_EMBED_CONCURRENCY", default=EMBED_CONCURRENCY)
        self.upsert_batch_size = helper_config.get_positive_int_val("INGEST_UPSERT_BATCH_SIZE", default=UPSERT_BATCH_SIZE)

    ##########################################
    ############### ENTRY POINTS #############
    ##########################################

    async def do_ingest(self, upload: UploadNotification) -> Document | None:
        """Register an uploaded file and index it.

        A second notification for a storage key that is already known is a
        no-op, also when both arrive at the same time.

        Args:
            upload (UploadNotification): The upload-complete callback.

        Returns:
            Document | None: The document in its terminal status, or None if
                the key was known already.
        """
        if await self._documents.do_get_by_key(upload.key):
            self.logging.info("Upload '%s' is already registered, ignoring duplicate notification.", upload.key)
            return None

        document = await self._documents.do_create(
            key=upload.key,
            name=upload.name,
            url=upload.url,
            owner_id=upload.owner_id,
            status=UploadStatus.PROCESSING,
        )
        if document is None:
            return None
        self.logging.info("Created document %s ('%s') for owner %s.", document.id, document.name, document.owner_id)

        await self._run_pipeline(document, upload.is_subscribed)
        return await self._documents.do_get(document.id)

    async def do_retry(self, document_id: str, owner_id: str, is_subscribed: bool) -> Document:
        """Re-ingest a FAILED document of ``owner_id``.

        Documents in any other status are returned unchanged. Re-ingestion is
        safe because vector ids are content hashes: already written vectors
        are overwritten, not duplicated.

        Raises:
            NotFoundError: If the document does not exist or belongs to someone else.
        """
        document = await self._documents.do_get_for_owner(document_id, owner_id)
        if document is None:
            raise NotFoundError(f"File '{document_id}' not found.")
        if document.upload_status != UploadStatus.FAILED:
            self.logging.info("Document %s is %s, nothing to retry.", document.id, document.upload_status.value)
            return document

        try:
            document = await self._documents.do_set_status(document.id, UploadStatus.PROCESSING)
        except ValueError:
            # a concurrent retry won the transition
            return await self._documents.do_get(document.id)

        self.logging.info("Retrying ingestion of document %s.", document.id)
        await self._run_pipeline(document, is_subscribed)
        return await self._documents.do_get(document.id)

    ##########################################
    ################ PIPELINE ################
    ##########################################

    async def _run_pipeline(self, document: Document, is_subscribed: bool) -> UploadStatus:
        """Index a PROCESSING document and record the terminal status.

        Vectors already written before a failure are left in place.
        """
        try:
            written = await self._index_document(document, is_subscribed)
        except DocChatError as e:
            self.logging.error("Ingestion of document %s failed (%s): %s", document.id, type(e).__name__, e.message)
            await self._set_terminal_status(document, UploadStatus.FAILED)
            return UploadStatus.FAILED
        except Exception as e:
            self.logging.exception("Unexpected error while ingesting document %s: %s", document.id, e)
            await self._set_terminal_status(document, UploadStatus.FAILED)
            return UploadStatus.FAILED

        self.logging.info("Document %s indexed: %d vectors upserted.", document.id, written, color="green")
        await self._set_terminal_status(document, UploadStatus.SUCCESS)
        return UploadStatus.SUCCESS

    async def _index_document(self, document: Document, is_subscribed: bool) -> int:
        """Fetch, parse, chunk, embed and upsert one document.

        Returns:
            int: Number of distinct vectors written.

        Raises:
            ParseFailureError: If the file is not a readable PDF.
            QuotaExceededError: If the page count exceeds the plan ceiling. Nothing is embedded then.
            UpstreamFailureError: If fetching, embedding or upserting fails.
        """
        content = await self._file_fetcher.do_fetch(document.url)
        pages = await asyncio.to_thread(parse_pdf_pages, content)
        self.logging.info("Parsed document %s: %d pages.", document.id, len(pages))

        plan = plan_for_subscription(is_subscribed)
        if len(pages) > plan.pages_per_pdf:
            raise QuotaExceededError(
                f"Document has {len(pages)} pages, plan '{plan.name}' allows {plan.pages_per_pdf}."
            )

        chunks = list(self._chunker.iter_chunks(pages))
        if not chunks:
            self.logging.warning("Document %s has no extractable text, nothing to index.", document.id)
            return 0

        # embed with bounded parallelism; every record is addressed by its own hash
        sem = asyncio.Semaphore(self.embed_concurrency)
        records = await asyncio.gather(*[self._embed_chunk(chunk, sem) for chunk in chunks])
        self.logging.info("Embedded %d chunks of document %s.", len(records), document.id)

        namespace = to_namespace(document.id)
        written = 0
        for batch_start in range(0, len(records), self.upsert_batch_size):
            batch = records[batch_start: batch_start + self.upsert_batch_size]
            written += await self._rag_client.do_upsert(namespace, batch)
        return written

    async def _embed_chunk(self, chunk: Chunk, sem: asyncio.Semaphore) -> VectorRecord:
        async with sem:
            vector = await self._embed_client.do_embed(normalize_whitespace(chunk.text))
        return VectorRecord(
            id=compute_content_hash(chunk.text),
            values=vector,
            metadata=VectorMetadata(text=chunk.excerpt, page_number=chunk.page_number),
        )

    async def _set_terminal_status(self, document: Document, status: UploadStatus) -> None:
        try:
            await self._documents.do_set_status(document.id, status)
        except ValueError as e:
            self.logging.error("Could not mark document %s as %s: %s", document.id, status.value, e)
