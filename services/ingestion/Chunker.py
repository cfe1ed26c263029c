"""Page text chunking for the ingestion pipeline."""

from typing import Iterable, Iterator

from langchain_text_splitters import RecursiveCharacterTextSplitter

from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperContent import strip_newlines, truncate_string_by_bytes
from shared.models.document import Chunk, PageRecord

CHUNK_SIZE = 5000      # max characters per chunk
CHUNK_OVERLAP = 200    # character overlap between consecutive chunks of a page
EXCERPT_BYTES = 3600   # byte budget of the excerpt stored as vector metadata


class Chunker:
    """Splits page records into bounded chunks.

    Every page is split on its own, preferring paragraph, sentence and word
    boundaries before hard character cuts. Each chunk carries the number of
    the page it came from and the byte-truncated page text as its excerpt.
    """

    def __init__(self, chunk_size: int = CHUNK_SIZE, chunk_overlap: int = CHUNK_OVERLAP, excerpt_bytes: int = EXCERPT_BYTES) -> None:
        if chunk_overlap >= chunk_size:
            raise ValueError(f"Chunk overlap ({chunk_overlap}) must be smaller than chunk size ({chunk_size}).")
        self.chunk_size = chunk_size
        self.excerpt_bytes = excerpt_bytes
        self._splitter = RecursiveCharacterTextSplitter(chunk_size=chunk_size, chunk_overlap=chunk_overlap)

    @classmethod
    def from_config(cls, helper_config: HelperConfig) -> "Chunker":
        return cls(
            chunk_size=helper_config.get_positive_int_val("INGEST_CHUNK_SIZE", default=CHUNK_SIZE),
            chunk_overlap=int(helper_config.get_number_val("INGEST_CHUNK_OVERLAP", default=CHUNK_OVERLAP)),
            excerpt_bytes=helper_config.get_positive_int_val("INGEST_EXCERPT_BYTES", default=EXCERPT_BYTES),
        )

    def iter_chunks(self, pages: Iterable[PageRecord]) -> Iterator[Chunk]:
        """Yield the chunks of ``pages`` in page order.

        The generator is single-use; call again to recompute.

        Args:
            pages (Iterable[PageRecord]): Parsed pages.

        Yields:
            Chunk: At most ``chunk_size`` characters of text each. Pages without
                text produce no chunks.
        """
        for page in pages:
            text = strip_newlines(page.text)
            if not text.strip():
                continue
            excerpt = truncate_string_by_bytes(text, self.excerpt_bytes)
            for segment in self._splitter.split_text(text):
                yield Chunk(page_number=page.page_number, text=segment, excerpt=excerpt)
