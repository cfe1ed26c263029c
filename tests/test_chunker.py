import inspect

import pytest

from services.ingestion.Chunker import Chunker
from shared.models.document import PageRecord


def test_chunks_respect_size_and_page_numbers():
    chunker = Chunker(chunk_size=100, chunk_overlap=10, excerpt_bytes=50)
    sentence = "The quick brown fox jumps over the lazy dog. "
    pages = [
        PageRecord(text=sentence * 10, page_number=1),
        PageRecord(text="Short page.", page_number=2),
    ]

    chunks = list(chunker.iter_chunks(pages))

    assert all(len(chunk.text) <= 100 for chunk in chunks)
    assert {chunk.page_number for chunk in chunks} == {1, 2}
    assert chunks[-1].text == "Short page."
    assert [c.page_number for c in chunks] == sorted(c.page_number for c in chunks)


def test_newlines_are_stripped_before_splitting():
    chunker = Chunker(chunk_size=1000, chunk_overlap=0)
    chunks = list(chunker.iter_chunks([PageRecord(text="Hello\nWorld\r\n!", page_number=1)]))
    assert len(chunks) == 1
    assert chunks[0].text == "HelloWorld!"


def test_excerpt_is_byte_bounded_page_text():
    chunker = Chunker(chunk_size=20, chunk_overlap=0, excerpt_bytes=10)
    chunks = list(chunker.iter_chunks([PageRecord(text="€" * 30, page_number=3)]))
    assert chunks
    for chunk in chunks:
        assert len(chunk.excerpt.encode("utf-8")) <= 10
        assert chunk.excerpt == "€€€"


def test_empty_pages_produce_no_chunks():
    chunker = Chunker()
    assert list(chunker.iter_chunks([PageRecord(text="", page_number=1), PageRecord(text="\n\n", page_number=2)])) == []


def test_chunking_is_lazy_and_recomputed_per_call():
    chunker = Chunker(chunk_size=50, chunk_overlap=0)
    pages = [PageRecord(text="word " * 40, page_number=1)]
    first = chunker.iter_chunks(pages)
    assert inspect.isgenerator(first)
    assert list(first) == list(chunker.iter_chunks(pages))
    assert list(first) == []


def test_overlap_must_be_smaller_than_size():
    with pytest.raises(ValueError):
        Chunker(chunk_size=10, chunk_overlap=10)


def test_from_config_reads_tunables(make_config):
    chunker = Chunker.from_config(make_config(INGEST_CHUNK_SIZE=300, INGEST_CHUNK_OVERLAP=20, INGEST_EXCERPT_BYTES=64))
    assert chunker.chunk_size == 300
    assert chunker.excerpt_bytes == 64
