"""Pure text helpers used by the ingestion and retrieval pipelines."""

import hashlib
import re

_NON_ASCII = re.compile(r"[^\x00-\x7F]+")


def compute_content_hash(text: str) -> str:
    """Return the deterministic identifier of a chunk's text.

    The MD5 hex digest of the UTF-8 encoded text. It is the vector id of the
    chunk, so re-ingesting identical text overwrites instead of duplicating.

    Args:
        text (str): The chunk text.

    Returns:
        str: 32 lowercase hex characters.
    """
    return hashlib.md5(text.encode("utf-8"), usedforsecurity=False).hexdigest()


def truncate_string_by_bytes(text: str, max_bytes: int) -> str:
    """Cut ``text`` to at most ``max_bytes`` UTF-8 bytes.

    A multi-byte character split by the cut is dropped rather than raising.

    Args:
        text (str): The text to truncate.
        max_bytes (int): Byte budget, negative values behave like 0.

    Returns:
        str: A prefix of ``text`` whose UTF-8 encoding fits the budget.
    """
    encoded = text.encode("utf-8")[: max(max_bytes, 0)]
    return encoded.decode("utf-8", errors="ignore")


def normalize_whitespace(text: str) -> str:
    """Replace newlines with spaces before a text is sent to the embedder."""
    return text.replace("\r\n", " ").replace("\n", " ")


def strip_newlines(text: str) -> str:
    """Remove embedded newlines from page text before it is chunked."""
    return text.replace("\r", "").replace("\n", "")


def to_namespace(document_id: str) -> str:
    """Derive the transport-safe vector namespace of a document.

    Raises:
        ValueError: If nothing is left of the id after stripping non-ASCII characters.
    """
    namespace = _NON_ASCII.sub("", document_id)
    if not namespace:
        raise ValueError(f"Document id '{document_id}' has no ASCII characters to build a namespace from.")
    return namespace
