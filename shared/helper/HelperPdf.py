"""PDF decoding into page records."""

import io

from PyPDF2 import PdfReader

from shared.errors import ParseFailureError
from shared.models.document import PageRecord


def parse_pdf_pages(content: bytes) -> list[PageRecord]:
    """Decode a PDF into one record per page.

    Page numbers are 1-based. Pages without extractable text are kept with an
    empty string so the page count stays exact for quota checks.

    Args:
        content (bytes): Raw PDF bytes.

    Returns:
        list[PageRecord]: Pages in document order.

    Raises:
        ParseFailureError: If the bytes are empty or cannot be decoded as a PDF.
    """
    if not content:
        raise ParseFailureError("Uploaded file is empty.")
    try:
        reader = PdfReader(io.BytesIO(content))
        if reader.is_encrypted:
            # most "protected" PDFs only carry an owner password
            reader.decrypt("")
        return [
            PageRecord(text=page.extract_text() or "", page_number=index + 1)
            for index, page in enumerate(reader.pages)
        ]
    except Exception as e:
        raise ParseFailureError(f"Could not parse PDF: {type(e).__name__}: {e}") from e
