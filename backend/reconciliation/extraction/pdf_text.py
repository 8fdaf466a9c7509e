"""
Statement PDF Text Reader

Reads uploaded statement PDFs into plain text for the extractor.
"""

import io
import logging

from pypdf import PdfReader
from pypdf.errors import PyPdfError

from reconciliation.errors import InputReadError

logger = logging.getLogger(__name__)

PDF_MAGIC = b"%PDF"

# Readers accept up to this many bytes of junk before the header
HEADER_SEARCH_BYTES = 1024


def read_statement_text(data: bytes) -> str:
    """
    Extract the full text of a statement PDF.

    Args:
        data: Raw PDF bytes

    Returns:
        Page texts joined with newlines

    Raises:
        InputReadError: If the bytes are empty, not a PDF, or unreadable
    """
    if not data:
        raise InputReadError("statement", "file is empty")

    if PDF_MAGIC not in data[:HEADER_SEARCH_BYTES]:
        raise InputReadError("statement", "file is not a PDF document")

    try:
        reader = PdfReader(io.BytesIO(data))
        pages = [page.extract_text() or "" for page in reader.pages]
    except (PyPdfError, ValueError, OSError) as e:
        logger.error(f"Failed to read statement PDF: {e}")
        raise InputReadError("statement", str(e)) from e

    text = "\n".join(pages)
    logger.info(f"Read {len(pages)} statement pages ({len(text)} characters)")
    return text
