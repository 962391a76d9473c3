"""
PDF inspection using PyMuPDF.

Uploaded submissions are opened once to make sure they are real,
non-empty PDFs before they are stored and later sent to the grader.
"""

from typing import BinaryIO, NamedTuple

import fitz  # PyMuPDF

from classgrade.errors import InvalidStateError

PDF_MAGIC = b"%PDF-"


class PdfInfo(NamedTuple):
    """Basic facts about a validated PDF."""

    page_count: int
    size_bytes: int
    has_text: bool


def read_upload(stream: BinaryIO, max_bytes: int) -> bytes:
    """
    Read an uploaded file, never pulling more than ``max_bytes + 1`` bytes.

    Raises:
        InvalidStateError: If the stream holds more than ``max_bytes``.
    """
    data = stream.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise InvalidStateError(f"Uploaded file is too large (limit {max_bytes} bytes)")
    return data


def inspect_pdf(data: bytes, max_bytes: int | None = None) -> PdfInfo:
    """
    Validate that ``data`` is a readable PDF.

    Scanned (image-only) PDFs are accepted; the grading model reads them
    directly, so ``has_text`` is informational only.

    Args:
        data: File content.
        max_bytes: Optional size limit.

    Returns:
        PdfInfo for the document.

    Raises:
        InvalidStateError: If the file is empty, too large, or not a PDF.
    """
    if not data:
        raise InvalidStateError("Uploaded file is empty")

    if max_bytes is not None and len(data) > max_bytes:
        raise InvalidStateError(
            f"Uploaded file is too large ({len(data)} bytes, limit {max_bytes})"
        )

    if data.lstrip()[:5] != PDF_MAGIC:
        raise InvalidStateError("Uploaded file is not a PDF")

    try:
        with fitz.open(stream=data, filetype="pdf") as doc:
            if doc.page_count == 0:
                raise InvalidStateError("PDF has no pages")

            has_text = any(page.get_text("text").strip() for page in doc)
            return PdfInfo(page_count=doc.page_count, size_bytes=len(data), has_text=has_text)

    except (fitz.FileDataError, fitz.EmptyFileError) as e:
        raise InvalidStateError("PDF file is corrupted or invalid", cause=e) from e
