"""
Unit tests for PDF upload inspection.
"""

import io

import fitz
import pytest

from classgrade.errors import InvalidStateError
from classgrade.pdf import inspect_pdf, read_upload


class TestInspectPdf:
    """Tests for inspect_pdf."""

    def test_valid_pdf(self, pdf_bytes: bytes) -> None:
        """Test a real PDF is accepted and described."""
        info = inspect_pdf(pdf_bytes)

        assert info.page_count == 1
        assert info.size_bytes == len(pdf_bytes)
        assert info.has_text is True

    def test_image_only_pdf_accepted(self) -> None:
        """Test a PDF without a text layer is still accepted."""
        doc = fitz.open()
        page = doc.new_page()
        page.draw_rect(fitz.Rect(50, 50, 200, 200), color=(0, 0, 0), fill=(0.5, 0.5, 0.5))
        data = doc.tobytes()
        doc.close()

        info = inspect_pdf(data)

        assert info.page_count == 1
        assert info.has_text is False

    def test_empty(self) -> None:
        with pytest.raises(InvalidStateError, match="empty"):
            inspect_pdf(b"")

    def test_too_large(self, pdf_bytes: bytes) -> None:
        with pytest.raises(InvalidStateError, match="too large"):
            inspect_pdf(pdf_bytes, max_bytes=10)

    def test_not_a_pdf(self) -> None:
        with pytest.raises(InvalidStateError, match="not a PDF"):
            inspect_pdf(b"PK\x03\x04 this is a zip file")

    def test_corrupted_pdf(self) -> None:
        """Test a file with a PDF header but no usable content is rejected."""
        with pytest.raises(InvalidStateError):
            inspect_pdf(b"%PDF-1.7\nthis is not really a pdf\n")


class TestReadUpload:
    """Tests for read_upload."""

    def test_within_limit(self, pdf_bytes: bytes) -> None:
        assert read_upload(io.BytesIO(pdf_bytes), len(pdf_bytes)) == pdf_bytes

    def test_over_limit_stops_reading(self) -> None:
        """Test an oversized stream is rejected after reading one byte past the limit."""
        stream = io.BytesIO(b"%PDF-" + b"x" * 10_000)

        with pytest.raises(InvalidStateError, match="too large"):
            read_upload(stream, 100)

        assert stream.tell() == 101
