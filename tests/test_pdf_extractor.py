"""Test PDF extraction."""
import asyncio

import pytest

from ingestion.models import PageText
from ingestion.pdf_extractor import (
    InputRejectedError,
    PDFExtractionError,
    PDFExtractor,
    build_full_text,
)


def test_pages_are_tagged_and_joined(make_pdf):
    """Test that each page gets a [Page N] tag and a blank line between pages."""
    path = make_pdf(["Hello world", "Second page"])

    result = PDFExtractor().extract(path)

    assert result.page_count == 2
    assert result.full_text == "[Page 1]\nHello world\n\n[Page 2]\nSecond page"
    assert result.original_char_count == len(result.full_text)
    assert result.file_name == "book.pdf"


def test_blank_pages_are_skipped_but_numbered(make_pdf):
    """Test that empty pages leave no tag and later pages keep their number."""
    path = make_pdf(["First", "", "Third"])

    result = PDFExtractor().extract(path)

    assert result.page_count == 3
    assert "[Page 2]" not in result.full_text
    assert "[Page 3]\nThird" in result.full_text


def test_progress_events(make_pdf):
    """Test that progress starts at zero and reports every page."""
    path = make_pdf(["a", "b", "c"])
    events = []

    PDFExtractor().extract(path, on_progress=events.append)

    assert events[0].current == 0
    assert events[0].status == "Starting extraction..."
    assert [e.current for e in events[1:]] == [1, 2, 3]
    assert events[-1].status == "Extracting page 3 of 3..."


def test_rejects_non_pdf(tmp_path):
    """Test that a non-PDF file is refused before parsing."""
    path = tmp_path / "notes.txt"
    path.write_text("plain text")

    with pytest.raises(InputRejectedError):
        PDFExtractor().extract(path)


def test_rejects_oversized_file(make_pdf):
    """Test the size ceiling message."""
    path = make_pdf(["x"])

    with pytest.raises(InputRejectedError, match="Please use PDFs under"):
        PDFExtractor(max_bytes=10).extract(path)


def test_corrupt_pdf_fails_extraction(tmp_path):
    """Test that an unreadable PDF raises an extraction error."""
    path = tmp_path / "broken.pdf"
    path.write_bytes(b"this is not a pdf at all")

    with pytest.raises(PDFExtractionError):
        PDFExtractor().extract(path)


def test_extract_bytes_accepts_pdf_content_type(make_pdf):
    """Test that an upload without .pdf name is accepted by MIME type and magic."""
    data = make_pdf(["From memory"]).read_bytes()

    result = PDFExtractor().extract_bytes(data, "upload", content_type="application/pdf")

    assert result.full_text == "[Page 1]\nFrom memory"


def test_extract_bytes_rejects_unknown_upload():
    """Test that an upload with neither name nor type is refused."""
    with pytest.raises(InputRejectedError):
        PDFExtractor().extract_bytes(b"%PDF-1.7", "upload.bin", content_type="text/plain")


def test_ingest_reports_processing_step(make_pdf):
    """Test that ingest emits a processing event and a reduction report."""
    path = make_pdf(["Alpha beta", "Gamma"])
    events = []

    result, report = PDFExtractor().ingest(path, on_progress=events.append)

    assert events[-1].status == "Processing content..."
    assert report.pages == 2
    assert report.final_text == result.full_text
    assert report.estimated_words == len(result.full_text.split())


def test_build_full_text():
    """Test full text assembly from page records."""
    pages = [
        PageText(page_number=1, raw_text="One"),
        PageText(page_number=2, raw_text="   "),
        PageText(page_number=3, raw_text="Three"),
    ]

    assert build_full_text(pages) == "[Page 1]\nOne\n\n[Page 3]\nThree"


def test_page_failure_aborts_extraction(make_pdf, monkeypatch):
    """Test that one failing page fails the whole document with no partial result."""
    path = make_pdf(["one", "two", "three"])
    events = []

    def flaky_page_text(page):
        if page.number == 1:
            raise RuntimeError("broken content stream")
        return "ok"

    monkeypatch.setattr(PDFExtractor, "_page_text", staticmethod(flaky_page_text))

    result = None
    with pytest.raises(PDFExtractionError, match="page 2 of 3"):
        result = PDFExtractor().extract(path, on_progress=events.append)

    assert result is None
    assert [e.current for e in events] == [0, 1]


def test_extract_async(make_pdf):
    """Test that the async wrapper returns the same result as extract."""
    path = make_pdf(["Async page"])

    result = asyncio.run(PDFExtractor().extract_async(path))

    assert result == PDFExtractor().extract(path)
    assert result.full_text == "[Page 1]\nAsync page"
