"""PDF text extraction module."""
import asyncio
import fitz  # PyMuPDF
from pathlib import Path
from typing import Callable, List, Optional, Tuple, Union

from utils.logger import setup_logger
from ingestion.models import ExtractionProgress, ExtractionResult, PageText, ReductionReport
from ingestion.cleaner import reduce_content
import config

logger = setup_logger(__name__)

ProgressCallback = Callable[[ExtractionProgress], None]

PDF_CONTENT_TYPES = {"application/pdf", "application/x-pdf"}
PDF_MAGIC = b"%PDF"


class PDFExtractionError(Exception):
    """Raised when PDF extraction fails."""
    pass


class InputRejectedError(PDFExtractionError):
    """Raised when an upload is refused before any parsing work."""
    pass


class PDFExtractor:
    """Extracts page-tagged text from PDF books."""

    def __init__(self, max_bytes: int = config.MAX_UPLOAD_BYTES):
        """Initialize extractor.

        Args:
            max_bytes: Largest accepted upload, in bytes
        """
        self.max_bytes = max_bytes

    def extract(
        self,
        pdf_path: Union[str, Path],
        on_progress: Optional[ProgressCallback] = None
    ) -> ExtractionResult:
        """Extract text from a PDF file on disk.

        Args:
            pdf_path: Path to PDF file
            on_progress: Called after every page

        Returns:
            ExtractionResult with page-tagged full text

        Raises:
            InputRejectedError: If the file is missing, too large or not a PDF
            PDFExtractionError: If the PDF cannot be parsed
        """
        pdf_path = Path(pdf_path)

        if not pdf_path.exists():
            raise InputRejectedError(f"PDF file not found: {pdf_path}")
        if pdf_path.suffix.lower() != ".pdf":
            raise InputRejectedError(f"Please upload a PDF file (got {pdf_path.name})")
        self._check_size(pdf_path.stat().st_size)

        logger.info(f"Extracting text from {pdf_path.name}")
        return self._extract_document(
            lambda: fitz.open(pdf_path), pdf_path.name, on_progress
        )

    def extract_bytes(
        self,
        data: bytes,
        file_name: str,
        content_type: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None
    ) -> ExtractionResult:
        """Extract text from an uploaded PDF held in memory.

        Args:
            data: Raw file content
            file_name: Name of the upload, used for the extension check
            content_type: Declared MIME type, if known
            on_progress: Called after every page

        Returns:
            ExtractionResult with page-tagged full text
        """
        self._check_size(len(data))
        is_pdf_name = file_name.lower().endswith(".pdf")
        is_pdf_type = content_type in PDF_CONTENT_TYPES and data.startswith(PDF_MAGIC)
        if not (is_pdf_name or is_pdf_type):
            raise InputRejectedError(f"Please upload a PDF file (got {file_name})")

        logger.info(f"Extracting text from upload {file_name}")
        return self._extract_document(
            lambda: fitz.open(stream=data, filetype="pdf"), file_name, on_progress
        )

    async def extract_async(
        self,
        pdf_path: Union[str, Path],
        on_progress: Optional[ProgressCallback] = None
    ) -> ExtractionResult:
        """Run :meth:`extract` in a worker thread; pages stay sequential."""
        return await asyncio.to_thread(self.extract, pdf_path, on_progress)

    def ingest(
        self,
        pdf_path: Union[str, Path],
        on_progress: Optional[ProgressCallback] = None,
        max_chars: int = config.MAX_CONTENT_CHARS
    ) -> Tuple[ExtractionResult, ReductionReport]:
        """Extract a PDF and run the content reducer on it."""
        result = self.extract(pdf_path, on_progress)
        if on_progress:
            on_progress(ExtractionProgress(
                current=result.page_count,
                total=result.page_count,
                status="Processing content..."
            ))
        report = reduce_content(result.full_text, max_chars, pages=result.page_count)
        return result, report

    def _check_size(self, size: int) -> None:
        if size > self.max_bytes:
            size_mb = size / (1024 * 1024)
            limit_mb = self.max_bytes / (1024 * 1024)
            raise InputRejectedError(
                f"File is too large ({size_mb:.1f} MB). Please use PDFs under {limit_mb:.0f}MB."
            )

    def _extract_document(
        self,
        opener: Callable[[], "fitz.Document"],
        file_name: str,
        on_progress: Optional[ProgressCallback]
    ) -> ExtractionResult:
        try:
            doc = opener()
        except Exception as e:
            raise PDFExtractionError(f"Failed to open PDF: {e}") from e

        try:
            total = doc.page_count
            if on_progress:
                on_progress(ExtractionProgress(current=0, total=total, status="Starting extraction..."))

            pages: List[PageText] = []
            for index in range(total):
                page_number = index + 1
                try:
                    text = self._page_text(doc[index])
                except Exception as e:
                    raise PDFExtractionError(
                        f"Failed to extract page {page_number} of {total}: {e}"
                    ) from e
                pages.append(PageText(page_number=page_number, raw_text=text))

                if on_progress:
                    on_progress(ExtractionProgress(
                        current=page_number,
                        total=total,
                        status=f"Extracting page {page_number} of {total}..."
                    ))
        finally:
            doc.close()

        full_text = build_full_text(pages)
        logger.info(f"Extracted {len(pages)} pages, {len(full_text):,} chars")

        return ExtractionResult(
            file_name=file_name,
            pages=pages,
            full_text=full_text,
            original_char_count=len(full_text)
        )

    @staticmethod
    def _page_text(page: "fitz.Page") -> str:
        """Join the page's word items with single spaces, in source order."""
        words = page.get_text("words", sort=False)
        return " ".join(word[4] for word in words)


def build_full_text(pages: List[PageText]) -> str:
    """Tag every non-empty page with ``[Page N]`` and join with blank lines."""
    blocks = [
        f"[Page {page.page_number}]\n{page.raw_text}"
        for page in pages
        if page.raw_text.strip()
    ]
    return "\n\n".join(blocks)
