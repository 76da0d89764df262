"""Pydantic models for ingestion module."""
from pydantic import BaseModel, Field
from typing import List, Optional


class PageText(BaseModel):
    """Text extracted from a single physical page."""
    page_number: int = Field(ge=1)
    raw_text: str = ""


class ExtractionProgress(BaseModel):
    """Progress event emitted while extracting a PDF."""
    current: int
    total: int
    status: str


class ExtractionResult(BaseModel):
    """Represents an extracted PDF document.

    ``full_text`` holds every non-empty page prefixed with a ``[Page N]`` tag,
    pages separated by a blank line.
    """
    file_name: Optional[str] = None
    pages: List[PageText] = Field(default_factory=list)
    full_text: str = ""
    original_char_count: int = 0

    @property
    def page_count(self) -> int:
        return len(self.pages)


class ReductionReport(BaseModel):
    """Outcome of the bibliography/index/truncation passes."""
    pages: int = 0
    bibliography_removed: bool = False
    bibliography_chars_saved: int = Field(default=0, ge=0)
    index_removed: bool = False
    index_chars_saved: int = Field(default=0, ge=0)
    was_truncated: bool = False
    kept_percentage: float = Field(default=100.0, ge=0, le=100)
    original_chars: int = 0
    estimated_words: int = 0
    estimated_chars: int = 0
    # Sent onward to the AI; stored separately as the project's book content
    final_text: str = Field(default="", exclude=True)
