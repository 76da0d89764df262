"""Shared fixtures."""
import asyncio
from pathlib import Path
from typing import List

import fitz  # PyMuPDF
import pytest

from generation.llm_client import BaseCompletionClient, CompletionRequest, CompletionResponse


class FakeCompletionClient(BaseCompletionClient):
    """Replays scripted responses and records every request."""

    def __init__(self, responses: List[CompletionResponse], delay: float = 0):
        self.responses = list(responses)
        self.requests: List[CompletionRequest] = []
        self.delay = delay

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.responses.pop(0)

    def get_provider_name(self) -> str:
        return "fake"


def ok(text: str) -> CompletionResponse:
    return CompletionResponse(success=True, text=text)


def failed(message: str) -> CompletionResponse:
    return CompletionResponse(success=False, error_message=message)


@pytest.fixture
def plan_dict():
    return {
        "book_overview": {
            "title": "Cities of Tomorrow",
            "scope": "Urban planning and infrastructure",
            "total_chapters": 3,
            "disciplines": ["Urbanism", "Engineering", "Urbanism"],
            "languages": ["English"],
        },
        "chapters": [
            {
                "group_id": "GROUP_A",
                "group_type": "GROUP",
                "chapter_numbers": [1, 2],
                "chapter_titles": ["Streets", "Transit"],
                "content_summary": "Mobility in dense cities",
                "thematic_quadrants": ["Technology", "Policy", "Society"],
                "foresight_task": "Explore autonomous transit",
            },
            {
                "group_id": "STANDALONE_1",
                "group_type": "standalone",
                "chapter_numbers": [3],
                "chapter_titles": ["Housing"],
                "content_summary": "Affordable housing",
                "thematic_quadrants": ["Economy", "Society", "Materials"],
                "foresight_task": "Explore modular construction",
            },
        ],
        "implementation_notes": "Keep the tone academic",
    }


@pytest.fixture
def make_pdf(tmp_path):
    """Write a PDF with one page per string; empty strings give blank pages."""
    def _make(pages: List[str], name: str = "book.pdf") -> Path:
        doc = fitz.open()
        for text in pages:
            page = doc.new_page()
            if text:
                page.insert_text((72, 72), text)
        path = tmp_path / name
        doc.save(str(path))
        doc.close()
        return path
    return _make
