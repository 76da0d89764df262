"""Pydantic models for the appendix planning table."""
from enum import Enum
from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Dict, List, Optional


def _unique(values: List[str]) -> List[str]:
    seen = set()
    result = []
    for value in values:
        if value not in seen:
            seen.add(value)
            result.append(value)
    return result


class GroupType(str, Enum):
    GROUP = "GROUP"
    STANDALONE = "STANDALONE"


class BookOverview(BaseModel):
    """Book-level facts detected by the analysis."""
    title: str = ""
    scope: str = ""
    total_chapters: int = Field(default=0, ge=0)
    disciplines: List[str] = Field(default_factory=list)
    languages: List[str] = Field(default_factory=list)

    @field_validator("disciplines", "languages")
    @classmethod
    def _dedupe(cls, values: List[str]) -> List[str]:
        return _unique(values)


class ChapterGroup(BaseModel):
    """One or more chapters that share a single generated appendix."""
    group_id: str  # GROUP_A, STANDALONE_1, ...
    group_type: GroupType
    chapter_numbers: List[int] = Field(min_length=1)
    chapter_titles: List[str] = Field(default_factory=list)
    content_summary: str = ""
    thematic_quadrants: List[str] = Field(default_factory=list)  # 3-5 expected
    foresight_task: str = ""

    @field_validator("group_type", mode="before")
    @classmethod
    def _normalise_type(cls, value):
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @field_validator("chapter_numbers")
    @classmethod
    def _positive(cls, values: List[int]) -> List[int]:
        if any(number < 1 for number in values):
            raise ValueError("chapter numbers must be positive")
        return values

    @model_validator(mode="after")
    def _titles_aligned(self) -> "ChapterGroup":
        if self.chapter_titles and len(self.chapter_titles) != len(self.chapter_numbers):
            raise ValueError(
                f"{self.group_id}: {len(self.chapter_titles)} titles for "
                f"{len(self.chapter_numbers)} chapters"
            )
        return self

    @property
    def chapter_label(self) -> str:
        """Human readable chapter list, e.g. ``Chapters 1, 2, 3``."""
        numbers = ", ".join(str(n) for n in self.chapter_numbers)
        prefix = "Chapter" if len(self.chapter_numbers) == 1 else "Chapters"
        return f"{prefix} {numbers}"

    def chapter_lines(self) -> List[str]:
        """``Chapter N: Title`` lines, numbers only when titles are unknown."""
        if not self.chapter_titles:
            return [f"Chapter {n}" for n in self.chapter_numbers]
        return [
            f"Chapter {n}: {title}"
            for n, title in zip(self.chapter_numbers, self.chapter_titles)
        ]


class PlanningData(BaseModel):
    """Planning table exchanged with the AI and persisted in project files.

    Chapter coverage is reported by :meth:`uncovered_chapters` and
    :meth:`overlapping_chapters` but never enforced.
    """
    book_overview: BookOverview
    chapters: List[ChapterGroup] = Field(default_factory=list)
    implementation_notes: str = ""

    @model_validator(mode="after")
    def _unique_group_ids(self) -> "PlanningData":
        ids = [group.group_id for group in self.chapters]
        duplicates = sorted({gid for gid in ids if ids.count(gid) > 1})
        if duplicates:
            raise ValueError(f"duplicate group_id: {', '.join(duplicates)}")
        return self

    @property
    def group_ids(self) -> List[str]:
        return [group.group_id for group in self.chapters]

    def get_group(self, group_id: str) -> Optional[ChapterGroup]:
        for group in self.chapters:
            if group.group_id == group_id:
                return group
        return None

    def uncovered_chapters(self) -> List[int]:
        """Chapters in ``1..total_chapters`` that no group references."""
        covered = {n for group in self.chapters for n in group.chapter_numbers}
        return [n for n in range(1, self.book_overview.total_chapters + 1) if n not in covered]

    def overlapping_chapters(self) -> Dict[int, List[str]]:
        """Chapters claimed by more than one group, mapped to those groups."""
        owners: Dict[int, List[str]] = {}
        for group in self.chapters:
            for number in group.chapter_numbers:
                owners.setdefault(number, []).append(group.group_id)
        return {n: ids for n, ids in sorted(owners.items()) if len(ids) > 1}
