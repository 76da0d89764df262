"""Session state shared by the pipeline steps.

A single ``SessionState`` is created per session and handed to whichever
component needs it. Mutations are expected to be serialized by the caller.
"""
import hashlib
import json
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from utils.logger import setup_logger
from ingestion.models import ReductionReport
from extraction.models import PlanningData
from generation.llm_client import Tier
import config

logger = setup_logger(__name__)


class SessionState(BaseModel):
    """Everything a project carries between steps."""
    current_step: int = 1
    api_key: Optional[str] = None
    api_key_valid: bool = False
    detected_tier: Optional[Tier] = None
    file_name: Optional[str] = None
    book_content: Optional[str] = None
    reduction_report: Optional[ReductionReport] = None
    planning_data: Optional[PlanningData] = None
    generated_appendices: Dict[str, str] = Field(default_factory=dict)
    forecast_years: int = config.DEFAULT_FORECAST_YEARS
    word_count_option: str = config.DEFAULT_WORD_COUNT_OPTION
    saved_fingerprint: Optional[str] = Field(default=None, exclude=True)

    def reset(self) -> None:
        """Return every field to its initial value."""
        for name, field in type(self).model_fields.items():
            setattr(self, name, field.get_default(call_default_factory=True))
        logger.info("Session reset")

    def can_proceed_to_step(self, step: int) -> bool:
        if step == 1:
            return True
        if step == 2:
            return self.api_key_valid
        if step == 3:
            return self.api_key_valid and self.book_content is not None
        if step == 4:
            return (
                self.api_key_valid
                and self.book_content is not None
                and self.planning_data is not None
            )
        return False

    def set_book(self, file_name: str, report: ReductionReport) -> None:
        """Adopt a freshly reduced book; earlier plans and appendices are dropped."""
        self.file_name = file_name
        self.book_content = report.final_text
        self.reduction_report = report
        self.planning_data = None
        self.generated_appendices = {}

    def replace_plan(self, plan: PlanningData) -> None:
        """Install a new plan. Appendices of vanished groups are kept as orphans."""
        self.planning_data = plan
        orphans = self.orphaned_appendices()
        if orphans:
            logger.info(f"Appendices without a matching group: {', '.join(orphans)}")

    def add_generated_appendix(self, group_id: str, content: str) -> None:
        self.generated_appendices[group_id] = content

    def get_appendix(self, group_id: str) -> Optional[str]:
        """Content generated for ``group_id``, or None when not found."""
        return self.generated_appendices.get(group_id)

    def orphaned_appendices(self) -> List[str]:
        """Appendix keys that no longer match a group of the current plan."""
        known = set(self.planning_data.group_ids) if self.planning_data else set()
        return sorted(key for key in self.generated_appendices if key not in known)

    def fingerprint(self) -> str:
        payload = self.model_dump(mode="json", exclude={"current_step", "api_key_valid"})
        return hashlib.sha256(
            json.dumps(payload, sort_keys=True).encode("utf-8")
        ).hexdigest()

    def has_data(self) -> bool:
        return bool(self.book_content or self.planning_data or self.generated_appendices)

    def has_unsaved_changes(self) -> bool:
        if not self.has_data():
            return False
        return self.fingerprint() != self.saved_fingerprint

    def mark_as_saved(self) -> None:
        self.saved_fingerprint = self.fingerprint()
