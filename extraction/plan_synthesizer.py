"""Planning-table synthesis using the AI collaborator."""
import asyncio
from typing import Any, Optional

from pydantic import ValidationError

from utils.logger import setup_logger
from extraction.models import PlanningData
from extraction.json_response import ResponseParseError, parse_json_response
from extraction import prompts
from generation.llm_client import TieredCompletionClient

logger = setup_logger(__name__)


class PlanValidationError(ResponseParseError):
    """Raised when the AI's JSON does not describe a usable planning table."""
    pass


def plan_from_json(data: Any) -> PlanningData:
    """Validate decoded JSON into a PlanningData.

    Raises:
        PlanValidationError: Listing every offending field
    """
    if not isinstance(data, dict):
        raise PlanValidationError(
            f"Expected a JSON object for the planning table, got {type(data).__name__}"
        )
    try:
        return PlanningData.model_validate(data)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
            for err in e.errors()
        )
        raise PlanValidationError(f"AI returned an invalid planning table: {problems}") from e


class PlanSynthesizer:
    """Builds and revises planning tables through the AI."""

    def __init__(self, client: TieredCompletionClient):
        """Initialize synthesizer.

        Args:
            client: Tier-aware completion client
        """
        self.client = client

    async def analyze(
        self,
        reduced_text: str,
        was_truncated: bool = False,
        cancel_event: Optional[asyncio.Event] = None
    ) -> PlanningData:
        """Create a planning table from reduced book text.

        Args:
            reduced_text: Text after the content reducer
            was_truncated: Whether the middle of the book was omitted
            cancel_event: Set to abandon the request

        Returns:
            PlanningData parsed from the AI's answer

        Raises:
            LLMTransportError: If the AI could not be reached
            ResponseParseError: If the answer is not a usable planning table
        """
        logger.info(f"Analyzing {len(reduced_text):,} chars with {self.client.model}")
        prompt = prompts.analysis_prompt(reduced_text, was_truncated)
        response = await self.client.complete(prompt, cancel_event)

        plan = plan_from_json(parse_json_response(response))
        logger.info(
            f"Planning table: {len(plan.chapters)} groups for "
            f"{plan.book_overview.total_chapters} chapters"
        )
        self._log_coverage(plan)
        return plan

    async def apply_change(
        self,
        current_plan: PlanningData,
        change_request: str,
        cancel_event: Optional[asyncio.Event] = None
    ) -> PlanningData:
        """Ask the AI to rewrite the planning table per a free-text request.

        The returned plan is a full replacement; unrelated groups are not
        guaranteed to survive verbatim.
        """
        if not change_request or not change_request.strip():
            raise ValueError("Change request is empty")

        logger.info(f"Applying change request: {change_request.strip()[:80]}")
        prompt = prompts.change_request_prompt(current_plan, change_request)
        response = await self.client.complete(prompt, cancel_event)

        plan = plan_from_json(parse_json_response(response))
        removed = set(current_plan.group_ids) - set(plan.group_ids)
        if removed:
            logger.info(f"Groups no longer in plan: {', '.join(sorted(removed))}")
        self._log_coverage(plan)
        return plan

    @staticmethod
    def _log_coverage(plan: PlanningData) -> None:
        uncovered = plan.uncovered_chapters()
        if uncovered:
            logger.warning(f"Chapters not assigned to any group: {uncovered}")
        overlaps = plan.overlapping_chapters()
        if overlaps:
            logger.warning(f"Chapters assigned to several groups: {sorted(overlaps)}")
