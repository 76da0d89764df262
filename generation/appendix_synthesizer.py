"""Foresight appendix generation, one chapter group at a time."""
import asyncio
from datetime import date
from typing import Optional

from utils.logger import setup_logger
from extraction.models import ChapterGroup
from generation import prompts
from generation.llm_client import TieredCompletionClient
from session.state import SessionState
import config


logger = setup_logger(__name__)


def target_year(forecast_years: int, today: Optional[date] = None) -> int:
    """Forecast horizon year: the current year plus ``forecast_years``."""
    return (today or date.today()).year + forecast_years


class AppendixSynthesizer:
    """Generates Markdown appendices and stores them in the session."""

    def __init__(
        self,
        client: TieredCompletionClient,
        state: SessionState,
        context_chars: int = config.GENERATION_CONTEXT_CHARS
    ):
        """Initialize synthesizer.

        Args:
            client: Tier-aware completion client
            state: Session receiving the generated appendices
            context_chars: Book text embedded in each prompt
        """
        self.client = client
        self.state = state
        self.context_chars = context_chars

    async def generate(
        self,
        group: ChapterGroup,
        full_reduced_text: str,
        word_count_option: str = config.DEFAULT_WORD_COUNT_OPTION,
        forecast_years: int = config.DEFAULT_FORECAST_YEARS,
        cancel_event: Optional[asyncio.Event] = None
    ) -> str:
        """Generate the appendix for ``group`` and store it under its id.

        Regeneration overwrites the stored appendix. Nothing is stored when
        the call fails or is cancelled.

        Returns:
            The Markdown returned by the AI, verbatim
        """
        year = target_year(forecast_years)
        logger.info(
            f"Generating appendix {group.group_id} ({group.chapter_label}) "
            f"targeting {year}, {word_count_option} words"
        )

        prompt = prompts.appendix_prompt(
            group,
            full_reduced_text[:self.context_chars],
            word_count_option,
            year
        )
        content = await self.client.complete(prompt, cancel_event)

        self.state.add_generated_appendix(group.group_id, content)
        logger.info(f"Appendix {group.group_id}: {len(content.split()):,} words")
        return content

    async def generate_for_id(
        self,
        group_id: str,
        cancel_event: Optional[asyncio.Event] = None
    ) -> str:
        """Generate for a group of the session's plan using the session settings.

        Raises:
            ValueError: If the session has no plan or book content
            KeyError: If ``group_id`` is not in the current plan
        """
        plan = self.state.planning_data
        if plan is None or self.state.book_content is None:
            raise ValueError("Analyze the book before generating appendices")

        group = plan.get_group(group_id)
        if group is None:
            raise KeyError(f"No chapter group {group_id!r} in the planning table")

        return await self.generate(
            group,
            self.state.book_content,
            self.state.word_count_option,
            self.state.forecast_years,
            cancel_event
        )
