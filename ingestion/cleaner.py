"""Content reduction: bibliography/index stripping and smart truncation.

The three passes always run in the same order (bibliography, index,
truncation) and operate on the page-tagged text produced by the extractor.
Heading detection is positional: a heading only counts once it sits past a
fraction of the text length, which filters out early false positives such as
a chapter titled "References to X".
"""
import math
import re
from dataclasses import dataclass
from typing import List, NamedTuple, Optional, Sequence, Tuple

from utils.logger import setup_logger
from ingestion.models import ReductionReport
import config

logger = setup_logger(__name__)

TRUNCATION_MARKER = "\n\n[... CONTENT TRUNCATED FOR LENGTH - MIDDLE SECTION OMITTED ...]\n\n"
PAGE_TAG = "[Page "

_BIB_FULL = (
    r"References|Bibliography|Works Cited|Literature Cited|Sources|"
    r"Cited Works|Reference List|Works Referenced"
)
_BIB_NO_SOURCES = (
    r"References|Bibliography|Works Cited|Literature Cited|"
    r"Cited Works|Reference List"
)
_INDEX_TERMS = r"Subject Index|Author Index|Index|Name Index|General Index"


@dataclass(frozen=True)
class HeadingRule:
    """A heading pattern that only qualifies past ``threshold`` of the text."""
    name: str
    pattern: re.Pattern
    threshold: float

    def first_match(self, text: str) -> Optional[int]:
        """Offset of the earliest match located past the threshold."""
        limit = len(text) * self.threshold
        for match in self.pattern.finditer(text):
            if match.start() > limit:
                return match.start()
        return None

    def spans(self, text: str) -> List[Tuple[int, int]]:
        return [match.span() for match in self.pattern.finditer(text)]


class StripResult(NamedTuple):
    text: str
    removed: bool
    chars_saved: int


class TruncationResult(NamedTuple):
    text: str
    was_truncated: bool
    kept_percentage: float


def _rule(name: str, pattern: str, threshold: float) -> HeadingRule:
    return HeadingRule(name, re.compile(pattern, re.IGNORECASE), threshold)


# Page text is joined with spaces, so a heading opening a page runs straight
# into its first entry: an author ("Smith, J." / "Smith J."), a numbered
# citation ("[1]", "1."), or nothing at all.
_FIRST_CITATION = (
    r"(?=\s*(?:$|\n|\[\d+\]|\d+\.\s|"
    r"(?-i:[A-Z][\w'’-]*,\s|[A-Z][\w'’-]+\s+[A-Z]\.)))"
)
# First index entry carries a page locator: "abacus 12, 45", "zebra, 99"
_FIRST_INDEX_ENTRY = r"(?=\s*(?:$|\n|[^\d\n]{1,60}?\d+\s*[,–-]))"

BIBLIOGRAPHY_RULES: List[HeadingRule] = [
    # Heading opening a page: "[Page 212]\nReferences Smith, J. ..."
    _rule(
        "page-tag",
        rf"\[Page \d+\]\s*\n?\s*(?:{_BIB_FULL})\b{_FIRST_CITATION}",
        config.BIBLIOGRAPHY_THRESHOLD,
    ),
    # Heading on its own line
    _rule("own-line", rf"\n\s*(?:{_BIB_NO_SOURCES})[ \t]*\n", config.BIBLIOGRAPHY_THRESHOLD),
    # Numbered or chapter-prefixed: "\nChapter 12 References\n", "\n9. Bibliography\n"
    _rule(
        "numbered",
        r"\n\s*(?:Chapter\s+)?\d*\.?\s*(?:References|Bibliography)[ \t]*\n",
        config.BIBLIOGRAPHY_THRESHOLD,
    ),
]

INDEX_RULES: List[HeadingRule] = [
    _rule(
        "page-tag",
        rf"\[Page \d+\]\s*\n?\s*(?:{_INDEX_TERMS})\b{_FIRST_INDEX_ENTRY}",
        config.INDEX_THRESHOLD,
    ),
    _rule("own-line", rf"\n\s*(?:{_INDEX_TERMS})[ \t]*\n", config.INDEX_THRESHOLD),
]

APPENDIX_PATTERN = re.compile(r"\[Page \d+\]\s*\n?\s*(?:Appendix|Appendices)\s", re.IGNORECASE)


def find_heading(text: str, rules: Sequence[HeadingRule]) -> Optional[int]:
    """Return the smallest qualifying offset across all rules.

    Rules are evaluated in their listed order; ties keep the first rule's hit.

    Args:
        text: Page-tagged text
        rules: Ordered heading rules

    Returns:
        Start offset of the earliest qualifying heading, or None
    """
    best: Optional[int] = None
    for rule in rules:
        offset = rule.first_match(text)
        if offset is not None and (best is None or offset < best):
            best = offset
    return best


def find_back_matter(text: str, rules: Sequence[HeadingRule]) -> Optional[int]:
    """Offset of the heading that opens the back matter, or None.

    A qualifying heading is refused when another heading of the same kind
    ends between ``threshold * offset`` and the offset itself: such repeats
    are per-chapter sections, not back matter.
    """
    start = find_heading(text, rules)
    if start is None:
        return None

    floor = start * min(rule.threshold for rule in rules)
    for rule in rules:
        for begin, end in rule.spans(text):
            if floor < begin and end <= start:
                logger.info(
                    f"Repeated {rule.name} heading at offset {begin}, "
                    f"keeping section at offset {start}"
                )
                return None
    return start


def _remove_bibliography(text: str, start: int) -> str:
    remaining = text[start:]
    appendix = APPENDIX_PATTERN.search(remaining)
    if appendix:
        logger.info(f"Bibliography removed at offset {start}, appendix preserved")
        return text[:start] + remaining[appendix.start():]
    logger.info(f"Bibliography removed at offset {start}")
    return text[:start]


def strip_bibliography(text: str) -> StripResult:
    """Remove the bibliography section, keeping a following appendix.

    When an ``[Page N] Appendix`` heading follows the bibliography heading,
    only the span between the two is removed; otherwise the text is cut at
    the bibliography heading. Removal repeats until no heading qualifies, so
    stripping the result again changes nothing.

    Args:
        text: Page-tagged text

    Returns:
        StripResult with the remaining text
    """
    stripped = text
    start = find_back_matter(stripped, BIBLIOGRAPHY_RULES)
    while start is not None:
        stripped = _remove_bibliography(stripped, start)
        start = find_back_matter(stripped, BIBLIOGRAPHY_RULES)

    saved = len(text) - len(stripped)
    return StripResult(stripped, saved > 0, saved)


def strip_index(text: str) -> StripResult:
    """Cut the text at the first index heading in its final fifth."""
    stripped = text
    start = find_back_matter(stripped, INDEX_RULES)
    while start is not None:
        logger.info(f"Index removed at offset {start}")
        stripped = stripped[:start]
        start = find_back_matter(stripped, INDEX_RULES)

    saved = len(text) - len(stripped)
    return StripResult(stripped, saved > 0, saved)


def truncate_smart(text: str, max_chars: int = config.MAX_CONTENT_CHARS) -> TruncationResult:
    """Keep the head and tail of ``text`` when it exceeds ``max_chars``.

    The marker is paid for out of ``max_chars``; the head keeps 55% and the
    tail 45% of what is left, each snapped to a ``[Page N]`` boundary when
    one lies within the last (head) or first (tail) 20% of the segment. The
    result never exceeds ``max_chars``.

    Args:
        text: Text after stripping
        max_chars: Size ceiling

    Returns:
        TruncationResult; text is returned unchanged when within the ceiling
    """
    if len(text) <= max_chars:
        return TruncationResult(text, False, 100.0)

    budget = max_chars - len(TRUNCATION_MARKER)
    if budget <= 0:
        # Ceiling too small to hold the marker
        truncated = text[:max(max_chars, 0)]
    else:
        head_chars = int(budget * config.TRUNCATION_HEAD_SHARE)
        tail_chars = int(budget * config.TRUNCATION_TAIL_SHARE)

        head = text[:head_chars]
        last_break = head.rfind(PAGE_TAG)
        if last_break > head_chars * (1 - config.PAGE_SNAP_WINDOW):
            head = head[:last_break]

        tail = text[len(text) - tail_chars:] if tail_chars else ""
        first_break = tail.find(PAGE_TAG)
        if first_break != -1 and first_break < tail_chars * config.PAGE_SNAP_WINDOW:
            tail = tail[first_break:]

        truncated = head + TRUNCATION_MARKER + tail

    kept = math.floor(len(truncated) / len(text) * 1000 + 0.5) / 10

    logger.info(
        f"Content truncated from {len(text):,} to {len(truncated):,} chars ({kept}% kept)"
    )
    return TruncationResult(truncated, True, kept)


def reduce_content(
    full_text: str,
    max_chars: int = config.MAX_CONTENT_CHARS,
    pages: int = 0
) -> ReductionReport:
    """Run bibliography strip, index strip and truncation in that order.

    Args:
        full_text: Page-tagged text from the extractor
        max_chars: Truncation ceiling
        pages: Physical page count, carried into the report

    Returns:
        ReductionReport whose ``final_text`` is the text to send onward
    """
    bibliography = strip_bibliography(full_text)
    index = strip_index(bibliography.text)
    truncation = truncate_smart(index.text, max_chars)

    final_text = truncation.text
    return ReductionReport(
        pages=pages,
        bibliography_removed=bibliography.removed,
        bibliography_chars_saved=bibliography.chars_saved,
        index_removed=index.removed,
        index_chars_saved=index.chars_saved,
        was_truncated=truncation.was_truncated,
        kept_percentage=truncation.kept_percentage,
        original_chars=len(full_text),
        estimated_words=len(final_text.split()),
        estimated_chars=len(final_text),
        final_text=final_text,
    )
