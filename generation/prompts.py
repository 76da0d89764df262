"""LLM prompt template for appendix generation."""
from extraction.models import ChapterGroup

EVIDENCE_LAYERS = (
    "Signals (weak signals and early indicators already observable today)",
    "Trends (established developments with measurable momentum)",
    "Drivers (technological, economic, political and social forces behind the trends)",
    "Wildcards (low-probability, high-impact discontinuities)",
)

SCENARIO_NAMES = (
    "Accelerated Transformation",
    "Incremental Evolution",
    "Fragmented Futures",
    "Disruptive Rupture",
)


def _bullets(items) -> str:
    return "\n".join(f"- {item}" for item in items)


def appendix_prompt(
    group: ChapterGroup,
    book_content: str,
    word_count: str,
    target_year: int
) -> str:
    """Generate the prompt for one chapter group's foresight appendix.

    Args:
        group: Planning-table entry to write for
        book_content: Reference text from the book, already size-capped
        word_count: Target range such as ``"2500-3500"``
        target_year: Forecast horizon year

    Returns:
        Formatted prompt string
    """
    quadrants = group.thematic_quadrants or ["Technology", "Society", "Economy", "Policy"]
    chapters = "\n".join(group.chapter_lines())

    return f"""You are an expert academic writer and futurist creating a future-oriented
appendix for an academic book. The appendix looks ahead to the year {target_year}.

APPENDIX ASSIGNMENT ({group.group_id}):
{group.foresight_task}

CHAPTERS COVERED:
{chapters}

CONTENT SUMMARY:
{group.content_summary}

THEMATIC QUADRANTS:
{_bullets(quadrants)}

Write the appendix in Markdown with exactly this structure:

# Appendix {group.group_id}: <a compelling title>

## 1. Purpose Statement
State what this appendix explores and why it matters for readers of these chapters.

## 2. Chapter Synthesis
Synthesize the key arguments of the chapters above as the launch point for the futures analysis.

## 3. Futures Radar
For each thematic quadrant above, write a subsection (### <quadrant>) that
analyzes developments toward {target_year} across four evidentiary layers:
{_bullets(EVIDENCE_LAYERS)}

## 4. Cross-Impact Matrix
A Markdown table showing how the developments of each quadrant reinforce or
dampen those of the others, followed by a short interpretation.

## 5. Future Scenarios for {target_year}
Four named scenarios, each with a narrative, key indicators and implications:
{_bullets(SCENARIO_NAMES)}
Close the section with a Markdown table comparing the four scenarios.

## 6. Policy Recommendations
Thematic recommendations for researchers, practitioners and policy makers,
grouped by quadrant.

## 7. Conclusion
A thought-provoking conclusion connecting back to the original chapters.

STYLE:
- Academic but accessible tone
- Balance speculation with grounded analysis
- Use specific scenarios and examples
- Connect to themes from the original chapters

LENGTH: {word_count} words

REFERENCE MATERIAL (from the book):
{book_content}

Write the appendix now. Start directly with the title. Format in Markdown."""
