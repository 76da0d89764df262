"""LLM prompt templates for planning-table analysis."""
from extraction.models import PlanningData

PLANNING_JSON_TEMPLATE = """{
  "book_overview": {
    "title": "Detected or inferred book title",
    "scope": "One or two sentences on what the book covers",
    "total_chapters": 12,
    "disciplines": ["Discipline 1", "Discipline 2"],
    "languages": ["English"]
  },
  "chapters": [
    {
      "group_id": "GROUP_A",
      "group_type": "GROUP",
      "chapter_numbers": [1, 2, 3],
      "chapter_titles": ["Title of chapter 1", "Title of chapter 2", "Title of chapter 3"],
      "content_summary": "What these chapters cover together",
      "thematic_quadrants": ["Quadrant 1", "Quadrant 2", "Quadrant 3", "Quadrant 4"],
      "foresight_task": "The assignment for the appendix writer: which futures to explore and why"
    },
    {
      "group_id": "STANDALONE_1",
      "group_type": "STANDALONE",
      "chapter_numbers": [4],
      "chapter_titles": ["Title of chapter 4"],
      "content_summary": "What this chapter covers",
      "thematic_quadrants": ["Quadrant 1", "Quadrant 2", "Quadrant 3"],
      "foresight_task": "The assignment for the appendix writer"
    }
  ],
  "implementation_notes": "Any special considerations for generating the appendices"
}"""

TRUNCATION_NOTICE = """NOTE: This book was too long to send in full. The beginning and the end are
included; a middle section was omitted and is marked in the text. Infer the
chapters of the omitted section from the table of contents where possible."""


def analysis_prompt(book_content: str, was_truncated: bool = False) -> str:
    """Generate the prompt that turns book text into a planning table.

    Args:
        book_content: Reduced, page-tagged book text
        was_truncated: Whether the middle of the book was omitted

    Returns:
        Formatted prompt string
    """
    notice = f"\n{TRUNCATION_NOTICE}\n" if was_truncated else ""

    return f"""You are an expert academic analyst and foresight strategist.

Analyze the following book and create a planning table for generating
future-oriented appendices. Each appendix looks ahead into how technology,
AI, policy and societal change might transform the topics of the chapters it
covers.

Work through the book as follows:
1. Identify the title, scope, disciplines and languages of the book.
2. Identify every chapter (use the table of contents when present) and count them.
3. Group chapters that share a theme into a GROUP; a chapter that stands on
   its own becomes a STANDALONE group. Every chapter should belong to a group.
4. For each group, summarise the content, name 3 to 5 thematic quadrants that
   will structure the futures analysis, and write a foresight task: a concise
   brief telling the appendix writer what to investigate.

Name groups GROUP_A, GROUP_B, ... and standalone chapters STANDALONE_1,
STANDALONE_2, ... List chapter_titles in the same order as chapter_numbers.
{notice}
Return your analysis as a JSON object with this EXACT structure:
{PLANNING_JSON_TEMPLATE}

BOOK CONTENT:
{book_content}

Return ONLY the JSON object, no additional text."""


def change_request_prompt(current_plan: PlanningData, change_request: str) -> str:
    """Generate the prompt that applies a free-text change to a planning table.

    Args:
        current_plan: The planning table as it stands
        change_request: The user's instruction

    Returns:
        Formatted prompt string
    """
    return f"""You are an expert at modifying planning tables for academic appendices.

Current planning table:
{current_plan.model_dump_json(indent=2)}

User's requested changes:
{change_request.strip()}

Apply the requested changes and return the UPDATED planning table as a JSON
object with the same structure. Keep group_id values unique and keep
chapter_titles aligned with chapter_numbers.
Return ONLY the JSON object, no additional text."""
