"""Paginated PDF rendering of Markdown through PyMuPDF's Story layout."""
import html
from pathlib import Path
from typing import Dict, List, Union

import fitz  # PyMuPDF

from export.markdown_parser import Block, TextRun, parse_blocks, parse_inline

PAGE_MARGIN = 54  # points

CSS = """
body { font-family: serif; font-size: 11pt; line-height: 1.4; }
h1 { font-size: 20pt; } h2 { font-size: 16pt; } h3 { font-size: 13pt; }
h4, h5, h6 { font-size: 11pt; }
table { border-collapse: collapse; }
th, td { border: 1px solid #888888; padding: 3pt; font-size: 9pt; }
hr { border: none; border-top: 1px solid #888888; }
"""

_TAGS = (
    ("bold", "b"), ("italic", "i"), ("underline", "u"),
    ("strike", "s"), ("superscript", "sup"), ("subscript", "sub"),
)


def runs_to_html(runs: List[TextRun]) -> str:
    parts = []
    for run in runs:
        text = html.escape(run.text)
        for attr, tag in _TAGS:
            if getattr(run, attr):
                text = f"<{tag}>{text}</{tag}>"
        parts.append(text)
    return "".join(parts)


def _table_html(block: Block) -> str:
    rows = []
    for index, row in enumerate(block.rows):
        tag = "th" if index == 0 else "td"
        cells = "".join(f"<{tag}>{runs_to_html(parse_inline(cell))}</{tag}>" for cell in row)
        rows.append(f"<tr>{cells}</tr>")
    return f"<table>{''.join(rows)}</table>"


def markdown_to_html(markdown: str) -> str:
    """Render Markdown as the HTML subset understood by ``fitz.Story``."""
    parts = []
    counters: Dict[int, int] = {}
    for block in parse_blocks(markdown):
        if block.kind in ("bullet", "numbered"):
            counters = {k: v for k, v in counters.items() if k <= block.level}
        elif block.kind != "blank":
            counters = {}

        if block.kind == "heading":
            parts.append(f"<h{block.level}>{runs_to_html(block.runs())}</h{block.level}>")
        elif block.kind in ("bullet", "numbered"):
            if block.kind == "numbered":
                counters[block.level] = counters.get(block.level, 0) + 1
                label = f"{counters[block.level]}."
            else:
                counters.pop(block.level, None)
                label = "&#8226;"
            indent = 14 * (block.level + 1)
            parts.append(
                f'<p style="margin-left: {indent}pt">{label} {runs_to_html(block.runs())}</p>'
            )
        elif block.kind == "table":
            parts.append(_table_html(block))
        elif block.kind == "rule":
            parts.append("<hr/>")
        elif block.kind == "paragraph":
            parts.append(f"<p>{runs_to_html(block.runs())}</p>")
    return "\n".join(parts)


def render_pdf(markdown: str, output_path: Union[str, Path], paper: str = "a4") -> int:
    """Lay out ``markdown`` over as many pages as needed.

    Args:
        markdown: Content to render
        output_path: Destination PDF
        paper: Paper size name understood by ``fitz.paper_rect``

    Returns:
        Number of pages written
    """
    story = fitz.Story(html=markdown_to_html(markdown), user_css=CSS)
    mediabox = fitz.paper_rect(paper)
    where = mediabox + (PAGE_MARGIN, PAGE_MARGIN, -PAGE_MARGIN, -PAGE_MARGIN)

    writer = fitz.DocumentWriter(str(output_path))
    pages = 0
    more = 1
    while more:
        device = writer.begin_page(mediabox)
        more, _ = story.place(where)
        story.draw(device)
        writer.end_page()
        pages += 1
    writer.close()
    return pages
