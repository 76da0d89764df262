"""Word document rendering of generated Markdown."""
from dataclasses import replace
from typing import List

from docx import Document
from docx.document import Document as DocxDocument
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.shared import Pt
from docx.text.paragraph import Paragraph

from export.markdown_parser import Block, TextRun, parse_blocks, parse_inline

# Styles shipped with python-docx's default template go up to level 3
_LIST_STYLES = {
    "bullet": ["List Bullet", "List Bullet 2", "List Bullet 3"],
    "numbered": ["List Number", "List Number 2", "List Number 3"],
}
_INDENT_PT = 18


def add_runs(paragraph: Paragraph, runs: List[TextRun]) -> None:
    for item in runs:
        run = paragraph.add_run(item.text)
        run.bold = item.bold or None
        run.italic = item.italic or None
        run.underline = item.underline or None
        if item.strike:
            run.font.strike = True
        if item.superscript:
            run.font.superscript = True
        if item.subscript:
            run.font.subscript = True


def _add_rule(document: DocxDocument) -> None:
    paragraph = document.add_paragraph()
    borders = OxmlElement("w:pBdr")
    bottom = OxmlElement("w:bottom")
    bottom.set(qn("w:val"), "single")
    bottom.set(qn("w:sz"), "6")
    bottom.set(qn("w:space"), "1")
    bottom.set(qn("w:color"), "auto")
    borders.append(bottom)
    paragraph._p.get_or_add_pPr().append(borders)


def _add_list_item(document: DocxDocument, block: Block) -> None:
    styles = _LIST_STYLES[block.kind]
    style = styles[min(block.level, len(styles) - 1)]
    paragraph = document.add_paragraph(style=style)
    if block.level >= len(styles):
        paragraph.paragraph_format.left_indent = Pt(_INDENT_PT * (block.level + 1))
    add_runs(paragraph, block.runs())


def _add_table(document: DocxDocument, block: Block) -> None:
    columns = max(len(row) for row in block.rows)
    table = document.add_table(rows=len(block.rows), cols=columns)
    table.style = "Table Grid"
    for r, row in enumerate(block.rows):
        for c in range(columns):
            cell = table.cell(r, c)
            text = row[c] if c < len(row) else ""
            runs = parse_inline(text)
            if r == 0:
                runs = [replace(run, bold=True) for run in runs]
            add_runs(cell.paragraphs[0], runs)


def build_document(markdown: str, title: str = "") -> DocxDocument:
    """Convert Markdown into a python-docx Document.

    Args:
        markdown: Generated appendix or planning table
        title: Stored as the document's core title

    Returns:
        The document, ready to ``save``
    """
    document = Document()
    if title:
        document.core_properties.title = title

    for block in parse_blocks(markdown):
        if block.kind == "heading":
            paragraph = document.add_heading(level=block.level)
            add_runs(paragraph, block.runs())
        elif block.kind in _LIST_STYLES:
            _add_list_item(document, block)
        elif block.kind == "table":
            _add_table(document, block)
        elif block.kind == "rule":
            _add_rule(document)
        elif block.kind == "blank":
            continue
        else:
            add_runs(document.add_paragraph(), block.runs())

    return document
