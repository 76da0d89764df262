"""Markdown parsing for document export.

Two layers: ``parse_blocks`` classifies lines (headings, lists, tables, rules,
blank lines, paragraphs) and ``parse_inline`` tokenizes inline formatting into
styled runs. Inline styles nest and accumulate down the recursion, so bold
inside italic keeps both.
"""
import re
from dataclasses import asdict, dataclass, field, replace
from typing import List, Optional, Tuple

MAX_LIST_LEVEL = 4  # five nesting levels, 0-based


@dataclass(frozen=True)
class TextStyle:
    bold: bool = False
    italic: bool = False
    underline: bool = False
    strike: bool = False
    superscript: bool = False
    subscript: bool = False


@dataclass(frozen=True)
class TextRun:
    """A span of text with uniform formatting."""
    text: str
    bold: bool = False
    italic: bool = False
    underline: bool = False
    strike: bool = False
    superscript: bool = False
    subscript: bool = False

    @classmethod
    def styled(cls, text: str, style: TextStyle) -> "TextRun":
        return cls(text, **asdict(style))

    @property
    def style(self) -> TextStyle:
        return TextStyle(
            self.bold, self.italic, self.underline,
            self.strike, self.superscript, self.subscript
        )


@dataclass
class Block:
    """One classified Markdown line, or a whole table."""
    kind: str  # heading | bullet | numbered | table | rule | blank | paragraph
    text: str = ""
    level: int = 0
    rows: List[List[str]] = field(default_factory=list)

    def runs(self) -> List[TextRun]:
        return parse_inline(self.text)


# (pattern, style attribute) in priority order; longer markers first
_INLINE_RULES: List[Tuple[re.Pattern, Tuple[str, ...]]] = [
    (re.compile(r"\*\*\*(.+?)\*\*\*", re.S), ("bold", "italic")),
    (re.compile(r"___(.+?)___", re.S), ("bold", "italic")),
    (re.compile(r"\*\*(.+?)\*\*", re.S), ("bold",)),
    (re.compile(r"__(.+?)__", re.S), ("bold",)),
    (re.compile(r"~~(.+?)~~", re.S), ("strike",)),
    (re.compile(r"\*(?!\*)(.+?)(?<!\*)\*(?!\*)", re.S), ("italic",)),
    (re.compile(r"_(?!_)(.+?)(?<!_)_(?!_)", re.S), ("italic",)),
    (re.compile(r"<u>(.+?)</u>", re.S | re.I), ("underline",)),
    (re.compile(r"<sup>(.+?)</sup>", re.S | re.I), ("superscript",)),
    (re.compile(r"\^([^\^\s][^\^]*?)\^"), ("superscript",)),
    (re.compile(r"<sub>(.+?)</sub>", re.S | re.I), ("subscript",)),
    (re.compile(r"~(?!~)([^~\s][^~]*?)~(?!~)"), ("subscript",)),
]

_MARKER_START = re.compile(r"[*_~^<]")


def _match_at(text: str, pos: int) -> Optional[Tuple[re.Match, Tuple[str, ...]]]:
    for pattern, attrs in _INLINE_RULES:
        match = pattern.match(text, pos)
        if match:
            return match, attrs
    return None


def parse_inline(text: str, style: TextStyle = TextStyle()) -> List[TextRun]:
    """Tokenize inline Markdown into styled runs.

    Args:
        text: A single line (or cell) of Markdown
        style: Formatting inherited from enclosing markers

    Returns:
        Runs in reading order; adjacent runs with equal style are merged
    """
    runs: List[TextRun] = []
    pos = 0
    literal_start = 0

    while pos < len(text):
        marker = _MARKER_START.search(text, pos)
        if not marker:
            break
        pos = marker.start()

        found = _match_at(text, pos)
        if not found:
            pos += 1
            continue

        match, attrs = found
        if pos > literal_start:
            runs.append(TextRun.styled(text[literal_start:pos], style))
        inner_style = replace(style, **{attr: True for attr in attrs})
        runs.extend(parse_inline(match.group(1), inner_style))
        pos = literal_start = match.end()

    if literal_start < len(text):
        runs.append(TextRun.styled(text[literal_start:], style))

    return _merge(runs)


def _merge(runs: List[TextRun]) -> List[TextRun]:
    merged: List[TextRun] = []
    for run in runs:
        if not run.text:
            continue
        if merged and merged[-1].style == run.style:
            merged[-1] = TextRun.styled(merged[-1].text + run.text, run.style)
        else:
            merged.append(run)
    return merged


def plain_text(text: str) -> str:
    """Inline Markdown with every marker removed."""
    return "".join(run.text for run in parse_inline(text))


_HEADING = re.compile(r"^(#{1,6})\s+(.*?)\s*#*\s*$")
_BULLET = re.compile(r"^(\s*)[-*+]\s+(.*)$")
_NUMBERED = re.compile(r"^(\s*)\d+[.)]\s+(.*)$")
_RULE = re.compile(r"^\s*(?:(?:-\s*){3,}|(?:\*\s*){3,}|(?:_\s*){3,})$")
_TABLE_ROW = re.compile(r"^\s*\|.*\|\s*$")
_TABLE_SEPARATOR = re.compile(r"^\s*\|?\s*:?-{2,}:?\s*(?:\|\s*:?-{2,}:?\s*)*\|?\s*$")


def _indent_level(indent: str) -> int:
    width = len(indent.expandtabs(4))
    return min(width // 2, MAX_LIST_LEVEL)


def _split_row(line: str) -> List[str]:
    cells = line.strip()
    if cells.startswith("|"):
        cells = cells[1:]
    if cells.endswith("|"):
        cells = cells[:-1]
    return [cell.strip() for cell in cells.split("|")]


def classify_line(line: str) -> Block:
    """Classify a single Markdown line."""
    if not line.strip():
        return Block("blank")

    heading = _HEADING.match(line)
    if heading:
        return Block("heading", heading.group(2), level=len(heading.group(1)))

    if _RULE.match(line):
        return Block("rule")

    bullet = _BULLET.match(line)
    if bullet:
        return Block("bullet", bullet.group(2), level=_indent_level(bullet.group(1)))

    numbered = _NUMBERED.match(line)
    if numbered:
        return Block("numbered", numbered.group(2), level=_indent_level(numbered.group(1)))

    if _TABLE_ROW.match(line):
        return Block("table", rows=[_split_row(line)])

    return Block("paragraph", line.strip())


def parse_blocks(markdown: str) -> List[Block]:
    """Classify every line; consecutive table rows become one table block.

    Table separator rows (``|---|---|``) are dropped.
    """
    blocks: List[Block] = []
    for line in markdown.splitlines():
        if _TABLE_SEPARATOR.match(line) and "-" in line and (
            blocks and blocks[-1].kind == "table"
        ):
            continue

        block = classify_line(line)
        if block.kind == "table" and blocks and blocks[-1].kind == "table":
            blocks[-1].rows.extend(block.rows)
        else:
            blocks.append(block)
    return blocks
