"""Test Markdown parsing for export."""
from export.markdown_parser import TextRun, classify_line, parse_blocks, parse_inline, plain_text


def test_nested_bold_italic():
    """Test that styles accumulate through nesting."""
    runs = parse_inline("**a *b* c**")

    assert runs == [
        TextRun("a ", bold=True),
        TextRun("b", bold=True, italic=True),
        TextRun(" c", bold=True),
    ]


def test_inline_styles():
    runs = parse_inline("x ~~gone~~ H~2~O E=mc^3^ <u>under</u> ***both***")

    styled = {run.text: run for run in runs}
    assert styled["gone"].strike
    assert styled["2"].subscript
    assert styled["3"].superscript
    assert styled["under"].underline
    assert styled["both"].bold and styled["both"].italic


def test_plain_text_strips_markers():
    assert plain_text("**Bold** and _italic_ text") == "Bold and italic text"


def test_unmatched_markers_kept():
    assert plain_text("2 * 3 = 6") == "2 * 3 = 6"


def test_classify_lines():
    assert classify_line("## Futures Radar").kind == "heading"
    assert classify_line("## Futures Radar").level == 2
    assert classify_line("---").kind == "rule"
    assert classify_line("- item").kind == "bullet"
    assert classify_line("3. step").kind == "numbered"
    assert classify_line("   ").kind == "blank"
    assert classify_line("Just text").kind == "paragraph"


def test_list_levels():
    """Test that two spaces or a tab indent a list one or two levels."""
    assert classify_line("- top").level == 0
    assert classify_line("  - nested").level == 1
    assert classify_line("\t- tab").level == 2
    assert classify_line(" " * 20 + "- deep").level == 4


def test_table_grouping():
    """Test that table rows merge into one block and the separator is dropped."""
    blocks = parse_blocks("| A | B |\n|---|:---:|\n| 1 | **2** |\n\nAfter")

    assert [b.kind for b in blocks] == ["table", "blank", "paragraph"]
    assert blocks[0].rows == [["A", "B"], ["1", "**2**"]]
