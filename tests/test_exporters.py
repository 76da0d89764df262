"""Test document export."""
import zipfile

import fitz  # PyMuPDF
import pytest
from docx import Document

from export import exporters
from export.pdf_writer import markdown_to_html, render_pdf
from extraction.models import PlanningData

APPENDIX = """# Appendix GROUP_A: Mobility in 2040

## 1. Purpose Statement
This appendix explores **autonomous** transit and *shared* mobility.

- Signals
  - Pilot programs
1. First scenario
2. Second scenario

| Scenario | Likelihood |
|---|---|
| Accelerated | High |

---
Closing words.
"""


def test_export_markdown_verbatim(tmp_path):
    path = exporters.export_markdown(APPENDIX, "Appendix_GROUP_A", tmp_path)

    assert path.name == "Appendix_GROUP_A.md"
    assert path.read_text(encoding="utf-8") == APPENDIX


def test_export_docx(tmp_path):
    """Test that headings, formatted runs, lists and tables reach the document."""
    path = exporters.export_docx(APPENDIX, "Appendix GROUP_A", tmp_path)
    document = Document(str(path))

    texts = [p.text for p in document.paragraphs]
    styles = {p.text: p.style.name for p in document.paragraphs}
    assert "Appendix GROUP_A: Mobility in 2040" in texts
    assert styles["1. Purpose Statement"] == "Heading 2"
    assert styles["Pilot programs"] == "List Bullet 2"
    assert styles["First scenario"] == "List Number"

    purpose = next(p for p in document.paragraphs if p.text.startswith("This appendix"))
    bold = [run.text for run in purpose.runs if run.bold]
    italic = [run.text for run in purpose.runs if run.italic]
    assert bold == ["autonomous"]
    assert italic == ["shared"]

    table = document.tables[0]
    assert table.cell(0, 0).text == "Scenario"
    assert table.cell(1, 1).text == "High"
    assert table.cell(0, 0).paragraphs[0].runs[0].bold


def test_export_pdf(tmp_path):
    path = exporters.export_pdf(APPENDIX, "Appendix GROUP_A", tmp_path)

    with fitz.open(str(path)) as doc:
        text = "".join(page.get_text() for page in doc)
    assert "Purpose Statement" in text
    assert "Accelerated" in text


def test_long_pdf_paginates(tmp_path):
    markdown = "\n\n".join(f"Paragraph {n} " + "text " * 80 for n in range(60))

    pages = render_pdf(markdown, tmp_path / "long.pdf")

    assert pages > 1


def test_markdown_to_html_numbers_lists():
    html = markdown_to_html("1. one\n2. two\n\nText & more")

    assert "1. one" in html
    assert "2. two" in html
    assert "Text &amp; more" in html


def test_export_all_zip(tmp_path):
    """Test that every appendix is bundled as Markdown and Word."""
    path = exporters.export_all_zip(
        {"GROUP_A": APPENDIX, "STANDALONE_1": "# Second"}, "Cities of Tomorrow", tmp_path
    )

    with zipfile.ZipFile(path) as archive:
        names = sorted(archive.namelist())
        assert archive.read("appendices/GROUP_A.md").decode("utf-8") == APPENDIX
    assert path.name == "Cities_of_Tomorrow_all.zip"
    assert names == [
        "appendices/GROUP_A.docx",
        "appendices/GROUP_A.md",
        "appendices/STANDALONE_1.docx",
        "appendices/STANDALONE_1.md",
    ]


def test_export_all_zip_empty(tmp_path):
    with pytest.raises(ValueError):
        exporters.export_all_zip({}, "Book", tmp_path)


def test_planning_table_export(tmp_path, plan_dict):
    plan = PlanningData.model_validate(plan_dict)

    markdown = exporters.planning_table_markdown(plan)
    path = exporters.export_planning_table(plan, tmp_path, "docx")

    assert "| GROUP_A | GROUP | 1, 2 |" in markdown
    assert "Chapter 3: Housing" in markdown
    assert path.suffix == ".docx"
    with pytest.raises(ValueError):
        exporters.export_planning_table(plan, tmp_path, "rtf")


def test_appendix_title(plan_dict):
    plan = PlanningData.model_validate(plan_dict)

    assert exporters.appendix_title("GROUP_A", plan) == "Appendix_GROUP_A_Chapters 1, 2"
    assert exporters.appendix_title("GONE") == "Appendix_GONE"


def test_sanitize_file_name():
    assert exporters.sanitize_file_name("A/B: c?") == "A_B__c_"
    assert exporters.sanitize_file_name("") == "untitled"
