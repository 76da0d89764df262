"""Export of planning tables and generated appendices to files."""
import io
import re
import zipfile
from pathlib import Path
from typing import Dict, Optional, Union

from utils.logger import setup_logger
from extraction.models import PlanningData
from export.docx_writer import build_document
from export.pdf_writer import render_pdf

logger = setup_logger(__name__)

PathLike = Union[str, Path]


def sanitize_file_name(name: str) -> str:
    """Make ``name`` safe as a file name (at most 50 characters)."""
    safe = re.sub(r"[^\w\s-]", "_", name)
    safe = re.sub(r"\s+", "_", safe)
    return safe[:50].strip() or "untitled"


def appendix_title(group_id: str, plan: Optional[PlanningData] = None) -> str:
    """File title for an appendix, e.g. ``Appendix_GROUP_A_Chapters 1, 2``."""
    group = plan.get_group(group_id) if plan else None
    label = group.chapter_label if group else ""
    return f"Appendix_{group_id}_{label}".rstrip("_")


def export_markdown(content: str, title: str, output_dir: PathLike) -> Path:
    """Write ``content`` unchanged to ``<title>.md``."""
    path = Path(output_dir) / f"{sanitize_file_name(title)}.md"
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        f.write(content)
    logger.info(f"Exported Markdown to {path}")
    return path


def docx_bytes(content: str, title: str) -> bytes:
    buffer = io.BytesIO()
    build_document(content, title).save(buffer)
    return buffer.getvalue()


def export_docx(content: str, title: str, output_dir: PathLike) -> Path:
    """Convert Markdown ``content`` to ``<title>.docx``."""
    path = Path(output_dir) / f"{sanitize_file_name(title)}.docx"
    path.parent.mkdir(parents=True, exist_ok=True)
    build_document(content, title).save(str(path))
    logger.info(f"Exported Word document to {path}")
    return path


def export_pdf(content: str, title: str, output_dir: PathLike) -> Path:
    """Render Markdown ``content`` as a paginated ``<title>.pdf``."""
    path = Path(output_dir) / f"{sanitize_file_name(title)}.pdf"
    path.parent.mkdir(parents=True, exist_ok=True)
    pages = render_pdf(content, path)
    logger.info(f"Exported {pages}-page PDF to {path}")
    return path


def export_all_zip(
    appendices: Dict[str, str],
    book_title: str,
    output_dir: PathLike
) -> Path:
    """Bundle every appendix as Markdown and Word under ``appendices/``.

    Raises:
        ValueError: If there is nothing to export
    """
    if not appendices:
        raise ValueError("No generated appendices to export")

    path = Path(output_dir) / f"{sanitize_file_name(book_title or 'appendices')}_all.zip"
    path.parent.mkdir(parents=True, exist_ok=True)

    with zipfile.ZipFile(path, 'w', compression=zipfile.ZIP_DEFLATED) as archive:
        for group_id, content in appendices.items():
            safe_name = sanitize_file_name(group_id)
            archive.writestr(f"appendices/{safe_name}.md", content)
            archive.writestr(f"appendices/{safe_name}.docx", docx_bytes(content, group_id))

    logger.info(f"Exported {len(appendices)} appendices to {path}")
    return path


def planning_table_markdown(plan: PlanningData) -> str:
    """Render the planning table as Markdown."""
    overview = plan.book_overview
    lines = [
        f"# Planning Table: {overview.title}",
        "",
        f"**Scope:** {overview.scope}",
        f"**Chapters:** {overview.total_chapters}",
        f"**Disciplines:** {', '.join(overview.disciplines)}",
        f"**Languages:** {', '.join(overview.languages)}",
        "",
        "## Chapter Groups",
        "",
        "| Group | Type | Chapters | Quadrants |",
        "|---|---|---|---|",
    ]
    for group in plan.chapters:
        chapters = ", ".join(str(n) for n in group.chapter_numbers)
        quadrants = "; ".join(group.thematic_quadrants)
        lines.append(f"| {group.group_id} | {group.group_type.value} | {chapters} | {quadrants} |")
    lines.append("")

    for group in plan.chapters:
        lines.append(f"### {group.group_id} ({group.chapter_label})")
        lines.append("")
        for chapter in group.chapter_lines():
            lines.append(f"- {chapter}")
        lines.append("")
        lines.append(f"**Summary:** {group.content_summary}")
        lines.append("")
        lines.append(f"**Foresight Task:** {group.foresight_task}")
        lines.append("")
        lines.append("---")
        lines.append("")

    if plan.implementation_notes:
        lines.append("## Implementation Notes")
        lines.append("")
        lines.append(plan.implementation_notes)
        lines.append("")

    return "\n".join(lines)


def export_planning_table(
    plan: PlanningData,
    output_dir: PathLike,
    fmt: str = "md"
) -> Path:
    """Export the planning table as ``md``, ``docx`` or ``pdf``."""
    title = f"{plan.book_overview.title or 'book'}_planning"
    markdown = planning_table_markdown(plan)
    if fmt == "md":
        return export_markdown(markdown, title, output_dir)
    if fmt == "docx":
        return export_docx(markdown, title, output_dir)
    if fmt == "pdf":
        return export_pdf(markdown, title, output_dir)
    raise ValueError(f"Unsupported export format: {fmt}")
