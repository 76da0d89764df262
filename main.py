"""Main CLI entry point for the Foresight Appendix pipeline."""
import asyncio
import click
from pathlib import Path
from typing import Optional
from rich.console import Console
from rich.table import Table

from utils.logger import setup_logger
from ingestion.pdf_extractor import PDFExtractor, PDFExtractionError
from extraction.json_response import ResponseParseError
from extraction.plan_synthesizer import PlanSynthesizer
from generation.appendix_synthesizer import AppendixSynthesizer, target_year
from generation.llm_client import (
    GenerationCancelled,
    LLMTransportError,
    TieredCompletionClient,
    create_transport,
    default_api_key,
    default_models,
    validate_credential,
)
from export import exporters
from export.exporters import sanitize_file_name
from monitoring.progress_tracker import ProgressTracker
from session.state import SessionState
from storage.project_file import ProjectFile, ProjectLoadError
import config

logger = setup_logger(__name__)
console = Console()
tracker = ProgressTracker(console)

project_option = click.option(
    '--project', required=True, type=click.Path(dir_okay=False, path_type=Path),
    help='Project file (JSON)'
)
provider_option = click.option(
    '--provider', default=config.LLM_PROVIDER, show_default=True,
    type=click.Choice(['gemini', 'anthropic']), help='AI provider'
)


def fail(message: str) -> None:
    console.print(f"[red]Error: {message}[/red]")
    raise SystemExit(1)


def load_state(project: Path) -> SessionState:
    state = SessionState()
    try:
        ProjectFile().load(state, project)
    except ProjectLoadError as e:
        fail(str(e))
    return state


def build_client(state: SessionState, provider: str, api_key: Optional[str]) -> TieredCompletionClient:
    """Resolve the credential and tier, validating the key on first use."""
    transport = create_transport(provider)
    models = default_models(provider)
    key = api_key or state.api_key or default_api_key(provider)
    if not key:
        fail("No API key. Pass --api-key or set GEMINI_API_KEY / ANTHROPIC_API_KEY.")

    if key != state.api_key or not state.api_key_valid or state.detected_tier is None:
        with tracker.create_spinner() as progress:
            progress.add_task("Validating API key...", total=None)
            check = asyncio.run(validate_credential(transport, key, models['paid'], models['free']))
        if not check.success:
            fail(check.message)
        console.print(f"[green]{check.message}[/green]")
        state.api_key = key
        state.api_key_valid = True
        state.detected_tier = check.tier

    return TieredCompletionClient(
        transport, key, state.detected_tier, models['paid'], models['free']
    )


@click.group()
def cli():
    """Foresight Appendix Generator - turn a PDF book into future-oriented appendices"""
    pass


@cli.command()
@click.option('--pdf', required=True, type=click.Path(exists=True, path_type=Path), help='Path to PDF book')
@click.option('--project', default=None, type=click.Path(dir_okay=False, path_type=Path),
              help='Project file to create (defaults to the projects directory)')
@click.option('--max-chars', default=config.MAX_CONTENT_CHARS, show_default=True,
              help='Truncation ceiling in characters')
def extract(pdf: Path, project: Optional[Path], max_chars: int):
    """Extract and reduce the text of a PDF book into a new project."""
    console.print("\n[bold cyan]Book Upload[/bold cyan]\n")

    extractor = PDFExtractor()
    with tracker.create_progress() as progress:
        task = progress.add_task("Starting extraction...", total=None)
        try:
            result, report = extractor.ingest(
                pdf, tracker.extraction_callback(progress, task), max_chars
            )
        except PDFExtractionError as e:
            fail(str(e))

    state = SessionState(current_step=3)
    state.set_book(result.file_name, report)
    project = project or config.PROJECTS_DIR / f"{sanitize_file_name(pdf.stem)}.json"
    ProjectFile().save(state, project)

    table = Table(show_header=False)
    table.add_row("Pages", str(report.pages))
    table.add_row("Words", f"{report.estimated_words:,}")
    table.add_row("Characters", f"{report.estimated_chars:,} of {report.original_chars:,}")
    table.add_row("Bibliography removed", _saved(report.bibliography_removed, report.bibliography_chars_saved))
    table.add_row("Index removed", _saved(report.index_removed, report.index_chars_saved))
    table.add_row("Truncated", f"yes ({report.kept_percentage}% kept)" if report.was_truncated else "no")
    table.add_row("Project", f"[cyan]{project}[/cyan]")
    console.print(table)
    console.print("\n[green]✓ Extraction complete![/green]")


def _saved(removed: bool, chars: int) -> str:
    return f"yes ({chars:,} chars)" if removed else "no"


@cli.command()
@project_option
@provider_option
@click.option('--api-key', default=None, help='API key (defaults to the environment)')
def analyze(project: Path, provider: str, api_key: Optional[str]):
    """Create the planning table for the project's book."""
    state = load_state(project)
    if state.book_content is None:
        fail("Project has no book content. Run 'extract' first.")

    client = build_client(state, provider, api_key)
    synthesizer = PlanSynthesizer(client)
    was_truncated = bool(state.reduction_report and state.reduction_report.was_truncated)

    with tracker.create_spinner() as progress:
        progress.add_task(f"Analyzing book with {client.model}...", total=None)
        try:
            plan = asyncio.run(synthesizer.analyze(state.book_content, was_truncated))
        except ResponseParseError as e:
            fail(f"The AI answered but its answer was unusable: {e}")
        except (LLMTransportError, GenerationCancelled) as e:
            fail(f"Analysis failed: {e}")

    state.replace_plan(plan)
    state.current_step = 4
    ProjectFile().save(state, project)
    _print_plan(state)


@cli.command()
@project_option
@provider_option
@click.option('--change', 'change_request', required=True, help='Free-text change to apply')
@click.option('--api-key', default=None, help='API key (defaults to the environment)')
def revise(project: Path, provider: str, change_request: str, api_key: Optional[str]):
    """Apply a free-text change request to the planning table."""
    state = load_state(project)
    if state.planning_data is None:
        fail("Project has no planning table. Run 'analyze' first.")
    if not change_request.strip():
        fail("Change request is empty")

    client = build_client(state, provider, api_key)
    synthesizer = PlanSynthesizer(client)

    with tracker.create_spinner() as progress:
        progress.add_task("Applying changes...", total=None)
        try:
            plan = asyncio.run(synthesizer.apply_change(state.planning_data, change_request))
        except ResponseParseError as e:
            fail(f"The AI answered but its answer was unusable: {e}")
        except (LLMTransportError, GenerationCancelled) as e:
            fail(f"Failed to apply changes: {e}")

    state.replace_plan(plan)
    ProjectFile().save(state, project)
    _print_plan(state)


@cli.command()
@project_option
@provider_option
@click.option('--group', 'group_ids', required=True, multiple=True, help='Group id (repeatable)')
@click.option('--forecast-years', type=click.IntRange(config.MIN_FORECAST_YEARS, config.MAX_FORECAST_YEARS),
              default=None, help='Forecast horizon in years')
@click.option('--word-count', type=click.Choice(config.WORD_COUNT_OPTIONS), default=None,
              help='Target length')
@click.option('--api-key', default=None, help='API key (defaults to the environment)')
def generate(project: Path, provider: str, group_ids, forecast_years, word_count, api_key):
    """Generate the appendix of one or more chapter groups, one at a time."""
    state = load_state(project)
    if state.planning_data is None:
        fail("Project has no planning table. Run 'analyze' first.")
    if forecast_years is not None:
        state.forecast_years = forecast_years
    if word_count is not None:
        state.word_count_option = word_count

    client = build_client(state, provider, api_key)
    synthesizer = AppendixSynthesizer(client, state)
    console.print(
        f"Target year [cyan]{target_year(state.forecast_years)}[/cyan], "
        f"{state.word_count_option} words, model [cyan]{client.model}[/cyan]\n"
    )

    for group_id in group_ids:
        with tracker.create_spinner() as progress:
            progress.add_task(f"Generating {group_id}...", total=None)
            try:
                content = asyncio.run(synthesizer.generate_for_id(group_id))
            except KeyError as e:
                fail(str(e))
            except (LLMTransportError, GenerationCancelled) as e:
                ProjectFile().save(state, project)
                fail(f"Generation of {group_id} failed: {e}")

        ProjectFile().save(state, project)
        console.print(f"[green]✓ {group_id}[/green] ({len(content.split()):,} words)")


@cli.command()
@project_option
def show(project: Path):
    """Show the planning table and appendix status."""
    state = load_state(project)
    if state.planning_data is None:
        console.print("[yellow]No planning table yet[/yellow]")
        return
    _print_plan(state)


def _print_plan(state: SessionState) -> None:
    plan = state.planning_data
    overview = plan.book_overview
    console.print(f"\n[bold]{overview.title}[/bold] - {overview.total_chapters} chapters")
    console.print(f"[dim]{overview.scope}[/dim]\n")

    table = Table(title="Planning Table")
    table.add_column("Group", style="cyan")
    table.add_column("Type")
    table.add_column("Chapters")
    table.add_column("Quadrants")
    table.add_column("Appendix", justify="center")
    for group in plan.chapters:
        table.add_row(
            group.group_id,
            group.group_type.value,
            ", ".join(str(n) for n in group.chapter_numbers),
            "\n".join(group.thematic_quadrants),
            "✓" if state.get_appendix(group.group_id) else "-"
        )
    console.print(table)

    uncovered = plan.uncovered_chapters()
    if uncovered:
        console.print(f"[yellow]Chapters without a group: {uncovered}[/yellow]")
    orphans = state.orphaned_appendices()
    if orphans:
        console.print(f"[yellow]Appendices without a group: {', '.join(orphans)}[/yellow]")


@cli.command()
@project_option
def status(project: Path):
    """Show extraction statistics and progress of a project."""
    state = load_state(project)
    report = state.reduction_report

    table = Table(show_header=False, title=state.file_name or str(project))
    if report:
        table.add_row("Pages", str(report.pages))
        table.add_row("Words", f"{report.estimated_words:,}")
        table.add_row("Bibliography removed", _saved(report.bibliography_removed, report.bibliography_chars_saved))
        table.add_row("Index removed", _saved(report.index_removed, report.index_chars_saved))
        table.add_row("Truncated", f"yes ({report.kept_percentage}% kept)" if report.was_truncated else "no")
    table.add_row("Tier", state.detected_tier or "unknown")
    groups = len(state.planning_data.chapters) if state.planning_data else 0
    table.add_row("Chapter groups", str(groups))
    table.add_row("Appendices", str(len(state.generated_appendices)))
    table.add_row("Forecast", f"{state.forecast_years} years ({target_year(state.forecast_years)})")
    table.add_row("Word count", state.word_count_option)
    console.print(table)


@cli.command()
@project_option
@click.option('--what', type=click.Choice(['planning', 'appendix', 'all']), default='appendix',
              show_default=True, help='What to export')
@click.option('--group', 'group_id', default=None, help='Group id for --what appendix')
@click.option('--format', 'fmt', type=click.Choice(['md', 'docx', 'pdf']), default='md',
              show_default=True, help='Output format')
@click.option('--output-dir', default=config.EXPORTS_DIR, type=click.Path(file_okay=False, path_type=Path),
              show_default=True, help='Output directory')
def export(project: Path, what: str, group_id: Optional[str], fmt: str, output_dir: Path):
    """Export the planning table or generated appendices."""
    state = load_state(project)
    plan = state.planning_data

    if what == 'planning':
        if plan is None:
            fail("Project has no planning table.")
        path = exporters.export_planning_table(plan, output_dir, fmt)
    elif what == 'all':
        title = plan.book_overview.title if plan else (state.file_name or "appendices")
        try:
            path = exporters.export_all_zip(state.generated_appendices, title, output_dir)
        except ValueError as e:
            fail(str(e))
    else:
        if not group_id:
            fail("--group is required to export an appendix")
        content = state.get_appendix(group_id)
        if content is None:
            fail(f"No appendix generated for {group_id}")
        title = exporters.appendix_title(group_id, plan)
        writer = {
            'md': exporters.export_markdown,
            'docx': exporters.export_docx,
            'pdf': exporters.export_pdf,
        }[fmt]
        path = writer(content, title, output_dir)

    console.print(f"[green]✓ Exported to {path}[/green]")


if __name__ == '__main__':
    cli()
