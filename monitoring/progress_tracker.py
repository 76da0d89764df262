from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskID, TextColumn, TimeRemainingColumn

from ingestion.models import ExtractionProgress
from ingestion.pdf_extractor import ProgressCallback


class ProgressTracker:
    """Rich progress bars fed by pipeline progress events."""

    def __init__(self, console: Console):
        self.console = console

    def create_progress(self) -> Progress:
        return Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            TimeRemainingColumn(),
            console=self.console
        )

    def create_spinner(self) -> Progress:
        return Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=self.console
        )

    @staticmethod
    def extraction_callback(progress: Progress, task: TaskID) -> ProgressCallback:
        """Adapt extractor progress events to a rich task."""
        def _update(event: ExtractionProgress) -> None:
            progress.update(
                task,
                completed=event.current,
                total=max(event.total, 1),
                description=event.status
            )
        return _update
