"""Project files: a versioned JSON snapshot of the whole session."""
import json
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from utils.logger import setup_logger
from ingestion.models import ReductionReport
from extraction.models import PlanningData
from session.state import SessionState
import config

logger = setup_logger(__name__)


class ProjectLoadError(Exception):
    """Raised when a project file cannot be loaded."""
    pass


class ProjectSnapshot(BaseModel):
    """Serialized form of a :class:`SessionState`, camelCase on disk."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    version: str
    saved_at: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    api_key: Optional[str] = None
    detected_tier: Optional[str] = None
    file_name: Optional[str] = None
    book_content: Optional[str] = None
    reduction_report: Optional[ReductionReport] = Field(default=None, alias="extractionInfo")
    planning_data: Optional[PlanningData] = None
    generated_appendices: Dict[str, str] = Field(default_factory=dict)
    forecast_years: int = config.DEFAULT_FORECAST_YEARS
    word_count_option: str = config.DEFAULT_WORD_COUNT_OPTION
    current_step: int = 1

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)


def snapshot_from_state(state: SessionState) -> ProjectSnapshot:
    """Take a snapshot of ``state``; the snapshot shares nothing with it."""
    return ProjectSnapshot(
        version=config.PROJECT_FILE_VERSION,
        api_key=state.api_key,
        detected_tier=state.detected_tier,
        file_name=state.file_name,
        book_content=state.book_content,
        reduction_report=state.reduction_report.model_copy(deep=True) if state.reduction_report else None,
        planning_data=state.planning_data.model_copy(deep=True) if state.planning_data else None,
        generated_appendices=dict(state.generated_appendices),
        forecast_years=state.forecast_years,
        word_count_option=state.word_count_option,
        current_step=state.current_step,
    )


def apply_snapshot(state: SessionState, snapshot: ProjectSnapshot) -> None:
    """Copy every field of ``snapshot`` into ``state``."""
    restored = SessionState(
        current_step=snapshot.current_step,
        api_key=snapshot.api_key,
        api_key_valid=bool(snapshot.api_key),
        detected_tier=snapshot.detected_tier if snapshot.detected_tier in ("free", "paid") else None,
        file_name=snapshot.file_name,
        book_content=snapshot.book_content,
        reduction_report=snapshot.reduction_report.model_copy(deep=True) if snapshot.reduction_report else None,
        planning_data=snapshot.planning_data.model_copy(deep=True) if snapshot.planning_data else None,
        generated_appendices=dict(snapshot.generated_appendices),
        forecast_years=snapshot.forecast_years,
        word_count_option=snapshot.word_count_option,
    )
    if restored.reduction_report and restored.book_content:
        restored.reduction_report.final_text = restored.book_content

    for name in SessionState.model_fields:
        setattr(state, name, getattr(restored, name))
    state.mark_as_saved()


def _string_or_none(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _model_or_none(model, value: Any, label: str):
    if value is None:
        return None
    try:
        return model.model_validate(value)
    except ValidationError as e:
        logger.warning(f"Ignoring invalid {label} in project file: {e.error_count()} errors")
        return None


def snapshot_from_dict(data: Any) -> ProjectSnapshot:
    """Build a snapshot from decoded JSON, defaulting anything malformed.

    Only ``version`` is mandatory.

    Raises:
        ProjectLoadError: If the data is not an object or has no version
    """
    if not isinstance(data, dict):
        raise ProjectLoadError("Invalid project file format: expected a JSON object")
    version = data.get("version")
    if not version or not isinstance(version, (str, int, float)):
        raise ProjectLoadError("Invalid project file format: missing version")

    forecast_years = data.get("forecastYears")
    if (
        isinstance(forecast_years, bool)
        or not isinstance(forecast_years, int)
        or not config.MIN_FORECAST_YEARS <= forecast_years <= config.MAX_FORECAST_YEARS
    ):
        forecast_years = config.DEFAULT_FORECAST_YEARS

    word_count = data.get("wordCountOption")
    if word_count not in config.WORD_COUNT_OPTIONS:
        word_count = config.DEFAULT_WORD_COUNT_OPTION

    current_step = data.get("currentStep")
    if isinstance(current_step, bool) or not isinstance(current_step, int) or not 1 <= current_step <= 4:
        current_step = 1

    appendices = data.get("generatedAppendices")
    if not isinstance(appendices, dict):
        appendices = {}
    appendices = {str(k): v for k, v in appendices.items() if isinstance(v, str)}

    saved_at = _string_or_none(data.get("savedAt"))

    snapshot = ProjectSnapshot(
        version=str(version),
        api_key=_string_or_none(data.get("apiKey")),
        detected_tier=_string_or_none(data.get("detectedTier")),
        file_name=_string_or_none(data.get("fileName")),
        book_content=_string_or_none(data.get("bookContent")),
        reduction_report=_model_or_none(ReductionReport, data.get("extractionInfo"), "extraction info"),
        planning_data=_model_or_none(PlanningData, data.get("planningData"), "planning table"),
        generated_appendices=appendices,
        forecast_years=forecast_years,
        word_count_option=word_count,
        current_step=current_step,
    )
    if saved_at:
        snapshot.saved_at = saved_at
    return snapshot


def default_file_name(state: SessionState, today: Optional[datetime] = None) -> str:
    """``appendix_<title>_<YYYY-MM-DD>.json`` for the session's book."""
    title = "project"
    if state.planning_data and state.planning_data.book_overview.title:
        title = state.planning_data.book_overview.title
    safe = re.sub(r"[^a-zA-Z0-9]", "_", title)[:50]
    stamp = (today or datetime.now()).strftime("%Y-%m-%d")
    return f"appendix_{safe}_{stamp}.json"


class ProjectFile:
    """Saves and loads project snapshots on disk."""

    def __init__(self, projects_dir: Path = config.PROJECTS_DIR):
        self.projects_dir = Path(projects_dir)

    def save(self, state: SessionState, path: Optional[Path] = None) -> Path:
        """Write ``state`` as a project file and mark it saved.

        Args:
            state: Session to persist
            path: Target file, defaults to a dated name in ``projects_dir``

        Returns:
            Path written
        """
        path = Path(path) if path else self.projects_dir / default_file_name(state)
        path.parent.mkdir(parents=True, exist_ok=True)

        snapshot = snapshot_from_state(state)
        with open(path, 'w', encoding='utf-8') as f:
            f.write(snapshot.to_json())

        state.mark_as_saved()
        logger.info(f"✓ Project saved to {path}")
        return path

    def read(self, path: Path) -> ProjectSnapshot:
        """Read and validate a project file without touching any session."""
        path = Path(path)
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise ProjectLoadError(f"Project file not found: {path}") from e
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ProjectLoadError(
                "Failed to load project file. Please check the file format."
            ) from e
        return snapshot_from_dict(data)

    def load(self, state: SessionState, path: Path) -> ProjectSnapshot:
        """Replace ``state`` with the project stored at ``path``.

        ``state`` is left untouched when the file is rejected.
        """
        path = Path(path)
        snapshot = self.read(path)
        apply_snapshot(state, snapshot)
        logger.info(f"✓ Project loaded: {snapshot.file_name or path.name} (v{snapshot.version})")
        return snapshot
