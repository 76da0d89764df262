"""Test session state."""
from extraction.models import PlanningData
from ingestion.models import ReductionReport
from session.state import SessionState


def _report(text="[Page 1]\nbook"):
    return ReductionReport(pages=1, final_text=text, estimated_chars=len(text))


def test_step_gating(plan_dict):
    state = SessionState()
    assert state.can_proceed_to_step(1)
    assert not state.can_proceed_to_step(2)

    state.api_key_valid = True
    assert state.can_proceed_to_step(2)
    assert not state.can_proceed_to_step(3)

    state.set_book("book.pdf", _report())
    assert state.can_proceed_to_step(3)
    assert not state.can_proceed_to_step(4)

    state.replace_plan(PlanningData.model_validate(plan_dict))
    assert state.can_proceed_to_step(4)
    assert not state.can_proceed_to_step(5)


def test_set_book_clears_plan_and_appendices(plan_dict):
    """Test that a new book invalidates earlier work."""
    state = SessionState(
        planning_data=PlanningData.model_validate(plan_dict),
        generated_appendices={"GROUP_A": "text"},
    )

    state.set_book("other.pdf", _report("[Page 1]\nother"))

    assert state.book_content == "[Page 1]\nother"
    assert state.planning_data is None
    assert state.generated_appendices == {}


def test_reset():
    state = SessionState(api_key="k", forecast_years=25, generated_appendices={"A": "x"})

    state.reset()

    assert state.model_dump() == SessionState().model_dump()


def test_unsaved_changes_tracking():
    """Test that edits after a save are detected."""
    state = SessionState()
    assert not state.has_unsaved_changes()

    state.set_book("book.pdf", _report())
    assert state.has_unsaved_changes()

    state.mark_as_saved()
    assert not state.has_unsaved_changes()

    state.add_generated_appendix("GROUP_A", "text")
    assert state.has_unsaved_changes()


def test_get_appendix_missing():
    assert SessionState().get_appendix("GROUP_A") is None
