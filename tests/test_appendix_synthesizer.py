"""Test appendix generation."""
import asyncio
from datetime import date

import pytest

from conftest import FakeCompletionClient, failed, ok
from extraction.models import PlanningData
from generation.appendix_synthesizer import AppendixSynthesizer, target_year
from generation.llm_client import LLMTransportError, TieredCompletionClient
from session.state import SessionState


@pytest.fixture
def state(plan_dict):
    return SessionState(
        book_content="[Page 1]\n" + "x" * 200,
        planning_data=PlanningData.model_validate(plan_dict),
        forecast_years=20,
        word_count_option="1500-2000",
    )


def _synthesizer(state, responses, context_chars=50000):
    transport = FakeCompletionClient(responses)
    client = TieredCompletionClient(transport, "key", "free", "pro-model", "flash-model")
    return AppendixSynthesizer(client, state, context_chars=context_chars), transport


def test_target_year():
    assert target_year(15, today=date(2025, 6, 1)) == 2040


def test_generate_stores_content(state):
    """Test that the answer is returned verbatim and stored under the group id."""
    synthesizer, transport = _synthesizer(state, [ok("# Appendix GROUP_A\nBody")])

    content = asyncio.run(synthesizer.generate_for_id("GROUP_A"))

    assert content == "# Appendix GROUP_A\nBody"
    assert state.get_appendix("GROUP_A") == content
    prompt = transport.requests[0].prompt_text
    assert "Chapter 1: Streets" in prompt
    assert "1500-2000 words" in prompt
    assert str(target_year(20)) in prompt
    assert "Explore autonomous transit" in prompt


def test_prompt_context_is_capped(state):
    synthesizer, transport = _synthesizer(state, [ok("done")], context_chars=50)

    asyncio.run(synthesizer.generate_for_id("STANDALONE_1"))

    prompt = transport.requests[0].prompt_text
    assert "[Page 1]\n" + "x" * 41 in prompt
    assert "x" * 42 not in prompt


def test_regeneration_overwrites(state):
    synthesizer, _ = _synthesizer(state, [ok("first"), ok("second")])

    asyncio.run(synthesizer.generate_for_id("GROUP_A"))
    asyncio.run(synthesizer.generate_for_id("GROUP_A"))

    assert state.generated_appendices == {"GROUP_A": "second"}


def test_failure_stores_nothing(state):
    synthesizer, _ = _synthesizer(state, [failed("503 unavailable")])

    with pytest.raises(LLMTransportError):
        asyncio.run(synthesizer.generate_for_id("GROUP_A"))
    assert state.generated_appendices == {}


def test_unknown_group(state):
    synthesizer, transport = _synthesizer(state, [])

    with pytest.raises(KeyError):
        asyncio.run(synthesizer.generate_for_id("GROUP_Z"))
    assert transport.requests == []


def test_requires_plan():
    synthesizer, _ = _synthesizer(SessionState(), [])

    with pytest.raises(ValueError):
        asyncio.run(synthesizer.generate_for_id("GROUP_A"))


def test_orphaned_appendix_survives_plan_change(state, plan_dict):
    """Test that appendices outlive their group and are looked up as missing groups."""
    synthesizer, _ = _synthesizer(state, [ok("standalone text")])
    asyncio.run(synthesizer.generate_for_id("STANDALONE_1"))

    plan_dict["chapters"] = plan_dict["chapters"][:1]
    state.replace_plan(PlanningData.model_validate(plan_dict))

    assert state.get_appendix("STANDALONE_1") == "standalone text"
    assert state.orphaned_appendices() == ["STANDALONE_1"]
    assert state.planning_data.get_group("STANDALONE_1") is None


def test_paid_tier_fallback_during_generation(state):
    """Test that a tier rejection on the paid model is retried once on the free model."""
    transport = FakeCompletionClient([
        failed("429 RESOURCE_EXHAUSTED: quota exceeded, limit: 0, model: pro-model"),
        ok("# Appendix from flash"),
    ])
    client = TieredCompletionClient(transport, "key", "paid", "pro-model", "flash-model")
    synthesizer = AppendixSynthesizer(client, state)

    content = asyncio.run(synthesizer.generate_for_id("GROUP_A"))

    assert content == "# Appendix from flash"
    assert state.get_appendix("GROUP_A") == content
    assert [r.model for r in transport.requests] == ["pro-model", "flash-model"]
    assert transport.requests[0].prompt_text == transport.requests[1].prompt_text
