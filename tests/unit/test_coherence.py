"""
Unit Tests for the Coherence Checker

The checker is advisory: it must never raise, and the section just revised
is always reported coherent.
"""

import json
import uuid

import pytest

from behaviorplan.core.exceptions import GenerationError
from behaviorplan.core.models import Plan
from behaviorplan.core.schemas import CoherenceOutput
from behaviorplan.plans.coherence import CoherenceChecker


@pytest.fixture
def generated_plan() -> Plan:
    plan = Plan(student_id=uuid.uuid4())
    plan.set_current_content("function_summary", "Maya escapes writing tasks.")
    plan.set_current_content("replacement_behavior", "Raise a hand to ask for help.")
    plan.set_current_content("prevention_strategies", json.dumps(["a", "b", "c"]))
    plan.set_current_content("reinforcement_plan", "Praise for using the break card.")
    plan.set_current_content("response_to_behavior", "1. Redirect to the break card.")
    return plan


@pytest.fixture
def checker(oracle, prompts) -> CoherenceChecker:
    return CoherenceChecker(oracle, prompts)


class TestCoherenceCheck:
    @pytest.mark.asyncio
    async def test_all_coherent(self, checker, generated_plan):
        report = await checker.check(generated_plan, "replacement_behavior")

        assert report.has_issues is False
        assert report.revised_section == "replacement_behavior"
        assert set(report.sections) == {
            "replacement_behavior",
            "prevention_strategies",
            "reinforcement_plan",
            "response_to_behavior",
        }
        assert report.error is None

    @pytest.mark.asyncio
    async def test_flags_other_sections(self, checker, oracle, generated_plan):
        oracle.queue(
            CoherenceOutput,
            {
                "replacement_behavior": {"coherent": True},
                "prevention_strategies": {"coherent": True},
                "reinforcement_plan": {
                    "coherent": False,
                    "issue": "Still reinforces the break card.",
                    "suggestion": "Reinforce hand raising instead.",
                },
                "response_to_behavior": {"coherent": False, "issue": "Redirects to break card."},
            },
        )

        report = await checker.check(generated_plan, "replacement_behavior")

        assert report.has_issues is True
        assert report.flagged_sections == ["reinforcement_plan", "response_to_behavior"]
        assert report.sections["reinforcement_plan"].suggestion == (
            "Reinforce hand raising instead."
        )

    @pytest.mark.asyncio
    async def test_revised_section_forced_coherent(self, checker, oracle, generated_plan):
        """An oracle complaint about the section just revised is ignored."""
        oracle.queue(
            CoherenceOutput,
            {
                "replacement_behavior": {"coherent": False, "issue": "Changed."},
                "prevention_strategies": {"coherent": True},
                "reinforcement_plan": {"coherent": True},
                "response_to_behavior": {"coherent": True},
            },
        )

        report = await checker.check(generated_plan, "replacement_behavior")

        assert report.has_issues is False
        assert report.sections["replacement_behavior"].coherent is True
        assert report.sections["replacement_behavior"].issue is None

    @pytest.mark.asyncio
    async def test_oracle_failure_never_raises(self, checker, oracle, generated_plan):
        oracle.queue(CoherenceOutput, GenerationError("model unavailable"))

        report = await checker.check(generated_plan, "reinforcement_plan")

        assert report.has_issues is False
        assert report.sections == {}
        assert "model unavailable" in report.error

    @pytest.mark.asyncio
    async def test_unexpected_exception_never_raises(self, checker, oracle, generated_plan):
        oracle.queue(CoherenceOutput, RuntimeError("socket closed"))

        report = await checker.check(generated_plan, "reinforcement_plan")

        assert report.has_issues is False
        assert report.error == "socket closed"

    @pytest.mark.asyncio
    async def test_no_retry(self, checker, oracle, generated_plan):
        oracle.queue(CoherenceOutput, GenerationError("bad output"))

        await checker.check(generated_plan, "reinforcement_plan")

        assert len(oracle.calls) == 1

    @pytest.mark.asyncio
    async def test_invalid_section_name_reported(self, checker, oracle, generated_plan):
        report = await checker.check(generated_plan, "goals")

        assert report.has_issues is False
        assert report.error is not None
        assert oracle.calls == []

    @pytest.mark.asyncio
    async def test_prompt_contains_current_sections(self, checker, oracle, generated_plan):
        await checker.check(generated_plan, "prevention_strategies")

        prompt = oracle.calls[0][0]
        assert "Raise a hand to ask for help." in prompt
        assert "1. a\n2. b\n3. c" in prompt
        assert 'The "Prevention Strategies" section was just revised.' in prompt
