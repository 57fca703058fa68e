"""
Integration tests for plan status transitions, finalization and duplication.
"""

import json

import pytest

from behaviorplan.core.models import Plan
from behaviorplan.core.validation import ValidationError
from behaviorplan.plans.generation import PlanGenerator
from behaviorplan.plans.lifecycle import advance_status, duplicate_plan, finalize_plan
from behaviorplan.plans.revision import RevisionWorkflow
from behaviorplan.plans.sections import ALL_SECTIONS


@pytest.fixture
async def generated(store, oracle, prompts, rubric, plan) -> Plan:
    await PlanGenerator(store, oracle, prompts, rubric).generate_plan(plan.id)
    return plan


class TestAdvanceStatus:
    def test_forward_move(self):
        plan = Plan(status="draft")

        advance_status(plan, "in_progress")

        assert plan.status == "in_progress"

    def test_forward_move_may_skip_steps(self):
        plan = Plan(status="in_progress")

        advance_status(plan, "generating")

        assert plan.status == "generating"

    def test_same_status_allowed(self):
        plan = Plan(status="complete")

        advance_status(plan, "complete")

        assert plan.status == "complete"

    def test_backward_move_rejected(self):
        plan = Plan(status="generating")

        with pytest.raises(ValidationError, match="back to in_progress"):
            advance_status(plan, "in_progress")

        assert plan.status == "generating"

    def test_unknown_status_rejected(self):
        plan = Plan(status="draft")

        with pytest.raises(ValidationError, match="Unknown plan status"):
            advance_status(plan, "archived")


class TestFinalizePlan:
    @pytest.mark.asyncio
    async def test_finalize_generated_plan(self, store, generated):
        result = await finalize_plan(store, generated.id)

        assert result.status == "complete"
        assert result.finalized_at is not None

    @pytest.mark.asyncio
    async def test_finalize_ignores_review_progress(self, store, generated):
        """Unreviewed sections and coherence issues never block finalization."""
        assert generated.sections_reviewed == []

        result = await finalize_plan(store, generated.id)

        assert result.status == "complete"

    @pytest.mark.asyncio
    async def test_finalize_before_generation_rejected(self, store, plan):
        with pytest.raises(ValidationError, match="before it is generated"):
            await finalize_plan(store, plan.id)

        assert plan.status == "assessment_complete"
        assert plan.finalized_at is None

    @pytest.mark.asyncio
    async def test_revisions_allowed_after_finalize(
        self, store, oracle, prompts, rubric, generated
    ):
        await finalize_plan(store, generated.id)
        workflow = RevisionWorkflow(store, oracle, prompts=prompts, rubric=rubric)

        outcome = await workflow.manual_edit(generated.id, "reinforcement_plan", "Praise")

        assert outcome.revision.revision_number == 2
        assert generated.status == "complete"

    @pytest.mark.asyncio
    async def test_finalize_again_refreshes_timestamp(self, store, generated):
        first = (await finalize_plan(store, generated.id)).finalized_at

        second = (await finalize_plan(store, generated.id)).finalized_at

        assert second >= first


class TestDuplicatePlan:
    @pytest.mark.asyncio
    async def test_copies_details_and_content(self, store, oracle, prompts, rubric, generated):
        workflow = RevisionWorkflow(store, oracle, prompts=prompts, rubric=rubric)
        await workflow.manual_edit(generated.id, "prevention_strategies", ["a", "b", "c"])
        await finalize_plan(store, generated.id)

        copy = await duplicate_plan(store, generated.id)

        assert copy.id != generated.id
        assert copy.student_id == generated.student_id
        assert copy.target_behavior == generated.target_behavior
        assert copy.implementers == generated.implementers
        assert copy.function_scores == generated.function_scores
        assert copy.determined_function == "escape"
        assert copy.rationales == generated.rationales
        for kind in ALL_SECTIONS:
            assert copy.generated_content(kind.value) == generated.generated_content(kind.value)
            assert copy.current_content(kind.value) == generated.current_content(kind.value)
        assert json.loads(copy.current_prevention_strategies) == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_resets_progress_and_history(self, store, oracle, prompts, rubric, generated):
        workflow = RevisionWorkflow(store, oracle, prompts=prompts, rubric=rubric)
        await workflow.keep_as_is(generated.id, "replacement_behavior")
        await workflow.manual_edit(generated.id, "reinforcement_plan", "Praise")
        await finalize_plan(store, generated.id)

        copy = await duplicate_plan(store, generated.id)

        assert copy.status == "draft"
        assert copy.generation_version == 1
        assert copy.sections_reviewed == []
        assert copy.revision_counts == {}
        assert copy.finalized_at is None
        assert await store.list_revisions(copy.id) == []

    @pytest.mark.asyncio
    async def test_copy_is_independent(self, store, generated):
        copy = await duplicate_plan(store, generated.id)

        copy.implementers = ["counselor"]
        await store.commit()

        assert generated.implementers == ["classroom_teacher", "Other: Reading specialist"]
