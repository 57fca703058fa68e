"""
Behavior Plan Service

Single entry point tying the assessment, generation, revision and lifecycle
components to one database session. Transport layers (web handlers, CLIs,
jobs) call this instead of wiring the components themselves.

Usage:
    async with AsyncSessionLocal() as db:
        service = BehaviorPlanService(db)
        result = await service.submit_assessment(plan_id, responses)
        plan = await service.generate_plan(plan_id)
        outcome = await service.revise_section(plan_id, "reinforcement_plan", "Use Lego time")
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING

from behaviorplan.assessment import (
    AssessmentRecorder,
    AssessmentResult,
    CategoryScore,
    FunctionDetermination,
)
from behaviorplan.assessment import determine_function as _determine_function
from behaviorplan.assessment import score_responses as _score_responses
from behaviorplan.core.models import Plan, PlanSectionRevision, Student
from behaviorplan.plans import (
    CoherenceChecker,
    PlanGenerator,
    PlanStore,
    RevisionOutcome,
    RevisionWorkflow,
    SectionKind,
    SectionLineage,
    duplicate_plan,
    finalize_plan,
)

if TYPE_CHECKING:
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession

    from behaviorplan.ai.client import GenerationOracle
    from behaviorplan.ai.prompt_loader import PromptLibrary
    from behaviorplan.assessment import Rubric
    from behaviorplan.core.schemas import CoherenceReport, PlanCreate, PlanFollowUp, StudentCreate
    from behaviorplan.plans.sections import SectionContent

logger = logging.getLogger(__name__)


class BehaviorPlanService:
    """Plan engine bound to one database session."""

    def __init__(
        self,
        db: AsyncSession,
        oracle: GenerationOracle | None = None,
        *,
        rubric: Rubric | None = None,
        prompts: PromptLibrary | None = None,
        debounce_seconds: float | None = None,
    ):
        """Initialize service.

        Args:
            db: Database session
            oracle: Generation oracle (defaults to the configured AIClient)
            rubric: Rubric override (defaults to the loaded singleton)
            prompts: Prompt library override (defaults to the loaded singleton)
            debounce_seconds: Response save debounce override
        """
        if oracle is None:
            from behaviorplan.ai.client import get_ai_client

            oracle = get_ai_client()
        if rubric is None:
            from behaviorplan.assessment import get_rubric

            rubric = get_rubric()
        if prompts is None:
            from behaviorplan.ai.prompt_loader import get_prompt_library

            prompts = get_prompt_library()

        self.store = PlanStore(db)
        self.rubric = rubric
        self.recorder = AssessmentRecorder(self.store, rubric, debounce_seconds)
        self.generator = PlanGenerator(self.store, oracle, prompts, rubric)
        self.coherence = CoherenceChecker(oracle, prompts)
        self.workflow = RevisionWorkflow(
            self.store, oracle, self.coherence, prompts=prompts, rubric=rubric
        )

    # ------------------------------------------------------------------
    # Students and plans
    # ------------------------------------------------------------------

    async def create_student(self, data: StudentCreate) -> Student:
        student = await self.store.add_student(Student(**data.model_dump()))
        await self.store.commit()
        logger.info(f"Created student {student.id}")
        return student

    async def start_plan(self, data: PlanCreate) -> Plan:
        """Create a draft plan for an existing student."""
        await self.store.get_student(data.student_id)
        plan = await self.store.add_plan(Plan(**data.model_dump(), status="draft"))
        await self.store.commit()
        logger.info(f"Started plan {plan.id} for student {data.student_id}")
        return plan

    async def get_plan(self, plan_id: UUID) -> Plan:
        return await self.store.get_plan(plan_id)

    async def update_follow_up(self, plan_id: UUID, data: PlanFollowUp) -> Plan:
        """Store what has been tried and who will implement the plan."""
        plan = await self.store.get_plan(plan_id)
        try:
            plan.whats_been_tried = data.whats_been_tried
            plan.implementers = [i.strip() for i in data.implementers if i.strip()]
            await self.store.commit()
        except Exception:
            await self.store.rollback()
            raise
        return plan

    # ------------------------------------------------------------------
    # Assessment
    # ------------------------------------------------------------------

    async def record_response(
        self, plan_id: UUID, item_id: int | str, value: str
    ) -> dict[int, str]:
        return await self.recorder.record_response(plan_id, item_id, value)

    async def flush_responses(self, plan_id: UUID | None = None) -> None:
        await self.recorder.flush(plan_id)

    async def submit_assessment(
        self,
        plan_id: UUID,
        responses: Mapping[int | str, str] | None = None,
        user_choice: str | None = None,
    ) -> AssessmentResult:
        return await self.recorder.submit_assessment(plan_id, responses, user_choice)

    async def choose_function(self, plan_id: UUID, category: str) -> Plan:
        return await self.recorder.choose_function(plan_id, category)

    def score_responses(self, responses: Mapping[int | str, str]) -> dict[str, CategoryScore]:
        return _score_responses(responses, self.rubric)

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    async def generate_plan(self, plan_id: UUID) -> Plan:
        return await self.generator.generate_plan(plan_id)

    async def rebuild_plan(self, plan_id: UUID) -> Plan:
        return await self.generator.rebuild_plan(plan_id)

    # ------------------------------------------------------------------
    # Revision workflow
    # ------------------------------------------------------------------

    async def revise_section(
        self, plan_id: UUID, section: str | SectionKind, feedback: str
    ) -> RevisionOutcome:
        return await self.workflow.ai_revise(plan_id, section, feedback)

    async def edit_section(
        self, plan_id: UUID, section: str | SectionKind, content: SectionContent
    ) -> RevisionOutcome:
        return await self.workflow.manual_edit(plan_id, section, content)

    async def keep_section(self, plan_id: UUID, section: str | SectionKind) -> RevisionOutcome:
        return await self.workflow.keep_as_is(plan_id, section)

    async def reset_section(self, plan_id: UUID, section: str | SectionKind) -> RevisionOutcome:
        return await self.workflow.reset_to_original(plan_id, section)

    async def restore_revision(self, plan_id: UUID, revision_id: UUID) -> RevisionOutcome:
        return await self.workflow.restore(plan_id, revision_id)

    async def list_revisions(
        self, plan_id: UUID, section: str | SectionKind | None = None
    ) -> list[PlanSectionRevision]:
        return await self.workflow.list_revisions(plan_id, section)

    async def section_lineage(self, plan_id: UUID, section: str | SectionKind) -> SectionLineage:
        return await self.workflow.lineage(plan_id, section)

    async def update_sections_reviewed(
        self, plan_id: UUID, sections: Iterable[str | SectionKind]
    ) -> Plan:
        return await self.workflow.update_sections_reviewed(plan_id, sections)

    async def check_coherence(
        self, plan_id: UUID, just_revised: str | SectionKind
    ) -> CoherenceReport:
        plan = await self.store.get_plan(plan_id)
        return await self.coherence.check(plan, just_revised)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def finalize_plan(self, plan_id: UUID) -> Plan:
        return await finalize_plan(self.store, plan_id)

    async def duplicate_plan(self, plan_id: UUID) -> Plan:
        return await duplicate_plan(self.store, plan_id)


# ============================================================================
# Module-level operations
# ============================================================================


def score_responses(
    responses: Mapping[int | str, str], rubric: Rubric | None = None
) -> dict[str, CategoryScore]:
    """Score a response set against the rubric (pure)."""
    return _score_responses(responses, rubric)


def determine_function(
    scores: Mapping[str, CategoryScore | float | None],
    *,
    tie_threshold: float | None = None,
    min_tie_score: float | None = None,
) -> FunctionDetermination:
    """Determine the primary function from category scores (pure)."""
    return _determine_function(scores, tie_threshold=tie_threshold, min_tie_score=min_tie_score)


async def revise_section(
    db: AsyncSession,
    plan_id: UUID,
    section: str | SectionKind,
    feedback: str,
    oracle: GenerationOracle | None = None,
) -> RevisionOutcome:
    """One-shot AI revision of a section."""
    return await BehaviorPlanService(db, oracle).revise_section(plan_id, section, feedback)


async def restore_revision(
    db: AsyncSession,
    plan_id: UUID,
    revision_id: UUID,
    oracle: GenerationOracle | None = None,
) -> RevisionOutcome:
    """One-shot restore of an earlier revision."""
    return await BehaviorPlanService(db, oracle).restore_revision(plan_id, revision_id)


async def check_coherence(
    plan: Plan,
    just_revised: str | SectionKind,
    oracle: GenerationOracle | None = None,
) -> CoherenceReport:
    """One-shot advisory coherence check on a loaded plan."""
    if oracle is None:
        from behaviorplan.ai.client import get_ai_client

        oracle = get_ai_client()
    return await CoherenceChecker(oracle).check(plan, just_revised)
