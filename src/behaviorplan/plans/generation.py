"""
Plan Generation

Drafts all five plan sections in one oracle call and seeds the revision log.

Flow:
1. Load plan + student, render PLAN-GEN-001 with the assessment context
2. Ask the oracle for a GeneratedPlanOutput (exactly 3 prevention strategies)
3. Write generated_* and current_* for every section in one transaction
4. Append revision #1 per section under the plan's generation version

Rebuild bumps generation_version first, so revision numbering restarts at 1
while earlier versions stay in history. Nothing is written if the oracle fails.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from behaviorplan.ai.prompt_loader import PLAN_GENERATION
from behaviorplan.core.exceptions import GenerationError
from behaviorplan.core.schemas import GeneratedPlanOutput
from behaviorplan.core.validation import ValidationError
from behaviorplan.plans.context import plan_context
from behaviorplan.plans.sections import ALL_SECTIONS, EDITABLE_SECTIONS, normalize_content

if TYPE_CHECKING:
    from uuid import UUID

    from behaviorplan.ai.client import GenerationOracle
    from behaviorplan.ai.prompt_loader import PromptLibrary
    from behaviorplan.assessment.rubric import Rubric
    from behaviorplan.core.models import Plan
    from behaviorplan.plans.store import PlanStore

logger = logging.getLogger(__name__)


class PlanGenerator:
    """Generates and rebuilds plan drafts through the generation oracle."""

    def __init__(
        self,
        store: PlanStore,
        oracle: GenerationOracle,
        prompts: PromptLibrary | None = None,
        rubric: Rubric | None = None,
    ):
        """Initialize generator.

        Args:
            store: Plan record store
            oracle: Structured-output generator
            prompts: Prompt library (defaults to the loaded singleton)
            rubric: Rubric used for labels and explanations (defaults to singleton)
        """
        if prompts is None:
            from behaviorplan.ai.prompt_loader import get_prompt_library

            prompts = get_prompt_library()
        if rubric is None:
            from behaviorplan.assessment.rubric import get_rubric

            rubric = get_rubric()

        self.store = store
        self.oracle = oracle
        self.prompts = prompts
        self.rubric = rubric

    async def generate_plan(self, plan_id: UUID) -> Plan:
        """Draft every section for a plan that has no content yet.

        Raises:
            NotFoundError: Plan or student missing
            ValidationError: Content already generated for this version
            GenerationError: Oracle failure (nothing is written)
        """
        plan = await self.store.get_plan(plan_id)
        if plan.has_generated_content:
            raise ValidationError(
                f"Plan {plan_id} already has generated content; rebuild it instead"
            )

        output = await self._draft(plan)
        return await self._apply(plan, output)

    async def rebuild_plan(self, plan_id: UUID) -> Plan:
        """Regenerate every section under a new generation version.

        Raises:
            NotFoundError: Plan or student missing
            GenerationError: Oracle failure (version is not incremented)
        """
        plan = await self.store.get_plan(plan_id)

        output = await self._draft(plan)

        new_version = plan.generation_version + 1
        logger.info(
            f"Rebuilding plan {plan_id}: generation version "
            f"{plan.generation_version} -> {new_version}"
        )
        return await self._apply(plan, output, generation_version=new_version)

    async def _draft(self, plan: Plan) -> GeneratedPlanOutput:
        student = await self.store.get_student(plan.student_id)
        prompt = self.prompts.render(PLAN_GENERATION, plan_context(plan, student, self.rubric))

        try:
            return await self.oracle.generate(prompt, GeneratedPlanOutput)
        except Exception as e:
            logger.warning(f"Plan generation failed for plan {plan.id}: {e}")
            raise

    async def _apply(
        self, plan: Plan, output: GeneratedPlanOutput, *, generation_version: int | None = None
    ) -> Plan:
        """Write the draft and its revision #1 rows, all or nothing."""
        # Shape contracts checked before anything is touched
        try:
            contents = {
                kind.value: normalize_content(kind, getattr(output, kind.value))
                for kind in ALL_SECTIONS
            }
        except ValidationError as e:
            logger.warning(f"Generated plan {plan.id} had the wrong shape: {e}")
            raise GenerationError(f"Generated plan rejected: {e}") from e

        try:
            if generation_version is not None:
                plan.generation_version = generation_version

            for name, content in contents.items():
                plan.set_generated_content(name, content)
                plan.set_current_content(name, content)

            plan.rationales = {
                kind.value: getattr(output, f"{kind.value}_rationale")
                for kind in EDITABLE_SECTIONS
            }
            plan.sections_reviewed = []
            plan.revision_counts = {}
            plan.status = "generating"

            for name, content in contents.items():
                await self.store.append_revision(plan, name, content)

            await self.store.commit()
        except Exception:
            await self.store.rollback()
            raise

        logger.info(
            f"Generated plan {plan.id} (generation version {plan.generation_version})"
        )
        return plan
