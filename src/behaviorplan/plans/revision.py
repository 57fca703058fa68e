"""
Section Revision Workflow

Drives the per-section review loop once a plan has been generated.

Operations on an editable section:
- ai_revise: oracle rewrites the section from user feedback
- manual_edit: user supplies the new content directly
- keep_as_is: mark reviewed without changing anything
- reset_to_original: copy the generated draft back into the working value
- restore: copy any earlier revision back into the working value

Every change to a working value appends exactly one revision row in the
same transaction. Validation and oracle calls happen before anything is
written; a failed write rolls the whole step back. Mutations on one plan
are serialized.
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from behaviorplan.ai.prompt_loader import SECTION_REVISION
from behaviorplan.core.exceptions import GenerationError
from behaviorplan.core.schemas import CoherenceReport, SectionRevisionOutput
from behaviorplan.core.validation import ValidationError, validate_feedback
from behaviorplan.plans.context import plan_context, section_context
from behaviorplan.plans.sections import (
    EDITABLE_SECTIONS,
    SectionContent,
    SectionKind,
    SectionLineage,
    all_reviewed,
    build_lineage,
    decode_content,
    next_section,
    normalize_content,
    parse_section_kind,
    render_content,
)

if TYPE_CHECKING:
    from uuid import UUID

    from behaviorplan.ai.client import GenerationOracle
    from behaviorplan.ai.prompt_loader import PromptLibrary
    from behaviorplan.assessment.rubric import Rubric
    from behaviorplan.core.models import Plan, PlanSectionRevision
    from behaviorplan.plans.coherence import CoherenceChecker
    from behaviorplan.plans.store import PlanStore

logger = logging.getLogger(__name__)

MANUAL_EDIT_FEEDBACK = "Manual edit"
RESET_FEEDBACK = "Reset to original"

LIST_INSTRUCTIONS = (
    "Return the content as a JSON array of exactly 3 strings, one strategy per item."
)
TEXT_INSTRUCTIONS = (
    "Return the content as a single text value with no additional commentary or explanation."
)

# Shared by every workflow in the process; an entry lives only while some
# caller holds or waits on its lock.
_plan_locks: weakref.WeakValueDictionary[UUID, asyncio.Lock] = weakref.WeakValueDictionary()


def plan_lock(plan_id: UUID) -> asyncio.Lock:
    """Lock serializing section mutations on one plan."""
    lock = _plan_locks.get(plan_id)
    if lock is None:
        lock = asyncio.Lock()
        _plan_locks[plan_id] = lock
    return lock


@dataclass
class RevisionOutcome:
    """Result of a review step on one section."""

    plan: Plan
    section: SectionKind
    content: SectionContent | None
    revision: PlanSectionRevision | None = None
    next_section: SectionKind | None = None
    coherence: CoherenceReport | None = None

    @property
    def review_complete(self) -> bool:
        return self.next_section is None


class RevisionWorkflow:
    """Per-section review state machine over a plan's working content."""

    def __init__(
        self,
        store: PlanStore,
        oracle: GenerationOracle,
        coherence_checker: CoherenceChecker | None = None,
        prompts: PromptLibrary | None = None,
        rubric: Rubric | None = None,
    ):
        """Initialize workflow.

        Args:
            store: Plan record store
            oracle: Structured-output generator for AI revisions
            coherence_checker: Advisory checker run after AI revisions (optional)
            prompts: Prompt library (defaults to the loaded singleton)
            rubric: Rubric for prompt labels (defaults to the loaded singleton)
        """
        if prompts is None:
            from behaviorplan.ai.prompt_loader import get_prompt_library

            prompts = get_prompt_library()
        if rubric is None:
            from behaviorplan.assessment.rubric import get_rubric

            rubric = get_rubric()

        self.store = store
        self.oracle = oracle
        self.coherence_checker = coherence_checker
        self.prompts = prompts
        self.rubric = rubric

    @staticmethod
    def _lock(plan_id: UUID) -> asyncio.Lock:
        return plan_lock(plan_id)

    # ------------------------------------------------------------------
    # Review operations
    # ------------------------------------------------------------------

    async def ai_revise(
        self, plan_id: UUID, section: str | SectionKind, feedback: str
    ) -> RevisionOutcome:
        """Revise a section with the oracle from user feedback.

        Raises:
            ValidationError: Bad section, blank feedback, or section not generated
            GenerationError: Oracle failure or off-shape content (nothing applied)
            NotFoundError: Plan or student missing
        """
        kind = parse_section_kind(section, editable_only=True)
        feedback = validate_feedback(feedback)

        async with self._lock(plan_id):
            plan = await self.store.get_plan(plan_id)
            stored = self._require_generated(plan, kind)
            student = await self.store.get_student(plan.student_id)

            context: dict[str, object] = {
                **plan_context(plan, student, self.rubric),
                **section_context(plan),
                "section_display_name": kind.display_name,
                "current_content": render_content(kind, stored),
                "feedback": feedback,
                "content_instructions": LIST_INSTRUCTIONS if kind.is_list else TEXT_INSTRUCTIONS,
            }
            prompt = self.prompts.render(SECTION_REVISION, context)

            try:
                output = await self.oracle.generate(prompt, SectionRevisionOutput)
            except Exception as e:
                logger.warning(f"AI revision failed for plan {plan_id} ({kind.value}): {e}")
                raise

            try:
                content = normalize_content(kind, output.content)
            except ValidationError as e:
                logger.warning(f"AI revision for {kind.value} had the wrong shape: {e}")
                raise GenerationError(f"Revised {kind.display_name} rejected: {e}") from e

            revision = await self._apply(
                plan, kind, content, feedback_given=feedback, rationale=output.rationale
            )
            upcoming = next_section(kind, plan.sections_reviewed or [])

        coherence = None
        if self.coherence_checker is not None:
            coherence = await self.coherence_checker.check(plan, kind)

        logger.info(
            f"AI revision #{revision.revision_number} applied to {kind.value} of plan {plan_id}"
        )
        return RevisionOutcome(
            plan=plan,
            section=kind,
            content=decode_content(kind, content),
            revision=revision,
            next_section=upcoming,
            coherence=coherence,
        )

    async def manual_edit(
        self, plan_id: UUID, section: str | SectionKind, content: SectionContent
    ) -> RevisionOutcome:
        """Replace a section's working value with user-supplied content.

        Prevention strategies accept a list, a JSON array string or numbered
        text, and must resolve to exactly three entries.

        Raises:
            ValidationError: Bad section (function_summary included) or bad shape
            NotFoundError: Plan missing
        """
        kind = parse_section_kind(section, editable_only=True)
        stored = normalize_content(kind, content)

        async with self._lock(plan_id):
            plan = await self.store.get_plan(plan_id)
            self._require_generated(plan, kind)

            revision = await self._apply(
                plan, kind, stored, feedback_given=MANUAL_EDIT_FEEDBACK, is_manual_edit=True
            )
            upcoming = next_section(kind, plan.sections_reviewed or [])

        logger.info(f"Manual edit saved for {kind.value} of plan {plan_id}")
        return RevisionOutcome(
            plan=plan,
            section=kind,
            content=decode_content(kind, stored),
            revision=revision,
            next_section=upcoming,
        )

    async def keep_as_is(self, plan_id: UUID, section: str | SectionKind) -> RevisionOutcome:
        """Mark a section reviewed without changing it (no revision row)."""
        kind = parse_section_kind(section, editable_only=True)

        async with self._lock(plan_id):
            plan = await self.store.get_plan(plan_id)
            stored = self._require_generated(plan, kind)

            try:
                self._mark_reviewed(plan, kind)
                await self.store.commit()
            except Exception:
                await self.store.rollback()
                raise

            upcoming = next_section(kind, plan.sections_reviewed or [])

        return RevisionOutcome(
            plan=plan,
            section=kind,
            content=decode_content(kind, stored),
            next_section=upcoming,
        )

    async def reset_to_original(self, plan_id: UUID, section: str | SectionKind) -> RevisionOutcome:
        """Copy the generated draft back into the working value."""
        kind = parse_section_kind(section, editable_only=True)

        async with self._lock(plan_id):
            plan = await self.store.get_plan(plan_id)
            original = plan.generated_content(kind.value)
            if original is None:
                raise ValidationError(f"No generated content to reset for {kind.value}")

            revision = await self._apply(plan, kind, original, feedback_given=RESET_FEEDBACK)

        logger.info(f"Reset {kind.value} of plan {plan_id} to original")
        return RevisionOutcome(
            plan=plan,
            section=kind,
            content=decode_content(kind, original),
            revision=revision,
            next_section=next_section(kind, plan.sections_reviewed or []),
        )

    async def restore(self, plan_id: UUID, revision_id: UUID) -> RevisionOutcome:
        """Copy an earlier revision's content back into the working value.

        Raises:
            NotFoundError: Plan missing, or revision not on this plan
        """
        async with self._lock(plan_id):
            plan = await self.store.get_plan(plan_id)
            source = await self.store.get_revision(plan_id, revision_id)
            kind = parse_section_kind(source.section_name)
            content = source.content

            feedback = f"Restored from version {source.revision_number}"
            if source.generation_version != plan.generation_version:
                feedback += f" (generation {source.generation_version})"

            revision = await self._apply(plan, kind, content, feedback_given=feedback)

        logger.info(
            f"Restored {kind.value} of plan {plan_id} from revision #{source.revision_number}"
        )
        return RevisionOutcome(
            plan=plan,
            section=kind,
            content=decode_content(kind, content),
            revision=revision,
            next_section=next_section(kind, plan.sections_reviewed or []),
        )

    # ------------------------------------------------------------------
    # Queries and review state
    # ------------------------------------------------------------------

    async def list_revisions(
        self, plan_id: UUID, section: str | SectionKind | None = None
    ) -> list[PlanSectionRevision]:
        """Revision history, newest generation version first, then newest revision."""
        await self.store.get_plan(plan_id)
        section_name = parse_section_kind(section).value if section is not None else None
        return await self.store.list_revisions(plan_id, section_name)

    async def lineage(self, plan_id: UUID, section: str | SectionKind) -> SectionLineage:
        """Original, working value and full log for one section."""
        kind = parse_section_kind(section)
        plan = await self.store.get_plan(plan_id)
        revisions = await self.store.list_revisions(plan_id, kind.value)
        return build_lineage(plan, kind, revisions)

    async def update_sections_reviewed(
        self, plan_id: UUID, sections: Iterable[str | SectionKind]
    ) -> Plan:
        """Replace the reviewed set (editable sections only, canonical order)."""
        kinds = {parse_section_kind(s, editable_only=True) for s in sections}

        async with self._lock(plan_id):
            plan = await self.store.get_plan(plan_id)
            try:
                plan.sections_reviewed = [k.value for k in EDITABLE_SECTIONS if k in kinds]
                await self.store.commit()
            except Exception:
                await self.store.rollback()
                raise

        return plan

    @staticmethod
    def all_sections_reviewed(plan: Plan) -> bool:
        return all_reviewed(plan.sections_reviewed or [])

    @staticmethod
    def next_section(plan: Plan, after: str | SectionKind | None = None) -> SectionKind | None:
        """Next editable section still awaiting review."""
        kind = parse_section_kind(after) if after is not None else None
        return next_section(kind, plan.sections_reviewed or [])

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _require_generated(plan: Plan, kind: SectionKind) -> str:
        stored = plan.current_content(kind.value)
        if stored is None:
            raise ValidationError(f"Section {kind.value} has not been generated yet")
        return stored

    @staticmethod
    def _mark_reviewed(plan: Plan, kind: SectionKind) -> None:
        reviewed = set(plan.sections_reviewed or [])
        reviewed.add(kind.value)
        plan.sections_reviewed = [k.value for k in EDITABLE_SECTIONS if k.value in reviewed]

    async def _apply(
        self,
        plan: Plan,
        kind: SectionKind,
        content: str,
        *,
        feedback_given: str | None,
        is_manual_edit: bool = False,
        rationale: str | None = None,
    ) -> PlanSectionRevision:
        """Set the working value, append its revision row and commit together."""
        try:
            plan.set_current_content(kind.value, content)

            counts = dict(plan.revision_counts or {})
            counts[kind.value] = counts.get(kind.value, 0) + 1
            plan.revision_counts = counts

            self._mark_reviewed(plan, kind)

            if rationale and rationale.strip():
                plan.rationales = {**(plan.rationales or {}), kind.value: rationale.strip()}

            revision = await self.store.append_revision(
                plan,
                kind.value,
                content,
                feedback_given=feedback_given,
                is_manual_edit=is_manual_edit,
            )
            await self.store.commit()
        except Exception:
            await self.store.rollback()
            raise

        return revision
