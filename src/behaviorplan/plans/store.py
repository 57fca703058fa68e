"""
Plan Record Store

Get/update-by-id for plans and students, append/query for section
revisions, all over a single AsyncSession. Callers own the transaction
boundary: commit() after a complete mutation, rollback() on failure.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING

from sqlalchemy import desc, func, select

from behaviorplan.core.exceptions import NotFoundError
from behaviorplan.core.models import Plan, PlanSectionRevision, Student

if TYPE_CHECKING:
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession


class PlanStore:
    """Record store for plans, students and revision history."""

    def __init__(self, db: AsyncSession):
        """Initialize store.

        Args:
            db: Database session
        """
        self.db = db

    # ------------------------------------------------------------------
    # Students
    # ------------------------------------------------------------------

    async def add_student(self, student: Student) -> Student:
        self.db.add(student)
        await self.db.flush()
        return student

    async def get_student(self, student_id: UUID) -> Student:
        """Fetch a student.

        Raises:
            NotFoundError: If no student has this id
        """
        student = await self.db.get(Student, student_id)
        if student is None:
            raise NotFoundError("Student", student_id)
        return student

    # ------------------------------------------------------------------
    # Plans
    # ------------------------------------------------------------------

    async def add_plan(self, plan: Plan) -> Plan:
        self.db.add(plan)
        await self.db.flush()
        return plan

    async def get_plan(self, plan_id: UUID) -> Plan:
        """Fetch a plan.

        Raises:
            NotFoundError: If no plan has this id
        """
        plan = await self.db.get(Plan, plan_id)
        if plan is None:
            raise NotFoundError("Plan", plan_id)
        return plan

    async def save_responses(self, plan_id: UUID, responses: Mapping[int, str]) -> Plan:
        """Write the full response set (stored with string keys)."""
        plan = await self.get_plan(plan_id)
        plan.assessment_responses = {str(k): v for k, v in sorted(responses.items())}
        await self.db.flush()
        return plan

    # ------------------------------------------------------------------
    # Revisions
    # ------------------------------------------------------------------

    async def latest_revision_number(
        self, plan_id: UUID, section_name: str, generation_version: int
    ) -> int:
        """Highest revision number for a section within a generation version (0 if none)."""
        result = await self.db.execute(
            select(func.max(PlanSectionRevision.revision_number)).where(
                PlanSectionRevision.plan_id == plan_id,
                PlanSectionRevision.section_name == section_name,
                PlanSectionRevision.generation_version == generation_version,
            )
        )
        return result.scalar_one_or_none() or 0

    async def append_revision(
        self,
        plan: Plan,
        section_name: str,
        content: str,
        *,
        feedback_given: str | None = None,
        is_manual_edit: bool = False,
    ) -> PlanSectionRevision:
        """Append the next revision for a section under the plan's generation version."""
        next_number = (
            await self.latest_revision_number(plan.id, section_name, plan.generation_version) + 1
        )

        revision = PlanSectionRevision(
            plan_id=plan.id,
            section_name=section_name,
            content=content,
            revision_number=next_number,
            generation_version=plan.generation_version,
            feedback_given=feedback_given,
            is_manual_edit=is_manual_edit,
        )
        self.db.add(revision)
        await self.db.flush()
        return revision

    async def get_revision(self, plan_id: UUID, revision_id: UUID) -> PlanSectionRevision:
        """Fetch one revision belonging to a plan.

        Raises:
            NotFoundError: If the revision does not exist for this plan
        """
        result = await self.db.execute(
            select(PlanSectionRevision).where(
                PlanSectionRevision.id == revision_id,
                PlanSectionRevision.plan_id == plan_id,
            )
        )
        revision = result.scalar_one_or_none()
        if revision is None:
            raise NotFoundError("Revision", revision_id)
        return revision

    async def list_revisions(
        self, plan_id: UUID, section_name: str | None = None
    ) -> list[PlanSectionRevision]:
        """Revision history, newest generation version first, then newest revision."""
        query = select(PlanSectionRevision).where(PlanSectionRevision.plan_id == plan_id)
        if section_name is not None:
            query = query.where(PlanSectionRevision.section_name == section_name)

        result = await self.db.execute(
            query.order_by(
                desc(PlanSectionRevision.generation_version),
                desc(PlanSectionRevision.revision_number),
            )
        )
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Transaction boundary
    # ------------------------------------------------------------------

    async def commit(self) -> None:
        await self.db.commit()

    async def rollback(self) -> None:
        await self.db.rollback()
