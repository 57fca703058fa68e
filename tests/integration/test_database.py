"""
Integration Tests for Database Operations

Tests CRUD operations and constraints against the test database.
"""

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.pool import StaticPool

from behaviorplan.core.database import build_engine, init_db
from behaviorplan.core.models import Plan, PlanSectionRevision, Student


@pytest.mark.asyncio
async def test_create_student_and_plan(db_session: AsyncSession):
    """Test creating a student with a plan in the database."""
    student = Student(name="Maya", grade_level="3rd")
    db_session.add(student)
    await db_session.flush()

    plan = Plan(student_id=student.id, implementers=["classroom_teacher"])
    db_session.add(plan)
    await db_session.commit()

    result = await db_session.execute(select(Plan).where(Plan.student_id == student.id))
    stored = result.scalar_one()

    assert stored.status == "draft"
    assert stored.generation_version == 1
    assert stored.implementers == ["classroom_teacher"]


@pytest.mark.asyncio
async def test_json_columns_round_trip(db_session: AsyncSession, plan: Plan):
    plan.assessment_responses = {"1": "agree", "2": "n_a"}
    plan.revision_counts = {"reinforcement_plan": 2}
    await db_session.commit()

    db_session.expunge_all()
    stored = await db_session.get(Plan, plan.id)

    assert stored.assessment_responses == {"1": "agree", "2": "n_a"}
    assert stored.function_scores["sensory"] is None
    assert stored.revision_counts == {"reinforcement_plan": 2}


@pytest.mark.asyncio
async def test_status_check_constraint(db_session: AsyncSession, student: Student):
    db_session.add(Plan(student_id=student.id, status="archived"))

    with pytest.raises(IntegrityError):
        await db_session.flush()

    await db_session.rollback()


@pytest.mark.asyncio
async def test_revision_number_unique_per_generation(db_session: AsyncSession, plan: Plan):
    def revision(generation_version: int) -> PlanSectionRevision:
        return PlanSectionRevision(
            plan_id=plan.id,
            section_name="reinforcement_plan",
            content="Praise",
            revision_number=1,
            generation_version=generation_version,
        )

    db_session.add_all([revision(1), revision(2)])
    await db_session.flush()

    db_session.add(revision(1))
    with pytest.raises(IntegrityError):
        await db_session.flush()

    await db_session.rollback()


@pytest.mark.asyncio
async def test_revision_section_check_constraint(db_session: AsyncSession, plan: Plan):
    db_session.add(
        PlanSectionRevision(
            plan_id=plan.id,
            section_name="goals",
            content="x",
            revision_number=1,
            generation_version=1,
        )
    )

    with pytest.raises(IntegrityError):
        await db_session.flush()

    await db_session.rollback()


@pytest.mark.asyncio
async def test_init_db_creates_tables():
    engine = build_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    try:
        await init_db(engine)

        async with AsyncSession(engine) as session:
            result = await session.execute(select(Student))
            assert result.scalars().all() == []
    finally:
        await engine.dispose()
