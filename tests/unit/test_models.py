"""
Unit Tests for SQLAlchemy Models

Tests for model structure and in-memory defaults.
"""

from datetime import datetime
from uuid import uuid4

from behaviorplan.core.models import SECTION_NAMES, Plan, PlanSectionRevision, Student


def test_student_model():
    """Test Student model with minimal data collection."""
    student = Student(name="Maya", grade_level="3rd", interests="Legos")

    assert student.name == "Maya"
    assert student.grade_level == "3rd"
    assert student.about is None


def test_uuid_primary_key_mixin():
    """Test UUIDPrimaryKeyMixin generates UUIDs."""
    plan = Plan(student_id=uuid4())

    assert plan.id is not None
    assert len(str(plan.id)) == 36  # UUID format


def test_explicit_id_kept():
    plan_id = uuid4()
    plan = Plan(id=plan_id, student_id=uuid4())

    assert plan.id == plan_id


def test_timestamp_mixin():
    """Test TimestampMixin sets created_at and updated_at."""
    student = Student(name="Maya")

    # Timestamps should be set (in memory, not DB default)
    assert isinstance(student.created_at, datetime)
    assert isinstance(student.updated_at, datetime)
    assert student.created_at.tzinfo is not None


def test_section_accessors():
    plan = Plan(student_id=uuid4())

    plan.set_generated_content("reinforcement_plan", "Praise")
    plan.set_current_content("reinforcement_plan", "Stickers")

    assert plan.generated_content("reinforcement_plan") == "Praise"
    assert plan.current_content("reinforcement_plan") == "Stickers"
    assert plan.generated_reinforcement_plan == "Praise"


def test_has_generated_content_requires_every_section():
    plan = Plan(student_id=uuid4())
    assert plan.has_generated_content is False

    for name in SECTION_NAMES[:-1]:
        plan.set_generated_content(name, "text")
    assert plan.has_generated_content is False

    plan.set_generated_content(SECTION_NAMES[-1], "text")
    assert plan.has_generated_content is True


def test_revision_model():
    plan_id = uuid4()
    revision = PlanSectionRevision(
        plan_id=plan_id,
        section_name="replacement_behavior",
        content="Raise a hand.",
        revision_number=1,
        generation_version=1,
        feedback_given=None,
        is_manual_edit=False,
    )

    assert revision.plan_id == plan_id
    assert revision.revision_number == 1
    assert revision.id is not None
