"""
Plan Models

Behavior intervention plans and their append-only section revision history.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

if TYPE_CHECKING:
    from .students import Student

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, JSONType, TimestampMixin, UUIDPrimaryKeyMixin, utcnow

PLAN_STATUSES = ("draft", "in_progress", "assessment_complete", "generating", "complete")

SECTION_NAMES = (
    "function_summary",
    "replacement_behavior",
    "prevention_strategies",
    "reinforcement_plan",
    "response_to_behavior",
)

_SECTION_CHECK = ", ".join(f"'{name}'" for name in SECTION_NAMES)
_STATUS_CHECK = ", ".join(f"'{status}'" for status in PLAN_STATUSES)


class Plan(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Behavior intervention plan for one student.

    Each section has a write-once generated draft (generated_*) and a live
    working value (current_*). Every change to a current_* value is paired
    with a PlanSectionRevision row.
    """

    __tablename__ = "plans"
    __table_args__ = (
        CheckConstraint(f"status IN ({_STATUS_CHECK})", name="check_plan_status"),
        Index("idx_plans_student", "student_id"),
        Index("idx_plans_status", "status"),
    )

    student_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("students.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[str] = mapped_column(String(30), default="draft", nullable=False)

    # Behavior details
    target_behavior: Mapped[str | None] = mapped_column(Text, nullable=True)
    behavior_frequency: Mapped[str | None] = mapped_column(String(100), nullable=True)
    behavior_intensity: Mapped[str | None] = mapped_column(String(100), nullable=True)
    whats_been_tried: Mapped[str | None] = mapped_column(Text, nullable=True)
    implementers: Mapped[list[str]] = mapped_column(
        JSONType, default=list, comment="Who will implement the plan"
    )

    # Function assessment
    assessment_responses: Mapped[dict[str, str] | None] = mapped_column(
        JSONType, nullable=True, comment='Item id to response value, e.g. {"1": "agree"}'
    )
    function_scores: Mapped[dict[str, Any] | None] = mapped_column(
        JSONType, nullable=True, comment="Per-category average (null = no evidence)"
    )
    calculated_function: Mapped[str | None] = mapped_column(
        String(30), nullable=True, comment="Algorithm result: category or 'multiple'"
    )
    determined_function: Mapped[str | None] = mapped_column(
        String(30), nullable=True, comment="Accepted function (user override or calculated)"
    )
    secondary_function: Mapped[str | None] = mapped_column(String(30), nullable=True)

    # Generated content (first AI draft, write-once per generation version)
    generated_function_summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    generated_replacement_behavior: Mapped[str | None] = mapped_column(Text, nullable=True)
    generated_prevention_strategies: Mapped[str | None] = mapped_column(
        Text, nullable=True, comment="JSON array of exactly 3 strings"
    )
    generated_reinforcement_plan: Mapped[str | None] = mapped_column(Text, nullable=True)
    generated_response_to_behavior: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Current content (working value)
    current_function_summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    current_replacement_behavior: Mapped[str | None] = mapped_column(Text, nullable=True)
    current_prevention_strategies: Mapped[str | None] = mapped_column(
        Text, nullable=True, comment="JSON array of exactly 3 strings"
    )
    current_reinforcement_plan: Mapped[str | None] = mapped_column(Text, nullable=True)
    current_response_to_behavior: Mapped[str | None] = mapped_column(Text, nullable=True)

    rationales: Mapped[dict[str, str]] = mapped_column(
        JSONType, default=dict, comment="Behavior science rationale per editable section"
    )

    # Revision tracking
    generation_version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    sections_reviewed: Mapped[list[str]] = mapped_column(JSONType, default=list)
    revision_counts: Mapped[dict[str, int]] = mapped_column(JSONType, default=dict)

    finalized_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationships
    student: Mapped[Student] = relationship(back_populates="plans")
    revisions: Mapped[list[PlanSectionRevision]] = relationship(
        back_populates="plan", cascade="all, delete-orphan"
    )

    def generated_content(self, section_name: str) -> str | None:
        """Stored first draft for a section."""
        return getattr(self, f"generated_{section_name}")

    def current_content(self, section_name: str) -> str | None:
        """Stored working value for a section."""
        return getattr(self, f"current_{section_name}")

    def set_generated_content(self, section_name: str, content: str) -> None:
        setattr(self, f"generated_{section_name}", content)

    def set_current_content(self, section_name: str, content: str) -> None:
        setattr(self, f"current_{section_name}", content)

    @property
    def has_generated_content(self) -> bool:
        """Whether the plan holds a generated draft for every section."""
        return all(self.generated_content(name) is not None for name in SECTION_NAMES)


class PlanSectionRevision(Base, UUIDPrimaryKeyMixin):
    """Immutable revision record for one plan section.

    Revision numbers restart at 1 for every generation version; older
    versions stay queryable after a rebuild.
    """

    __tablename__ = "plan_section_revisions"
    __table_args__ = (
        CheckConstraint(f"section_name IN ({_SECTION_CHECK})", name="check_revision_section"),
        UniqueConstraint(
            "plan_id",
            "section_name",
            "generation_version",
            "revision_number",
            name="uq_revision_number",
        ),
        Index("idx_revisions_plan_section", "plan_id", "section_name"),
    )

    plan_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("plans.id", ondelete="CASCADE"), nullable=False
    )
    section_name: Mapped[str] = mapped_column(String(40), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    revision_number: Mapped[int] = mapped_column(Integer, nullable=False)
    generation_version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    feedback_given: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_manual_edit: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    # Relationships
    plan: Mapped[Plan] = relationship(back_populates="revisions")
