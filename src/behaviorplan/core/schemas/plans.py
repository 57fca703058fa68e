"""
Plan Pydantic Schemas

Transport-neutral request/response models for the plan engine.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .oracle import SectionCoherence


# Request schemas
class StudentCreate(BaseModel):
    """Request schema for creating a student."""

    name: str = Field(min_length=1, max_length=200)
    grade_level: str | None = Field(default=None, max_length=30)
    about: str | None = None
    interests: str | None = None


class PlanCreate(BaseModel):
    """Request schema for starting a plan."""

    student_id: UUID
    target_behavior: str | None = None
    behavior_frequency: str | None = Field(default=None, max_length=100)
    behavior_intensity: str | None = Field(default=None, max_length=100)


class PlanFollowUp(BaseModel):
    """Follow-up details collected after the assessment."""

    whats_been_tried: str | None = None
    implementers: list[str] = Field(default_factory=list)


# Response schemas
class CategoryScoreSchema(BaseModel):
    """Per-category score."""

    model_config = ConfigDict(from_attributes=True)

    category: str
    count: int
    total: float
    average: float | None = None


class FunctionDeterminationSchema(BaseModel):
    """Calculated determination plus accepted choice."""

    primary: str
    tied: list[str] = Field(default_factory=list)
    insufficient_data: bool = False
    scores: dict[str, float | None]
    calculated_function: str
    determined_function: str | None = None
    secondary_function: str | None = None


class PlanSectionRevisionSchema(BaseModel):
    """Revision history entry."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    plan_id: UUID
    section_name: str
    content: str
    revision_number: int
    generation_version: int
    feedback_given: str | None = None
    is_manual_edit: bool
    created_at: datetime


class PlanSchema(BaseModel):
    """Plan response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    student_id: UUID
    status: str
    target_behavior: str | None = None
    behavior_frequency: str | None = None
    behavior_intensity: str | None = None
    whats_been_tried: str | None = None
    implementers: list[str] | None = None
    assessment_responses: dict[str, str] | None = None
    function_scores: dict[str, Any] | None = None
    calculated_function: str | None = None
    determined_function: str | None = None
    secondary_function: str | None = None
    generation_version: int
    sections_reviewed: list[str] | None = None
    revision_counts: dict[str, int] | None = None
    finalized_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class CoherenceReport(BaseModel):
    """Advisory coherence result; never blocks finalization."""

    has_issues: bool = False
    revised_section: str | None = None
    sections: dict[str, SectionCoherence] = Field(default_factory=dict)
    error: str | None = None

    @property
    def flagged_sections(self) -> list[str]:
        return [name for name, verdict in self.sections.items() if not verdict.coherent]
