"""Pydantic schemas for validation and oracle output."""

from .oracle import CoherenceOutput, GeneratedPlanOutput, SectionCoherence, SectionRevisionOutput
from .plans import (
    CategoryScoreSchema,
    CoherenceReport,
    FunctionDeterminationSchema,
    PlanCreate,
    PlanFollowUp,
    PlanSchema,
    PlanSectionRevisionSchema,
    StudentCreate,
)

__all__ = [
    # Oracle output
    "GeneratedPlanOutput",
    "SectionRevisionOutput",
    "SectionCoherence",
    "CoherenceOutput",
    # Requests
    "StudentCreate",
    "PlanCreate",
    "PlanFollowUp",
    # Responses
    "CategoryScoreSchema",
    "FunctionDeterminationSchema",
    "PlanSectionRevisionSchema",
    "PlanSchema",
    "CoherenceReport",
]
