"""
Oracle Output Schemas

Structured shapes the generation oracle must return. The oracle client
validates raw model output against these before anything is stored.
"""

from pydantic import BaseModel, Field, field_validator


class GeneratedPlanOutput(BaseModel):
    """Full-plan generation result."""

    function_summary: str = Field(
        min_length=1,
        description="2-3 sentence explanation of why the student engages in this behavior.",
    )
    replacement_behavior: str = Field(
        min_length=1,
        description=(
            "ONE specific replacement behavior: what it is, when to use it, how to teach it."
        ),
    )
    replacement_behavior_rationale: str = Field(
        default="", description="1-2 sentence behavior science rationale."
    )
    prevention_strategies: list[str] = Field(
        min_length=3,
        max_length=3,
        description="Exactly 3 prevention strategies, each a bold title plus 1-2 sentences.",
    )
    prevention_strategies_rationale: str = Field(
        default="", description="1-2 sentence rationale for the antecedent approach."
    )
    reinforcement_plan: str = Field(
        min_length=1, description="3-4 items, each a bold title plus 1-2 sentences."
    )
    reinforcement_plan_rationale: str = Field(
        default="", description="1-2 sentence rationale for the reinforcement strategy."
    )
    response_to_behavior: str = Field(
        min_length=1, description="Exactly 3 numbered steps for responding to the behavior."
    )
    response_to_behavior_rationale: str = Field(
        default="", description="1-2 sentence rationale for the response protocol."
    )

    @field_validator("prevention_strategies")
    @classmethod
    def strategies_not_blank(cls, v: list[str]) -> list[str]:
        cleaned = [s.strip() for s in v]
        if any(not s for s in cleaned):
            raise ValueError("prevention strategies cannot be blank")
        return cleaned


class SectionRevisionOutput(BaseModel):
    """Single-section revision result."""

    content: str | list[str]
    rationale: str = ""


class SectionCoherence(BaseModel):
    """Coherence verdict for one section."""

    coherent: bool
    issue: str | None = None
    suggestion: str | None = None


class CoherenceOutput(BaseModel):
    """Coherence verdicts for the four editable sections."""

    replacement_behavior: SectionCoherence
    prevention_strategies: SectionCoherence
    reinforcement_plan: SectionCoherence
    response_to_behavior: SectionCoherence
