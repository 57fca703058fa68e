"""
Prompt Context Builders

Flatten plan, student and assessment data into the placeholder values the
prompt templates expect.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from behaviorplan.plans.sections import ALL_SECTIONS, render_content

if TYPE_CHECKING:
    from behaviorplan.assessment.rubric import Rubric
    from behaviorplan.core.models import Plan, Student


def format_implementer(value: str) -> str:
    """'special_ed_teacher' -> 'Special Ed Teacher'; 'Other: Coach' -> 'Coach'."""
    if value.startswith("Other: "):
        return value.removeprefix("Other: ").strip()
    return value.replace("_", " ").title()


def format_function_scores(plan: Plan, rubric: Rubric) -> str:
    scores = plan.function_scores or {}
    if not scores:
        return "Not available"
    return ", ".join(
        f"{rubric.label_for(category)}: {'N/A' if score is None else f'{score:.2f}'}"
        for category, score in scores.items()
    )


def section_context(plan: Plan, *, missing: str = "Not generated yet") -> dict[str, str]:
    """Current content of every section, prompt-ready."""
    return {
        kind.value: render_content(kind, plan.current_content(kind.value), missing=missing)
        for kind in ALL_SECTIONS
    }


def plan_context(plan: Plan, student: Student, rubric: Rubric) -> dict[str, str | None]:
    """Student, behavior and assessment placeholders shared by all prompts."""
    determined = plan.determined_function
    if determined and determined in rubric.categories:
        category = rubric.category(determined)
        primary_function = category.label
        explanation = category.explanation or "meet an underlying need"
    else:
        primary_function = "Not determined"
        explanation = "meet an underlying need"

    secondary = plan.secondary_function
    implementers = [format_implementer(i) for i in plan.implementers or []]

    return {
        "student_name": student.name,
        "grade_level": student.grade_level,
        "about": student.about,
        "interests": student.interests,
        "target_behavior": plan.target_behavior,
        "behavior_frequency": plan.behavior_frequency,
        "behavior_intensity": plan.behavior_intensity,
        "primary_function": primary_function,
        "secondary_function": rubric.label_for(secondary) if secondary else "None",
        "function_scores": format_function_scores(plan, rubric),
        "function_explanation": explanation,
        "whats_been_tried": plan.whats_been_tried or "None specified",
        "implementers": ", ".join(implementers) if implementers else None,
    }
