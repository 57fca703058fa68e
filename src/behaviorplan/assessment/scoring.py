"""
Function Assessment Scoring Engine

Aggregates raw assessment responses into a per-category score.

Algorithm (per category, in rubric order):
1. Iterate the category's items
2. Skip unanswered items and "not applicable" responses
3. Accumulate count and weight sum for the rest
4. average = sum / count, rounded half-up to 2 decimal places
5. count == 0 -> average is None ("no evidence", distinct from a low score)

Pure function of its inputs; safe to call on every response change.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from behaviorplan.assessment.rubric import Rubric, get_rubric
from behaviorplan.core.validation import validate_responses

_TWO_PLACES = Decimal("0.01")


@dataclass(frozen=True)
class CategoryScore:
    """Aggregate endorsement strength for one function category."""

    category: str
    count: int
    total: float
    average: float | None

    @property
    def has_evidence(self) -> bool:
        return self.average is not None


def round_score(total: float, count: int) -> float:
    """Average rounded half-up to two decimal places (7 / 3 -> 2.33)."""
    average = Decimal(str(total)) / Decimal(count)
    return float(average.quantize(_TWO_PLACES, rounding=ROUND_HALF_UP))


def score_responses(
    responses: Mapping[int | str, str] | None,
    rubric: Rubric | None = None,
) -> dict[str, CategoryScore]:
    """Score a (possibly partial) response set against the rubric.

    Args:
        responses: Item id to response value; ids may be int or numeric str
        rubric: Rubric to score against. Defaults to the loaded singleton

    Returns:
        Category id -> CategoryScore, in rubric category order. Every
        declared category is present.

    Raises:
        ValidationError: On unknown item ids or response values
    """
    rubric = rubric or get_rubric()
    cleaned = validate_responses(
        responses, valid_ids=rubric.items.keys(), allowed_values=rubric.response_values
    )

    scores: dict[str, CategoryScore] = {}
    for category_id, items in rubric.items_by_category().items():
        count = 0
        total = 0.0

        for item in items:
            value = cleaned.get(item.id)
            if value is None:
                continue

            weight = rubric.weight_for(value)
            if weight is None:
                continue

            count += 1
            total += weight

        scores[category_id] = CategoryScore(
            category=category_id,
            count=count,
            total=total,
            average=round_score(total, count) if count > 0 else None,
        )

    return scores


def score_averages(scores: Mapping[str, CategoryScore]) -> dict[str, float | None]:
    """Flatten scores to the persisted {category: average | None} form."""
    return {category: score.average for category, score in scores.items()}
