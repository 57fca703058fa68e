"""
Function Determination

Picks the primary behavioral function (or flags ambiguity) from category
scores.

Algorithm:
1. Keep categories with a non-null score
2. None left -> Ambiguous with no tied categories (insufficient data)
3. Sort descending by score (rubric order breaks equal scores)
4. Closeness band: score >= top - tie_threshold AND score >= min_tie_score
5. More than one category in the band -> Ambiguous(band)
6. Otherwise -> Single(top category)

A category cannot become a tied contender on a low absolute score, and a
single cause is not reported when two categories are both strongly and
closely endorsed.
"""

from __future__ import annotations

from collections.abc import Collection, Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from behaviorplan.assessment.scoring import CategoryScore
from behaviorplan.core.validation import ValidationError

MULTIPLE = "multiple"


@dataclass(frozen=True)
class SingleFunction:
    """One clearly dominant function."""

    category: str


@dataclass(frozen=True)
class AmbiguousFunction:
    """Several closely endorsed functions, or none at all.

    An empty ``tied`` means no category had any evidence.
    """

    tied: tuple[str, ...] = ()

    @property
    def insufficient_data(self) -> bool:
        return not self.tied


Primary = SingleFunction | AmbiguousFunction


@dataclass(frozen=True)
class FunctionDetermination:
    """Result of the determination procedure plus the scores it was based on."""

    primary: Primary
    scores: Mapping[str, float | None] = field(default_factory=dict)

    @property
    def is_ambiguous(self) -> bool:
        return isinstance(self.primary, AmbiguousFunction)

    @property
    def insufficient_data(self) -> bool:
        return isinstance(self.primary, AmbiguousFunction) and self.primary.insufficient_data

    @property
    def tied(self) -> list[str]:
        if isinstance(self.primary, AmbiguousFunction):
            return list(self.primary.tied)
        return []

    @property
    def calculated_function(self) -> str:
        """Persisted form: a category id, or 'multiple'."""
        if isinstance(self.primary, SingleFunction):
            return self.primary.category
        return MULTIPLE

    @property
    def default_choice(self) -> str | None:
        """Primary category, else the first tied one, else None."""
        if isinstance(self.primary, SingleFunction):
            return self.primary.category
        return self.primary.tied[0] if self.primary.tied else None

    def as_dict(self) -> dict[str, Any]:
        return {
            "primary": self.calculated_function,
            "tied": self.tied,
            "scores": dict(self.scores),
        }


def _as_average(score: CategoryScore | float | None) -> float | None:
    if isinstance(score, CategoryScore):
        return score.average
    return score


def determine_function(
    scores: Mapping[str, CategoryScore | float | None],
    *,
    tie_threshold: float | None = None,
    min_tie_score: float | None = None,
) -> FunctionDetermination:
    """Determine the primary function from category scores.

    Args:
        scores: Category id -> CategoryScore or plain average (None = no evidence)
        tie_threshold: Closeness band width. Defaults to settings.FUNCTION_TIE_THRESHOLD
        min_tie_score: Significance floor. Defaults to settings.FUNCTION_MIN_TIE_SCORE

    Returns:
        FunctionDetermination (idempotent for identical input)
    """
    if tie_threshold is None or min_tie_score is None:
        from behaviorplan.config import settings

        if tie_threshold is None:
            tie_threshold = settings.FUNCTION_TIE_THRESHOLD
        if min_tie_score is None:
            min_tie_score = settings.FUNCTION_MIN_TIE_SCORE

    averages = {category: _as_average(score) for category, score in scores.items()}

    valid = [(category, avg) for category, avg in averages.items() if avg is not None]
    if not valid:
        return FunctionDetermination(primary=AmbiguousFunction(()), scores=averages)

    # Stable: equal scores keep rubric order
    valid.sort(key=lambda pair: pair[1], reverse=True)

    top_category, top_score = valid[0]

    # Decimal comparison so 2.6 - 0.3 includes exactly 2.3
    band_floor = Decimal(str(top_score)) - Decimal(str(tie_threshold))
    significance = Decimal(str(min_tie_score))

    close = [
        category
        for category, avg in valid
        if Decimal(str(avg)) >= band_floor and Decimal(str(avg)) >= significance
    ]

    if len(close) > 1:
        return FunctionDetermination(primary=AmbiguousFunction(tuple(close)), scores=averages)

    return FunctionDetermination(primary=SingleFunction(top_category), scores=averages)


def resolve_determined_function(
    determination: FunctionDetermination,
    user_choice: str | None,
    valid_categories: Collection[str],
) -> tuple[str | None, str | None]:
    """Apply an optional user override to a calculated determination.

    Args:
        determination: Calculated determination
        user_choice: Category explicitly chosen by the user, if any
        valid_categories: Categories declared by the rubric

    Returns:
        (determined_function, secondary_function). Secondary is the first
        other tied category when the calculation was a genuine tie.

    Raises:
        ValidationError: If user_choice is not a known category
    """
    if user_choice is not None:
        if user_choice not in valid_categories:
            raise ValidationError(f"Unknown function category: {user_choice!r}")
        determined: str | None = user_choice
    else:
        determined = determination.default_choice

    secondary = next((c for c in determination.tied if c != determined), None)

    return determined, secondary
