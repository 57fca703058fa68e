"""
Function Assessment Rubric Catalog

Static catalog of assessment items, their behavioral-function category tags,
and the response vocabulary with ordinal weights.

Architecture:
- Load once at startup from JSON (bundled default or settings.RUBRIC_PATH)
- Keep in memory as singleton
- Any Rubric can also be built directly, so scoring and determination
  can run against synthetic rubrics of arbitrary size
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from behaviorplan.core.validation import ValidationError


@dataclass(frozen=True)
class FunctionCategory:
    """A behavioral-function category (e.g. escape, attention)."""

    id: str
    label: str
    description: str = ""
    explanation: str = ""


@dataclass(frozen=True)
class ResponseOption:
    """One value of the response vocabulary.

    A weight of None marks the "not applicable" sentinel: the item is
    skipped during scoring rather than counted as zero.
    """

    value: str
    label: str
    weight: float | None

    @property
    def is_applicable(self) -> bool:
        return self.weight is not None


@dataclass(frozen=True)
class AssessmentItem:
    """Single rubric item with its category tag."""

    id: int
    text: str
    category: str


class Rubric:
    """In-memory function assessment rubric.

    Category order is the declaration order and is used as the stable
    tie-break when two categories have equal scores.
    """

    def __init__(
        self,
        *,
        categories: Sequence[FunctionCategory],
        items: Sequence[AssessmentItem],
        response_options: Sequence[ResponseOption],
        student_placeholder: str = "[Student]",
        version: str = "custom",
    ):
        """Build and validate a rubric.

        Raises:
            ValidationError: If the rubric is internally inconsistent
        """
        self.categories: dict[str, FunctionCategory] = {}
        for category in categories:
            if category.id in self.categories:
                raise ValidationError(f"Duplicate rubric category: {category.id}")
            self.categories[category.id] = category

        if not self.categories:
            raise ValidationError("Rubric must declare at least one category")

        self.items: dict[int, AssessmentItem] = {}
        for item in items:
            if item.id in self.items:
                raise ValidationError(f"Duplicate rubric item id: {item.id}")
            if item.category not in self.categories:
                raise ValidationError(
                    f"Rubric item {item.id} uses undeclared category: {item.category}"
                )
            self.items[item.id] = item

        self.response_options: dict[str, ResponseOption] = {}
        for option in response_options:
            if option.value in self.response_options:
                raise ValidationError(f"Duplicate response value: {option.value}")
            self.response_options[option.value] = option

        weights = [o.weight for o in self.response_options.values() if o.weight is not None]
        if not weights:
            raise ValidationError("Rubric must define at least one weighted response option")
        if len(self.response_options) - len(weights) > 1:
            raise ValidationError("Rubric may define at most one 'not applicable' option")

        self.min_weight = min(weights)
        self.max_weight = max(weights)
        self.student_placeholder = student_placeholder
        self.version = version

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Rubric:
        """Build a rubric from its JSON document shape."""
        try:
            categories = [
                FunctionCategory(
                    id=c["id"],
                    label=c.get("label", c["id"]),
                    description=c.get("description", ""),
                    explanation=c.get("explanation", ""),
                )
                for c in data["categories"]
            ]
            items = [
                AssessmentItem(id=int(i["id"]), text=i["text"], category=i["category"])
                for i in data["items"]
            ]
            options = [
                ResponseOption(
                    value=o["value"],
                    label=o.get("label", o["value"]),
                    weight=None if o.get("weight") is None else float(o["weight"]),
                )
                for o in data["response_options"]
            ]
        except (KeyError, TypeError, ValueError) as e:
            raise ValidationError(f"Malformed rubric document: {e}") from e

        return cls(
            categories=categories,
            items=items,
            response_options=options,
            student_placeholder=data.get("student_placeholder", "[Student]"),
            version=str(data.get("version", "unknown")),
        )

    @classmethod
    def from_json(cls, path: Path) -> Rubric:
        """Load a rubric from a JSON file."""
        if not path.exists():
            raise FileNotFoundError(f"Rubric not found: {path}")

        with open(path, encoding="utf-8") as f:
            return cls.from_dict(json.load(f))

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    @property
    def category_ids(self) -> tuple[str, ...]:
        return tuple(self.categories)

    @property
    def item_ids(self) -> tuple[int, ...]:
        return tuple(sorted(self.items))

    @property
    def response_values(self) -> tuple[str, ...]:
        return tuple(self.response_options)

    def weight_for(self, value: str) -> float | None:
        """Numeric weight for a response value (None for not applicable).

        Raises:
            ValidationError: If the value is not in the vocabulary
        """
        option = self.response_options.get(value)
        if option is None:
            raise ValidationError(f"Unknown response value: {value!r}")
        return option.weight

    def items_by_category(self) -> dict[str, list[AssessmentItem]]:
        """Group items by category, preserving category declaration order."""
        grouped: dict[str, list[AssessmentItem]] = {cid: [] for cid in self.categories}
        for item_id in self.item_ids:
            item = self.items[item_id]
            grouped[item.category].append(item)
        return grouped

    def category(self, category_id: str) -> FunctionCategory:
        if category_id not in self.categories:
            raise ValidationError(f"Unknown function category: {category_id!r}")
        return self.categories[category_id]

    def label_for(self, category_id: str) -> str:
        category = self.categories.get(category_id)
        return category.label if category else category_id

    # ------------------------------------------------------------------
    # Display helpers
    # ------------------------------------------------------------------

    def format_text(self, text: str, student_name: str) -> str:
        """Replace every student placeholder with the student's name."""
        return text.replace(self.student_placeholder, student_name)

    def format_prompt(self, item: AssessmentItem | int, student_name: str) -> str:
        """One item's prompt text personalised for a student."""
        if not isinstance(item, AssessmentItem):
            if item not in self.items:
                raise ValidationError(f"Unknown assessment item: {item}")
            item = self.items[item]
        return self.format_text(item.text, student_name)

    def format_items(self, student_name: str) -> list[tuple[int, str]]:
        """All item prompts personalised for a student, in id order."""
        return [
            (item_id, self.format_text(self.items[item_id].text, student_name))
            for item_id in self.item_ids
        ]

    def describe_category(self, category_id: str, student_name: str) -> str:
        return self.format_text(self.category(category_id).description, student_name)

    def unanswered(self, answered: Iterable[int]) -> list[int]:
        """Item ids with no response, in id order."""
        answered_ids = set(answered)
        return [item_id for item_id in self.item_ids if item_id not in answered_ids]

    def __len__(self) -> int:
        """Return number of items in the rubric."""
        return len(self.items)

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"Rubric(version={self.version}, items={len(self.items)}, "
            f"categories={list(self.categories)})"
        )


# Global singleton instance
_rubric: Rubric | None = None


def get_rubric(force_reload: bool = False) -> Rubric:
    """Get singleton rubric instance.

    Args:
        force_reload: Force reload from disk (default: False)

    Returns:
        Rubric loaded from settings.rubric_path
    """
    global _rubric

    if _rubric is None or force_reload:
        from behaviorplan.config import settings

        _rubric = Rubric.from_json(settings.rubric_path)

    return _rubric
