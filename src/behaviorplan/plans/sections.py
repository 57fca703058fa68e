"""
Plan Section Model

Section kinds, their canonical order and shape contracts, and the
three-tier content lineage (original draft -> working value -> revision log).
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from behaviorplan.core.validation import (
    ValidationError,
    validate_prevention_strategies,
    validate_text_content,
)

if TYPE_CHECKING:
    from behaviorplan.core.models import Plan, PlanSectionRevision


class SectionKind(StrEnum):
    """Generatable plan sections."""

    FUNCTION_SUMMARY = "function_summary"
    REPLACEMENT_BEHAVIOR = "replacement_behavior"
    PREVENTION_STRATEGIES = "prevention_strategies"
    REINFORCEMENT_PLAN = "reinforcement_plan"
    RESPONSE_TO_BEHAVIOR = "response_to_behavior"

    @property
    def is_editable(self) -> bool:
        return self is not SectionKind.FUNCTION_SUMMARY

    @property
    def is_list(self) -> bool:
        return self is SectionKind.PREVENTION_STRATEGIES

    @property
    def display_name(self) -> str:
        return DISPLAY_NAMES[self]


ALL_SECTIONS: tuple[SectionKind, ...] = tuple(SectionKind)

# Canonical review order
EDITABLE_SECTIONS: tuple[SectionKind, ...] = (
    SectionKind.REPLACEMENT_BEHAVIOR,
    SectionKind.PREVENTION_STRATEGIES,
    SectionKind.REINFORCEMENT_PLAN,
    SectionKind.RESPONSE_TO_BEHAVIOR,
)

DISPLAY_NAMES: dict[SectionKind, str] = {
    SectionKind.FUNCTION_SUMMARY: "Function Summary",
    SectionKind.REPLACEMENT_BEHAVIOR: "Replacement Behavior",
    SectionKind.PREVENTION_STRATEGIES: "Prevention Strategies",
    SectionKind.REINFORCEMENT_PLAN: "Reinforcement Plan",
    SectionKind.RESPONSE_TO_BEHAVIOR: "Response to Target Behavior",
}

SectionContent = str | list[str]


def parse_section_kind(
    name: str | SectionKind | None, *, editable_only: bool = False
) -> SectionKind:
    """Resolve a section name.

    Accepts the stored-field spelling too ("current_reinforcement_plan").

    Raises:
        ValidationError: If the name is unknown, or not editable when required
    """
    if isinstance(name, SectionKind):
        kind = name
    else:
        if not name or not isinstance(name, str):
            raise ValidationError("Section name cannot be empty")
        cleaned = name.strip().removeprefix("current_").removeprefix("generated_")
        try:
            kind = SectionKind(cleaned)
        except ValueError as e:
            raise ValidationError(f"Invalid section name: {name!r}") from e

    if editable_only and not kind.is_editable:
        raise ValidationError(f"Section is not editable: {kind.value}")

    return kind


# ============================================================================
# Shape contracts
# ============================================================================


def normalize_content(kind: SectionKind, value: object) -> str:
    """Validate content against the section's shape and return its stored form.

    Prevention strategies are stored as a JSON array of exactly three strings;
    every other section is non-blank text.

    Raises:
        ValidationError: If the content does not satisfy the shape contract
    """
    if kind.is_list:
        if not isinstance(value, (str, list, tuple)):
            raise ValidationError("Prevention strategies must be a list of text entries")
        return json.dumps(validate_prevention_strategies(value))

    return validate_text_content(value, field=f"{kind.display_name} content")


def decode_content(kind: SectionKind, stored: str | None) -> SectionContent | None:
    """Stored form -> caller form (list for prevention strategies)."""
    if stored is None:
        return None

    if kind.is_list:
        try:
            parsed = json.loads(stored)
        except json.JSONDecodeError:
            return [stored]
        return [str(s) for s in parsed] if isinstance(parsed, list) else [str(parsed)]

    return stored


def render_content(
    kind: SectionKind, stored: str | None, *, missing: str = "Not generated yet"
) -> str:
    """Human-readable text for prompts (strategies become a numbered list)."""
    decoded = decode_content(kind, stored)
    if decoded is None:
        return missing
    if isinstance(decoded, list):
        return "\n".join(f"{i}. {s}" for i, s in enumerate(decoded, start=1))
    return decoded


# ============================================================================
# Review ordering
# ============================================================================


def next_section(
    after: SectionKind | None, reviewed: Iterable[str | SectionKind]
) -> SectionKind | None:
    """Next not-yet-reviewed editable section after ``after``.

    Returns None once the last editable section has been passed.
    """
    reviewed_names = {str(r) for r in reviewed}

    start = EDITABLE_SECTIONS.index(after) + 1 if after in EDITABLE_SECTIONS else 0

    for kind in EDITABLE_SECTIONS[start:]:
        if kind.value not in reviewed_names:
            return kind

    return None


def all_reviewed(reviewed: Iterable[str | SectionKind]) -> bool:
    reviewed_names = {str(r) for r in reviewed}
    return all(kind.value in reviewed_names for kind in EDITABLE_SECTIONS)


# ============================================================================
# Three-tier lineage
# ============================================================================


@dataclass(frozen=True)
class RevisionEntry:
    """Read-only view of one revision record."""

    id: object
    revision_number: int
    generation_version: int
    content: str
    feedback_given: str | None
    is_manual_edit: bool


@dataclass(frozen=True)
class SectionLineage:
    """Original draft, working value and append-only log for one section."""

    kind: SectionKind
    original: str | None
    working: str | None
    log: tuple[RevisionEntry, ...] = field(default_factory=tuple)

    @property
    def is_modified(self) -> bool:
        return self.original is not None and self.working != self.original

    @property
    def revision_count(self) -> int:
        return len(self.log)

    def latest(self) -> RevisionEntry | None:
        return self.log[-1] if self.log else None

    def for_version(self, generation_version: int) -> tuple[RevisionEntry, ...]:
        return tuple(e for e in self.log if e.generation_version == generation_version)


def build_lineage(
    plan: Plan, kind: SectionKind, revisions: Sequence[PlanSectionRevision] = ()
) -> SectionLineage:
    """Assemble a section lineage from a plan and its revision rows.

    The log is ordered oldest first (generation version, then revision number).
    """
    entries = sorted(
        (
            RevisionEntry(
                id=r.id,
                revision_number=r.revision_number,
                generation_version=r.generation_version,
                content=r.content,
                feedback_given=r.feedback_given,
                is_manual_edit=r.is_manual_edit,
            )
            for r in revisions
            if r.section_name == kind.value
        ),
        key=lambda e: (e.generation_version, e.revision_number),
    )

    return SectionLineage(
        kind=kind,
        original=plan.generated_content(kind.value),
        working=plan.current_content(kind.value),
        log=tuple(entries),
    )
