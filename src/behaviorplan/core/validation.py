"""
Input validation functions for the plan engine.

All validation functions follow the pattern:
1. Accept raw caller input (string, list, mapping, etc.)
2. Normalize/clean the input
3. Validate against business rules
4. Return cleaned value or raise ValidationError

Validation always runs before any record store write.
"""

from __future__ import annotations

import json
import re
from collections.abc import Collection, Mapping, Sequence


class ValidationError(Exception):
    """Raised when caller input fails validation."""

    pass


PREVENTION_STRATEGY_COUNT = 3

_LIST_MARKER = re.compile(r"^\s*(?:\d+[.)]|[-*•])\s*")


# ============================================================================
# Assessment Responses
# ============================================================================


def validate_item_id(item_id: int | str | None, valid_ids: Collection[int]) -> int:
    """
    Validate an assessment item id.

    Stored response sets use string keys ("1"), callers may use ints.

    Args:
        item_id: Raw item id
        valid_ids: Item ids declared by the rubric

    Returns:
        Item id as integer

    Raises:
        ValidationError: If the id is not numeric or not in the rubric
    """
    if item_id is None or item_id == "":
        raise ValidationError("Assessment item id cannot be empty")

    if isinstance(item_id, bool):
        raise ValidationError(f"Invalid assessment item id: {item_id!r}")

    if isinstance(item_id, str):
        cleaned = item_id.strip()
        if not cleaned.isdigit():
            raise ValidationError(f"Invalid assessment item id: {item_id!r}")
        item_id = int(cleaned)

    if item_id not in valid_ids:
        raise ValidationError(f"Unknown assessment item: {item_id}")

    return item_id


def validate_response_value(value: str | None, allowed: Collection[str]) -> str:
    """
    Validate a single response value against the closed vocabulary.

    Args:
        value: Raw response value (e.g. "strongly_agree")
        allowed: Response values declared by the rubric

    Returns:
        Normalized response value

    Raises:
        ValidationError: If the value is not part of the vocabulary
    """
    if value is None or not isinstance(value, str) or value.strip() == "":
        raise ValidationError("Response value cannot be empty")

    cleaned = value.strip().lower()

    if cleaned not in allowed:
        options = ", ".join(sorted(allowed))
        raise ValidationError(f"Unknown response value: {value!r} (expected one of: {options})")

    return cleaned


def validate_responses(
    responses: Mapping[int | str, str] | None,
    *,
    valid_ids: Collection[int],
    allowed_values: Collection[str],
) -> dict[int, str]:
    """
    Validate a (possibly partial) assessment response set.

    Args:
        responses: Mapping of item id to response value
        valid_ids: Item ids declared by the rubric
        allowed_values: Response values declared by the rubric

    Returns:
        Cleaned mapping keyed by integer item id

    Raises:
        ValidationError: On any unknown item or value; nothing is partially accepted
    """
    if responses is None:
        return {}

    if not isinstance(responses, Mapping):
        raise ValidationError("Assessment responses must be a mapping of item id to value")

    cleaned: dict[int, str] = {}
    for raw_id, raw_value in responses.items():
        item_id = validate_item_id(raw_id, valid_ids)
        if item_id in cleaned:
            raise ValidationError(f"Duplicate response for assessment item: {item_id}")
        cleaned[item_id] = validate_response_value(raw_value, allowed_values)

    return cleaned


# ============================================================================
# Plan Section Content
# ============================================================================


def validate_text_content(content: object, *, field: str = "Section content") -> str:
    """
    Validate free-text section content.

    Args:
        content: Raw content

    Returns:
        Content with surrounding whitespace removed

    Raises:
        ValidationError: If content is not a non-blank string
    """
    if not isinstance(content, str):
        raise ValidationError(f"{field} must be text")

    cleaned = content.strip()
    if cleaned == "":
        raise ValidationError(f"{field} cannot be empty")

    return cleaned


def parse_strategy_list(value: str | Sequence[str]) -> list[str]:
    """
    Parse prevention strategies from any of their accepted shapes.

    Accepts:
    - a list of strings
    - a JSON array string: '["a", "b", "c"]'
    - numbered or bulleted text: "1. a\\n2. b\\n3. c"

    Blank lines in the text form are skipped. In a list or JSON array every
    entry counts, so a blank entry is an error rather than a dropped item.

    Args:
        value: Raw strategies

    Returns:
        Stripped strategy strings

    Raises:
        ValidationError: If the value is not text or a list of text, or a
            list entry is blank
    """
    items: list[object]
    if isinstance(value, str):
        text = value.strip()
        if not text.startswith("["):
            lines = (_LIST_MARKER.sub("", line).strip() for line in text.splitlines())
            return [line for line in lines if line]

        try:
            items = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Prevention strategies are not a valid JSON array: {e}") from e
        if not isinstance(items, list):
            raise ValidationError("Prevention strategies must be a list")
    elif isinstance(value, Sequence):
        items = list(value)
    else:
        raise ValidationError("Prevention strategies must be a list of text entries")

    strategies: list[str] = []
    for position, item in enumerate(items, start=1):
        if not isinstance(item, str):
            raise ValidationError("Each prevention strategy must be text")
        cleaned = item.strip()
        if not cleaned:
            raise ValidationError(f"Prevention strategy {position} cannot be empty")
        strategies.append(cleaned)

    return strategies


def validate_prevention_strategies(value: str | Sequence[str]) -> list[str]:
    """
    Validate prevention strategies: exactly three non-empty entries.

    Args:
        value: Raw strategies (list, JSON array string or numbered text)

    Returns:
        List of exactly three strategies

    Raises:
        ValidationError: If the value does not parse to exactly three entries
    """
    strategies = parse_strategy_list(value)

    if len(strategies) != PREVENTION_STRATEGY_COUNT:
        raise ValidationError(
            f"Prevention strategies must contain exactly {PREVENTION_STRATEGY_COUNT} "
            f"entries (got {len(strategies)})"
        )

    return strategies


# ============================================================================
# Revision Feedback
# ============================================================================


def validate_feedback(feedback: str | None) -> str:
    """
    Validate user feedback for an AI-assisted revision.

    Args:
        feedback: Raw feedback text

    Returns:
        Feedback with normalized whitespace

    Raises:
        ValidationError: If feedback is missing or blank
    """
    if feedback is None or not isinstance(feedback, str):
        raise ValidationError("Revision feedback cannot be empty")

    cleaned = re.sub(r"[ \t]+", " ", feedback.strip())

    if cleaned == "":
        raise ValidationError("Revision feedback cannot be empty")

    if len(cleaned) > 4000:
        raise ValidationError("Revision feedback cannot exceed 4000 characters")

    return cleaned
