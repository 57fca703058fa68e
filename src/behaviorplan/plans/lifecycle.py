"""
Plan Lifecycle

Status transitions, finalization and duplication.

draft -> in_progress -> assessment_complete -> generating -> complete

Forward moves may skip steps; backward moves are refused. ``complete`` is a
checkpoint, not a lock: revisions stay allowed and finalizing again just
refreshes finalized_at.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from behaviorplan.core.models import PLAN_STATUSES, Plan
from behaviorplan.core.models.base import utcnow
from behaviorplan.core.validation import ValidationError
from behaviorplan.plans.sections import ALL_SECTIONS

if TYPE_CHECKING:
    from uuid import UUID

    from behaviorplan.plans.store import PlanStore

logger = logging.getLogger(__name__)

# Inputs and results carried over to a duplicate
_COPIED_FIELDS = (
    "student_id",
    "target_behavior",
    "behavior_frequency",
    "behavior_intensity",
    "whats_been_tried",
    "implementers",
    "assessment_responses",
    "function_scores",
    "calculated_function",
    "determined_function",
    "secondary_function",
    "rationales",
)


def advance_status(plan: Plan, target: str) -> Plan:
    """Move a plan to ``target`` if that is not a step backwards.

    Raises:
        ValidationError: Unknown status or backwards transition
    """
    if target not in PLAN_STATUSES:
        raise ValidationError(f"Unknown plan status: {target!r}")

    current = plan.status or "draft"
    if PLAN_STATUSES.index(target) < PLAN_STATUSES.index(current):
        raise ValidationError(f"Cannot move plan from {current} back to {target}")

    if target != current:
        logger.info(f"Plan {plan.id} status {current} -> {target}")
    plan.status = target
    return plan


async def finalize_plan(store: PlanStore, plan_id: UUID) -> Plan:
    """Mark a generated plan complete and stamp finalized_at.

    Coherence results are never consulted.

    Raises:
        NotFoundError: Plan missing
        ValidationError: Plan has no generated content
    """
    plan = await store.get_plan(plan_id)
    if not plan.has_generated_content:
        raise ValidationError(f"Plan {plan_id} cannot be finalized before it is generated")

    try:
        advance_status(plan, "complete")
        plan.finalized_at = utcnow()
        await store.commit()
    except Exception:
        await store.rollback()
        raise

    logger.info(f"Finalized plan {plan_id}")
    return plan


async def duplicate_plan(store: PlanStore, plan_id: UUID) -> Plan:
    """Copy a plan into a new draft.

    Behavior details, assessment results and section content are copied;
    revision history, review progress and finalization are not.
    """
    source = await store.get_plan(plan_id)

    copy = Plan(**{name: getattr(source, name) for name in _COPIED_FIELDS})
    copy.implementers = list(source.implementers or [])
    copy.rationales = dict(source.rationales or {})
    if source.assessment_responses is not None:
        copy.assessment_responses = dict(source.assessment_responses)
    if source.function_scores is not None:
        copy.function_scores = dict(source.function_scores)

    for kind in ALL_SECTIONS:
        copy.set_generated_content(kind.value, source.generated_content(kind.value))
        copy.set_current_content(kind.value, source.current_content(kind.value))

    copy.status = "draft"
    copy.generation_version = 1
    copy.sections_reviewed = []
    copy.revision_counts = {}
    copy.finalized_at = None

    try:
        await store.add_plan(copy)
        await store.commit()
    except Exception:
        await store.rollback()
        raise

    logger.info(f"Duplicated plan {plan_id} as {copy.id}")
    return copy
