"""
Assessment Response Recording

Responses arrive one at a time while the educator works through the rubric.
Each change updates an in-memory response set immediately; persistence is
debounced so a burst of clicks produces one write of the latest snapshot.
Submission bypasses the debounce and writes synchronously.

Writes for one plan never overlap: a write already in flight finishes before
the next one starts, and flush() waits for it.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING

from behaviorplan.assessment.determination import (
    FunctionDetermination,
    determine_function,
    resolve_determined_function,
)
from behaviorplan.assessment.scoring import CategoryScore, score_averages, score_responses
from behaviorplan.core.models import PLAN_STATUSES
from behaviorplan.core.schemas import CategoryScoreSchema, FunctionDeterminationSchema
from behaviorplan.core.validation import (
    ValidationError,
    validate_item_id,
    validate_response_value,
    validate_responses,
)

if TYPE_CHECKING:
    from uuid import UUID

    from behaviorplan.assessment.rubric import Rubric
    from behaviorplan.core.models import Plan
    from behaviorplan.plans.store import PlanStore

logger = logging.getLogger(__name__)

ResponseSnapshot = dict[int, str]
SaveCallback = Callable[[ResponseSnapshot], Awaitable[None]]


class DebouncedResponseWriter:
    """Coalesces rapid response changes into a single delayed write."""

    def __init__(self, save: SaveCallback, delay: float):
        """Initialize writer.

        Args:
            save: Coroutine that persists a full response snapshot
            delay: Quiet period in seconds before the pending snapshot is written
        """
        self.save = save
        self.delay = delay
        self._pending: ResponseSnapshot | None = None
        self._timer: asyncio.Task[None] | None = None
        self._write_lock = asyncio.Lock()

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    def schedule(self, snapshot: Mapping[int, str]) -> None:
        """Replace the pending snapshot and restart the quiet period."""
        self._pending = dict(snapshot)
        self._cancel_timer()
        self._timer = asyncio.create_task(self._run())

    async def flush(self) -> None:
        """Write the pending snapshot now, cancelling the timer."""
        self._cancel_timer()
        await self._write()

    def cancel(self) -> None:
        """Drop the pending snapshot without writing it."""
        self._cancel_timer()
        self._pending = None

    def _cancel_timer(self) -> None:
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    async def _run(self) -> None:
        await asyncio.sleep(self.delay)
        try:
            # Shielded so a newer schedule() cannot abort a write mid-flight
            await asyncio.shield(self._write())
        except Exception as e:
            logger.warning(f"Debounced response save failed, will retry on flush: {e}")

    async def _write(self) -> None:
        async with self._write_lock:
            snapshot = self._pending
            if snapshot is None:
                return
            self._pending = None
            try:
                await self.save(snapshot)
            except Exception:
                # Keep the data for the next attempt unless something newer arrived
                if self._pending is None:
                    self._pending = snapshot
                raise


@dataclass(frozen=True)
class AssessmentResult:
    """Outcome of a submitted assessment."""

    plan: Plan
    scores: dict[str, CategoryScore]
    determination: FunctionDetermination
    determined_function: str | None
    secondary_function: str | None

    def to_schema(self) -> FunctionDeterminationSchema:
        determination = self.determination
        return FunctionDeterminationSchema(
            primary=determination.calculated_function,
            tied=determination.tied,
            insufficient_data=determination.insufficient_data,
            scores=dict(determination.scores),
            calculated_function=determination.calculated_function,
            determined_function=self.determined_function,
            secondary_function=self.secondary_function,
        )

    def score_schemas(self) -> list[CategoryScoreSchema]:
        return [CategoryScoreSchema.model_validate(score) for score in self.scores.values()]


def _advance_to(plan: Plan, target: str) -> None:
    """Move status forward to ``target``; later statuses are left alone."""
    current = plan.status or "draft"
    if PLAN_STATUSES.index(current) < PLAN_STATUSES.index(target):
        plan.status = target


class AssessmentRecorder:
    """Records assessment responses per plan with debounced persistence."""

    def __init__(
        self,
        store: PlanStore,
        rubric: Rubric | None = None,
        debounce_seconds: float | None = None,
    ):
        """Initialize recorder.

        Args:
            store: Plan record store
            rubric: Rubric the responses are validated against (defaults to singleton)
            debounce_seconds: Quiet period; defaults to settings.RESPONSE_SAVE_DEBOUNCE_SECONDS
        """
        if rubric is None:
            from behaviorplan.assessment.rubric import get_rubric

            rubric = get_rubric()
        if debounce_seconds is None:
            from behaviorplan.config import settings

            debounce_seconds = settings.RESPONSE_SAVE_DEBOUNCE_SECONDS

        self.store = store
        self.rubric = rubric
        self.debounce_seconds = debounce_seconds
        self._responses: dict[UUID, ResponseSnapshot] = {}
        self._writers: dict[UUID, DebouncedResponseWriter] = {}

    async def record_response(
        self, plan_id: UUID, item_id: int | str, value: str
    ) -> ResponseSnapshot:
        """Validate and record one response, scheduling a debounced save.

        Returns:
            Copy of the plan's current in-memory response set

        Raises:
            ValidationError: Unknown item or value (nothing recorded)
            NotFoundError: Plan missing
        """
        item = validate_item_id(item_id, self.rubric.items.keys())
        cleaned = validate_response_value(value, self.rubric.response_values)

        responses = await self._load(plan_id)
        responses[item] = cleaned

        self._writer(plan_id).schedule(responses)
        return dict(responses)

    def current_responses(self, plan_id: UUID) -> ResponseSnapshot:
        return dict(self._responses.get(plan_id, {}))

    def current_scores(self, plan_id: UUID) -> dict[str, CategoryScore]:
        """Live scores for the in-memory response set."""
        return score_responses(self._responses.get(plan_id, {}), self.rubric)

    async def flush(self, plan_id: UUID | None = None) -> None:
        """Write pending responses now (one plan, or every plan)."""
        plan_ids = [plan_id] if plan_id is not None else list(self._writers)
        for pid in plan_ids:
            writer = self._writers.get(pid)
            if writer is not None:
                await writer.flush()

    async def submit_assessment(
        self,
        plan_id: UUID,
        responses: Mapping[int | str, str] | None = None,
        user_choice: str | None = None,
    ) -> AssessmentResult:
        """Validate a complete response set, score it and persist the determination.

        Args:
            plan_id: Plan being assessed
            responses: Full response set; defaults to the recorded in-memory set
            user_choice: Optional function category chosen by the user

        Raises:
            ValidationError: Unknown ids/values, unanswered items, or unknown choice
            NotFoundError: Plan missing
        """
        if responses is None:
            cleaned = dict(await self._load(plan_id))
        else:
            cleaned = validate_responses(
                responses,
                valid_ids=self.rubric.items.keys(),
                allowed_values=self.rubric.response_values,
            )

        missing = self.rubric.unanswered(cleaned)
        if missing:
            listed = ", ".join(str(i) for i in missing)
            raise ValidationError(f"Assessment incomplete: unanswered items {listed}")

        scores = score_responses(cleaned, self.rubric)
        determination = determine_function(scores)
        determined, secondary = resolve_determined_function(
            determination, user_choice, self.rubric.category_ids
        )

        writer = self._writers.get(plan_id)
        if writer is not None:
            writer.cancel()
            # Let any write already in flight finish before ours
            await writer.flush()

        try:
            plan = await self.store.save_responses(plan_id, cleaned)
            plan.function_scores = score_averages(scores)
            plan.calculated_function = determination.calculated_function
            plan.determined_function = determined
            plan.secondary_function = secondary
            _advance_to(plan, "assessment_complete")
            await self.store.commit()
        except Exception:
            await self.store.rollback()
            raise

        self._responses[plan_id] = cleaned
        logger.info(
            f"Assessment submitted for plan {plan_id}: "
            f"calculated={determination.calculated_function}, determined={determined}"
        )
        return AssessmentResult(
            plan=plan,
            scores=scores,
            determination=determination,
            determined_function=determined,
            secondary_function=secondary,
        )

    async def choose_function(self, plan_id: UUID, category: str) -> Plan:
        """Record the user's pick among tied functions after submission.

        Raises:
            ValidationError: Unknown category, or assessment not yet scored
        """
        plan = await self.store.get_plan(plan_id)
        if plan.function_scores is None:
            raise ValidationError(f"Plan {plan_id} has no assessment scores yet")

        determination = determine_function(plan.function_scores)
        determined, secondary = resolve_determined_function(
            determination, category, self.rubric.category_ids
        )

        try:
            plan.determined_function = determined
            plan.secondary_function = secondary
            await self.store.commit()
        except Exception:
            await self.store.rollback()
            raise

        logger.info(f"Function for plan {plan_id} set to {determined}")
        return plan

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _load(self, plan_id: UUID) -> ResponseSnapshot:
        if plan_id not in self._responses:
            plan = await self.store.get_plan(plan_id)
            stored = plan.assessment_responses or {}
            self._responses[plan_id] = validate_responses(
                stored,
                valid_ids=self.rubric.items.keys(),
                allowed_values=self.rubric.response_values,
            )
        return self._responses[plan_id]

    def _writer(self, plan_id: UUID) -> DebouncedResponseWriter:
        if plan_id not in self._writers:

            async def save(snapshot: ResponseSnapshot) -> None:
                try:
                    plan = await self.store.save_responses(plan_id, snapshot)
                    _advance_to(plan, "in_progress")
                    await self.store.commit()
                except Exception:
                    await self.store.rollback()
                    raise
                logger.debug(f"Saved {len(snapshot)} responses for plan {plan_id}")

            self._writers[plan_id] = DebouncedResponseWriter(save, self.debounce_seconds)
        return self._writers[plan_id]
