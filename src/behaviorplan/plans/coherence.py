"""
Coherence Checker

After a section changes, asks the oracle whether the other editable
sections still fit it. Purely advisory: results are shown to the user and
never block a revision or finalization.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from behaviorplan.ai.prompt_loader import COHERENCE_CHECK
from behaviorplan.core.exceptions import CoherenceCheckFailure
from behaviorplan.core.schemas import CoherenceOutput, CoherenceReport, SectionCoherence
from behaviorplan.plans.context import section_context
from behaviorplan.plans.sections import EDITABLE_SECTIONS, SectionKind, parse_section_kind

if TYPE_CHECKING:
    from behaviorplan.ai.client import GenerationOracle
    from behaviorplan.ai.prompt_loader import PromptLibrary
    from behaviorplan.core.models import Plan

logger = logging.getLogger(__name__)


class CoherenceChecker:
    """Cross-section consistency check backed by the generation oracle."""

    def __init__(self, oracle: GenerationOracle, prompts: PromptLibrary | None = None):
        if prompts is None:
            from behaviorplan.ai.prompt_loader import get_prompt_library

            prompts = get_prompt_library()

        self.oracle = oracle
        self.prompts = prompts

    async def check(self, plan: Plan, just_revised: str | SectionKind) -> CoherenceReport:
        """Check the plan's current sections against the one just revised.

        Args:
            plan: Plan whose current_* content is checked
            just_revised: Section that was just changed

        Returns:
            CoherenceReport. Any failure yields has_issues=False with the
            error recorded; this method never raises and never retries.
        """
        revised_name = str(just_revised)

        try:
            kind = parse_section_kind(just_revised)
            revised_name = kind.value

            context: dict[str, object] = {
                **section_context(plan),
                "revised_section": kind.display_name,
            }
            prompt = self.prompts.render(COHERENCE_CHECK, context)

            output = await self.oracle.generate(prompt, CoherenceOutput)
            sections = self._verdicts(output, kind)

        except Exception as e:
            failure = e if isinstance(e, CoherenceCheckFailure) else CoherenceCheckFailure(str(e))
            logger.warning(f"Coherence check failed for plan {plan.id} ({revised_name}): {failure}")
            return CoherenceReport(
                has_issues=False, revised_section=revised_name, error=str(failure)
            )

        has_issues = any(not verdict.coherent for verdict in sections.values())
        if has_issues:
            flagged = [name for name, verdict in sections.items() if not verdict.coherent]
            logger.info(f"Coherence issues in plan {plan.id} after {revised_name}: {flagged}")

        return CoherenceReport(
            has_issues=has_issues, revised_section=revised_name, sections=sections
        )

    @staticmethod
    def _verdicts(output: CoherenceOutput, revised: SectionKind) -> dict[str, SectionCoherence]:
        verdicts: dict[str, SectionCoherence] = {}
        for kind in EDITABLE_SECTIONS:
            verdict = getattr(output, kind.value)
            if not isinstance(verdict, SectionCoherence):
                raise CoherenceCheckFailure(f"Missing coherence verdict for {kind.value}")

            # The section the user just wrote is the reference point
            if kind is revised:
                verdict = SectionCoherence(coherent=True)
            verdicts[kind.value] = verdict
        return verdicts
