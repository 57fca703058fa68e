"""
Plan Engine

Section model, generation, revision workflow, coherence checking and
lifecycle transitions for behavior intervention plans.
"""

from .coherence import CoherenceChecker
from .generation import PlanGenerator
from .lifecycle import advance_status, duplicate_plan, finalize_plan
from .revision import RevisionOutcome, RevisionWorkflow
from .sections import (
    ALL_SECTIONS,
    EDITABLE_SECTIONS,
    SectionKind,
    SectionLineage,
    build_lineage,
    next_section,
)
from .store import PlanStore

__all__ = [
    # Sections
    "SectionKind",
    "SectionLineage",
    "ALL_SECTIONS",
    "EDITABLE_SECTIONS",
    "build_lineage",
    "next_section",
    # Store
    "PlanStore",
    # Engines
    "PlanGenerator",
    "RevisionWorkflow",
    "RevisionOutcome",
    "CoherenceChecker",
    # Lifecycle
    "advance_status",
    "finalize_plan",
    "duplicate_plan",
]
