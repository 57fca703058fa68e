"""
Behavior Plan SQLAlchemy Models
"""

from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from .plans import PLAN_STATUSES, SECTION_NAMES, Plan, PlanSectionRevision
from .students import Student

__all__ = [
    # Base
    "Base",
    "UUIDPrimaryKeyMixin",
    "TimestampMixin",
    # Students
    "Student",
    # Plans
    "Plan",
    "PlanSectionRevision",
    "PLAN_STATUSES",
    "SECTION_NAMES",
]
