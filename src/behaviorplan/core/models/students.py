"""
Student Models

Students for whom behavior intervention plans are written.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .plans import Plan

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class Student(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Student profile used as context for plan generation.

    Minimal data collection: only what the generated plan needs.
    """

    __tablename__ = "students"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    grade_level: Mapped[str | None] = mapped_column(String(30), nullable=True)
    about: Mapped[str | None] = mapped_column(
        Text, nullable=True, comment="Free-text background shared by the educator"
    )
    interests: Mapped[str | None] = mapped_column(
        Text, nullable=True, comment="Interests and motivators (used as reinforcers)"
    )

    # Relationships
    plans: Mapped[list[Plan]] = relationship(
        back_populates="student", cascade="all, delete-orphan"
    )
