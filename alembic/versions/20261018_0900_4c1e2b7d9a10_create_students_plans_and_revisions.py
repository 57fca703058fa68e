"""Create students, plans and plan section revisions

Revision ID: 4c1e2b7d9a10
Revises:
Create Date: 2026-10-18 09:00:00.000000+00:00

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "4c1e2b7d9a10"  # pragma: allowlist secret
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

JSONB = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")

SECTIONS = (
    "function_summary",
    "replacement_behavior",
    "prevention_strategies",
    "reinforcement_plan",
    "response_to_behavior",
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
            comment="Creation timestamp (UTC)",
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
            comment="Last update timestamp (UTC)",
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "students",
        sa.Column("id", sa.Uuid(), primary_key=True, comment="UUID primary key"),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("grade_level", sa.String(length=30), nullable=True),
        sa.Column("about", sa.Text(), nullable=True),
        sa.Column("interests", sa.Text(), nullable=True),
        *_timestamps(),
    )

    section_columns = [
        sa.Column(f"{prefix}_{name}", sa.Text(), nullable=True)
        for prefix in ("generated", "current")
        for name in SECTIONS
    ]

    op.create_table(
        "plans",
        sa.Column("id", sa.Uuid(), primary_key=True, comment="UUID primary key"),
        sa.Column(
            "student_id",
            sa.Uuid(),
            sa.ForeignKey("students.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("status", sa.String(length=30), nullable=False, server_default="draft"),
        sa.Column("target_behavior", sa.Text(), nullable=True),
        sa.Column("behavior_frequency", sa.String(length=100), nullable=True),
        sa.Column("behavior_intensity", sa.String(length=100), nullable=True),
        sa.Column("whats_been_tried", sa.Text(), nullable=True),
        sa.Column("implementers", JSONB, nullable=True),
        sa.Column("assessment_responses", JSONB, nullable=True),
        sa.Column("function_scores", JSONB, nullable=True),
        sa.Column("calculated_function", sa.String(length=30), nullable=True),
        sa.Column("determined_function", sa.String(length=30), nullable=True),
        sa.Column("secondary_function", sa.String(length=30), nullable=True),
        *section_columns,
        sa.Column("rationales", JSONB, nullable=True),
        sa.Column("generation_version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("sections_reviewed", JSONB, nullable=True),
        sa.Column("revision_counts", JSONB, nullable=True),
        sa.Column("finalized_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('draft', 'in_progress', 'assessment_complete', 'generating', 'complete')",
            name="check_plan_status",
        ),
    )
    op.create_index("idx_plans_student", "plans", ["student_id"])
    op.create_index("idx_plans_status", "plans", ["status"])

    op.create_table(
        "plan_section_revisions",
        sa.Column("id", sa.Uuid(), primary_key=True, comment="UUID primary key"),
        sa.Column(
            "plan_id",
            sa.Uuid(),
            sa.ForeignKey("plans.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("section_name", sa.String(length=40), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("revision_number", sa.Integer(), nullable=False),
        sa.Column("generation_version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("feedback_given", sa.Text(), nullable=True),
        sa.Column("is_manual_edit", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.CheckConstraint(
            "section_name IN ({})".format(", ".join(f"'{s}'" for s in SECTIONS)),
            name="check_revision_section",
        ),
        sa.UniqueConstraint(
            "plan_id",
            "section_name",
            "generation_version",
            "revision_number",
            name="uq_revision_number",
        ),
    )
    op.create_index(
        "idx_revisions_plan_section", "plan_section_revisions", ["plan_id", "section_name"]
    )


def downgrade() -> None:
    op.drop_index("idx_revisions_plan_section", table_name="plan_section_revisions")
    op.drop_table("plan_section_revisions")

    op.drop_index("idx_plans_status", table_name="plans")
    op.drop_index("idx_plans_student", table_name="plans")
    op.drop_table("plans")

    op.drop_table("students")
