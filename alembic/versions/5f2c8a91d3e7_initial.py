"""initial

Revision ID: 5f2c8a91d3e7
Revises:
Create Date: 2026-10-17 10:12:41.803114

"""

from collections.abc import Sequence
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "5f2c8a91d3e7"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Upgrade schema."""
    _ = op.create_table(
        "users",
        sa.Column("user_id", sa.String(length=255), nullable=False),
        sa.Column("username", sa.String(length=255), nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(),
            server_default=sa.text("(CURRENT_TIMESTAMP)"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("user_id"),
    )
    _ = op.create_table(
        "schedules",
        sa.Column("schedule_id", sa.String(length=26), nullable=False),
        sa.Column("schedule_name", sa.String(length=255), nullable=False),
        sa.Column("memo", sa.Text(), nullable=False),
        sa.Column("created_by", sa.String(length=255), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(
            ["created_by"],
            ["users.user_id"],
        ),
        sa.PrimaryKeyConstraint("schedule_id"),
    )
    op.create_index(
        op.f("ix_schedules_created_by"), "schedules", ["created_by"], unique=False
    )
    _ = op.create_table(
        "candidates",
        sa.Column("candidate_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("candidate_name", sa.Text(), nullable=False),
        sa.Column("schedule_id", sa.String(length=26), nullable=False),
        sa.ForeignKeyConstraint(
            ["schedule_id"],
            ["schedules.schedule_id"],
        ),
        sa.PrimaryKeyConstraint("candidate_id"),
        sqlite_autoincrement=True,
    )
    op.create_index(
        op.f("ix_candidates_schedule_id"), "candidates", ["schedule_id"], unique=False
    )
    _ = op.create_table(
        "availabilities",
        sa.Column("schedule_id", sa.String(length=26), nullable=False),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        sa.Column("candidate_id", sa.Integer(), nullable=False),
        sa.Column(
            "availability",
            sa.Integer(),
            server_default=sa.text("0"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(
            ["candidate_id"],
            ["candidates.candidate_id"],
        ),
        sa.ForeignKeyConstraint(
            ["schedule_id"],
            ["schedules.schedule_id"],
        ),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.user_id"],
        ),
        sa.PrimaryKeyConstraint("schedule_id", "user_id", "candidate_id"),
    )
    _ = op.create_table(
        "comments",
        sa.Column("schedule_id", sa.String(length=26), nullable=False),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        sa.Column("comment", sa.String(length=255), nullable=False),
        sa.ForeignKeyConstraint(
            ["schedule_id"],
            ["schedules.schedule_id"],
        ),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.user_id"],
        ),
        sa.PrimaryKeyConstraint("schedule_id", "user_id"),
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("comments")
    op.drop_table("availabilities")
    op.drop_index(op.f("ix_candidates_schedule_id"), table_name="candidates")
    op.drop_table("candidates")
    op.drop_index(op.f("ix_schedules_created_by"), table_name="schedules")
    op.drop_table("schedules")
    op.drop_table("users")
