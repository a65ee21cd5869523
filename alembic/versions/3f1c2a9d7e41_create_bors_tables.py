"""create pull_request, build and workflow tables

Revision ID: 3f1c2a9d7e41
Revises:
Create Date: 2026-10-17 10:12:03.118204

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3f1c2a9d7e41"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "build",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("repository", sa.String(), nullable=False),
        sa.Column("branch", sa.String(), nullable=False),
        sa.Column("commit_sha", sa.String(), nullable=False),
        sa.Column("parent", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_build_repository"), "build", ["repository"])
    op.create_index(op.f("ix_build_commit_sha"), "build", ["commit_sha"])

    op.create_table(
        "pull_request",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("repository", sa.String(), nullable=False),
        sa.Column("number", sa.Integer(), nullable=False),
        sa.Column("base_branch", sa.String(), nullable=False),
        sa.Column("mergeable_state", sa.String(), nullable=False),
        sa.Column("approved_by", sa.String(), nullable=True),
        sa.Column("try_build_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["try_build_id"], ["build.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("repository", "number", name="uq_pull_request_identity"),
    )
    op.create_index(op.f("ix_pull_request_repository"), "pull_request", ["repository"])
    op.create_index(op.f("ix_pull_request_number"), "pull_request", ["number"])
    op.create_index(op.f("ix_pull_request_try_build_id"), "pull_request", ["try_build_id"])

    op.create_table(
        "workflow",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("build_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("url", sa.String(), nullable=False),
        sa.Column("run_id", sa.BigInteger(), nullable=False),
        sa.Column("workflow_type", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["build_id"], ["build.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("workflow_type", "run_id", name="uq_workflow_run"),
    )
    op.create_index(op.f("ix_workflow_build_id"), "workflow", ["build_id"])
    op.create_index(op.f("ix_workflow_run_id"), "workflow", ["run_id"])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("workflow")
    op.drop_table("pull_request")
    op.drop_table("build")
