"""Board schema.

Creates users and space memberships (read by the board), projects, phases,
phase items and the project activity feed.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""

from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import ARRAY

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

PROJECT_STATUS = ("active", "on_hold", "completed", "archived")
PHASE_STATUS = ("active", "completed")
UPDATE_TYPE = (
    "post",
    "phase_created",
    "phase_deleted",
    "phase_restored",
    "phase_assigned",
    "item_completed",
    "phase_completed",
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), server_default=sa.text("gen_random_uuid()"), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("display_name", sa.Text(), nullable=True),
        sa.Column("avatar_url", sa.Text(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "space_members",
        sa.Column("id", sa.Uuid(), server_default=sa.text("gen_random_uuid()"), primary_key=True),
        sa.Column("space_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("space_id", "user_id"),
    )
    op.create_index("ix_space_members_space_id", "space_members", ["space_id"])

    op.create_table(
        "projects",
        sa.Column("id", sa.Uuid(), server_default=sa.text("gen_random_uuid()"), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "status",
            sa.Enum(*PROJECT_STATUS, name="projectstatus"),
            server_default="active",
            nullable=False,
        ),
        sa.Column("space_id", sa.Uuid(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_projects_space_id", "projects", ["space_id"])

    op.create_table(
        "phases",
        sa.Column("id", sa.Uuid(), server_default=sa.text("gen_random_uuid()"), primary_key=True),
        sa.Column("project_id", sa.Uuid(), sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("position", sa.Integer(), server_default="0", nullable=False),
        sa.Column(
            "status",
            sa.Enum(*PHASE_STATUS, name="phasestatus"),
            server_default="active",
            nullable=False,
        ),
        sa.Column("assigned_to", sa.Uuid(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_phases_project_id", "phases", ["project_id"])

    op.create_table(
        "phase_items",
        sa.Column("id", sa.Uuid(), server_default=sa.text("gen_random_uuid()"), primary_key=True),
        sa.Column("phase_id", sa.Uuid(), sa.ForeignKey("phases.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("position", sa.Integer(), server_default="0", nullable=False),
        sa.Column("completed", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("assigned_to", sa.Uuid(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("sub_items", ARRAY(sa.Text()), server_default="{}", nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_phase_items_phase_id", "phase_items", ["phase_id"])

    op.create_table(
        "project_updates",
        sa.Column("id", sa.Uuid(), server_default=sa.text("gen_random_uuid()"), primary_key=True),
        sa.Column("project_id", sa.Uuid(), sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
        sa.Column("author_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column(
            "update_type",
            sa.Enum(*UPDATE_TYPE, name="updatetype"),
            server_default="post",
            nullable=False,
        ),
        *_timestamps(),
    )
    # Feed reads are newest-first per project
    op.create_index(
        "ix_project_updates_project_created",
        "project_updates",
        ["project_id", sa.text("created_at DESC")],
    )


def downgrade() -> None:
    op.drop_table("project_updates")
    op.drop_table("phase_items")
    op.drop_table("phases")
    op.drop_table("projects")
    op.drop_table("space_members")
    op.drop_table("users")

    for name in ("updatetype", "phasestatus", "projectstatus"):
        sa.Enum(name=name).drop(op.get_bind(), checkfirst=True)
