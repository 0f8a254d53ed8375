"""Initial schema with all tables.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19

This migration creates the complete Study Hub schema:
- Tables: users, tasks, notes, timetable_entries, resources, bookmarks,
  study_logs, conversations, messages
- Indexes: owner + sort column on every list query
- Constraints: one bookmark per (user, resource); study log duration and
  productivity ranges

Column types are generic (Uuid, JSON, DateTime with timezone) so the same
migration applies to PostgreSQL and SQLite.
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def _owner() -> sa.Column:
    return sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False)


def upgrade() -> None:
    # ==========================================================================
    # USERS TABLE
    # ==========================================================================
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(254), nullable=False),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("student_id", sa.String(50), nullable=True),
        sa.Column("program", sa.String(100), nullable=True),
        sa.Column("year", sa.Integer(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    # ==========================================================================
    # PLANNER TABLES
    # ==========================================================================
    op.create_table(
        "tasks",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _owner(),
        sa.Column("title", sa.String(100), nullable=False),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("priority", sa.String(20), nullable=False, server_default="medium"),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        *_timestamps(),
    )
    op.create_index("idx_tasks_user_due_date", "tasks", ["user_id", "due_date"])

    op.create_table(
        "notes",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _owner(),
        sa.Column("content", sa.Text(), nullable=False, server_default=""),
        sa.Column("pinned", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )
    op.create_index("idx_notes_user_updated_at", "notes", ["user_id", "updated_at"])

    op.create_table(
        "timetable_entries",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _owner(),
        sa.Column("title", sa.String(100), nullable=False),
        sa.Column("day", sa.String(10), nullable=False),
        sa.Column("start_time", sa.String(5), nullable=False),
        sa.Column("end_time", sa.String(5), nullable=False),
        *_timestamps(),
    )
    op.create_index("idx_timetable_user_day", "timetable_entries", ["user_id", "day"])

    op.create_table(
        "study_logs",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _owner(),
        sa.Column("topic", sa.String(100), nullable=False),
        sa.Column("duration", sa.Integer(), nullable=False),
        sa.Column("productivity", sa.Integer(), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("duration > 0", name="positive_duration"),
        sa.CheckConstraint("productivity BETWEEN 1 AND 5", name="valid_productivity"),
    )
    op.create_index("idx_study_logs_user_timestamp", "study_logs", ["user_id", "timestamp"])

    # ==========================================================================
    # MATERIALS
    # ==========================================================================
    op.create_table(
        "resources",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _owner(),
        sa.Column("title", sa.String(100), nullable=False),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("file_name", sa.String(255), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=False),
        sa.Column("file_type", sa.String(255), nullable=False),
        sa.Column("file_path", sa.String(512), nullable=False),
        sa.Column("uploaded_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("idx_resources_user_uploaded_at", "resources", ["user_id", "uploaded_at"])

    op.create_table(
        "bookmarks",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _owner(),
        sa.Column(
            "resource_id",
            sa.Uuid(),
            sa.ForeignKey("resources.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("user_id", "resource_id", name="unique_user_resource_bookmark"),
    )
    op.create_index("ix_bookmarks_resource_id", "bookmarks", ["resource_id"])

    # ==========================================================================
    # CHAT
    # ==========================================================================
    op.create_table(
        "conversations",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _owner(),
        sa.Column("title", sa.String(100), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index(
        "idx_conversations_user_updated_at", "conversations", ["user_id", "updated_at"]
    )

    op.create_table(
        "messages",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("conversation_id", sa.Uuid(), sa.ForeignKey("conversations.id"), nullable=False),
        _owner(),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("message_type", sa.String(20), nullable=False, server_default="text"),
        sa.Column("metadata", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "idx_messages_conversation_created", "messages", ["conversation_id", "created_at"]
    )


def downgrade() -> None:
    op.drop_table("messages")
    op.drop_table("conversations")
    op.drop_table("bookmarks")
    op.drop_table("resources")
    op.drop_table("study_logs")
    op.drop_table("timetable_entries")
    op.drop_table("notes")
    op.drop_table("tasks")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
