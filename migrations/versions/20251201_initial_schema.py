"""schema inicial: users, pending_users, password_resets, events, attendances, audit_logs

Revision ID: 20251201_initial_schema
Revises:
Create Date: 2025-12-01 12:00:00
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "20251201_initial_schema"
down_revision: Union[str, Sequence[str], None] = None
branch_labels = None
depends_on = None


def _profile_columns():
    return [
        sa.Column("first_name", sa.String(100), nullable=True),
        sa.Column("last_name", sa.String(100), nullable=True),
        sa.Column("middle_name", sa.String(100), nullable=True),
        sa.Column("course", sa.String(100), nullable=True),
        sa.Column("year_level", sa.String(50), nullable=True),
        sa.Column("section", sa.String(50), nullable=True),
        sa.Column("department", sa.String(160), nullable=True),
        sa.Column("college", sa.String(160), nullable=True),
        sa.Column("contact_number", sa.String(20), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("student_id", sa.String(50), nullable=False),
        sa.Column("email", sa.String(160), nullable=False),
        sa.Column("username", sa.String(120), nullable=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("is_verified", sa.Boolean(), nullable=False),
        *_profile_columns(),
        sa.Column("qr_code_data", sa.Text(), nullable=True),
        sa.Column("qr_type", sa.String(50), nullable=True),
        sa.Column("qr_generated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("active_event_id", sa.Integer(), nullable=True),
        sa.Column("original_qr_code_data", sa.Text(), nullable=True),
        sa.Column("original_qr_type", sa.String(50), nullable=True),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
    )
    op.create_index("ix_users_student_id", "users", ["student_id"], unique=True)
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_active_event_id", "users", ["active_event_id"])

    op.create_table(
        "pending_users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("student_id", sa.String(50), nullable=False),
        sa.Column("email", sa.String(160), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        *_profile_columns(),
        sa.Column("verification_code", sa.String(6), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_pending_users"),
    )
    op.create_index("ix_pending_users_student_id", "pending_users", ["student_id"], unique=True)
    op.create_index("ix_pending_users_email", "pending_users", ["email"], unique=True)

    op.create_table(
        "password_resets",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("email", sa.String(160), nullable=False),
        sa.Column("code", sa.String(6), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("used", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_password_resets"),
    )
    op.create_index("ix_password_resets_email", "password_resets", ["email"])

    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("event_date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("location", sa.String(200), nullable=True),
        sa.Column("course", sa.String(100), nullable=True),
        sa.Column("section", sa.String(50), nullable=True),
        sa.Column("year_level", sa.String(50), nullable=True),
        sa.Column("department", sa.String(160), nullable=True),
        sa.Column("college", sa.String(160), nullable=True),
        sa.Column("tagged_courses", sa.Text(), nullable=True),
        sa.Column("created_by", sa.String(50), nullable=False),
        sa.Column("created_by_role", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("qr_code_data", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("start_time < end_time", name="ck_events_start_before_end"),
        sa.PrimaryKeyConstraint("id", name="pk_events"),
    )
    op.create_index("ix_events_created_by", "events", ["created_by"])
    op.create_index("ix_events_status", "events", ["status"])
    op.create_index("ix_events_is_active", "events", ["is_active"])

    op.create_table(
        "attendances",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("event_id", sa.Integer(), nullable=False),
        sa.Column("student_id", sa.String(50), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("marked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("marked_by", sa.String(50), nullable=True),
        sa.Column("marked_by_role", sa.String(20), nullable=True),
        sa.Column("method", sa.String(20), nullable=False),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("check_in_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("check_out_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("check_in_status", sa.String(20), nullable=True),
        sa.Column("check_out_status", sa.String(20), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["event_id"], ["events.id"], name="fk_attendances_event_id_events"),
        sa.PrimaryKeyConstraint("id", name="pk_attendances"),
        sa.UniqueConstraint("event_id", "student_id", name="uq_attendance_event_student"),
    )
    op.create_index("ix_attendances_event_id", "attendances", ["event_id"])
    op.create_index("ix_attendances_student_id", "attendances", ["student_id"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("actor_id", sa.String(50), nullable=True),
        sa.Column("target_id", sa.String(50), nullable=True),
        sa.Column("details", sa.Text(), nullable=True),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_audit_logs"),
    )
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_actor_id", "audit_logs", ["actor_id"])


def downgrade() -> None:
    op.drop_table("audit_logs")
    op.drop_table("attendances")
    op.drop_table("events")
    op.drop_table("password_resets")
    op.drop_table("pending_users")
    op.drop_table("users")
