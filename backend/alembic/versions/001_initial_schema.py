"""Initial schema: users, admins, exhibitions, bookings, slot locks, audit log.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("telegram_id", sa.BigInteger(), nullable=False),
        sa.Column("first_name", sa.String(255), nullable=False),
        sa.Column("last_name", sa.String(255), nullable=True),
        sa.Column("username", sa.String(255), nullable=True),
        sa.Column("language_code", sa.String(10), nullable=False, server_default=sa.text("'ru'")),
        sa.Column("is_premium", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("phone", sa.String(20), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_telegram_id", "users", ["telegram_id"], unique=True)

    op.create_table(
        "admins",
        sa.Column("telegram_id", sa.BigInteger(), primary_key=True),
        sa.Column("admin_level", sa.Integer(), nullable=False, server_default=sa.text("1")),
    )

    op.create_table(
        "exhibitions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("duration_minutes", sa.Integer(), nullable=False, server_default=sa.text("60")),
        sa.Column("price", sa.Numeric(10, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("capacity", sa.Integer(), nullable=False),
        sa.Column("schedule_days", sa.JSON(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
        sa.CheckConstraint("capacity > 0", name="check_exhibition_capacity_positive"),
        sa.CheckConstraint("duration_minutes > 0", name="check_exhibition_duration_positive"),
    )
    op.create_index("ix_exhibitions_id", "exhibitions", ["id"])

    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("exhibition_id", sa.Integer(), sa.ForeignKey("exhibitions.id"), nullable=False),
        sa.Column("booking_date", sa.Date(), nullable=False),
        sa.Column("booking_time", sa.Time(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'confirmed'")),
        sa.Column("phone", sa.String(20), nullable=False),
        sa.Column("reminded_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('confirmed', 'completed', 'cancelled', 'no_show')",
            name="check_booking_status",
        ),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_user_id", "bookings", ["user_id"])
    op.create_index("ix_bookings_exhibition_id", "bookings", ["exhibition_id"])
    # INDEX ON SLOT KEY: every capacity check and availability view counts
    # non-cancelled bookings for (exhibition, date[, time]).
    op.create_index(
        "ix_bookings_slot", "bookings", ["exhibition_id", "booking_date", "booking_time", "status"]
    )
    # Reminder sweep scans one date's confirmed bookings.
    op.create_index("ix_bookings_date_status", "bookings", ["booking_date", "status"])

    op.create_table(
        "slot_locks",
        sa.Column("exhibition_id", sa.Integer(), sa.ForeignKey("exhibitions.id"), nullable=False),
        sa.Column("slot_date", sa.Date(), nullable=False),
        sa.Column("slot_time", sa.Time(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.PrimaryKeyConstraint("exhibition_id", "slot_date", "slot_time", name="pk_slot_locks"),
    )

    op.create_table(
        "booking_audit",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("booking_id", sa.Integer(), nullable=False),
        sa.Column("actor_telegram_id", sa.BigInteger(), nullable=False),
        sa.Column("action", sa.String(20), nullable=False),
        sa.Column("old_value", sa.String(64), nullable=True),
        sa.Column("new_value", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_booking_audit_booking_id", "booking_audit", ["booking_id"])


def downgrade() -> None:
    op.drop_table("booking_audit")
    op.drop_table("slot_locks")
    op.drop_table("bookings")
    op.drop_table("exhibitions")
    op.drop_table("admins")
    op.drop_table("users")
