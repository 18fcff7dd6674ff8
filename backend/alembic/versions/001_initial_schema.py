"""Initial schema: users, shows, bookings and the per-show seat ledger.

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


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("username", sa.String(100), nullable=False),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        *_timestamps(),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    op.create_table(
        "shows",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("movie_title", sa.String(200), nullable=False),
        sa.Column("screen_name", sa.String(50), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("price", sa.Numeric(8, 2), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("price >= 0", name="check_show_price_non_negative"),
    )
    op.create_index("ix_shows_id", "shows", ["id"])
    op.create_index("ix_shows_start_time", "shows", ["start_time"])

    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("show_id", sa.Integer(), sa.ForeignKey("shows.id", ondelete="CASCADE"), nullable=False),
        sa.Column("total_amount", sa.Numeric(8, 2), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'confirmed'")),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("idempotency_key", sa.String(64), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "idempotency_key", name="uq_booking_user_idempotency_key"),
        sa.CheckConstraint("total_amount >= 0", name="check_booking_total_non_negative"),
        sa.CheckConstraint("status IN ('confirmed', 'cancelled')", name="check_booking_status"),
        sa.CheckConstraint(
            "(status = 'cancelled') = (cancelled_at IS NOT NULL)",
            name="check_booking_cancelled_at",
        ),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_user_id", "bookings", ["user_id"])
    op.create_index("ix_bookings_show_id", "bookings", ["show_id"])

    # One row per seat per show. The CHECK constraints pin the tri-state:
    # booking_id only when booked, hold fields only when blocked.
    op.create_table(
        "seats",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("show_id", sa.Integer(), sa.ForeignKey("shows.id", ondelete="CASCADE"), nullable=False),
        sa.Column("seat_label", sa.String(10), nullable=False),
        sa.Column("seat_row", sa.Integer(), nullable=False),
        sa.Column("seat_column", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'available'")),
        sa.Column("booking_id", sa.Integer(), sa.ForeignKey("bookings.id"), nullable=True),
        sa.Column("hold_owner", sa.Integer(), nullable=True),
        sa.Column("hold_expiry", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("show_id", "seat_label", name="uq_show_seat_label"),
        sa.CheckConstraint("status IN ('available', 'blocked', 'booked')", name="check_seat_status"),
        sa.CheckConstraint("(status = 'booked') = (booking_id IS NOT NULL)", name="check_seat_booking_ref"),
        sa.CheckConstraint(
            "(status = 'blocked') = (hold_owner IS NOT NULL AND hold_expiry IS NOT NULL)",
            name="check_seat_hold_fields",
        ),
    )
    op.create_index("ix_seats_id", "seats", ["id"])
    op.create_index("ix_seats_show_position", "seats", ["show_id", "seat_row", "seat_column"])
    # The sweep scans WHERE status = 'blocked' AND hold_expiry < now()
    op.create_index("ix_seats_status_hold_expiry", "seats", ["status", "hold_expiry"])
    # Cancellation releases WHERE booking_id = :id
    op.create_index("ix_seats_booking_id", "seats", ["booking_id"])


def downgrade() -> None:
    op.drop_table("seats")
    op.drop_table("bookings")
    op.drop_table("shows")
    op.drop_table("users")
