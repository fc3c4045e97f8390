"""Initial schema: users, business_hours, unavailable_dates, bookings.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("full_name", sa.String(), nullable=True),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("hashed_password", sa.String(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)

    op.create_table(
        "business_hours",
        sa.Column("id", sa.Integer(), nullable=False),
        *[sa.Column(f"{day}_periods", sa.JSON(), nullable=False) for day in WEEKDAYS],
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "unavailable_dates",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("day", sa.Date(), nullable=False),
        sa.Column("reason", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_unavailable_dates_day"), "unavailable_dates", ["day"], unique=True)

    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(length=32), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("slot", sa.DateTime(), nullable=False),
        sa.Column("slot_seat", sa.Integer(), nullable=True),
        sa.Column("first_name", sa.String(), nullable=False),
        sa.Column("last_name", sa.String(), nullable=False),
        sa.Column("phone", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("message", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("slot", "slot_seat", name="uq_bookings_slot_seat"),
    )
    op.create_index(op.f("ix_bookings_type"), "bookings", ["type"], unique=False)
    op.create_index(op.f("ix_bookings_status"), "bookings", ["status"], unique=False)
    op.create_index(op.f("ix_bookings_slot"), "bookings", ["slot"], unique=False)
    op.create_index(op.f("ix_bookings_last_name"), "bookings", ["last_name"], unique=False)
    op.create_index(op.f("ix_bookings_email"), "bookings", ["email"], unique=False)
    op.create_index(op.f("ix_bookings_created_at"), "bookings", ["created_at"], unique=False)


def downgrade() -> None:
    for name in ("created_at", "email", "last_name", "slot", "status", "type"):
        op.drop_index(op.f(f"ix_bookings_{name}"), table_name="bookings")
    op.drop_table("bookings")
    op.drop_index(op.f("ix_unavailable_dates_day"), table_name="unavailable_dates")
    op.drop_table("unavailable_dates")
    op.drop_table("business_hours")
    op.drop_index(op.f("ix_users_email"), table_name="users")
    op.drop_table("users")
