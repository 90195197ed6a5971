# alembic/versions/001_initial_schema.py
"""Initial schema - parties projection, bookings, reviews

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-18 00:00:00.000000

Bookings carry their own price snapshot and per-party archive flags; they
never reference the parties table so profile changes cannot touch history.
Reviews are unique per booking.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create parties, bookings and reviews."""
    print("Creating scheduling tables...")

    op.create_table(
        "parties",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("display_name", sa.String(120), nullable=True),
        sa.Column("hourly_rate", sa.Numeric(10, 2), nullable=True),
        sa.Column("timezone", sa.String(64), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("role IN ('requester', 'provider')", name="ck_parties_role"),
        sa.CheckConstraint(
            "hourly_rate IS NULL OR hourly_rate >= 0", name="ck_parties_rate_non_negative"
        ),
    )

    op.create_table(
        "bookings",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("requester_id", sa.String(26), nullable=False),
        sa.Column("provider_id", sa.String(26), nullable=False),
        # Interval, stored in UTC
        sa.Column("start_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("booking_date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("notes", sa.Text(), nullable=True),
        # Price snapshot
        sa.Column("rate_snapshot", sa.Numeric(10, 2), nullable=False),
        sa.Column("duration_hours", sa.Numeric(6, 2), nullable=False),
        sa.Column("total_price", sa.Numeric(10, 2), nullable=False),
        # Per-party archive flags
        sa.Column("hidden_for_requester", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("hidden_for_provider", sa.Boolean(), nullable=False, server_default=sa.false()),
        # Timestamps
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("decided_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_by_id", sa.String(26), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "status IN ('pending', 'accepted', 'declined', 'cancelled', 'completed')",
            name="ck_bookings_status",
        ),
        sa.CheckConstraint("end_at > start_at", name="ck_bookings_time_order"),
        sa.CheckConstraint("rate_snapshot >= 0", name="ck_bookings_rate_non_negative"),
        sa.CheckConstraint("duration_hours >= 0", name="ck_bookings_duration_non_negative"),
        sa.CheckConstraint("total_price >= 0", name="ck_bookings_price_non_negative"),
    )
    op.create_index("ix_bookings_requester_id", "bookings", ["requester_id"])
    op.create_index(
        "ix_bookings_provider_date_status", "bookings", ["provider_id", "booking_date", "status"]
    )
    op.create_index(
        "ix_bookings_requester_status_end", "bookings", ["requester_id", "status", "end_at"]
    )

    op.create_table(
        "reviews",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("booking_id", sa.String(26), nullable=False),
        sa.Column("requester_id", sa.String(26), nullable=False),
        sa.Column("provider_id", sa.String(26), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["booking_id"], ["bookings.id"]),
        sa.UniqueConstraint("booking_id", name="uq_reviews_booking"),
        sa.CheckConstraint("rating >= 1 AND rating <= 5", name="ck_reviews_rating_range"),
        sa.CheckConstraint(
            "(comment IS NULL) OR (length(comment) <= 1000)", name="ck_reviews_comment_length"
        ),
    )
    op.create_index("ix_reviews_requester_id", "reviews", ["requester_id"])
    op.create_index("idx_reviews_provider_created", "reviews", ["provider_id", "created_at"])

    print("Scheduling tables created")


def downgrade() -> None:
    """Drop reviews, bookings and parties."""
    op.drop_index("idx_reviews_provider_created", table_name="reviews")
    op.drop_index("ix_reviews_requester_id", table_name="reviews")
    op.drop_table("reviews")

    op.drop_index("ix_bookings_requester_status_end", table_name="bookings")
    op.drop_index("ix_bookings_provider_date_status", table_name="bookings")
    op.drop_index("ix_bookings_requester_id", table_name="bookings")
    op.drop_table("bookings")

    op.drop_table("parties")
