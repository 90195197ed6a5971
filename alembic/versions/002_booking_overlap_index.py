# alembic/versions/002_booking_overlap_index.py
"""Index bookings for provider interval overlap lookups

Revision ID: 002_booking_overlap_index
Revises: 001_initial_schema
Create Date: 2026-10-18 12:00:00.000000

Conflict checks filter a provider's active bookings on start_at/end_at
directly instead of the booking_date bucket.
"""
from typing import Sequence, Union

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "002_booking_overlap_index"
down_revision: Union[str, None] = "001_initial_schema"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_index(
        "ix_bookings_provider_status_start", "bookings", ["provider_id", "status", "start_at"]
    )


def downgrade() -> None:
    op.drop_index("ix_bookings_provider_status_start", table_name="bookings")
