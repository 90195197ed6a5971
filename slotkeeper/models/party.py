"""
Party projection.

Identity and profiles are owned elsewhere; this table mirrors the few fields
scheduling needs at booking time (role, current hourly rate, timezone).
"""

from sqlalchemy import CheckConstraint, Column, Numeric, String

from ..core.enums import PartyRole
from ..core.ulid_helper import generate_ulid
from ..database import Base


class Party(Base):
    """A requester or provider known to the scheduling service."""

    __tablename__ = "parties"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    role = Column(String(20), nullable=False, default=PartyRole.REQUESTER.value)
    display_name = Column(String(120), nullable=True)
    hourly_rate = Column(Numeric(10, 2), nullable=True)
    timezone = Column(String(64), nullable=True)

    __table_args__ = (
        CheckConstraint("role IN ('requester', 'provider')", name="ck_parties_role"),
        CheckConstraint("hourly_rate IS NULL OR hourly_rate >= 0", name="ck_parties_rate_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<Party {self.id}: role={self.role}>"
