"""
Lookup of provider facts needed at booking time.

Profiles live in another service. Scheduling only needs a party's role, its
current hourly rate and its timezone, and only once, when a booking is
created. ``ProviderDirectory`` is that contract; ``PartyDirectory`` serves
it from the local ``parties`` projection.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Protocol

from sqlalchemy.orm import Session

from ..core.enums import PartyRole
from ..repositories import RepositoryFactory


@dataclass(frozen=True)
class ProviderProfile:
    party_id: str
    role: PartyRole
    current_rate: Optional[Decimal]
    timezone: Optional[str] = None

    @property
    def is_provider(self) -> bool:
        return self.role is PartyRole.PROVIDER


class ProviderDirectory(Protocol):
    def resolve(self, party_id: str) -> Optional[ProviderProfile]:
        ...


class PartyDirectory:
    """ProviderDirectory backed by the parties table."""

    def __init__(self, db: Session):
        self.repository = RepositoryFactory.create_party_repository(db)

    def resolve(self, party_id: str) -> Optional[ProviderProfile]:
        party = self.repository.get_party(party_id)
        if party is None:
            return None
        return ProviderProfile(
            party_id=party.id,
            role=PartyRole(party.role),
            current_rate=Decimal(party.hourly_rate) if party.hourly_rate is not None else None,
            timezone=party.timezone,
        )
