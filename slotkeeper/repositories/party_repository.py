"""Read access to the party projection."""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..models.party import Party
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class PartyRepository(BaseRepository[Party]):
    def __init__(self, db: Session):
        super().__init__(db, Party)

    def get_party(self, party_id: str) -> Optional[Party]:
        return self.get_by_id(party_id)
