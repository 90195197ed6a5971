# slotkeeper/api/dependencies/auth.py
"""
Caller identity.

Authentication happens at the gateway in front of this service, which
forwards the authenticated party id in the ``X-Party-Id`` header.
"""

from typing import Optional

from fastapi import Header

from ...core.exceptions import UnauthorizedException, ValidationException
from ...core.ulid_helper import is_valid_ulid

PARTY_HEADER = "X-Party-Id"


def get_current_party_id(
    x_party_id: Optional[str] = Header(default=None, alias=PARTY_HEADER),
) -> str:
    """Return the calling party's id, or fail with 401/400."""
    if not x_party_id or not x_party_id.strip():
        raise UnauthorizedException(
            "Missing caller identity", code="UNAUTHENTICATED"
        ).to_http_exception()
    party_id = x_party_id.strip()
    if not is_valid_ulid(party_id):
        raise ValidationException(
            "Malformed caller identity", code="INVALID_PARTY_ID", details={"party_id": party_id}
        ).to_http_exception()
    return party_id
