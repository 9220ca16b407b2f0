"""Possession-based permission tokens.

A capability is an opaque handle carrying the id of the instance it was issued
for plus a random secret. Holding the object (or its secret) is what grants the
right; callers are never identified by address.
"""

import secrets
from dataclasses import dataclass, field

from src.fm_common.errors import UnauthorizedError


def _new_secret() -> str:
    return secrets.token_hex(16)


@dataclass(frozen=True)
class AdminCap:
    """Grants lifecycle transitions and liquidity management on one market."""

    market_id: str
    cap_id: str = field(default_factory=_new_secret, repr=False)


@dataclass(frozen=True)
class TokenManagerCap:
    """Grants minting and burning of one market's conditional tokens."""

    market_id: str
    cap_id: str = field(default_factory=_new_secret, repr=False)


def verify_capability(
    cap: AdminCap | TokenManagerCap, market_id: str, issued_cap_id: str
) -> None:
    """Raise UnauthorizedError unless cap is the one issued for this instance."""
    if cap.market_id != market_id:
        raise UnauthorizedError(f"capability bound to market {cap.market_id}")
    if not secrets.compare_digest(cap.cap_id, issued_cap_id):
        raise UnauthorizedError()
