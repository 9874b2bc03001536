"""User identity records persisted as documents."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from uuid import uuid4

from identity_store.domain.identity.role import IdentityRole


@dataclass(frozen=True)
class UserClaim:
    """One claim held inline on a user record."""

    claim_type: str
    claim_value: str


@dataclass
class IdentityUser:
    """User record; the id doubles as the primary document key."""

    username: str = ""
    email: str = ""
    id: str = field(default_factory=lambda: str(uuid4()))
    email_confirmed: bool = False
    password_hash: str | None = None
    phone_number: str | None = None
    phone_number_confirmed: bool = False
    lockout_end_utc: datetime | None = None
    lockout_enabled: bool = False
    access_failed_count: int = 0
    two_factor_enabled: bool = False
    security_stamp: str | None = None
    login_keys: list[str] = field(default_factory=list)
    roles: list[IdentityRole] = field(default_factory=list)
    claims: list[UserClaim] = field(default_factory=list)
