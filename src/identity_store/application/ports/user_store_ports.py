"""Per-capability ports of the pluggable user store.

Operations documented as "in memory" only mutate the passed record; callers
persist them with `UserStorePort.update`.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from identity_store.domain.identity.logins import UserLoginInfo
from identity_store.domain.identity.user import IdentityUser, UserClaim


class UserStorePort(Protocol):
    """Core user CRUD and lookup contract."""

    async def create(self, user: IdentityUser) -> None:
        """Persist a new user and its lookup mirrors."""

    async def update(self, user: IdentityUser) -> None:
        """Replace the stored user record."""

    async def delete(self, user: IdentityUser) -> None:
        """Remove the user record and its lookup mirrors."""

    async def find_by_id(self, user_id: str) -> IdentityUser | None:
        """Return user by primary id or None."""

    async def find_by_name(self, username: str) -> IdentityUser | None:
        """Return user by username or None."""


class QueryableUserStorePort(Protocol):
    """Enumeration of stored users."""

    async def list_users(self) -> list[IdentityUser]:
        """Return every stored user."""


class UserLoginStorePort(Protocol):
    """External login association contract."""

    async def add_login(self, user: IdentityUser, login: UserLoginInfo) -> None:
        """Store the association and persist the user's login keys."""

    async def remove_login(self, user: IdentityUser, login: UserLoginInfo) -> None:
        """Drop the association and persist the user's login keys."""

    async def get_logins(self, user: IdentityUser) -> list[UserLoginInfo]:
        """Return provider identities linked to the user."""

    async def find_by_login(self, login: UserLoginInfo) -> IdentityUser | None:
        """Return the user linked to one provider identity or None."""


class UserClaimStorePort(Protocol):
    """Inline claim contract (in memory)."""

    async def get_claims(self, user: IdentityUser) -> list[UserClaim]:
        """Return user claims."""

    async def add_claim(self, user: IdentityUser, claim: UserClaim) -> None:
        """Add one claim in memory."""

    async def remove_claim(self, user: IdentityUser, claim: UserClaim) -> None:
        """Remove one claim in memory."""


class UserRoleStorePort(Protocol):
    """Inline role assignment contract (in memory)."""

    async def add_to_role(self, user: IdentityUser, role_name: str) -> None:
        """Assign one role in memory."""

    async def remove_from_role(self, user: IdentityUser, role_name: str) -> None:
        """Unassign one role in memory."""

    async def get_roles(self, user: IdentityUser) -> list[str]:
        """Return assigned role names."""

    async def is_in_role(self, user: IdentityUser, role_name: str) -> bool:
        """Return whether the role is assigned."""


class UserSecurityStampStorePort(Protocol):
    """Security stamp contract (in memory)."""

    async def set_security_stamp(self, user: IdentityUser, stamp: str) -> None:
        """Set stamp in memory."""

    async def get_security_stamp(self, user: IdentityUser) -> str | None:
        """Return stamp."""


class UserPasswordStorePort(Protocol):
    """Password hash contract (in memory)."""

    async def set_password_hash(self, user: IdentityUser, password_hash: str | None) -> None:
        """Set hash in memory."""

    async def get_password_hash(self, user: IdentityUser) -> str | None:
        """Return hash."""

    async def has_password(self, user: IdentityUser) -> bool:
        """Return whether a non-blank hash is set."""


class UserPhoneNumberStorePort(Protocol):
    """Phone number contract; only the confirmation flag persists."""

    async def set_phone_number(self, user: IdentityUser, phone_number: str | None) -> None:
        """Set number in memory."""

    async def get_phone_number(self, user: IdentityUser) -> str | None:
        """Return number."""

    async def get_phone_number_confirmed(self, user: IdentityUser) -> bool:
        """Return confirmation flag."""

    async def set_phone_number_confirmed(self, user: IdentityUser, confirmed: bool) -> None:
        """Set confirmation flag and persist."""


class UserLockoutStorePort(Protocol):
    """Lockout contract; every setter persists."""

    async def get_lockout_end_date(self, user: IdentityUser) -> datetime | None:
        """Return lockout end in UTC."""

    async def set_lockout_end_date(self, user: IdentityUser, lockout_end: datetime | None) -> None:
        """Set lockout end and persist."""

    async def increment_access_failed_count(self, user: IdentityUser) -> int:
        """Increment failures, persist and return the new count."""

    async def reset_access_failed_count(self, user: IdentityUser) -> None:
        """Zero failures and persist."""

    async def get_access_failed_count(self, user: IdentityUser) -> int:
        """Return failure count."""

    async def get_lockout_enabled(self, user: IdentityUser) -> bool:
        """Return whether lockout applies to the user."""

    async def set_lockout_enabled(self, user: IdentityUser, enabled: bool) -> None:
        """Set lockout flag and persist."""


class UserTwoFactorStorePort(Protocol):
    """Two-factor flag contract."""

    async def set_two_factor_enabled(self, user: IdentityUser, enabled: bool) -> None:
        """Set flag and persist."""

    async def get_two_factor_enabled(self, user: IdentityUser) -> bool:
        """Return flag."""


class UserEmailStorePort(Protocol):
    """Email contract; setters persist the record but not the email mirror."""

    async def set_email(self, user: IdentityUser, email: str) -> None:
        """Set email and persist the record."""

    async def get_email(self, user: IdentityUser) -> str:
        """Return email."""

    async def get_email_confirmed(self, user: IdentityUser) -> bool:
        """Return confirmation flag."""

    async def set_email_confirmed(self, user: IdentityUser, confirmed: bool) -> None:
        """Set confirmation flag and persist."""

    async def find_by_email(self, email: str) -> IdentityUser | None:
        """Return user by email or None."""


class ManagedUserStorePort(
    UserStorePort,
    UserEmailStorePort,
    UserPasswordStorePort,
    UserSecurityStampStorePort,
    UserLockoutStorePort,
    Protocol,
):
    """Capabilities the identity service composes for account management."""
