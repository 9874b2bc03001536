"""Account management on top of the pluggable user store."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from uuid import uuid4

from identity_store.application.ports.password_hasher_port import PasswordHasherPort
from identity_store.application.ports.user_store_ports import ManagedUserStorePort
from identity_store.domain.identity.credentials import (
    normalize_user_email,
    normalize_user_password,
    normalize_username,
)
from identity_store.domain.identity.user import IdentityUser

logger = logging.getLogger(__name__)


class InvalidUserEmailError(ValueError):
    """Raised when a registration email is blank or malformed."""


class InvalidUsernameError(ValueError):
    """Raised when a registration username is blank."""


class InvalidUserPasswordError(ValueError):
    """Raised when a plaintext password is blank."""


class DuplicateUserError(ValueError):
    """Raised when a username or email already resolves to a stored user."""

    def __init__(self, *, lookup_key: str) -> None:
        super().__init__(f"user already exists: {lookup_key}")
        self.lookup_key = lookup_key


class PasswordCheckOutcome(StrEnum):
    """Supported password check outcomes."""

    SUCCESS = "success"
    INVALID_CREDENTIALS = "invalid_credentials"
    LOCKED_OUT = "locked_out"


@dataclass(frozen=True)
class PasswordCheckResult:
    """Password check result model."""

    outcome: PasswordCheckOutcome
    user: IdentityUser | None = None


@dataclass(frozen=True)
class LockoutPolicy:
    """Failed-attempt threshold and lock window."""

    max_failed_access_attempts: int = 5
    lockout_duration: timedelta = timedelta(minutes=5)
    enabled_for_new_users: bool = True


class IdentityService:
    """Register users, verify passwords and apply lockout."""

    def __init__(
        self,
        *,
        users: ManagedUserStorePort,
        password_hasher: PasswordHasherPort,
        lockout_policy: LockoutPolicy | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._users = users
        self._password_hasher = password_hasher
        self._lockout_policy = lockout_policy or LockoutPolicy()
        self._clock = clock or (lambda: datetime.now(tz=UTC))

    async def register_user(self, *, username: str, email: str, password: str) -> IdentityUser:
        """Create one user with hashed password and fresh security stamp."""

        try:
            normalized_email = normalize_user_email(email=email)
        except ValueError as exc:
            raise InvalidUserEmailError(str(exc)) from exc
        try:
            normalized_username = normalize_username(username=username)
        except ValueError as exc:
            raise InvalidUsernameError(str(exc)) from exc
        try:
            normalized_password = normalize_user_password(password=password)
        except ValueError as exc:
            raise InvalidUserPasswordError(str(exc)) from exc

        if await self._users.find_by_email(normalized_email) is not None:
            raise DuplicateUserError(lookup_key=normalized_email)
        if await self._users.find_by_name(normalized_username) is not None:
            raise DuplicateUserError(lookup_key=normalized_username)

        user = IdentityUser(
            username=normalized_username,
            email=normalized_email,
            lockout_enabled=self._lockout_policy.enabled_for_new_users,
        )
        await self._users.set_password_hash(
            user,
            self._password_hasher.hash_password(normalized_password),
        )
        await self._users.set_security_stamp(user, _new_security_stamp())
        await self._users.create(user)
        logger.info("identity_user_registered user_id=%s", user.id)
        return user

    async def find_user(self, *, username_or_email: str) -> IdentityUser | None:
        """Resolve a login name through the username mirror, then the email mirror."""

        candidate = username_or_email.strip()
        if not candidate:
            return None
        user = await self._users.find_by_name(candidate)
        if user is not None:
            return user
        return await self._users.find_by_email(candidate.lower())

    async def is_locked_out(self, user: IdentityUser) -> bool:
        """Return whether lockout applies and its end lies in the future."""

        if not await self._users.get_lockout_enabled(user):
            return False
        lockout_end = await self._users.get_lockout_end_date(user)
        return lockout_end is not None and lockout_end > self._clock()

    async def check_password(self, *, user: IdentityUser, password: str) -> PasswordCheckResult:
        """Verify a password and record the attempt against the lockout counters."""

        if await self.is_locked_out(user):
            logger.info("identity_password_check_locked user_id=%s", user.id)
            return PasswordCheckResult(outcome=PasswordCheckOutcome.LOCKED_OUT)

        password_hash = await self._users.get_password_hash(user)
        is_valid = bool(password_hash) and self._password_hasher.verify_password(
            password=password,
            password_hash=password_hash or "",
        )
        if is_valid:
            if await self._users.get_access_failed_count(user) > 0:
                await self._users.reset_access_failed_count(user)
            return PasswordCheckResult(outcome=PasswordCheckOutcome.SUCCESS, user=user)

        if not await self._users.get_lockout_enabled(user):
            return PasswordCheckResult(outcome=PasswordCheckOutcome.INVALID_CREDENTIALS)

        failed_count = await self._users.increment_access_failed_count(user)
        if failed_count < self._lockout_policy.max_failed_access_attempts:
            return PasswordCheckResult(outcome=PasswordCheckOutcome.INVALID_CREDENTIALS)

        lockout_end = self._clock() + self._lockout_policy.lockout_duration
        await self._users.set_lockout_end_date(user, lockout_end)
        await self._users.reset_access_failed_count(user)
        logger.warning(
            "identity_user_locked_out user_id=%s until=%s",
            user.id,
            lockout_end.isoformat(),
        )
        return PasswordCheckResult(outcome=PasswordCheckOutcome.LOCKED_OUT)

    async def authenticate(self, *, username_or_email: str, password: str) -> PasswordCheckResult:
        """Resolve a user by login name and check the password."""

        user = await self.find_user(username_or_email=username_or_email)
        if user is None:
            return PasswordCheckResult(outcome=PasswordCheckOutcome.INVALID_CREDENTIALS)
        return await self.check_password(user=user, password=password)

    async def change_password(
        self,
        *,
        user: IdentityUser,
        current_password: str,
        new_password: str,
    ) -> bool:
        """Replace the password hash when the current password verifies."""

        try:
            normalized_password = normalize_user_password(password=new_password)
        except ValueError as exc:
            raise InvalidUserPasswordError(str(exc)) from exc

        current_hash = await self._users.get_password_hash(user)
        if not current_hash or not self._password_hasher.verify_password(
            password=current_password,
            password_hash=current_hash,
        ):
            return False

        await self._users.set_password_hash(
            user,
            self._password_hasher.hash_password(normalized_password),
        )
        await self._users.set_security_stamp(user, _new_security_stamp())
        await self._users.update(user)
        logger.info("identity_password_changed user_id=%s", user.id)
        return True


def _new_security_stamp() -> str:
    return uuid4().hex
