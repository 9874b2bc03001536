"""User store backed by a document bucket with mirrored lookup keys.

One user occupies up to three keys: the id key holds the record, while the
email and username keys hold only the id. When username and email are equal
a single mirror serves both. Mirror writes are concurrent and not atomic; a
failure leaves already written keys in place.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from datetime import UTC, datetime
from typing import Any

from identity_store.application.ports.document_bucket_port import DocumentQuery
from identity_store.domain.identity.logins import UserLoginAssociation, UserLoginInfo, login_key
from identity_store.domain.identity.role import IdentityRole
from identity_store.domain.identity.user import IdentityUser, UserClaim
from identity_store.infrastructure.store.documents import (
    LOGIN_DOCUMENT_TYPE,
    TYPE_FIELD,
    USER_DOCUMENT_TYPE,
    is_document_of,
    login_from_document,
    login_to_document,
    user_from_document,
    user_to_document,
)
from identity_store.infrastructure.store.throwable_bucket import ThrowableBucket

logger = logging.getLogger(__name__)


class DocumentUserStore:
    """Pluggable user store implementing every user capability port."""

    def __init__(self, bucket: ThrowableBucket) -> None:
        self._bucket = bucket

    async def create(self, user: IdentityUser) -> None:
        """Write email, id and username keys concurrently.

        The username key is skipped when it equals the email. Writes that
        succeeded before another one failed are not rolled back.
        """

        writes = [
            self._bucket.create(user.email, user.id),
            self._bucket.create(user.id, user_to_document(user)),
        ]
        if user.username != user.email:
            writes.append(self._bucket.create(user.username, user.id))
        await _join_all(writes)
        logger.info("user_created user_id=%s keys=%s", user.id, len(writes))

    async def update(self, user: IdentityUser) -> None:
        """Replace the record at the id key.

        Email and username mirrors are not rewritten; after a rename the old
        mirrors still resolve and the new values do not.
        """

        await self._bucket.update(user.id, user_to_document(user))

    async def delete(self, user: IdentityUser) -> None:
        """Remove username, email and id keys concurrently without rollback."""

        keys = list(dict.fromkeys((user.username, user.email, user.id)))
        await _join_all([self._bucket.delete(key) for key in keys])
        logger.info("user_deleted user_id=%s keys=%s", user.id, len(keys))

    async def find_by_id(self, user_id: str) -> IdentityUser | None:
        """Return the user at `user_id`; keys holding other records resolve to None."""

        document = await self._bucket.get(user_id)
        if not is_document_of(document, USER_DOCUMENT_TYPE):
            return None
        return user_from_document(document)

    async def find_by_name(self, username: str) -> IdentityUser | None:
        return await self._find_by_mirror(username)

    async def find_by_email(self, email: str) -> IdentityUser | None:
        return await self._find_by_mirror(email)

    async def list_users(self) -> list[IdentityUser]:
        rows = await self._bucket.query(DocumentQuery(where={TYPE_FIELD: USER_DOCUMENT_TYPE}))
        return [user_from_document(row) for row in rows]

    async def add_login(self, user: IdentityUser, login: UserLoginInfo) -> None:
        key = login_key(login_provider=login.login_provider, provider_key=login.provider_key)
        association = UserLoginAssociation(
            login_provider=login.login_provider,
            provider_key=login.provider_key,
            user_id=user.id,
        )
        await self._bucket.create(key, login_to_document(association))
        if key not in user.login_keys:
            user.login_keys.append(key)
        await self.update(user)

    async def remove_login(self, user: IdentityUser, login: UserLoginInfo) -> None:
        key = login_key(login_provider=login.login_provider, provider_key=login.provider_key)
        await self._bucket.delete(key)
        if key in user.login_keys:
            user.login_keys.remove(key)
        await self.update(user)

    async def get_logins(self, user: IdentityUser) -> list[UserLoginInfo]:
        documents = await self._bucket.get_all(user.login_keys)
        logins: list[UserLoginInfo] = []
        for document in documents:
            if not is_document_of(document, LOGIN_DOCUMENT_TYPE):
                continue
            association = login_from_document(document)
            logins.append(
                UserLoginInfo(
                    login_provider=association.login_provider,
                    provider_key=association.provider_key,
                )
            )
        return logins

    async def find_by_login(self, login: UserLoginInfo) -> IdentityUser | None:
        key = login_key(login_provider=login.login_provider, provider_key=login.provider_key)
        document = await self._bucket.get(key)
        if not is_document_of(document, LOGIN_DOCUMENT_TYPE):
            return None
        return await self.find_by_id(login_from_document(document).user_id)

    # Claims, roles, stamp, password hash and phone number: in memory only.

    async def get_claims(self, user: IdentityUser) -> list[UserClaim]:
        return list(user.claims)

    async def add_claim(self, user: IdentityUser, claim: UserClaim) -> None:
        if claim not in user.claims:
            user.claims.append(claim)

    async def remove_claim(self, user: IdentityUser, claim: UserClaim) -> None:
        user.claims[:] = [existing for existing in user.claims if existing != claim]

    async def add_to_role(self, user: IdentityUser, role_name: str) -> None:
        if not await self.is_in_role(user, role_name):
            user.roles.append(IdentityRole(name=role_name))

    async def remove_from_role(self, user: IdentityUser, role_name: str) -> None:
        user.roles[:] = [role for role in user.roles if role.name != role_name]

    async def get_roles(self, user: IdentityUser) -> list[str]:
        return [role.name for role in user.roles]

    async def is_in_role(self, user: IdentityUser, role_name: str) -> bool:
        return any(role.name == role_name for role in user.roles)

    async def set_security_stamp(self, user: IdentityUser, stamp: str) -> None:
        user.security_stamp = stamp

    async def get_security_stamp(self, user: IdentityUser) -> str | None:
        return user.security_stamp

    async def set_password_hash(self, user: IdentityUser, password_hash: str | None) -> None:
        user.password_hash = password_hash

    async def get_password_hash(self, user: IdentityUser) -> str | None:
        return user.password_hash

    async def has_password(self, user: IdentityUser) -> bool:
        return bool(user.password_hash and user.password_hash.strip())

    async def set_phone_number(self, user: IdentityUser, phone_number: str | None) -> None:
        user.phone_number = phone_number

    async def get_phone_number(self, user: IdentityUser) -> str | None:
        return user.phone_number

    # Confirmation flags, lockout, two-factor and email: mutate then persist.

    async def get_phone_number_confirmed(self, user: IdentityUser) -> bool:
        return user.phone_number_confirmed

    async def set_phone_number_confirmed(self, user: IdentityUser, confirmed: bool) -> None:
        user.phone_number_confirmed = confirmed
        await self.update(user)

    async def get_lockout_end_date(self, user: IdentityUser) -> datetime | None:
        return user.lockout_end_utc

    async def set_lockout_end_date(self, user: IdentityUser, lockout_end: datetime | None) -> None:
        user.lockout_end_utc = _as_utc(lockout_end)
        await self.update(user)

    async def increment_access_failed_count(self, user: IdentityUser) -> int:
        user.access_failed_count += 1
        await self.update(user)
        return user.access_failed_count

    async def reset_access_failed_count(self, user: IdentityUser) -> None:
        user.access_failed_count = 0
        await self.update(user)

    async def get_access_failed_count(self, user: IdentityUser) -> int:
        return user.access_failed_count

    async def get_lockout_enabled(self, user: IdentityUser) -> bool:
        return user.lockout_enabled

    async def set_lockout_enabled(self, user: IdentityUser, enabled: bool) -> None:
        user.lockout_enabled = enabled
        await self.update(user)

    async def set_two_factor_enabled(self, user: IdentityUser, enabled: bool) -> None:
        user.two_factor_enabled = enabled
        await self.update(user)

    async def get_two_factor_enabled(self, user: IdentityUser) -> bool:
        return user.two_factor_enabled

    async def set_email(self, user: IdentityUser, email: str) -> None:
        user.email = email
        await self.update(user)

    async def get_email(self, user: IdentityUser) -> str:
        return user.email

    async def get_email_confirmed(self, user: IdentityUser) -> bool:
        return user.email_confirmed

    async def set_email_confirmed(self, user: IdentityUser, confirmed: bool) -> None:
        user.email_confirmed = confirmed
        await self.update(user)

    async def _find_by_mirror(self, mirror_key: str) -> IdentityUser | None:
        user_id = await self._bucket.get(mirror_key)
        if not isinstance(user_id, str) or not user_id.strip():
            return None
        return await self.find_by_id(user_id)


async def _join_all(writes: list[Awaitable[Any]]) -> None:
    """Wait for every write, then raise the first failure in submission order."""

    outcomes = await asyncio.gather(*writes, return_exceptions=True)
    for outcome in outcomes:
        if isinstance(outcome, BaseException):
            raise outcome


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
