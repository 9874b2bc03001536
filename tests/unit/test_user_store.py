from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone
from typing import Any

import pytest

from identity_store.application.ports.document_bucket_port import OperationResult
from identity_store.application.store_errors import StoreError
from identity_store.domain.identity.logins import UserLoginInfo, login_key
from identity_store.domain.identity.user import IdentityUser, UserClaim
from identity_store.domain.store_status import ResponseStatus
from identity_store.infrastructure.store.memory_bucket import InMemoryDocumentBucket
from identity_store.infrastructure.store.throwable_bucket import ThrowableBucket
from identity_store.infrastructure.store.user_store import DocumentUserStore


class RecordingBucket(InMemoryDocumentBucket):
    """In-memory bucket recording operations and failing selected inserts."""

    def __init__(self, *, fail_insert_keys: set[str] | None = None) -> None:
        super().__init__(name="identity")
        self.calls: list[tuple[str, str]] = []
        self._fail_insert_keys = fail_insert_keys or set()

    async def get(self, key: str) -> OperationResult:
        self.calls.append(("get", key))
        return await super().get(key)

    async def insert(self, key: str, value: Any) -> OperationResult:
        self.calls.append(("insert", key))
        if key in self._fail_insert_keys:
            return OperationResult(success=False, status=ResponseStatus.TEMPORARY_FAILURE)
        return await super().insert(key, value)

    async def replace(self, key: str, value: Any) -> OperationResult:
        self.calls.append(("replace", key))
        return await super().replace(key, value)

    async def remove(self, key: str) -> OperationResult:
        self.calls.append(("remove", key))
        return await super().remove(key)

    def writes(self) -> list[tuple[str, str]]:
        return [call for call in self.calls if call[0] != "get"]


def _store(bucket: InMemoryDocumentBucket) -> DocumentUserStore:
    return DocumentUserStore(ThrowableBucket(bucket))


def _alice() -> IdentityUser:
    return IdentityUser(id="u1", username="alice", email="alice@x.com")


@pytest.mark.asyncio
async def test_create_writes_record_and_two_mirrors_when_username_differs() -> None:
    bucket = RecordingBucket()
    store = _store(bucket)

    await store.create(_alice())

    assert bucket.keys() == {"u1", "alice", "alice@x.com"}
    assert (await bucket.get("alice")).value == "u1"
    assert (await bucket.get("alice@x.com")).value == "u1"
    assert (await bucket.get("u1")).value["username"] == "alice"


@pytest.mark.asyncio
async def test_create_skips_username_mirror_when_it_equals_email() -> None:
    bucket = RecordingBucket()
    store = _store(bucket)

    await store.create(IdentityUser(id="u2", username="bob@x.com", email="bob@x.com"))

    assert bucket.keys() == {"u2", "bob@x.com"}
    assert (await bucket.get("bob@x.com")).value == "u2"
    assert len([call for call in bucket.calls if call[0] == "insert"]) == 2


@pytest.mark.asyncio
async def test_create_then_find_by_id_returns_equal_record() -> None:
    store = _store(InMemoryDocumentBucket())
    user = _alice()
    user.claims.append(UserClaim(claim_type="dept", claim_value="eng"))
    user.lockout_end_utc = datetime(2030, 1, 1, tzinfo=UTC)

    await store.create(user)
    loaded = await store.find_by_id("u1")

    assert loaded == user


@pytest.mark.asyncio
async def test_create_partial_failure_surfaces_and_keeps_written_mirrors() -> None:
    bucket = RecordingBucket(fail_insert_keys={"alice"})
    store = _store(bucket)

    with pytest.raises(StoreError) as exc_info:
        await store.create(_alice())

    assert exc_info.value.key == "alice"
    assert bucket.keys() == {"u1", "alice@x.com"}


@pytest.mark.asyncio
async def test_create_existing_email_raises_key_exists() -> None:
    store = _store(InMemoryDocumentBucket())
    await store.create(_alice())

    with pytest.raises(StoreError) as exc_info:
        await store.create(IdentityUser(id="u9", username="other", email="alice@x.com"))

    assert exc_info.value.status is ResponseStatus.KEY_EXISTS


@pytest.mark.asyncio
async def test_update_missing_user_raises_key_not_found() -> None:
    store = _store(InMemoryDocumentBucket())

    with pytest.raises(StoreError) as exc_info:
        await store.update(IdentityUser(id="ghost", username="ghost", email="g@x.com"))

    assert exc_info.value.status is ResponseStatus.KEY_NOT_FOUND
    assert exc_info.value.key == "ghost"


@pytest.mark.asyncio
async def test_update_replaces_only_primary_key() -> None:
    bucket = RecordingBucket()
    store = _store(bucket)
    user = _alice()
    await store.create(user)
    bucket.calls.clear()

    user.phone_number = "+1 555 0100"
    await store.update(user)

    assert bucket.writes() == [("replace", "u1")]
    assert (await store.find_by_id("u1")).phone_number == "+1 555 0100"


@pytest.mark.asyncio
async def test_set_email_keeps_stale_mirror_and_new_email_does_not_resolve() -> None:
    store = _store(InMemoryDocumentBucket())
    user = _alice()
    await store.create(user)

    await store.set_email(user, "alice@new.com")

    assert await store.find_by_email("alice@new.com") is None
    stale = await store.find_by_email("alice@x.com")
    assert stale is not None
    assert stale.email == "alice@new.com"


@pytest.mark.asyncio
async def test_delete_removes_all_three_keys() -> None:
    bucket = RecordingBucket()
    store = _store(bucket)
    user = _alice()
    await store.create(user)

    await store.delete(user)

    assert bucket.keys() == set()


@pytest.mark.asyncio
async def test_delete_user_sharing_email_and_username_removes_two_keys() -> None:
    bucket = RecordingBucket()
    store = _store(bucket)
    user = IdentityUser(id="u2", username="bob@x.com", email="bob@x.com")
    await store.create(user)
    bucket.calls.clear()

    await store.delete(user)

    assert bucket.keys() == set()
    assert sorted(bucket.writes()) == [("remove", "bob@x.com"), ("remove", "u2")]


@pytest.mark.asyncio
async def test_delete_missing_mirror_raises_but_removes_the_rest() -> None:
    bucket = RecordingBucket()
    store = _store(bucket)
    user = _alice()
    await store.create(user)
    await bucket.remove("alice")

    with pytest.raises(StoreError) as exc_info:
        await store.delete(user)

    assert exc_info.value.status is ResponseStatus.KEY_NOT_FOUND
    assert bucket.keys() == set()


@pytest.mark.asyncio
async def test_find_by_id_missing_returns_none() -> None:
    store = _store(InMemoryDocumentBucket())

    assert await store.find_by_id("nope") is None


@pytest.mark.asyncio
async def test_find_by_name_and_email_resolve_through_mirrors() -> None:
    store = _store(InMemoryDocumentBucket())
    await store.create(_alice())

    by_name = await store.find_by_name("alice")
    by_email = await store.find_by_email("alice@x.com")

    assert by_name is not None and by_name.id == "u1"
    assert by_email is not None and by_email.id == "u1"


@pytest.mark.asyncio
async def test_find_by_name_missing_short_circuits_second_lookup() -> None:
    bucket = RecordingBucket()
    store = _store(bucket)

    assert await store.find_by_name("nonexistent") is None
    assert bucket.calls == [("get", "nonexistent")]


@pytest.mark.asyncio
async def test_find_by_name_blank_mirror_value_returns_none() -> None:
    bucket = RecordingBucket()
    await bucket.insert("carol", "  ")
    bucket.calls.clear()

    assert await _store(bucket).find_by_name("carol") is None
    assert bucket.calls == [("get", "carol")]


@pytest.mark.asyncio
async def test_add_login_writes_association_and_persists_login_keys() -> None:
    bucket = RecordingBucket()
    store = _store(bucket)
    user = _alice()
    await store.create(user)
    bucket.calls.clear()
    login = UserLoginInfo(login_provider="github", provider_key="4242")

    await store.add_login(user, login)

    key = login_key(login_provider="github", provider_key="4242")
    assert bucket.writes() == [("insert", key), ("replace", "u1")]
    assert user.login_keys == [key]
    stored = await store.find_by_id("u1")
    assert stored is not None and stored.login_keys == [key]
    assert await store.get_logins(user) == [login]
    found = await store.find_by_login(login)
    assert found is not None and found.id == "u1"


@pytest.mark.asyncio
async def test_remove_login_deletes_association_and_persists_login_keys() -> None:
    store = _store(InMemoryDocumentBucket())
    user = _alice()
    await store.create(user)
    github = UserLoginInfo(login_provider="github", provider_key="4242")
    google = UserLoginInfo(login_provider="google", provider_key="g-1")
    await store.add_login(user, github)
    await store.add_login(user, google)

    await store.remove_login(user, github)

    assert await store.get_logins(user) == [google]
    assert await store.find_by_login(github) is None
    stored = await store.find_by_id("u1")
    assert stored is not None
    assert stored.login_keys == [login_key(login_provider="google", provider_key="g-1")]


@pytest.mark.asyncio
async def test_find_by_login_unknown_returns_none() -> None:
    store = _store(InMemoryDocumentBucket())

    assert await store.find_by_login(UserLoginInfo(login_provider="x", provider_key="y")) is None


@pytest.mark.asyncio
async def test_get_logins_skips_association_removed_behind_the_store() -> None:
    bucket = InMemoryDocumentBucket()
    store = _store(bucket)
    user = _alice()
    await store.create(user)
    github = UserLoginInfo(login_provider="github", provider_key="4242")
    google = UserLoginInfo(login_provider="google", provider_key="g-1")
    await store.add_login(user, github)
    await store.add_login(user, google)

    await bucket.remove(login_key(login_provider="github", provider_key="4242"))

    assert len(user.login_keys) == 2
    assert await store.get_logins(user) == [google]


@pytest.mark.asyncio
async def test_find_by_id_ignores_keys_holding_other_records() -> None:
    bucket = InMemoryDocumentBucket()
    store = _store(bucket)
    user = _alice()
    await store.create(user)
    await store.add_login(user, UserLoginInfo(login_provider="gh", provider_key="1"))
    await bucket.insert("r1", {"type": "role", "name": "admin", "id": "r1"})

    assert await store.find_by_id("r1") is None
    assert await store.find_by_id("login::gh::1") is None
    assert await store.find_by_id("alice") is None
    assert await store.find_by_id("alice@x.com") is None
    found = await store.find_by_id("u1")
    assert found is not None and found.username == "alice"


@pytest.mark.asyncio
async def test_find_by_login_ignores_key_holding_non_login_record() -> None:
    bucket = InMemoryDocumentBucket()
    store = _store(bucket)
    await store.create(_alice())
    key = login_key(login_provider="gh", provider_key="1")
    await bucket.insert(key, "u1")

    assert await store.find_by_login(UserLoginInfo(login_provider="gh", provider_key="1")) is None


@pytest.mark.asyncio
async def test_in_memory_mutators_do_not_touch_the_store() -> None:
    bucket = RecordingBucket()
    store = _store(bucket)
    user = _alice()
    claim = UserClaim(claim_type="dept", claim_value="eng")

    await store.add_claim(user, claim)
    await store.add_claim(user, claim)
    await store.add_to_role(user, "editor")
    await store.add_to_role(user, "editor")
    await store.set_security_stamp(user, "stamp-1")
    await store.set_password_hash(user, "hash")
    await store.set_phone_number(user, "+1 555 0100")

    assert bucket.calls == []
    assert await store.get_claims(user) == [claim]
    assert await store.get_roles(user) == ["editor"]
    assert await store.is_in_role(user, "editor") is True
    assert await store.get_security_stamp(user) == "stamp-1"
    assert await store.get_password_hash(user) == "hash"
    assert await store.get_phone_number(user) == "+1 555 0100"

    await store.remove_claim(user, claim)
    await store.remove_from_role(user, "editor")

    assert await store.get_claims(user) == []
    assert await store.is_in_role(user, "editor") is False
    assert bucket.calls == []


@pytest.mark.asyncio
async def test_has_password_checks_for_non_blank_hash() -> None:
    store = _store(RecordingBucket())
    user = _alice()

    assert await store.has_password(user) is False
    await store.set_password_hash(user, "   ")
    assert await store.has_password(user) is False
    await store.set_password_hash(user, "$2b$12$hash")
    assert await store.has_password(user) is True


@pytest.mark.asyncio
async def test_persisting_mutators_replace_the_record() -> None:
    bucket = RecordingBucket()
    store = _store(bucket)
    user = _alice()
    await store.create(user)
    bucket.calls.clear()
    lockout_end = datetime(2031, 5, 1, 12, 0, tzinfo=timezone(timedelta(hours=2)))

    await store.set_lockout_end_date(user, lockout_end)
    await store.set_lockout_enabled(user, True)
    first = await store.increment_access_failed_count(user)
    second = await store.increment_access_failed_count(user)
    await store.set_phone_number_confirmed(user, True)
    await store.set_two_factor_enabled(user, True)
    await store.set_email_confirmed(user, True)

    assert (first, second) == (1, 2)
    assert bucket.writes() == [("replace", "u1")] * 7
    stored = await store.find_by_id("u1")
    assert stored is not None
    assert stored.lockout_end_utc == lockout_end
    assert stored.lockout_end_utc.tzinfo is not None
    assert await store.get_lockout_end_date(stored) == datetime(2031, 5, 1, 10, 0, tzinfo=UTC)
    assert await store.get_lockout_enabled(stored) is True
    assert await store.get_access_failed_count(stored) == 2
    assert await store.get_phone_number_confirmed(stored) is True
    assert await store.get_two_factor_enabled(stored) is True
    assert await store.get_email_confirmed(stored) is True

    await store.reset_access_failed_count(user)
    reloaded = await store.find_by_id("u1")
    assert reloaded is not None and reloaded.access_failed_count == 0


@pytest.mark.asyncio
async def test_in_memory_changes_persist_on_explicit_update() -> None:
    store = _store(InMemoryDocumentBucket())
    user = _alice()
    await store.create(user)
    await store.add_to_role(user, "admin")
    await store.set_password_hash(user, "hash")

    before = await store.find_by_id("u1")
    await store.update(user)
    after = await store.find_by_id("u1")

    assert before is not None and before.roles == [] and before.password_hash is None
    assert after is not None
    assert await store.get_roles(after) == ["admin"]
    assert after.password_hash == "hash"


@pytest.mark.asyncio
async def test_list_users_returns_only_user_records() -> None:
    store = _store(InMemoryDocumentBucket())
    await store.create(_alice())
    await store.create(IdentityUser(id="u2", username="bob@x.com", email="bob@x.com"))

    users = await store.list_users()

    assert sorted(user.id for user in users) == ["u1", "u2"]
