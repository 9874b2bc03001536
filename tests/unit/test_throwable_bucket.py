from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any

import pytest

from identity_store.application.ports.document_bucket_port import (
    DocumentQuery,
    OperationResult,
    QueryResult,
)
from identity_store.application.store_errors import StoreError
from identity_store.domain.store_status import ResponseStatus
from identity_store.infrastructure.store.throwable_bucket import ThrowableBucket


def _ok(value: Any = None) -> OperationResult:
    return OperationResult(success=True, status=ResponseStatus.SUCCESS, value=value)


def _fail(status: ResponseStatus, exception: BaseException | None = None) -> OperationResult:
    return OperationResult(success=False, status=status, exception=exception)


@dataclass
class ScriptedBucket:
    """Bucket returning a fixed result per operation and recording keys."""

    get_results: dict[str, OperationResult] = field(default_factory=dict)
    write_result: OperationResult = field(default_factory=_ok)
    query_result: QueryResult = field(
        default_factory=lambda: QueryResult(success=True, status=ResponseStatus.SUCCESS)
    )
    calls: list[tuple[str, str]] = field(default_factory=list)

    @property
    def name(self) -> str:
        return "scripted"

    async def get(self, key: str) -> OperationResult:
        self.calls.append(("get", key))
        await asyncio.sleep(0)
        return self.get_results.get(key, _fail(ResponseStatus.KEY_NOT_FOUND))

    async def insert(self, key: str, value: Any) -> OperationResult:
        self.calls.append(("insert", key))
        return self.write_result

    async def replace(self, key: str, value: Any) -> OperationResult:
        self.calls.append(("replace", key))
        return self.write_result

    async def remove(self, key: str) -> OperationResult:
        self.calls.append(("remove", key))
        return self.write_result

    async def query(self, query: DocumentQuery) -> QueryResult:
        self.calls.append(("query", query.describe()))
        return self.query_result


@pytest.mark.asyncio
async def test_get_returns_value_on_success() -> None:
    bucket = ScriptedBucket(get_results={"u1": _ok({"id": "u1"})})

    value = await ThrowableBucket(bucket).get("u1")

    assert value == {"id": "u1"}


@pytest.mark.asyncio
async def test_get_collapses_key_not_found_into_none() -> None:
    value = await ThrowableBucket(ScriptedBucket()).get("missing")

    assert value is None


@pytest.mark.asyncio
async def test_get_raises_store_error_for_other_statuses() -> None:
    bucket = ScriptedBucket(get_results={"u1": _fail(ResponseStatus.TEMPORARY_FAILURE)})

    with pytest.raises(StoreError) as exc_info:
        await ThrowableBucket(bucket).get("u1")

    assert exc_info.value.status is ResponseStatus.TEMPORARY_FAILURE
    assert exc_info.value.key == "u1"


@pytest.mark.asyncio
async def test_get_reraises_attached_client_fault_unchanged() -> None:
    fault = ConnectionResetError("socket closed")
    bucket = ScriptedBucket(get_results={"u1": _fail(ResponseStatus.CLIENT_FAILURE, fault)})

    with pytest.raises(ConnectionResetError) as exc_info:
        await ThrowableBucket(bucket).get("u1")

    assert exc_info.value is fault


@pytest.mark.asyncio
async def test_create_raises_store_error_when_key_exists() -> None:
    bucket = ScriptedBucket(write_result=_fail(ResponseStatus.KEY_EXISTS))

    with pytest.raises(StoreError) as exc_info:
        await ThrowableBucket(bucket).create("u1", {"id": "u1"})

    assert exc_info.value.status is ResponseStatus.KEY_EXISTS
    assert exc_info.value.key == "u1"


@pytest.mark.asyncio
async def test_update_treats_key_not_found_as_error() -> None:
    bucket = ScriptedBucket(write_result=_fail(ResponseStatus.KEY_NOT_FOUND))

    with pytest.raises(StoreError) as exc_info:
        await ThrowableBucket(bucket).update("u1", {"id": "u1"})

    assert exc_info.value.status is ResponseStatus.KEY_NOT_FOUND
    assert bucket.calls == [("replace", "u1")]


@pytest.mark.asyncio
async def test_delete_treats_key_not_found_as_error() -> None:
    bucket = ScriptedBucket(write_result=_fail(ResponseStatus.KEY_NOT_FOUND))

    with pytest.raises(StoreError):
        await ThrowableBucket(bucket).delete("u1")


@pytest.mark.asyncio
async def test_successful_writes_do_not_raise() -> None:
    bucket = ScriptedBucket()
    throwable = ThrowableBucket(bucket)

    await throwable.create("a", 1)
    await throwable.update("a", 2)
    await throwable.delete("a")

    assert bucket.calls == [("insert", "a"), ("replace", "a"), ("remove", "a")]


@pytest.mark.asyncio
async def test_get_all_preserves_input_order_and_absent_values() -> None:
    bucket = ScriptedBucket(get_results={"a": _ok("A"), "c": _ok("C")})

    values = await ThrowableBucket(bucket).get_all(["c", "b", "a"])

    assert values == ["C", None, "A"]


@pytest.mark.asyncio
async def test_get_all_abandons_batch_on_first_failure() -> None:
    bucket = ScriptedBucket(
        get_results={"a": _ok("A"), "b": _fail(ResponseStatus.TEMPORARY_FAILURE)}
    )

    with pytest.raises(StoreError):
        await ThrowableBucket(bucket).get_all(["a", "b"])


@pytest.mark.asyncio
async def test_get_all_results_reports_each_key_outcome() -> None:
    bucket = ScriptedBucket(
        get_results={"a": _ok("A"), "b": _fail(ResponseStatus.TEMPORARY_FAILURE)}
    )

    lookups = await ThrowableBucket(bucket).get_all_results(["a", "b", "c"])

    assert [lookup.key for lookup in lookups] == ["a", "b", "c"]
    assert lookups[0].ok and lookups[0].value == "A"
    assert not lookups[1].ok
    assert isinstance(lookups[1].error, StoreError)
    assert lookups[2].ok and lookups[2].value is None


@pytest.mark.asyncio
async def test_query_raises_store_error_keyed_by_parameters() -> None:
    bucket = ScriptedBucket(
        query_result=QueryResult(success=False, status=ResponseStatus.QUERY_ERROR)
    )

    with pytest.raises(StoreError) as exc_info:
        await ThrowableBucket(bucket).query(DocumentQuery(where={"type": "role", "name": "x"}))

    assert exc_info.value.status is ResponseStatus.QUERY_ERROR
    assert exc_info.value.key == "name=x,type=role"
