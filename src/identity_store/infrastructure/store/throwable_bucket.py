"""Bucket wrapper that turns non-success responses into raised errors."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, NoReturn

from identity_store.application.ports.document_bucket_port import (
    DocumentBucketPort,
    DocumentQuery,
    OperationResult,
    QueryResult,
)
from identity_store.application.store_errors import StoreError
from identity_store.domain.store_status import ResponseStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KeyLookup:
    """Per-key outcome of a batch read; exactly one of value/error is meaningful."""

    key: str
    value: Any = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ThrowableBucket:
    """Wrap CRUD bucket calls so that every failure is raised.

    Reads collapse `KEY_NOT_FOUND` into `None`. Writes treat every non-success
    status as an error. Client faults attached to a result are re-raised
    unchanged; other refusals become `StoreError`.
    """

    def __init__(self, bucket: DocumentBucketPort) -> None:
        self._bucket = bucket

    @property
    def name(self) -> str:
        return self._bucket.name

    async def get(self, key: str) -> Any:
        """Return the document at `key`, or None when the key is absent."""

        result = await self._bucket.get(key)
        if result.success:
            return result.value
        if result.status is ResponseStatus.KEY_NOT_FOUND:
            return None
        _raise_failure(result, key=key, operation="get")

    async def create(self, key: str, value: Any) -> None:
        """Insert a new document; an existing key is an error."""

        result = await self._bucket.insert(key, value)
        if not result.success:
            _raise_failure(result, key=key, operation="create")

    async def update(self, key: str, value: Any) -> None:
        """Replace an existing document; a missing key is an error."""

        result = await self._bucket.replace(key, value)
        if not result.success:
            _raise_failure(result, key=key, operation="update")

    async def delete(self, key: str) -> None:
        """Remove an existing document; a missing key is an error."""

        result = await self._bucket.remove(key)
        if not result.success:
            _raise_failure(result, key=key, operation="delete")

    async def get_all(self, keys: Iterable[str]) -> list[Any]:
        """Read keys concurrently and return values in input order.

        All-or-nothing: the first failed lookup abandons the batch and its
        error is raised without reporting which position failed. Absent keys
        yield None like `get`.
        """

        return list(await asyncio.gather(*(self.get(key) for key in keys)))

    async def get_all_results(self, keys: Iterable[str]) -> list[KeyLookup]:
        """Read keys concurrently and report one outcome per key.

        Public batch read for consumers that need to tell which keys failed;
        the stores use the all-or-nothing `get_all`.
        """

        ordered = list(keys)
        outcomes = await asyncio.gather(
            *(self.get(key) for key in ordered),
            return_exceptions=True,
        )
        lookups: list[KeyLookup] = []
        for key, outcome in zip(ordered, outcomes, strict=True):
            if isinstance(outcome, Exception):
                lookups.append(KeyLookup(key=key, error=outcome))
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                lookups.append(KeyLookup(key=key, value=outcome))
        return lookups

    async def query(self, query: DocumentQuery) -> list[Any]:
        """Run one document query and return its rows."""

        result = await self._bucket.query(query)
        if not result.success:
            _raise_failure(result, key=query.describe(), operation="query")
        return list(result.rows)


def _raise_failure(
    result: OperationResult | QueryResult,
    *,
    key: str,
    operation: str,
) -> NoReturn:
    logger.warning(
        "store_operation_failed operation=%s key=%s status=%s",
        operation,
        key,
        result.status.value,
    )
    if result.exception is not None:
        raise result.exception
    raise StoreError(status=result.status, key=key, message=result.message)
