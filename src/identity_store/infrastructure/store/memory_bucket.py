"""In-process document bucket with per-key atomicity."""

from __future__ import annotations

import asyncio
import copy
from typing import Any

from identity_store.application.ports.document_bucket_port import (
    DocumentQuery,
    OperationResult,
    QueryResult,
)
from identity_store.domain.store_status import ResponseStatus


class InMemoryDocumentBucket:
    """Dict-backed bucket; values are deep-copied on the way in and out."""

    def __init__(self, name: str = "default") -> None:
        self._name = name
        self._documents: dict[str, Any] = {}
        self._lock = asyncio.Lock()

    @property
    def name(self) -> str:
        return self._name

    def keys(self) -> set[str]:
        """Return a snapshot of stored keys."""

        return set(self._documents)

    async def get(self, key: str) -> OperationResult:
        if not key:
            return _invalid_key()
        async with self._lock:
            if key not in self._documents:
                return OperationResult(success=False, status=ResponseStatus.KEY_NOT_FOUND)
            value = copy.deepcopy(self._documents[key])
        return OperationResult(success=True, status=ResponseStatus.SUCCESS, value=value)

    async def insert(self, key: str, value: Any) -> OperationResult:
        if not key:
            return _invalid_key()
        async with self._lock:
            if key in self._documents:
                return OperationResult(success=False, status=ResponseStatus.KEY_EXISTS)
            self._documents[key] = copy.deepcopy(value)
        return OperationResult(success=True, status=ResponseStatus.SUCCESS)

    async def replace(self, key: str, value: Any) -> OperationResult:
        if not key:
            return _invalid_key()
        async with self._lock:
            if key not in self._documents:
                return OperationResult(success=False, status=ResponseStatus.KEY_NOT_FOUND)
            self._documents[key] = copy.deepcopy(value)
        return OperationResult(success=True, status=ResponseStatus.SUCCESS)

    async def remove(self, key: str) -> OperationResult:
        if not key:
            return _invalid_key()
        async with self._lock:
            if key not in self._documents:
                return OperationResult(success=False, status=ResponseStatus.KEY_NOT_FOUND)
            del self._documents[key]
        return OperationResult(success=True, status=ResponseStatus.SUCCESS)

    async def query(self, query: DocumentQuery) -> QueryResult:
        async with self._lock:
            rows = [
                copy.deepcopy(document)
                for _, document in sorted(self._documents.items())
                if isinstance(document, dict)
                and all(document.get(field) == value for field, value in query.where.items())
            ]
        if query.limit is not None:
            rows = rows[: query.limit]
        return QueryResult(success=True, status=ResponseStatus.SUCCESS, rows=rows)


def _invalid_key() -> OperationResult:
    return OperationResult(
        success=False,
        status=ResponseStatus.INVALID_ARGUMENTS,
        message="key cannot be empty",
    )
