"""Port for the document key-value bucket consumed by the identity stores."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from identity_store.domain.store_status import ResponseStatus


@dataclass(frozen=True)
class OperationResult:
    """Outcome of one key operation.

    `exception` is set only for client or transport faults; store-level
    refusals such as a missing key are reported through `status` alone.
    """

    success: bool
    status: ResponseStatus
    value: Any = None
    message: str | None = None
    exception: BaseException | None = None


@dataclass(frozen=True)
class QueryResult:
    """Outcome of one document query."""

    success: bool
    status: ResponseStatus
    rows: Sequence[Any] = ()
    message: str | None = None
    exception: BaseException | None = None


@dataclass(frozen=True)
class DocumentQuery:
    """Parameterized equality filter over top-level document fields."""

    where: Mapping[str, str] = field(default_factory=dict)
    limit: int | None = None

    def describe(self) -> str:
        """Render filter parameters for error reporting."""

        return ",".join(f"{name}={value}" for name, value in sorted(self.where.items()))


class DocumentBucketPort(Protocol):
    """Document bucket contract; outcomes are reported, never raised."""

    @property
    def name(self) -> str:
        """Return the bucket name."""

    async def get(self, key: str) -> OperationResult:
        """Read one document by key."""

    async def insert(self, key: str, value: Any) -> OperationResult:
        """Write one document; the key must not exist."""

    async def replace(self, key: str, value: Any) -> OperationResult:
        """Overwrite one document; the key must exist."""

    async def remove(self, key: str) -> OperationResult:
        """Delete one document; the key must exist."""

    async def query(self, query: DocumentQuery) -> QueryResult:
        """Return documents whose fields equal every filter parameter."""
