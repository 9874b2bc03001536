"""Error raised when a document bucket refuses an operation."""

from __future__ import annotations

from identity_store.domain.store_status import ResponseStatus


class StoreError(Exception):
    """Raised for every non-success bucket response not treated as absent."""

    def __init__(
        self,
        *,
        status: ResponseStatus,
        key: str | None = None,
        message: str | None = None,
    ) -> None:
        detail = message or status.value
        super().__init__(f"store operation failed: status={status.value} key={key} detail={detail}")
        self.status = status
        self.key = key
        self.message = message
