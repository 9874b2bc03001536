"""Role store backed by a document bucket."""

from __future__ import annotations

import logging

from identity_store.application.ports.document_bucket_port import DocumentQuery
from identity_store.application.store_errors import StoreError
from identity_store.domain.identity.role import IdentityRole
from identity_store.domain.store_status import ResponseStatus
from identity_store.infrastructure.store.documents import (
    ROLE_DOCUMENT_TYPE,
    TYPE_FIELD,
    is_document_of,
    role_from_document,
    role_to_document,
)
from identity_store.infrastructure.store.throwable_bucket import ThrowableBucket

logger = logging.getLogger(__name__)


class DocumentRoleStore:
    """Role repository keyed by role id; name lookup goes through a query."""

    def __init__(self, bucket: ThrowableBucket) -> None:
        self._bucket = bucket

    async def create(self, role: IdentityRole) -> None:
        await self._bucket.create(role.id, role_to_document(role))
        logger.info("role_created role_id=%s name=%s", role.id, role.name)

    async def update(self, role: IdentityRole) -> None:
        await self._bucket.update(role.id, role_to_document(role))

    async def delete(self, role: IdentityRole) -> None:
        await self._bucket.delete(role.id)
        logger.info("role_deleted role_id=%s", role.id)

    async def find_by_id(self, role_id: str) -> IdentityRole | None:
        document = await self._bucket.get(role_id)
        if not is_document_of(document, ROLE_DOCUMENT_TYPE):
            return None
        return role_from_document(document)

    async def find_by_name(self, role_name: str) -> IdentityRole:
        """Return the first role named `role_name`.

        Raises `StoreError` with `KEY_NOT_FOUND` when the query succeeds
        without rows.
        """

        rows = await self._bucket.query(
            DocumentQuery(where={TYPE_FIELD: ROLE_DOCUMENT_TYPE, "name": role_name}, limit=1)
        )
        if not rows:
            raise StoreError(
                status=ResponseStatus.KEY_NOT_FOUND,
                key=role_name,
                message="no role matches name",
            )
        return role_from_document(rows[0])

    async def list_roles(self) -> list[IdentityRole]:
        rows = await self._bucket.query(DocumentQuery(where={TYPE_FIELD: ROLE_DOCUMENT_TYPE}))
        return [role_from_document(row) for row in rows]
