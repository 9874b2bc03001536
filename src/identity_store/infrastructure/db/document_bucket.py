"""SQLAlchemy adapter exposing one table partition as a document bucket."""

from __future__ import annotations

import logging
from typing import Any, cast

import sqlalchemy as sa
from sqlalchemy.engine import CursorResult
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from identity_store.application.ports.document_bucket_port import (
    DocumentBucketPort,
    DocumentQuery,
    OperationResult,
    QueryResult,
)
from identity_store.domain.store_status import ResponseStatus
from identity_store.infrastructure.db.metadata import documents

logger = logging.getLogger(__name__)


class SqlAlchemyDocumentBucket(DocumentBucketPort):
    """Document bucket backed by SQLAlchemy async sessions.

    Database faults are reported as `CLIENT_FAILURE` results carrying the
    original exception.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        bucket_name: str,
    ) -> None:
        self._session_factory = session_factory
        self._bucket_name = bucket_name

    @property
    def name(self) -> str:
        return self._bucket_name

    async def get(self, key: str) -> OperationResult:
        if not key:
            return _empty_key()
        statement = sa.select(documents.c.body).where(self._matches(key)).limit(1)

        try:
            async with self._session_factory() as session:
                result = await session.execute(statement)
        except SQLAlchemyError as error:
            return _client_failure(error, key=key)

        row = result.first()
        if row is None:
            return OperationResult(success=False, status=ResponseStatus.KEY_NOT_FOUND)
        return OperationResult(success=True, status=ResponseStatus.SUCCESS, value=row.body)

    async def insert(self, key: str, value: Any) -> OperationResult:
        if not key:
            return _empty_key()
        statement = sa.insert(documents).values(
            bucket_name=self._bucket_name,
            doc_key=key,
            body=value,
        )

        try:
            async with self._session_factory() as session:
                try:
                    await session.execute(statement)
                    await session.commit()
                except IntegrityError:
                    await session.rollback()
                    return OperationResult(success=False, status=ResponseStatus.KEY_EXISTS)
        except SQLAlchemyError as error:
            return _client_failure(error, key=key)

        return OperationResult(success=True, status=ResponseStatus.SUCCESS)

    async def replace(self, key: str, value: Any) -> OperationResult:
        if not key:
            return _empty_key()
        statement = (
            sa.update(documents)
            .where(self._matches(key))
            .values(body=value, updated_at=sa.func.current_timestamp())
        )
        return await self._execute_keyed_write(statement, key=key)

    async def remove(self, key: str) -> OperationResult:
        if not key:
            return _empty_key()
        statement = sa.delete(documents).where(self._matches(key))
        return await self._execute_keyed_write(statement, key=key)

    async def query(self, query: DocumentQuery) -> QueryResult:
        statement = sa.select(documents.c.body).where(
            documents.c.bucket_name == self._bucket_name,
            *(documents.c.body[field].as_string() == value for field, value in query.where.items()),
        ).order_by(documents.c.doc_key)
        if query.limit is not None:
            statement = statement.limit(query.limit)

        try:
            async with self._session_factory() as session:
                result = await session.execute(statement)
        except SQLAlchemyError as error:
            logger.warning(
                "document_query_failed bucket=%s filter=%s error=%s",
                self._bucket_name,
                query.describe(),
                error,
            )
            return QueryResult(
                success=False,
                status=ResponseStatus.QUERY_ERROR,
                message=str(error),
                exception=error,
            )

        return QueryResult(
            success=True,
            status=ResponseStatus.SUCCESS,
            rows=[row.body for row in result],
        )

    def _matches(self, key: str) -> sa.ColumnElement[bool]:
        return sa.and_(
            documents.c.bucket_name == self._bucket_name,
            documents.c.doc_key == key,
        )

    async def _execute_keyed_write(
        self,
        statement: sa.Update | sa.Delete,
        *,
        key: str,
    ) -> OperationResult:
        """Run one single-key update/delete; zero affected rows means not found."""

        try:
            async with self._session_factory() as session:
                result = cast(CursorResult[Any], await session.execute(statement))
                await session.commit()
        except SQLAlchemyError as error:
            return _client_failure(error, key=key)

        if int(result.rowcount or 0) == 0:
            return OperationResult(success=False, status=ResponseStatus.KEY_NOT_FOUND)
        return OperationResult(success=True, status=ResponseStatus.SUCCESS)


def _empty_key() -> OperationResult:
    return OperationResult(
        success=False,
        status=ResponseStatus.INVALID_ARGUMENTS,
        message="key cannot be empty",
    )


def _client_failure(error: SQLAlchemyError, *, key: str) -> OperationResult:
    logger.warning("document_bucket_client_failure key=%s error=%s", key, error)
    return OperationResult(
        success=False,
        status=ResponseStatus.CLIENT_FAILURE,
        message=str(error),
        exception=error,
    )
