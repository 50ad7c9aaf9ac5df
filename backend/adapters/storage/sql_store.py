"""
SQL entity store.

Persists every logical table in the single ``entities`` table through
SQLAlchemy's async engine (asyncpg in production, aiosqlite locally and in
tests). Conditional writes are compare-and-swap updates: the row is only
written while it still carries the version token that was read, checked via
the statement's rowcount.
"""

import logging
from collections.abc import AsyncIterator, Iterator, Mapping
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import delete as sa_delete
from sqlalchemy import func, select
from sqlalchemy import update as sa_update
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from core.interfaces.entity_store import (
    ANY_ETAG,
    Entity,
    EntityExistsError,
    EntityNotFoundError,
    EntityStore,
    PreconditionFailedError,
    StoreUnavailableError,
    UpdateMode,
    matches_filters,
)
from infrastructure.config import Settings
from infrastructure.database import (
    EntityRecord,
    close_db,
    create_engine,
    create_session_maker,
    init_db,
    session_scope,
)

from .memory_store import new_etag

logger = logging.getLogger(__name__)


def _key_clause(table: str, partition_key: str, row_key: str):
    return (
        EntityRecord.table_name == table,
        EntityRecord.partition_key == partition_key,
        EntityRecord.row_key == row_key,
    )


def _to_entity(record: EntityRecord) -> Entity:
    return Entity(
        partition_key=record.partition_key,
        row_key=record.row_key,
        properties=dict(record.properties or {}),
        etag=record.etag,
        timestamp=record.updated_at,
    )


class SqlEntityStore(EntityStore):
    """Entity store on top of a relational database."""

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        engine: AsyncEngine | None = None,
    ):
        """
        Args:
            session_maker: Factory for sessions against the entities table
            engine: Engine owned by this store; created tables on
                ``ensure_ready`` and disposed on ``close`` when given
        """
        self._session_maker = session_maker
        self._engine = engine

    @classmethod
    def from_settings(cls, settings: Settings) -> "SqlEntityStore":
        engine = create_engine(settings)
        return cls(create_session_maker(engine), engine=engine)

    @contextmanager
    def _translate_errors(self, operation: str) -> Iterator[None]:
        try:
            yield
        except IntegrityError:
            raise
        except (OperationalError, DBAPIError, OSError, TimeoutError) as e:
            logger.error("Entity store %s failed: %s", operation, type(e).__name__)
            raise StoreUnavailableError(f"{operation} failed: {type(e).__name__}") from e

    async def ensure_ready(self) -> None:
        if self._engine is not None:
            with self._translate_errors("init"):
                await init_db(self._engine)

    async def close(self) -> None:
        if self._engine is not None:
            await close_db(self._engine)

    async def get(self, table: str, partition_key: str, row_key: str) -> Entity:
        with self._translate_errors("get"):
            async with self._session_maker() as session:
                result = await session.execute(
                    select(EntityRecord).where(*_key_clause(table, partition_key, row_key))
                )
                record = result.scalar_one_or_none()
        if record is None:
            raise EntityNotFoundError(f"{table}/{partition_key}/{row_key}")
        return _to_entity(record)

    async def create(self, table: str, entity: Entity) -> str:
        etag = new_etag()
        record = EntityRecord(
            table_name=table,
            partition_key=entity.partition_key,
            row_key=entity.row_key,
            etag=etag,
            properties=dict(entity.properties),
        )
        try:
            with self._translate_errors("create"):
                async with session_scope(self._session_maker) as session:
                    session.add(record)
        except IntegrityError as e:
            raise EntityExistsError(f"{table}/{entity.partition_key}/{entity.row_key}") from e
        return etag

    async def update(
        self,
        table: str,
        entity: Entity,
        etag: str | None = None,
        mode: UpdateMode = UpdateMode.MERGE,
    ) -> str:
        keys = _key_clause(table, entity.partition_key, entity.row_key)
        new_tag = new_etag()
        with self._translate_errors("update"):
            async with session_scope(self._session_maker) as session:
                current = (
                    await session.execute(
                        select(EntityRecord.etag, EntityRecord.properties).where(*keys)
                    )
                ).one_or_none()
                if current is None:
                    raise EntityNotFoundError(f"{table}/{entity.partition_key}/{entity.row_key}")
                if etag and etag != ANY_ETAG and etag != current.etag:
                    raise PreconditionFailedError(
                        f"{table}/{entity.partition_key}/{entity.row_key}"
                    )

                if mode == UpdateMode.MERGE:
                    properties = {**(current.properties or {}), **entity.properties}
                else:
                    properties = dict(entity.properties)

                result = await session.execute(
                    sa_update(EntityRecord)
                    .where(*keys, EntityRecord.etag == current.etag)
                    .values(properties=properties, etag=new_tag, updated_at=datetime.now(UTC))
                    .execution_options(synchronize_session=False)
                )
                # Another writer replaced the row between our read and write
                if result.rowcount != 1:
                    raise PreconditionFailedError(
                        f"{table}/{entity.partition_key}/{entity.row_key}"
                    )
        return new_tag

    async def delete(
        self,
        table: str,
        partition_key: str,
        row_key: str,
        etag: str | None = None,
    ) -> None:
        keys = _key_clause(table, partition_key, row_key)
        stmt = sa_delete(EntityRecord).where(*keys)
        if etag and etag != ANY_ETAG:
            stmt = stmt.where(EntityRecord.etag == etag)

        with self._translate_errors("delete"):
            async with session_scope(self._session_maker) as session:
                result = await session.execute(stmt.execution_options(synchronize_session=False))
                if result.rowcount == 0:
                    remaining = await session.scalar(
                        select(func.count()).select_from(EntityRecord).where(*keys)
                    )
                    if remaining:
                        raise PreconditionFailedError(f"{table}/{partition_key}/{row_key}")
                    raise EntityNotFoundError(f"{table}/{partition_key}/{row_key}")

    async def query(
        self,
        table: str,
        partition_key: str | None = None,
        filters: Mapping[str, Any] | None = None,
    ) -> AsyncIterator[Entity]:
        stmt = select(EntityRecord).where(EntityRecord.table_name == table)
        if partition_key is not None:
            stmt = stmt.where(EntityRecord.partition_key == partition_key)
        stmt = stmt.order_by(EntityRecord.partition_key, EntityRecord.row_key)

        with self._translate_errors("query"):
            async with self._session_maker() as session:
                records = (await session.scalars(stmt)).all()

        # Property predicates are evaluated after the partition scan; JSON
        # operators differ between PostgreSQL and SQLite
        for record in records:
            entity = _to_entity(record)
            if matches_filters(entity, filters):
                yield entity
