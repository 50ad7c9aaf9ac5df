"""
In-memory entity store.

Keeps every table in process memory. Each operation first yields to the
event loop, mirroring the suspension point a network-backed store has, so
concurrent requests interleave the way they would against a real backend.
The check-and-write that follows the yield runs without awaiting, which
makes every conditional write atomic on a single event loop.
"""

import asyncio
import copy
import logging
from collections.abc import AsyncIterator, Mapping
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from core.interfaces.entity_store import (
    ANY_ETAG,
    Entity,
    EntityExistsError,
    EntityNotFoundError,
    EntityStore,
    PreconditionFailedError,
    UpdateMode,
    matches_filters,
)

logger = logging.getLogger(__name__)


def new_etag() -> str:
    """Fresh opaque version token."""
    return f'W/"{uuid4().hex}"'


def _etag_matches(expected: str | None, current: str | None) -> bool:
    return not expected or expected == ANY_ETAG or expected == current


class InMemoryEntityStore(EntityStore):
    """Dict-backed entity store for tests and single-process development."""

    def __init__(self) -> None:
        self._tables: dict[str, dict[tuple[str, str], Entity]] = {}

    def _table(self, table: str) -> dict[tuple[str, str], Entity]:
        return self._tables.setdefault(table, {})

    @staticmethod
    def _snapshot(entity: Entity) -> Entity:
        return Entity(
            partition_key=entity.partition_key,
            row_key=entity.row_key,
            properties=copy.deepcopy(entity.properties),
            etag=entity.etag,
            timestamp=entity.timestamp,
        )

    async def _io(self) -> None:
        await asyncio.sleep(0)

    async def get(self, table: str, partition_key: str, row_key: str) -> Entity:
        await self._io()
        stored = self._table(table).get((partition_key, row_key))
        if stored is None:
            raise EntityNotFoundError(f"{table}/{partition_key}/{row_key}")
        return self._snapshot(stored)

    async def create(self, table: str, entity: Entity) -> str:
        await self._io()
        rows = self._table(table)
        key = (entity.partition_key, entity.row_key)
        if key in rows:
            raise EntityExistsError(f"{table}/{entity.partition_key}/{entity.row_key}")
        etag = new_etag()
        rows[key] = Entity(
            partition_key=entity.partition_key,
            row_key=entity.row_key,
            properties=copy.deepcopy(entity.properties),
            etag=etag,
            timestamp=datetime.now(UTC),
        )
        return etag

    async def update(
        self,
        table: str,
        entity: Entity,
        etag: str | None = None,
        mode: UpdateMode = UpdateMode.MERGE,
    ) -> str:
        await self._io()
        rows = self._table(table)
        key = (entity.partition_key, entity.row_key)
        stored = rows.get(key)
        if stored is None:
            raise EntityNotFoundError(f"{table}/{entity.partition_key}/{entity.row_key}")
        if not _etag_matches(etag, stored.etag):
            raise PreconditionFailedError(f"{table}/{entity.partition_key}/{entity.row_key}")

        if mode == UpdateMode.MERGE:
            properties = {**stored.properties, **copy.deepcopy(entity.properties)}
        else:
            properties = copy.deepcopy(entity.properties)

        new_tag = new_etag()
        rows[key] = Entity(
            partition_key=entity.partition_key,
            row_key=entity.row_key,
            properties=properties,
            etag=new_tag,
            timestamp=datetime.now(UTC),
        )
        return new_tag

    async def delete(
        self,
        table: str,
        partition_key: str,
        row_key: str,
        etag: str | None = None,
    ) -> None:
        await self._io()
        rows = self._table(table)
        stored = rows.get((partition_key, row_key))
        if stored is None:
            raise EntityNotFoundError(f"{table}/{partition_key}/{row_key}")
        if not _etag_matches(etag, stored.etag):
            raise PreconditionFailedError(f"{table}/{partition_key}/{row_key}")
        del rows[(partition_key, row_key)]

    async def query(
        self,
        table: str,
        partition_key: str | None = None,
        filters: Mapping[str, Any] | None = None,
    ) -> AsyncIterator[Entity]:
        await self._io()
        rows = self._table(table)
        # Snapshot at first read: writes made while the caller iterates are not observed
        snapshot = [
            self._snapshot(rows[key])
            for key in sorted(rows)
            if partition_key is None or key[0] == partition_key
        ]
        for entity in snapshot:
            if matches_filters(entity, filters):
                yield entity

    async def close(self) -> None:
        logger.debug("in-memory entity store closed (%d tables)", len(self._tables))
