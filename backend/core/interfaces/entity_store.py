"""
Entity store contract.

A keyed-entity store addressed by ``(table, partition key, row key)`` with
optimistic concurrency through an opaque version token (``etag``). Adapters
in ``adapters.storage`` implement this interface.
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

# Matches any version token; an unconditional write.
ANY_ETAG = "*"


class UpdateMode(StrEnum):
    """How ``EntityStore.update`` applies properties to the stored entity."""

    MERGE = "merge"
    REPLACE = "replace"


@dataclass
class Entity:
    """A stored entity and the version token it was read at."""

    partition_key: str
    row_key: str
    properties: dict[str, Any] = field(default_factory=dict)
    etag: str | None = None
    timestamp: datetime | None = None


def matches_filters(entity: Entity, filters: Mapping[str, Any] | None) -> bool:
    """True when every filtered property of *entity* equals the required value."""
    if not filters:
        return True
    return all(entity.properties.get(name) == value for name, value in filters.items())


# Custom Exceptions
class EntityStoreError(Exception):
    """Base exception for entity store failures."""

    pass


class EntityNotFoundError(EntityStoreError):
    """Raised when the addressed entity does not exist."""

    pass


class EntityExistsError(EntityStoreError):
    """Raised when creating an entity whose key is already taken."""

    pass


class PreconditionFailedError(EntityStoreError):
    """Raised when a conditional write's version token no longer matches."""

    pass


class StoreUnavailableError(EntityStoreError):
    """Raised when the backend cannot be reached or failed transiently."""

    pass


class EntityStore(ABC):
    """Abstract async keyed-entity store with optimistic concurrency."""

    @abstractmethod
    async def get(self, table: str, partition_key: str, row_key: str) -> Entity:
        """
        Fetch a single entity.

        Raises:
            EntityNotFoundError: If no entity has this key
        """
        ...

    @abstractmethod
    async def create(self, table: str, entity: Entity) -> str:
        """
        Insert a new entity and return its version token.

        Raises:
            EntityExistsError: If the key is already taken
        """
        ...

    @abstractmethod
    async def update(
        self,
        table: str,
        entity: Entity,
        etag: str | None = None,
        mode: UpdateMode = UpdateMode.MERGE,
    ) -> str:
        """
        Write *entity*'s properties and return the new version token.

        When *etag* is given (and is not ``*``) the write only succeeds if
        the stored entity still carries that token.

        Raises:
            EntityNotFoundError: If the entity does not exist
            PreconditionFailedError: If the version token no longer matches
        """
        ...

    @abstractmethod
    async def delete(
        self,
        table: str,
        partition_key: str,
        row_key: str,
        etag: str | None = None,
    ) -> None:
        """
        Delete an entity, optionally gated on its version token.

        Raises:
            EntityNotFoundError: If the entity does not exist
            PreconditionFailedError: If the version token no longer matches
        """
        ...

    @abstractmethod
    def query(
        self,
        table: str,
        partition_key: str | None = None,
        filters: Mapping[str, Any] | None = None,
    ) -> AsyncIterator[Entity]:
        """
        Lazily enumerate entities in *table*.

        Restricted to *partition_key* when given; *filters* maps property
        names to the value they must equal. Each call starts a fresh,
        finite enumeration.
        """
        ...

    async def ensure_ready(self) -> None:
        """Create backing tables if the backend needs them."""
        return None

    async def close(self) -> None:
        """Release backend resources."""
        return None
