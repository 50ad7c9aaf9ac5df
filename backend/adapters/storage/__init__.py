"""Entity store adapters."""

import logging

from core.interfaces.entity_store import EntityStore
from infrastructure.config import Settings

from .memory_store import InMemoryEntityStore
from .sql_store import SqlEntityStore

logger = logging.getLogger(__name__)


def get_entity_store(settings: Settings) -> EntityStore:
    """
    Build the entity store configured by *settings*.

    Returns:
        SqlEntityStore for ``STORAGE_BACKEND=sql`` (default),
        InMemoryEntityStore for ``STORAGE_BACKEND=memory``
    """
    if settings.storage_backend == "memory":
        logger.warning("Using in-memory entity store - signups are lost on restart")
        return InMemoryEntityStore()
    return SqlEntityStore.from_settings(settings)


__all__ = [
    "InMemoryEntityStore",
    "SqlEntityStore",
    "get_entity_store",
]
