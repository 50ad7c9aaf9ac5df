# Interfaces (Abstract Contracts)
# Adapters implement these interfaces
from .entity_store import (
    ANY_ETAG,
    Entity,
    EntityExistsError,
    EntityNotFoundError,
    EntityStore,
    EntityStoreError,
    PreconditionFailedError,
    StoreUnavailableError,
    UpdateMode,
    matches_filters,
)

__all__ = [
    "ANY_ETAG",
    "Entity",
    "EntityStore",
    "EntityStoreError",
    "EntityNotFoundError",
    "EntityExistsError",
    "PreconditionFailedError",
    "StoreUnavailableError",
    "UpdateMode",
    "matches_filters",
]
