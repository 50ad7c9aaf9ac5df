from .connection import (
    close_db,
    create_engine,
    create_session_maker,
    init_db,
    session_scope,
)
from .models import Base, EntityRecord

__all__ = [
    "Base",
    "EntityRecord",
    "create_engine",
    "create_session_maker",
    "session_scope",
    "init_db",
    "close_db",
]
