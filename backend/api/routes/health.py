"""Health check endpoints."""

import asyncio
import logging
from datetime import UTC, datetime

from fastapi import APIRouter

from api.dependencies import SettingsDep, StoreDep
from core.interfaces.entity_store import EntityStore

logger = logging.getLogger(__name__)

router = APIRouter()


async def _check_store(store: EntityStore, table: str) -> None:
    # Reading at most one entity proves the backend answers
    async for _ in store.query(table):
        break


@router.get("/health")
async def health_check(settings: SettingsDep):
    """Basic health check."""
    return {
        "status": "healthy",
        "app": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
        "timestamp": datetime.now(UTC).isoformat(),
    }


@router.get("/health/store")
async def health_check_store(settings: SettingsDep, store: StoreDep):
    """Health check with entity store connectivity."""
    try:
        await asyncio.wait_for(_check_store(store, settings.projects_table), timeout=5.0)
        store_status = "connected"
    except TimeoutError:
        logger.error("Health check store timeout")
        store_status = "error: store timeout"
    except Exception as e:
        logger.error("Health check store error: %s", type(e).__name__)
        store_status = "error: store check failed"

    return {
        "status": "healthy" if store_status == "connected" else "degraded",
        "app": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
        "storageBackend": settings.storage_backend,
        "store": store_status,
        "timestamp": datetime.now(UTC).isoformat(),
    }
