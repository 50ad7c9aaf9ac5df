"""API Routes."""

from fastapi import APIRouter

from .health import router as health_router
from .projects import router as projects_router
from .signups import router as signups_router
from .slots import router as slots_router
from .volunteers import router as volunteers_router

# Create main API router
api_router = APIRouter()

# Include route modules
api_router.include_router(health_router, tags=["Health"])
api_router.include_router(projects_router)
api_router.include_router(slots_router)
api_router.include_router(signups_router)
api_router.include_router(volunteers_router)
