"""
Project listing with slot capacity totals.
"""

from typing import List

from fastapi import APIRouter

from api.dependencies import QueryDep
from api.schemas import ProjectResponse
from api.utils import http_error
from core.errors import SignupServiceError

router = APIRouter(prefix="/projects", tags=["Projects"])


@router.get("", response_model=List[ProjectResponse])
async def list_projects(queries: QueryDep):
    """
    List every project with its slot totals.

    A project whose slots could not be read is returned with zero totals.
    """
    try:
        projects = await queries.list_projects_with_totals()
    except SignupServiceError as e:
        raise http_error(e)
    return [ProjectResponse.model_validate(project) for project in projects]
