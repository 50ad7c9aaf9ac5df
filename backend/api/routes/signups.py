"""
Public volunteer signup.
"""

from typing import Optional

from fastapi import APIRouter, Request, status

from api.dependencies import SignupDep
from api.middleware.rate_limit import get_rate_limit, limiter
from api.schemas import SignupRequest, SignupResponse, SlotResponse, VolunteerResponse
from api.utils import http_error
from core.domain.signup import VolunteerInfo
from core.errors import SignupServiceError

router = APIRouter(prefix="/projects/{project_id}/slots", tags=["Signups"])


@router.post(
    "/{slot_id}/signup",
    response_model=SignupResponse,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(get_rate_limit("signup"))
async def signup(
    request: Request,
    project_id: str,
    slot_id: str,
    coordinator: SignupDep,
    data: Optional[SignupRequest] = None,
):
    """
    Sign up for a slot.

    Returns 409 when the slot is full or was taken concurrently.
    """
    data = data or SignupRequest()
    volunteer = VolunteerInfo(
        first_name=data.first_name or "",
        last_name=data.last_name or "",
        email=data.email or "",
        phone=data.phone or "",
    )
    try:
        result = await coordinator.signup(project_id, slot_id, volunteer)
    except SignupServiceError as e:
        raise http_error(e)

    return SignupResponse(
        slot=SlotResponse.model_validate(result.slot),
        volunteer=VolunteerResponse.model_validate(result.volunteer),
    )
