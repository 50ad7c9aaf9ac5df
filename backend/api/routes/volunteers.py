"""
Volunteer management for administrators.
"""

import logging

from fastapi import APIRouter

from api.dependencies import AdminDep, QueryDep, WithdrawalDep
from api.schemas import SlotResponse, VolunteerListResponse, VolunteerResponse, WithdrawResponse
from api.utils import http_error
from core.errors import SignupServiceError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects/{project_id}/slots/{slot_id}/volunteers", tags=["Volunteers"])

REMOVED_MESSAGE = "Volunteer removed from slot."
STALE_COUNTS_MESSAGE = "Volunteer removed, but slot counts failed to update. Please refresh."


@router.get("", response_model=VolunteerListResponse)
async def list_volunteers(
    project_id: str,
    slot_id: str,
    admin: AdminDep,
    queries: QueryDep,
):
    """List a slot's volunteers, earliest signup first."""
    try:
        volunteers = await queries.list_volunteers(project_id, slot_id)
    except SignupServiceError as e:
        raise http_error(e)
    return VolunteerListResponse(
        volunteers=[VolunteerResponse.model_validate(v) for v in volunteers]
    )


@router.delete("/{volunteer_id}", response_model=WithdrawResponse)
async def remove_volunteer(
    project_id: str,
    slot_id: str,
    volunteer_id: str,
    admin: AdminDep,
    withdrawals: WithdrawalDep,
):
    """
    Remove a volunteer from a slot.

    When the volunteer is removed but the slot counters cannot be updated,
    responds 200 with ``countsStale: true`` and no slot.
    """
    try:
        result = await withdrawals.withdraw(project_id, slot_id, volunteer_id)
    except SignupServiceError as e:
        raise http_error(e)

    logger.info("Volunteer %s removed by %s", volunteer_id, admin.email or admin.subject)
    return WithdrawResponse(
        message=STALE_COUNTS_MESSAGE if result.counts_stale else REMOVED_MESSAGE,
        slot=SlotResponse.model_validate(result.slot) if result.slot else None,
        volunteer=VolunteerResponse.model_validate(result.volunteer),
        counts_stale=result.counts_stale,
    )
