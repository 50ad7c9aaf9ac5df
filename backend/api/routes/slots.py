"""
Slot listing (public) and slot administration (Microsoft-authenticated).
"""

import logging
from typing import List

from fastapi import APIRouter, Response, status

from api.dependencies import AdminDep, QueryDep, SlotAdminDep
from api.schemas import (
    SlotCreateRequest,
    SlotCreateResponse,
    SlotResponse,
    SlotUpdateRequest,
    SlotUpdateResponse,
)
from api.utils import http_error
from core.errors import SignupServiceError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects/{project_id}/slots", tags=["Slots"])


# =============================================================================
# Public
# =============================================================================


@router.get("", response_model=List[SlotResponse])
async def list_slots(project_id: str, queries: QueryDep):
    """List every slot of a project with normalized capacity counters."""
    try:
        slots = await queries.list_slots(project_id)
    except SignupServiceError as e:
        raise http_error(e)
    return [SlotResponse.model_validate(slot) for slot in slots]


@router.get("/open", response_model=List[SlotResponse])
async def list_open_slots(project_id: str, queries: QueryDep):
    """List slots that are available and still have spots remaining."""
    try:
        slots = await queries.list_open_slots(project_id)
    except SignupServiceError as e:
        raise http_error(e)
    return [SlotResponse.model_validate(slot) for slot in slots]


# =============================================================================
# Admin
# =============================================================================


@router.post("", response_model=SlotCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_slot(
    project_id: str,
    data: SlotCreateRequest,
    admin: AdminDep,
    slots: SlotAdminDep,
):
    """Create a slot in a project."""
    try:
        slot = await slots.create_slot(
            project_id,
            task=data.task,
            date=data.date,
            time=data.time,
            capacity=data.capacity,
        )
    except SignupServiceError as e:
        raise http_error(e)

    logger.info("Slot %s created by %s", slot.id, admin.email or admin.subject)
    return SlotCreateResponse(slot_id=slot.id, slot=SlotResponse.model_validate(slot))


@router.patch("/{slot_id}", response_model=SlotUpdateResponse)
async def update_slot(
    project_id: str,
    slot_id: str,
    data: SlotUpdateRequest,
    admin: AdminDep,
    slots: SlotAdminDep,
):
    """Update slot fields. Only fields present in the body are changed."""
    try:
        slot = await slots.update_slot(project_id, slot_id, data.model_dump(exclude_unset=True))
    except SignupServiceError as e:
        raise http_error(e)
    return SlotUpdateResponse(slot=SlotResponse.model_validate(slot))


@router.delete("/{slot_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_slot(
    project_id: str,
    slot_id: str,
    admin: AdminDep,
    slots: SlotAdminDep,
):
    """Delete a slot and its volunteer signups."""
    try:
        await slots.delete_slot(project_id, slot_id)
    except SignupServiceError as e:
        raise http_error(e)

    logger.info("Slot %s deleted by %s", slot_id, admin.email or admin.subject)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
