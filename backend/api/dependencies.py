"""
API dependencies: entity store, services and admin authentication.

The store, token validator and settings live on ``app.state``; they are
created once in ``main.create_app``.
"""

import logging
from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status

from core.interfaces.entity_store import EntityStore
from core.security import MicrosoftAuthConfigError, MicrosoftIdentity, MicrosoftTokenValidator
from infrastructure.config import Settings
from services import SignupCoordinator, SlotAdminService, SlotQueryService, WithdrawalCoordinator

logger = logging.getLogger(__name__)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> EntityStore:
    return request.app.state.store


def get_token_validator(request: Request) -> MicrosoftTokenValidator:
    return request.app.state.token_validator


SettingsDep = Annotated[Settings, Depends(get_app_settings)]
StoreDep = Annotated[EntityStore, Depends(get_store)]


def get_signup_coordinator(store: StoreDep, settings: SettingsDep) -> SignupCoordinator:
    return SignupCoordinator(
        store,
        slots_table=settings.slots_table,
        volunteers_table=settings.volunteers_table,
        max_attempts=settings.signup_max_attempts,
    )


def get_withdrawal_coordinator(store: StoreDep, settings: SettingsDep) -> WithdrawalCoordinator:
    return WithdrawalCoordinator(
        store,
        slots_table=settings.slots_table,
        volunteers_table=settings.volunteers_table,
        max_attempts=settings.signup_max_attempts,
    )


def get_query_service(store: StoreDep, settings: SettingsDep) -> SlotQueryService:
    return SlotQueryService(
        store,
        projects_table=settings.projects_table,
        slots_table=settings.slots_table,
        volunteers_table=settings.volunteers_table,
    )


def get_slot_admin_service(store: StoreDep, settings: SettingsDep) -> SlotAdminService:
    return SlotAdminService(
        store,
        slots_table=settings.slots_table,
        volunteers_table=settings.volunteers_table,
    )


async def require_admin(
    validator: Annotated[MicrosoftTokenValidator, Depends(get_token_validator)],
    authorization: Annotated[str | None, Header()] = None,
) -> MicrosoftIdentity:
    """
    Dependency requiring a valid Microsoft bearer token.

    Raises 401 when the token is missing or invalid, and 500 when the
    service has no Microsoft client id configured.
    """
    token = None
    if authorization and authorization.startswith("Bearer "):
        token = authorization.split(" ", 1)[1].strip() or None

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized. Please sign in with Microsoft.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        identity = await validator.verify(token)
    except MicrosoftAuthConfigError:
        logger.error("Admin request rejected: MICROSOFT_CLIENT_ID is not configured")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server configuration error. Please contact an administrator.",
        )

    if identity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized. Please sign in with Microsoft.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return identity


AdminDep = Annotated[MicrosoftIdentity, Depends(require_admin)]
SignupDep = Annotated[SignupCoordinator, Depends(get_signup_coordinator)]
WithdrawalDep = Annotated[WithdrawalCoordinator, Depends(get_withdrawal_coordinator)]
QueryDep = Annotated[SlotQueryService, Depends(get_query_service)]
SlotAdminDep = Annotated[SlotAdminService, Depends(get_slot_admin_service)]
