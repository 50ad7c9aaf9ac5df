"""
Service layer for slot capacity and volunteer signup logic.
"""

from services.signup_service import SignupCoordinator
from services.slot_admin import SlotAdminService
from services.slot_metrics import next_status, normalize_slot_metrics
from services.slot_queries import SlotQueryService, compute_project_totals
from services.withdrawal_service import WithdrawalCoordinator

__all__ = [
    "SignupCoordinator",
    "SlotAdminService",
    "SlotQueryService",
    "WithdrawalCoordinator",
    "compute_project_totals",
    "next_status",
    "normalize_slot_metrics",
]
