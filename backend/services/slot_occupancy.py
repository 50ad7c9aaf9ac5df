"""
Live slot occupancy.

Volunteer records are the authoritative filled count of a slot. Signup,
withdrawal and slot administration all count them here; the slot's stored
``FilledCount`` is a cached copy rewritten from this count on every write.
"""

from core.interfaces.entity_store import EntityStore
from services.slot_schema import volunteer_partition


async def count_occupants(
    store: EntityStore,
    volunteers_table: str,
    project_id: str,
    slot_id: str,
    has_legacy_volunteer: bool = False,
) -> int:
    """
    Count the spots taken on a slot.

    Args:
        has_legacy_volunteer: The slot still stores a single volunteer
            directly on itself, which takes one spot

    Raises:
        StoreUnavailableError: The volunteer records could not be enumerated
    """
    records = 0
    partition = volunteer_partition(project_id, slot_id)
    async for _ in store.query(volunteers_table, partition_key=partition):
        records += 1
    return records + (1 if has_legacy_volunteer else 0)
