"""Integration tests for volunteer listing and removal endpoints."""

import pytest
from httpx import AsyncClient

from store_helpers import PROJECT_ID, SLOT_ID, FaultyStore, seed_slot, seed_volunteer, volunteer_records

pytestmark = pytest.mark.asyncio

VOLUNTEERS_URL = f"/api/projects/{PROJECT_ID}/slots/{SLOT_ID}/volunteers"


class TestListVolunteers:
    async def test_requires_admin(self, async_client: AsyncClient):
        response = await async_client.get(VOLUNTEERS_URL)
        assert response.status_code == 401

    async def test_invalid_token_rejected(self, async_client: AsyncClient):
        response = await async_client.get(
            VOLUNTEERS_URL, headers={"Authorization": "Bearer not-a-token"}
        )
        assert response.status_code == 401

    async def test_list_sorted(self, admin_client: AsyncClient, memory_store):
        await seed_volunteer(memory_store, "late", SignedUpUtc="2026-03-02T00:00:00.000Z")
        await seed_volunteer(memory_store, "early", SignedUpUtc="2026-03-01T00:00:00.000Z")

        response = await admin_client.get(VOLUNTEERS_URL)

        assert response.status_code == 200
        volunteers = response.json()["volunteers"]
        assert [v["id"] for v in volunteers] == ["early", "late"]
        assert volunteers[0]["signedUpUtc"] == "2026-03-01T00:00:00.000Z"
        assert volunteers[0]["firstName"] == "Ada"


class TestRemoveVolunteer:
    async def test_remove(self, admin_client: AsyncClient, memory_store):
        await seed_slot(memory_store, Capacity=1, FilledCount=1, Status="filled")
        await seed_volunteer(memory_store, "v1")

        response = await admin_client.delete(f"{VOLUNTEERS_URL}/v1")

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Volunteer removed from slot."
        assert data["countsStale"] is False
        assert data["slot"]["filledCount"] == 0
        assert data["slot"]["status"] == "available"
        assert data["volunteer"]["id"] == "v1"

    async def test_unknown_volunteer_is_404(self, admin_client: AsyncClient, memory_store):
        await seed_slot(memory_store)

        response = await admin_client.delete(f"{VOLUNTEERS_URL}/missing")

        assert response.status_code == 404
        assert response.json()["detail"] == "Volunteer signup not found."

    async def test_stale_counts_are_reported(self, app, admin_client: AsyncClient):
        store = FaultyStore()
        app.state.store = store
        await seed_slot(store, Capacity=2, FilledCount=1)
        await seed_volunteer(store, "v1")
        store.fail_update.add("Slots")

        response = await admin_client.delete(f"{VOLUNTEERS_URL}/v1")

        assert response.status_code == 200
        data = response.json()
        assert data["countsStale"] is True
        assert data["slot"] is None
        assert "Please refresh" in data["message"]
        assert await volunteer_records(store) == []

    async def test_delete_failure_is_500(self, app, admin_client: AsyncClient):
        store = FaultyStore()
        app.state.store = store
        await seed_slot(store, Capacity=2, FilledCount=1)
        await seed_volunteer(store, "v1")
        store.fail_delete.add("SlotVolunteers")

        response = await admin_client.delete(f"{VOLUNTEERS_URL}/v1")

        assert response.status_code == 500
