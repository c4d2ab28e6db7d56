"""Tests for the place endpoints."""

import pytest
from httpx import AsyncClient

from vibecheck.services.tree_store import TreeStore

LOCATION = {"latitude": -22.9, "longitude": -47.06}


def _viewer(user_id: str) -> dict[str, str]:
    return {"X-Viewer-Id": user_id}


async def _review(client: AsyncClient, place_id: str, vibe: str, user_id: str = "u1"):
    return await client.post(
        f"/v1/places/{place_id}/reviews",
        json={"vibe": vibe, "location": LOCATION},
        headers=_viewer(user_id),
    )


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------


class TestListPlaces:
    @pytest.mark.asyncio
    async def test_explicit_region(self, client: AsyncClient, place_in_campinas: str):
        response = await client.get("/v1/places", params={"city": "Campinas", "state": "SP"})
        assert response.status_code == 200
        (place,) = response.json()
        assert place["id"] == place_in_campinas
        assert place["name"] == "Bar do Zé"
        assert place["vibe_style"]["icon"] == "help-circle"

    @pytest.mark.asyncio
    async def test_region_from_viewer_location(
        self, client: AsyncClient, store: TreeStore, place_in_campinas: str
    ):
        await store.set("users/me/location", {"state": "SP", "city": "Campinas"})
        response = await client.get("/v1/places", headers=_viewer("me"))
        assert [p["id"] for p in response.json()] == [place_in_campinas]

    @pytest.mark.asyncio
    async def test_no_region_is_empty(self, client: AsyncClient, place_in_campinas: str):
        assert (await client.get("/v1/places", headers=_viewer("nowhere"))).json() == []
        assert (await client.get("/v1/places")).json() == []

    @pytest.mark.asyncio
    async def test_other_region_excluded(self, client: AsyncClient, place_in_campinas: str):
        response = await client.get("/v1/places", params={"city": "Santos", "state": "SP"})
        assert response.json() == []


class TestGetPlace:
    @pytest.mark.asyncio
    async def test_found(self, client: AsyncClient, place_in_campinas: str):
        response = await client.get(f"/v1/places/{place_in_campinas}")
        assert response.status_code == 200
        assert response.json()["city"] == "Campinas"

    @pytest.mark.asyncio
    async def test_not_found(self, client: AsyncClient):
        assert (await client.get("/v1/places/nope")).status_code == 404

    @pytest.mark.asyncio
    async def test_invalid_id(self, client: AsyncClient):
        assert (await client.get("/v1/places/a.b")).status_code == 400


# ---------------------------------------------------------------------------
# Reviews
# ---------------------------------------------------------------------------


class TestCreateReview:
    @pytest.mark.asyncio
    async def test_updates_place_summary(
        self, client: AsyncClient, store: TreeStore, place_in_campinas: str
    ):
        response = await _review(client, place_in_campinas, "bagulho doido")
        assert response.status_code == 201
        review = response.json()
        assert review["vibe"] == "Bagulho Doido"
        assert review["place_id"] == place_in_campinas
        assert review["user_id"] == "u1"

        place = (await client.get(f"/v1/places/{place_in_campinas}")).json()
        assert place["current_vibe"] == "Bagulho Doido"
        assert place["current_vibe_level"] == 5
        assert place["last_review_timestamp"] == review["timestamp"]
        assert place["is_high_vibe"] is True
        assert await store.get(f"reviews/{review['id']}/vibe") == "Bagulho Doido"

    @pytest.mark.asyncio
    async def test_invalid_vibe(self, client: AsyncClient, place_in_campinas: str):
        response = await _review(client, place_in_campinas, "Fervendo")
        assert response.status_code == 400
        assert "Bagulho Doido" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_unknown_place(self, client: AsyncClient):
        assert (await _review(client, "nope", "Normal")).status_code == 404

    @pytest.mark.asyncio
    async def test_requires_viewer(self, client: AsyncClient, place_in_campinas: str):
        response = await client.post(
            f"/v1/places/{place_in_campinas}/reviews",
            json={"vibe": "Normal", "location": LOCATION},
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_location_validated(self, client: AsyncClient, place_in_campinas: str):
        response = await client.post(
            f"/v1/places/{place_in_campinas}/reviews",
            json={"vibe": "Normal", "location": {"latitude": 200, "longitude": 0}},
            headers=_viewer("u1"),
        )
        assert response.status_code == 422


class TestVibeStats:
    @pytest.mark.asyncio
    async def test_breakdown_of_reviews(self, client: AsyncClient, place_in_campinas: str):
        await _review(client, place_in_campinas, "Animado", "u1")
        await _review(client, place_in_campinas, "Animado", "u2")
        await _review(client, place_in_campinas, "Miado", "u3")

        response = await client.get(f"/v1/places/{place_in_campinas}/vibe-stats")
        assert response.status_code == 200
        stats = response.json()
        assert stats["total"] == 3
        assert stats["recent_vibes"] == {"Animado": 2, "Miado": 1}
        shares = {s["vibe"]: s["percentage"] for s in stats["breakdown"]}
        assert shares["Animado"] == 66.7

    @pytest.mark.asyncio
    async def test_unknown_place(self, client: AsyncClient):
        assert (await client.get("/v1/places/nope/vibe-stats")).status_code == 404
