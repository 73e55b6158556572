"""Tests for the v1 HTTP endpoints."""
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError

from gallery import __version__
from gallery.main import create_app
from gallery.repositories.item_repository import ItemRepository


@pytest_asyncio.fixture
async def client(search_engine, settings) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to an app serving the test search engine."""
    app = create_app(search_engine=search_engine, settings=settings)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


async def test_health_check(client: AsyncClient):
    """Test health check endpoint."""
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "version": __version__}


class TestItemSearch:
    """Test GET /api/v1/items/search."""

    async def test_search_response_shape(self, client, factory):
        older = await factory.item(["red_hair"], width=600, height=900)
        newer = await factory.item(["red_hair", "smile"])

        response = await client.get("/api/v1/items/search", params={"tags": "red_hair"})

        assert response.status_code == 200
        data = response.json()
        assert data["totalCount"] == 2
        assert data["totalPages"] == 1
        assert data["page"] == 1
        assert data["noCriteria"] is False
        assert [item["id"] for item in data["items"]] == [newer.id, older.id]
        assert data["items"][1]["mimeType"] == "image/png"
        assert data["items"][1]["hash"] == older.hash

    async def test_wildcard_resolution_reported(self, client, factory):
        await factory.item(["red_hair"])
        await factory.item(["red_eyes"])

        response = await client.get("/api/v1/items/search", params={"tags": "red_*"})

        data = response.json()
        assert data["totalCount"] == 2
        assert len(data["resolvedWildcards"]) == 1
        wildcard = data["resolvedWildcards"][0]
        assert wildcard["pattern"] == "red_*"
        assert sorted(wildcard["names"]) == ["red_eyes", "red_hair"]
        assert wildcard["truncated"] is False

    async def test_blank_expression(self, client, factory):
        await factory.item(["red_hair"])

        response = await client.get("/api/v1/items/search")

        assert response.status_code == 200
        assert response.json()["noCriteria"] is True
        assert response.json()["items"] == []

    @pytest.mark.parametrize("tags", ["*", "a*"])
    async def test_invalid_wildcard(self, client, tags):
        response = await client.get("/api/v1/items/search", params={"tags": tags})

        assert response.status_code == 400
        assert f"'{tags}'" in response.json()["error"]

    async def test_page_size_and_page(self, client, factory):
        for _ in range(3):
            await factory.item(["red_hair"])

        response = await client.get("/api/v1/items/search", params={"tags": "red_hair", "limit": 2, "page": 2})

        data = response.json()
        assert data["totalPages"] == 2
        assert len(data["items"]) == 1

    async def test_invalid_page(self, client):
        response = await client.get("/api/v1/items/search", params={"tags": "x", "page": 0})

        assert response.status_code == 400
        assert "page" in response.json()["error"]

    async def test_store_failure_is_generic(self, client, factory, monkeypatch):
        await factory.item(["red_hair"])

        async def broken(self, condition):
            raise OperationalError("SELECT items.id FROM items", {}, Exception("disk I/O error"))

        monkeypatch.setattr(ItemRepository, "list_matching_ids", broken)

        response = await client.get("/api/v1/items/search", params={"tags": "red_hair"})

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to search items"}


class TestTagEndpoints:
    """Test facet and meta tag endpoints."""

    async def test_facets(self, client, factory):
        await factory.item(["red_hair", "smile"])
        await factory.item(["red_hair"])

        response = await client.get("/api/v1/tags/facets", params={"selected": "red_hair"})

        assert response.status_code == 200
        data = response.json()
        assert data["matchingCount"] == 2
        assert data["selectedTags"] == ["red_hair"]
        assert [(t["name"], t["count"], t["remainingCount"]) for t in data["tags"]] == [("smile", 1, 1)]

    async def test_facet_limit_bounds(self, client):
        response = await client.get("/api/v1/tags/facets", params={"limit": 101})

        assert response.status_code == 400
        assert "limit" in response.json()["error"]

    async def test_unknown_category(self, client):
        response = await client.get("/api/v1/tags/facets", params={"category": "colour"})

        assert response.status_code == 400

    async def test_meta_tags(self, client):
        response = await client.get("/api/v1/tags/meta")

        assert response.status_code == 200
        names = {t["name"] for t in response.json()}
        assert {"video", "animated", "portrait", "landscape", "square", "highres", "lowres"} == names

    async def test_meta_tag_autocomplete(self, client):
        response = await client.get("/api/v1/tags/meta", params={"q": "port"})

        assert [t["name"] for t in response.json()] == ["portrait"]


class TestNoteSearch:
    """Test GET /api/v1/notes/search."""

    async def test_search(self, client, factory):
        item = await factory.item(["x"])
        await factory.note(item, "The background is blue")

        response = await client.get("/api/v1/notes/search", params={"q": "back"})

        assert response.status_code == 200
        data = response.json()
        assert data["totalCount"] == 1
        result = data["results"][0]
        assert result["itemHash"] == item.hash
        assert "<mark>back</mark>ground" in result["headline"]

    async def test_short_query(self, client):
        response = await client.get("/api/v1/notes/search", params={"q": "a"})

        assert response.status_code == 400
        assert "error" in response.json()


class TestRecommendations:
    """Test GET /api/v1/recommendations/{hash}."""

    async def test_recommendations(self, client, factory):
        x = await factory.item(["a", "b"])
        y = await factory.item(["a"])

        response = await client.get(f"/api/v1/recommendations/{x.hash}")

        assert response.status_code == 200
        data = response.json()
        assert [r["id"] for r in data] == [y.id]
        assert data[0]["sharedTagCount"] == 1
        assert data[0]["similarity"] == pytest.approx(0.5)

    async def test_excluded_groups(self, client, factory):
        x = await factory.item(["a", "b"])
        y = await factory.item(["a"])
        group = await factory.group([y])

        response = await client.get(f"/api/v1/recommendations/{x.hash}", params={"excludeGroups": str(group.id)})

        assert response.json() == []

    async def test_invalid_hash(self, client):
        response = await client.get("/api/v1/recommendations/not-a-hash")

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid item hash"}

    async def test_invalid_group_id(self, client, factory):
        x = await factory.item(["a"])

        response = await client.get(f"/api/v1/recommendations/{x.hash}", params={"excludeGroups": "1,abc"})

        assert response.status_code == 400
        assert "abc" in response.json()["error"]

    async def test_unknown_hash(self, client):
        response = await client.get(f"/api/v1/recommendations/{'0' * 64}")

        assert response.status_code == 200
        assert response.json() == []


async def test_cache_invalidation(client, search_engine):
    before = search_engine.cache.generation

    response = await client.post("/api/v1/cache/invalidate", json={"reason": "sync finished"})

    assert response.status_code == 200
    assert response.json() == {"generation": before + 1, "message": "Caches invalidated"}


async def test_error_contract_in_openapi(client: AsyncClient):
    response = await client.get("/openapi.json")

    schema = response.json()
    responses = schema["paths"]["/api/v1/items/search"]["get"]["responses"]
    for status in ("400", "500"):
        ref = responses[status]["content"]["application/json"]["schema"]["$ref"]
        assert ref.endswith("/ErrorResponse")
    assert schema["components"]["schemas"]["ErrorResponse"]["required"] == ["error"]
