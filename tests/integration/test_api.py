"""
End-to-end tests of the HTTP API against an in-memory database.
"""

from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient

from kbase.main import app
from kbase.services.books import BookNotFoundError, get_book_catalog_service
from kbase.services.youtube import InvalidVideoUrlError, get_youtube_service

pytestmark = pytest.mark.integration

API = "/api/v1"


async def _create(client: AsyncClient, headers: dict, **data) -> dict:
    payload = {"type": "article", "title": "Untitled"}
    payload.update(data)
    response = await client.post(f"{API}/content", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


# ================================
# Application
# ================================

@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["database"] == "connected"


@pytest.mark.asyncio
async def test_root(client: AsyncClient):
    response = await client.get("/")

    assert response.status_code == 200
    assert "version" in response.json()


@pytest.mark.asyncio
@pytest.mark.parametrize("method, path", [
    ("GET", "/content"),
    ("POST", "/content"),
    ("GET", "/lists"),
    ("GET", "/tags"),
    ("GET", "/settings"),
    ("GET", "/stats"),
    ("GET", "/export"),
    ("DELETE", "/account"),
    ("GET", "/metadata/youtube?url=x"),
])
async def test_authentication_required(client: AsyncClient, method, path):
    response = await client.request(method, f"{API}{path}")

    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"


# ================================
# Content
# ================================

class TestContentApi:

    @pytest.mark.asyncio
    async def test_create_and_get(self, client, auth_headers):
        created = await _create(
            client,
            auth_headers,
            type="video",
            title="Intro to Rust",
            url="https://www.youtube.com/watch?v=dQw4w9WgXcQ",
            tags=["Rust", "talks"],
            metadata={"channel_name": "RustConf", "duration_minutes": 42},
        )

        assert created["type"] == "video"
        assert created["status"] == "pending"
        assert sorted(tag["name"] for tag in created["tags"]) == ["rust", "talks"]
        assert created["video_metadata"]["duration_seconds"] == 2520
        assert created["book_metadata"] is None

        response = await client.get(f"{API}/content/{created['id']}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["title"] == "Intro to Rust"

    @pytest.mark.asyncio
    async def test_video_without_url(self, client, auth_headers):
        response = await client.post(
            f"{API}/content",
            json={"type": "video", "title": "Talk"},
            headers=auth_headers,
        )

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "validation_error"
        assert "url" in error["fields"]

    @pytest.mark.asyncio
    async def test_other_users_content_is_not_found(self, client, auth_headers, other_auth_headers):
        created = await _create(client, auth_headers, title="Mine")

        for method in ("GET", "DELETE"):
            response = await client.request(
                method, f"{API}/content/{created['id']}", headers=other_auth_headers
            )
            assert response.status_code == 404
            assert response.json()["error"]["code"] == "content_not_found"

        response = await client.put(
            f"{API}/content/{created['id']}",
            json={"title": "Stolen"},
            headers=other_auth_headers,
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_update_completes_item(self, client, auth_headers):
        created = await _create(client, auth_headers, title="Draft")

        response = await client.put(
            f"{API}/content/{created['id']}",
            json={"status": "completed", "rating": 4},
            headers=auth_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "completed"
        assert data["rating"] == 4
        assert data["completed_at"] is not None
        assert data["title"] == "Draft"

    @pytest.mark.asyncio
    async def test_update_null_title(self, client, auth_headers):
        created = await _create(client, auth_headers)

        response = await client.put(
            f"{API}/content/{created['id']}",
            json={"title": None},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert "title" in response.json()["error"]["fields"]

    @pytest.mark.asyncio
    async def test_delete(self, client, auth_headers):
        created = await _create(client, auth_headers)

        response = await client.delete(f"{API}/content/{created['id']}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json() == {"success": True}

        response = await client.get(f"{API}/content/{created['id']}", headers=auth_headers)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_list_paginates(self, client, auth_headers, other_auth_headers):
        for title in ("One", "Two", "Three"):
            await _create(client, auth_headers, title=title)
        await _create(client, other_auth_headers, title="Someone else's")

        response = await client.get(
            f"{API}/content",
            params={"limit": 2, "page": 2, "sortBy": "title", "sortOrder": "asc"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["pagination"] == {"page": 2, "limit": 2, "total": 3, "totalPages": 2}
        assert [item["title"] for item in body["data"]] == ["Two"]

    @pytest.mark.asyncio
    async def test_list_filters(self, client, auth_headers):
        await _create(client, auth_headers, type="book", title="Dune")
        await _create(client, auth_headers, type="article", title="On dunes", status="completed")
        await _create(client, auth_headers, type="article", title="Unrelated")

        response = await client.get(
            f"{API}/content",
            params={"search": "DUNE", "type": "article"},
            headers=auth_headers,
        )

        assert [item["title"] for item in response.json()["data"]] == ["On dunes"]

    @pytest.mark.asyncio
    async def test_list_empty(self, client, auth_headers):
        response = await client.get(f"{API}/content", headers=auth_headers)

        assert response.json()["pagination"]["totalPages"] == 0
        assert response.json()["data"] == []

    @pytest.mark.asyncio
    async def test_list_invalid_limit(self, client, auth_headers):
        response = await client.get(f"{API}/content", params={"limit": 500}, headers=auth_headers)

        assert response.status_code == 400
        assert "limit" in response.json()["error"]["fields"]


# ================================
# Lists
# ================================

class TestListsApi:

    @pytest.mark.asyncio
    async def test_membership_flow(self, client, auth_headers):
        response = await client.post(f"{API}/lists", json={"name": "Later"}, headers=auth_headers)
        assert response.status_code == 201
        list_id = response.json()["id"]

        item = await _create(client, auth_headers, title="Essay")

        response = await client.post(
            f"{API}/lists/{list_id}/contents",
            json={"contentIds": [item["id"]]},
            headers=auth_headers,
        )
        assert response.json() == {"message": "Content added to the list", "added": 1}

        response = await client.get(f"{API}/lists", headers=auth_headers)
        assert [(entry["name"], entry["content_count"]) for entry in response.json()] == [("Later", 1)]

        response = await client.get(f"{API}/lists/{list_id}", headers=auth_headers)
        assert [content["title"] for content in response.json()["contents"]] == ["Essay"]

        response = await client.request(
            "DELETE",
            f"{API}/lists/{list_id}/contents",
            json={"contentId": item["id"]},
            headers=auth_headers,
        )
        assert response.status_code == 200

        response = await client.get(f"{API}/lists/{list_id}", headers=auth_headers)
        assert response.json()["content_count"] == 0

    @pytest.mark.asyncio
    async def test_invalid_color(self, client, auth_headers):
        response = await client.post(
            f"{API}/lists",
            json={"name": "Later", "color": "blue"},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert "color" in response.json()["error"]["fields"]

    @pytest.mark.asyncio
    async def test_other_users_list(self, client, auth_headers, other_auth_headers):
        response = await client.post(f"{API}/lists", json={"name": "Private"}, headers=auth_headers)
        list_id = response.json()["id"]

        response = await client.get(f"{API}/lists/{list_id}", headers=other_auth_headers)
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "list_not_found"

    @pytest.mark.asyncio
    async def test_update_and_delete(self, client, auth_headers):
        response = await client.post(f"{API}/lists", json={"name": "Later"}, headers=auth_headers)
        list_id = response.json()["id"]

        response = await client.put(
            f"{API}/lists/{list_id}",
            json={"name": "Soon", "icon": "star"},
            headers=auth_headers,
        )
        assert response.json()["name"] == "Soon"
        assert response.json()["icon"] == "star"

        response = await client.delete(f"{API}/lists/{list_id}", headers=auth_headers)
        assert response.status_code == 200
        response = await client.get(f"{API}/lists/{list_id}", headers=auth_headers)
        assert response.status_code == 404


# ================================
# Tags, settings, stats
# ================================

@pytest.mark.asyncio
async def test_tags_with_counts(client, auth_headers):
    await _create(client, auth_headers, title="A", tags=["AI", "rust"])
    await _create(client, auth_headers, title="B", tags=["ai"])

    response = await client.get(f"{API}/tags", headers=auth_headers)

    assert [(tag["name"], tag["count"]) for tag in response.json()] == [("ai", 2), ("rust", 1)]


@pytest.mark.asyncio
async def test_settings_roundtrip(client, auth_headers):
    response = await client.get(f"{API}/settings", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["default_view"] == "list"
    assert response.json()["items_per_page"] == 20

    response = await client.put(
        f"{API}/settings",
        json={"default_view": "grid", "items_per_page": 50},
        headers=auth_headers,
    )
    assert response.json()["default_view"] == "grid"
    assert response.json()["items_per_page"] == 50

    response = await client.put(f"{API}/settings", json={"items_per_page": 25}, headers=auth_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_stats(client, auth_headers):
    await _create(client, auth_headers, type="book", title="Dune", status="completed")
    await _create(client, auth_headers, type="article", title="Essay")

    response = await client.get(f"{API}/stats", headers=auth_headers)

    assert response.json() == {
        "total_content": 2,
        "videos": 0,
        "articles": 1,
        "books": 1,
        "pending": 1,
        "completed": 1,
        "lists": 0,
        "tags": 0,
    }


# ================================
# Export and account deletion
# ================================

class TestAccountApi:

    @pytest.mark.asyncio
    async def test_export_json(self, client, auth_headers):
        await _create(client, auth_headers, title="Essay")

        response = await client.get(f"{API}/export", headers=auth_headers)

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/json"
        assert response.headers["content-disposition"].startswith('attachment; filename="kbase-export-')
        assert response.json()["stats"]["total_content"] == 1

    @pytest.mark.asyncio
    async def test_export_csv(self, client, auth_headers):
        await _create(client, auth_headers, title="Essay, part 1")

        response = await client.get(f"{API}/export", params={"format": "csv"}, headers=auth_headers)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert response.headers["content-disposition"].endswith('.csv"')
        assert '"Essay, part 1"' in response.text

    @pytest.mark.asyncio
    async def test_export_unknown_format(self, client, auth_headers):
        response = await client.get(f"{API}/export", params={"format": "xml"}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "unsupported_export_format"

    @pytest.mark.asyncio
    async def test_delete_account(self, client, auth_headers, other_auth_headers):
        await _create(client, auth_headers, title="Mine", tags=["x"])
        await _create(client, other_auth_headers, title="Theirs")

        response = await client.delete(f"{API}/account", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert response.json()["skipped_steps"] == []

        # The token no longer resolves to a user
        response = await client.get(f"{API}/content", headers=auth_headers)
        assert response.status_code == 401

        response = await client.get(f"{API}/stats", headers=other_auth_headers)
        assert response.json()["total_content"] == 1


# ================================
# Metadata lookups
# ================================

class TestMetadataApi:

    @pytest.mark.asyncio
    async def test_youtube(self, client, auth_headers):
        youtube = AsyncMock()
        youtube.fetch_metadata.return_value = {
            "title": "Talk",
            "description": None,
            "channel_name": "Conf",
            "channel_url": None,
            "thumbnail_url": "https://img.youtube.com/vi/dQw4w9WgXcQ/maxresdefault.jpg",
            "video_id": "dQw4w9WgXcQ",
            "url": "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
            "duration_minutes": None,
        }
        app.dependency_overrides[get_youtube_service] = lambda: youtube

        response = await client.get(
            f"{API}/metadata/youtube",
            params={"url": "https://youtu.be/dQw4w9WgXcQ"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["video_id"] == "dQw4w9WgXcQ"
        youtube.fetch_metadata.assert_awaited_once_with("https://youtu.be/dQw4w9WgXcQ")

    @pytest.mark.asyncio
    async def test_youtube_invalid_url(self, client, auth_headers):
        youtube = AsyncMock()
        youtube.fetch_metadata.side_effect = InvalidVideoUrlError()
        app.dependency_overrides[get_youtube_service] = lambda: youtube

        response = await client.get(
            f"{API}/metadata/youtube",
            params={"url": "https://example.com"},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "invalid_video_url"

    @pytest.mark.asyncio
    async def test_books_search(self, client, auth_headers):
        catalog = AsyncMock()
        catalog.search.return_value = [{"id": "B1hSG45JCX4C", "title": "Dune"}]
        app.dependency_overrides[get_book_catalog_service] = lambda: catalog

        response = await client.get(f"{API}/metadata/books", params={"q": "dune"}, headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["results"][0]["title"] == "Dune"
        catalog.search.assert_awaited_once_with("dune")

    @pytest.mark.asyncio
    async def test_books_by_id_not_found(self, client, auth_headers):
        catalog = AsyncMock()
        catalog.get.side_effect = BookNotFoundError()
        app.dependency_overrides[get_book_catalog_service] = lambda: catalog

        response = await client.get(f"{API}/metadata/books", params={"id": "missing"}, headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "book_not_found"
        catalog.search.assert_not_called()
