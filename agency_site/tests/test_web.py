"""
Web Application Tests Module

Tests for the content, sync, revalidation, realtime-info and health
endpoints of the FastAPI application.
"""

from agency_site.cms import CMSError
from conftest import REVALIDATE_SECRET


class TestRevalidateEndpoint:
    """Test cases for POST /api/revalidate."""

    def test_revalidates_cached_path(self, client, app):
        app.state.content_cache.set_content("page", "/about", {"results": []})

        response = client.post(
            "/api/revalidate", params={"path": "/about", "secret": REVALIDATE_SECRET}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["revalidated"] is True
        assert body["path"] == "/about"
        assert body["removed"] == 1
        assert body["timestamp"]
        assert app.state.content_cache.get_content("page", "/about") is None

    def test_wrong_secret(self, client):
        response = client.post("/api/revalidate", params={"path": "/about", "secret": "nope"})

        assert response.status_code == 401
        assert response.json() == {"error": "Invalid secret"}

    def test_missing_secret(self, client):
        response = client.post("/api/revalidate", params={"path": "/about"})

        assert response.status_code == 401

    def test_missing_path(self, client):
        response = client.post("/api/revalidate", params={"secret": REVALIDATE_SECRET})

        assert response.status_code == 400
        assert response.json() == {"error": "Path parameter is required"}


class TestContentEndpoint:
    """Test cases for GET /api/builder/content."""

    def test_read_through_cache(self, client, app):
        app.state.cms_client.fetch_content.return_value = {"results": [{"id": "hero"}]}

        first = client.get("/api/builder/content", params={"model": "page", "url": "/about"})
        second = client.get("/api/builder/content", params={"model": "page", "url": "/about"})

        assert first.status_code == 200
        assert first.json() == {"results": [{"id": "hero"}]}
        assert second.json() == first.json()
        app.state.cms_client.fetch_content.assert_called_once_with("page", "/about", 10)

    def test_limit_is_part_of_cache_key(self, client, app):
        app.state.cms_client.fetch_content.side_effect = lambda model, url, limit: {
            "results": list(range(limit))
        }

        client.get("/api/builder/content", params={"url": "/about", "limit": 1})
        response = client.get("/api/builder/content", params={"url": "/about", "limit": 10})

        assert len(response.json()["results"]) == 10
        assert app.state.cms_client.fetch_content.call_count == 2

    def test_revalidation_forces_refetch(self, client, app):
        app.state.cms_client.fetch_content.return_value = {"results": []}
        client.get("/api/builder/content", params={"url": "/about"})

        app.state.content_cache.revalidate_path("/about")
        client.get("/api/builder/content", params={"url": "/about"})

        assert app.state.cms_client.fetch_content.call_count == 2

    def test_cms_failure(self, client, app):
        app.state.cms_client.fetch_content.side_effect = CMSError("Builder API error: 503")

        response = client.get("/api/builder/content")

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to fetch content"}

    def test_limit_out_of_range(self, client):
        response = client.get("/api/builder/content", params={"limit": 0})

        assert response.status_code == 400


class TestSyncEndpoint:
    """Test cases for POST /api/builder/sync."""

    def test_component_update(self, client, app):
        app.state.cms_client.write_component.return_value = {"id": "new"}

        response = client.post(
            "/api/builder/sync", json={"type": "component-update", "data": {"name": "Hero"}}
        )

        assert response.status_code == 200
        assert response.json() == {"success": True, "result": {"id": "new"}}
        app.state.cms_client.write_component.assert_called_once_with({"name": "Hero"})

    def test_theme_update(self, client, app):
        app.state.cms_client.update_theme.return_value = {}

        client.post("/api/builder/sync", json={"type": "theme-update", "data": {"colors": {}}})

        app.state.cms_client.update_theme.assert_called_once_with({"colors": {}})

    def test_model_update_invalidates_cached_content(self, client, app):
        app.state.cms_client.update_model.return_value = {}
        app.state.content_cache.set_content("section", "/", {"results": []})

        response = client.post(
            "/api/builder/sync",
            json={"type": "model-update", "model": "section", "data": {"fields": []}},
        )

        assert response.status_code == 200
        app.state.cms_client.update_model.assert_called_once_with("section", {"fields": []})
        assert app.state.content_cache.get_content("section", "/") is None

    def test_invalid_sync_type(self, client, app):
        response = client.post("/api/builder/sync", json={"type": "delete-everything", "data": {}})

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid sync type"}
        app.state.cms_client.write_component.assert_not_called()

    def test_missing_type(self, client):
        response = client.post("/api/builder/sync", json={"data": {}})

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid request"}

    def test_sync_failure(self, client, app):
        app.state.cms_client.write_component.side_effect = CMSError("Builder private key not configured")

        response = client.post("/api/builder/sync", json={"type": "component-update", "data": {}})

        assert response.status_code == 500
        assert response.json() == {"error": "Sync failed"}


class TestMiscEndpoints:
    def test_websocket_info(self, client, app):
        response = client.get("/api/websocket")

        assert response.status_code == 200
        assert response.json() == {
            "message": "WebSocket endpoint ready",
            "url": app.state.settings.ws_public_url,
            "status": "ready",
        }

    def test_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["cache"] == "memory"
        assert body["rateLimitStore"] == "MemoryRateLimitStore"

    def test_unknown_route_uses_error_body(self, client):
        response = client.get("/api/does-not-exist")

        assert response.status_code == 404
        assert response.json() == {"error": "Not Found"}
