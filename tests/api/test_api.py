# tests/api/test_api.py
# HTTP-level tests for the records and saved-view routers.
# Storage and cache are swapped for in-memory doubles via dependency overrides.

import json
from urllib.parse import quote

import pytest
from fastapi.testclient import TestClient


class DictCache:
    def __init__(self):
        self.data = {}
        self.hits = 0

    async def get_json(self, key):
        value = self.data.get(key)
        if value is not None:
            self.hits += 1
        return value

    async def set_json(self, key, value):
        self.data[key] = value


class BrokenCache:
    async def get_json(self, key):
        raise ConnectionError("redis is down")

    async def set_json(self, key, value):
        raise ConnectionError("redis is down")


@pytest.fixture
def cache():
    return DictCache()


@pytest.fixture
def client(store, cache):
    from tablekit.main import app
    from tablekit.routers import records, views
    from tablekit.services.records_service import RecordStore, RecordsService

    record_store = RecordStore()
    app.dependency_overrides[records.get_records_service] = lambda: RecordsService(record_store)
    app.dependency_overrides[views.get_repository] = lambda: store
    app.dependency_overrides[views.get_cache] = lambda: cache
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestRecordsApi:

    def test_list_defaults(self, client):
        response = client.get("/api/records")
        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 3
        assert body["page_count"] == 1

    def test_list_with_url_state(self, client):
        response = client.get("/api/records", params={"sort": "title:asc", "pageSize": "2", "tab": "ignored"})
        titles = [r["title"] for r in response.json()["data"]]
        assert titles == ["Advanced TypeScript Patterns", "Building Scalable APIs"]

    def test_list_with_filters(self, client):
        filters = quote(json.dumps([{"id": "title", "operator": "iLike", "value": "react", "variant": "text"}]))
        response = client.get(f"/api/records?filters={filters}")
        assert [r["id"] for r in response.json()["data"]] == ["1"]

    def test_invalid_filter_is_400(self, client):
        filters = quote(json.dumps([{"id": "author", "operator": "eq", "value": "x"}]))
        response = client.get(f"/api/records?filters={filters}")
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"
        assert response.json()["error"]["message"] == "Unknown column in filter: author"

    def test_operator_outside_variant_is_not_rejected(self, client):
        filters = quote(json.dumps([{"id": "title", "operator": "lt", "value": "x", "variant": "text"}]))
        response = client.get(f"/api/records?filters={filters}")
        assert response.status_code == 200
        assert response.json()["count"] == 3

    def test_far_relative_date_is_not_a_server_error(self, client):
        far = {"type": "relative", "amount": 99999, "unit": "years", "direction": "from_now"}
        filters = quote(json.dumps([{"id": "created_at", "operator": "gt", "value": far, "variant": "date"}]))
        response = client.get(f"/api/records?filters={filters}")
        assert response.status_code == 200
        assert response.json()["count"] == 0

    def test_malformed_filters_are_ignored(self, client):
        response = client.get("/api/records?filters=%7Bnope")
        assert response.status_code == 200
        assert response.json()["count"] == 3

    def test_create_update_delete(self, client):
        created = client.post("/api/records", json={"title": "New", "description": "Body"})
        assert created.status_code == 201
        record_id = created.json()["data"]["id"]

        updated = client.patch(f"/api/records/{record_id}", json={"title": "Renamed", "description": "Body"})
        assert updated.json()["data"]["title"] == "Renamed"

        bulk = client.patch("/api/records", json={"ids": ["1", record_id], "updates": {"description": "Bulk"}})
        assert [r["description"] for r in bulk.json()["data"]] == ["Bulk", "Bulk"]

        deleted = client.request("DELETE", "/api/records", json={"ids": [record_id]})
        assert deleted.json() == {"success": True, "data": deleted.json()["data"], "deletedCount": 1}

    def test_create_validation(self, client):
        response = client.post("/api/records", json={"title": "x" * 300, "description": "Body"})
        assert response.status_code == 400
        assert response.json()["error"]["message"].startswith("title")

    def test_update_missing_record(self, client):
        response = client.patch("/api/records/99", json={"title": "a", "description": "b"})
        assert response.status_code == 404

    def test_delete_without_ids(self, client):
        response = client.request("DELETE", "/api/records", json={"ids": []})
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "No IDs provided"


class TestViewsApi:

    def _save(self, client, **overrides):
        payload = {
            "tableKey": "records",
            "name": "By title",
            "state": {"sorting": [{"id": "title", "desc": False}]},
        }
        payload.update(overrides)
        return client.post("/api/views", json=payload)

    def test_create_and_list(self, client):
        created = self._save(client)
        assert created.status_code == 201
        view = created.json()["data"]
        assert view["name"] == "By title"

        listed = client.get("/api/views/records").json()["data"]
        assert [v["id"] for v in listed] == [view["id"]]
        assert client.get("/api/views/other").json()["data"] == []

    def test_update_in_place(self, client):
        view_id = self._save(client).json()["data"]["id"]
        updated = self._save(client, name="Renamed", viewId=view_id)
        assert updated.status_code == 200
        assert updated.json()["data"]["id"] == view_id
        assert len(client.get("/api/views/records").json()["data"]) == 1

    def test_blank_name(self, client):
        response = self._save(client, name="  ")
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_missing_table_key_is_422(self, client):
        response = client.post("/api/views", json={"name": "x"})
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_delete(self, client):
        view_id = self._save(client).json()["data"]["id"]
        assert client.delete(f"/api/views/{view_id}").json() == {"success": True}

        missing = client.delete(f"/api/views/{view_id}")
        assert missing.status_code == 404
        assert missing.json()["error"]["code"] == "NOT_FOUND"

    def test_store_down_is_503(self, client, store):
        store.fail = True
        response = client.get("/api/views/records")
        assert response.status_code == 503
        assert response.json()["error"] == {"code": "DATABASE_ERROR", "message": "Failed to load saved views."}

    def test_every_store_failure_is_503(self, client, store):
        from tablekit.services.saved_views_service import STORAGE_FAILURES

        view_id = self._save(client).json()["data"]["id"]
        store.fail = True
        responses = [
            client.get("/api/views/records"),
            self._save(client),
            client.delete(f"/api/views/{view_id}"),
        ]
        assert [r.status_code for r in responses] == [503, 503, 503]
        assert {r.json()["error"]["message"] for r in responses} == STORAGE_FAILURES


class TestSuggestApi:

    SUMMARY = {
        "tableKey": "records",
        "filters": [{"column": "title", "value": "react", "operator": "iLike", "variant": "text"}],
        "sorting": [],
        "hiddenColumns": [],
        "visibleColumns": ["id", "title"],
        "columnOrder": [],
    }

    def test_suggest_is_cached(self, client, cache):
        first = client.post("/api/views/suggest", json=self.SUMMARY)
        assert first.status_code == 200
        assert first.json()["name"] == "Title contains react"

        second = client.post("/api/views/suggest", json=self.SUMMARY)
        assert second.json() == first.json()
        assert cache.hits == 1

    def test_cache_outage_falls_through(self, client):
        from tablekit.main import app
        from tablekit.routers import views

        app.dependency_overrides[views.get_cache] = lambda: BrokenCache()
        response = client.post("/api/views/suggest", json=self.SUMMARY)
        assert response.status_code == 200
        assert response.json()["name"] == "Title contains react"


class TestOperationalEndpoints:

    def test_liveness(self, client):
        assert client.get("/health/live").json() == {"status": "alive"}

    def test_metrics(self, client):
        client.get("/health/live")
        response = client.get("/metrics")
        assert response.status_code == 200
        assert "tablekit_request_count" in response.text
