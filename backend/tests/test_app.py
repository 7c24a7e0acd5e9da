# tests for the health check and app configuration
# basic app-level tests

import pytest

from coach_analytics.dependencies import get_record_source
from coach_analytics.services.record_source import EntityType, QueryKey
from tests.conftest import CLIENT_ID


class TestHealthCheck:
    """app health and config"""

    async def test_health_check(self, client):
        resp = await client.get("/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert data["service"] == "coach-analytics-api"

    async def test_openapi_schema(self, client):
        resp = await client.get("/openapi.json")
        assert resp.status_code == 200
        schema = resp.json()
        assert schema["info"]["title"] == "Coach Analytics API"
        assert "/clients/{client_id}/metrics" in schema["paths"]
        assert "/doctors/{doctor_id}/analytics" in schema["paths"]

    async def test_docs_available(self, client):
        resp = await client.get("/docs")
        assert resp.status_code == 200


class TestRecordSourceLifetime:
    """each request gets its own store"""

    def test_fresh_source_per_call(self):
        first = get_record_source()
        second = get_record_source()
        assert first is not second
        assert first.get(QueryKey(EntityType.CLIENT, CLIENT_ID)).is_loading
