# tests for doctors router: caseload analytics for the dashboard

import pytest
from bson import ObjectId

from tests.conftest import CLIENT_2_ID, CLIENT_ID, DOCTOR_ID


class TestDoctorAnalytics:
    """caseload rollup endpoint"""

    async def test_get_analytics(self, client):
        resp = await client.get(f"/doctors/{DOCTOR_ID}/analytics", params={"period": "30days"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ready"
        snapshot = data["value"]
        assert snapshot["doctorId"] == DOCTOR_ID
        assert snapshot["totalClients"] == 2
        assert snapshot["activeClients"] == 2
        assert snapshot["clientsWithData"] == 1
        assert snapshot["averageAdherence"] is not None
        assert set(snapshot["trends"]) == {"adherence", "activity_count", "diet_log_count"}
        assert len(snapshot["dailyActivity"]) == 7

    async def test_attention_list(self, client):
        resp = await client.get(f"/doctors/{DOCTOR_ID}/analytics", params={"period": "30days"})
        attention = resp.json()["value"]["attention"]
        assert [a["id"] for a in attention] == [CLIENT_2_ID]
        assert attention[0]["attentionType"] == "missing_checkin"
        assert attention[0]["hasAnyCheckins"] is False

    async def test_custom_range(self, client):
        resp = await client.get(
            f"/doctors/{DOCTOR_ID}/analytics", params={"start": "2025-06-01", "end": "2025-06-08"}
        )
        assert resp.status_code == 200
        snapshot = resp.json()["value"]
        assert snapshot["period"] == "custom"
        assert snapshot["windowStart"].startswith("2025-06-01")

    async def test_check_in_list(self, client):
        resp = await client.get(f"/doctors/{DOCTOR_ID}/analytics", params={"period": "30days"})
        clients = resp.json()["value"]["clients"]
        # both clients are at risk, so the list falls back to name order
        assert [c["id"] for c in clients] == [CLIENT_ID, CLIENT_2_ID]
        assert {c["status"] for c in clients} == {"at_risk"}
        assert clients[1]["adherenceRate"] is None

    async def test_invalid_period(self, client):
        resp = await client.get(f"/doctors/{DOCTOR_ID}/analytics", params={"period": "decade"})
        assert resp.status_code == 400

    async def test_unknown_doctor(self, client):
        resp = await client.get(f"/doctors/{ObjectId()}/analytics")
        assert resp.status_code == 404
