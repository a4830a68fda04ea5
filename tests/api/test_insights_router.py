"""Tests for the insight, dashboard and conversation endpoints."""

import pytest

from unmask.vectorize import populate


class TestInsights:
    """Tests for /insights."""

    def test_generate(self, client, seeded_db):
        body = client.get("/insights/generate").json()
        assert body["total"] == 6
        assert body["conflictCount"] == 2
        assert body["bySender"][0] == {"sender": "Alex", "count": 4}

    def test_health_score_recorded_for_user(self, client, seeded_db):
        response = client.get("/insights/health-score", params={"userId": "u1"})
        assert response.status_code == 200
        assert response.json()["currentScore"] == pytest.approx(4.18)
        assert seeded_db.latest_health_score("u1") == pytest.approx(4.18)

    def test_health_score_without_user(self, client, seeded_db):
        client.get("/insights/health-score")
        assert seeded_db.latest_health_score("default-user") is None

    def test_patterns(self, client, seeded_db):
        body = client.get("/insights/patterns", params={"timeframe": "7d", "type": "emotional"}).json()
        assert body["patterns"] == []
        assert body["analysisType"] == "emotional"

    def test_patterns_invalid_timeframe(self, client):
        response = client.get("/insights/patterns", params={"timeframe": "2w"})
        assert response.status_code == 400
        assert response.json()["details"]["field"] == "timeframe"

    def test_timeline(self, client, seeded_db):
        body = client.get(
            "/insights/timeline", params={"start": "2024-03-01", "end": "2024-03-31"}
        ).json()
        assert body["events"] == []
        assert body["metrics"]["activeDays"] == 2
        assert body["dateRange"] == {"start": "2024-03-01", "end": "2024-03-31"}


class TestDashboard:
    def test_stats(self, client, seeded_db):
        body = client.get("/dashboard/stats").json()
        assert body["stats"]["totalMessages"] == 6
        assert body["stats"]["participants"] == 2
        assert body["metadata"]["vectorized"] is False

    def test_empty(self, client):
        assert client.get("/dashboard/stats").json()["stats"]["aiReady"] is False


class TestConversations:
    """Tests for /conversations."""

    def test_list_before_populate(self, client):
        body = client.get("/conversations").json()
        assert body["conversations"] == []
        assert body["pagination"]["total"] == 0
        assert body["pagination"]["hasNextPage"] is False

    def test_list_paginated(self, client, seeded_db, llm):
        populate(seeded_db, llm)
        body = client.get("/conversations", params={"limit": 2}).json()
        assert len(body["conversations"]) == 2
        assert body["pagination"]["totalPages"] == 2
        assert body["pagination"]["hasNextPage"] is True
        assert body["pagination"]["hasPrevPage"] is False

    def test_insights_get(self, client, seeded_db, llm):
        populate(seeded_db, llm)
        body = client.get("/conversations/insights", params={"timeRange": "all"}).json()
        assert body["totalChunks"] == 3
        assert body["conflictRate"] == 0.333

    def test_insights_post(self, client, seeded_db, llm):
        populate(seeded_db, llm)
        body = client.post("/conversations/insights", json={"timeRange": "all"}).json()
        assert body["totalMessages"] == 6

    def test_insights_invalid_range(self, client):
        response = client.get("/conversations/insights", params={"timeRange": "forever"})
        assert response.status_code == 400
