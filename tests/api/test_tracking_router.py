"""Tests for the relationship tracker and event endpoints."""

import pytest

EVENT = {
    "event_date": "2024-02-14",
    "event_type": "date",
    "title": "Valentine's dinner",
    "category": "romance",
    "significance": 5,
}


@pytest.fixture
def tracker_id(client):
    body = client.post(
        "/relationship-tracker",
        json={"name": "Us", "partner_name": "Alex", "start_date": "2022-06-01"},
    ).json()
    return body["data"]["id"]


@pytest.fixture
def event_id(client):
    return client.post("/relationship-events", json=EVENT).json()["data"]["id"]


class TestTracker:
    """Tests for /relationship-tracker."""

    def test_create_returns_table_row(self, client):
        response = client.post("/relationship-tracker", json={"name": "Us", "partner_name": "Alex"})
        assert response.status_code == 200
        row = response.json()["data"]
        assert row["header"] == "Us"
        assert row["type"] == "Alex"
        assert row["status"] == ""

    def test_create_requires_name(self, client):
        assert client.post("/relationship-tracker", json={}).status_code == 400

    def test_list(self, client, tracker_id):
        rows = client.get("/relationship-tracker").json()["data"]
        assert rows == [
            {
                "id": tracker_id,
                "header": "Us",
                "type": "Alex",
                "status": "2022-06-01",
                "target": "",
                "limit": "",
                "reviewer": "",
            }
        ]

    @pytest.mark.parametrize("field", ["header", "name"])
    def test_update_name(self, client, tracker_id, field):
        response = client.put(
            f"/relationship-tracker/{tracker_id}", json={"field": field, "value": "Team"}
        )
        assert response.status_code == 200
        assert response.json()["data"]["header"] == "Team"

    def test_update_status_column_sets_start_date(self, client, tracker_id):
        body = client.put(
            f"/relationship-tracker/{tracker_id}", json={"field": "status", "value": "2023-01-01"}
        ).json()
        assert body["data"]["status"] == "2023-01-01"

    def test_update_invalid_field(self, client, tracker_id):
        response = client.put(
            f"/relationship-tracker/{tracker_id}", json={"field": "id", "value": 7}
        )
        assert response.status_code == 400

    def test_update_missing_entry(self, client):
        response = client.put("/relationship-tracker/99", json={"field": "header", "value": "x"})
        assert response.status_code == 404


class TestEvents:
    """Tests for /relationship-events."""

    def test_create(self, client):
        response = client.post("/relationship-events", json=EVENT)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["title"] == "Valentine's dinner"
        assert data["significance"] == 5
        assert data["sentiment"] == "neutral"

    def test_create_missing_fields(self, client):
        response = client.post("/relationship-events", json={"title": "Something"})
        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "VAL_MISSING_REQUIRED"
        assert "event_date" in body["error"]

    def test_create_significance_out_of_range(self, client):
        response = client.post("/relationship-events", json={**EVENT, "significance": 9})
        assert response.status_code == 400

    def test_list(self, client, event_id):
        client.post(
            "/relationship-events",
            json={"event_date": "2024-03-01", "event_type": "fight", "title": "Dinner mixup"},
        )
        body = client.get("/relationship-events").json()
        assert body["success"] is True
        assert [e["title"] for e in body["data"]] == ["Dinner mixup", "Valentine's dinner"]
        assert body["data"][0]["days_ago"] > 0
        assert body["pagination"]["total"] == 2

    def test_list_filters(self, client, event_id):
        body = client.get("/relationship-events", params={"event_type": "fight"}).json()
        assert body["data"] == []
        assert body["pagination"]["total"] == 0

    def test_get(self, client, event_id):
        assert client.get(f"/relationship-events/{event_id}").json()["data"]["id"] == event_id

    def test_get_missing(self, client):
        assert client.get("/relationship-events/99").status_code == 404

    def test_update(self, client, event_id):
        body = client.put(
            f"/relationship-events/{event_id}", json={"notes": "Best night", "significance": 4}
        ).json()
        assert body["data"]["notes"] == "Best night"
        assert body["data"]["significance"] == 4

    def test_update_missing(self, client):
        assert client.put("/relationship-events/99", json={"notes": "x"}).status_code == 404

    def test_delete(self, client, event_id):
        assert client.delete(f"/relationship-events/{event_id}").json()["success"] is True
        assert client.get(f"/relationship-events/{event_id}").status_code == 404

    def test_delete_missing(self, client):
        assert client.delete("/relationship-events/99").status_code == 404
