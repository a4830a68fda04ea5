"""Tests for the message listing, editing and CSV import endpoints."""

import pytest


class TestListMessages:
    """Tests for GET /messages."""

    def test_lists_newest_first(self, client, seeded_db):
        response = client.get("/messages")
        assert response.status_code == 200
        body = response.json()
        assert len(body["messages"]) == 6
        assert body["messages"][0]["date_time"] == "2024-03-02T08:30:00"
        assert body["metadata"]["searchType"] == "all"
        assert body["filters"]["conflictFilter"] == "all"

    def test_pagination(self, client, seeded_db):
        body = client.get("/messages", params={"page": 2, "limit": 4}).json()
        assert len(body["messages"]) == 2
        assert body["pagination"] == {
            "page": 2,
            "limit": 4,
            "total": 6,
            "totalPages": 2,
            "hasNext": False,
            "hasPrev": True,
        }

    def test_text_search(self, client, seeded_db):
        body = client.get("/messages", params={"search": "dinner"}).json()
        assert body["pagination"]["total"] == 2
        assert body["metadata"]["searchType"] == "text"

    @pytest.mark.parametrize(
        "params,total",
        [
            ({"sender": "Alex"}, 4),
            ({"sentiment": "positive"}, 2),
            ({"tag": "affection"}, 2),
            ({"category": "plans"}, 1),
            ({"conflictFilter": "conflicts"}, 2),
            ({"conflictFilter": "peaceful"}, 4),
            ({"year": 2023}, 0),
        ],
    )
    def test_filters(self, client, seeded_db, params, total):
        assert client.get("/messages", params=params).json()["pagination"]["total"] == total

    def test_invalid_conflict_filter(self, client):
        assert client.get("/messages", params={"conflictFilter": "angry"}).status_code == 400

    def test_semantic_without_vectors_falls_back(self, client, seeded_db):
        body = client.get("/messages", params={"semantic": "dinner"}).json()
        assert body["metadata"]["searchType"] == "text-fallback"
        assert len(body["messages"]) == 2

    def test_semantic_uses_vectors(self, client, seeded_db, llm):
        from unmask.vectorize import populate

        populate(seeded_db, llm)
        body = client.get("/messages", params={"semantic": "dinner", "limit": 10}).json()
        assert body["metadata"]["searchType"] == "vector"
        assert body["messages"]


class TestUpdateAndDelete:
    def test_update(self, client, seeded_db):
        response = client.patch(
            "/messages/update",
            json={"messageId": 1, "updates": {"tag": "morning", "conflict_detected": True}},
        )
        assert response.status_code == 200
        message = response.json()["message"]
        assert message["tag"] == "morning"
        assert message["conflict_detected"] is True

    def test_update_requires_id(self, client):
        response = client.patch("/messages/update", json={"updates": {"tag": "x"}})
        assert response.status_code == 400
        assert response.json()["code"] == "VAL_MISSING_REQUIRED"

    def test_update_rejects_unknown_field(self, client, seeded_db):
        response = client.patch(
            "/messages/update", json={"messageId": 1, "updates": {"message": "rewritten"}}
        )
        assert response.status_code == 400

    def test_update_missing_message(self, client):
        response = client.patch("/messages/update", json={"messageId": 99, "updates": {"tag": "x"}})
        assert response.status_code == 404

    def test_delete(self, client, seeded_db):
        assert client.delete("/messages/1").json()["success"] is True
        assert seeded_db.get_message(1) is None

    def test_delete_missing(self, client):
        response = client.delete("/messages/42")
        assert response.status_code == 404
        assert response.json()["success"] is False


class TestImportCsv:
    """Tests for /import-csv."""

    def test_import(self, client, db, sample_csv):
        response = client.post("/import-csv", json={"csvData": sample_csv})
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["totalRecords"] == 4
        assert body["insertedCount"] == 3
        assert body["skippedCount"] == 1
        assert body["errorsCount"] == 0
        assert db.count_messages() == 3

    def test_missing_csv_data(self, client):
        response = client.post("/import-csv", json={})
        assert response.status_code == 400
        assert response.json()["error"] == "No CSV data provided"

    def test_csv_without_message_column(self, client, db):
        response = client.post("/import-csv", json={"csvData": "sender\nAlex\n"})
        assert response.status_code == 400
        assert db.count_messages() == 0

    def test_status(self, client, seeded_db):
        body = client.get("/import-csv").json()
        assert body["totalRecords"] == 6
        assert len(body["sampleData"]) == 5
