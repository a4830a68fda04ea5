"""End-to-end flow through the HTTP API.

Import a CSV export, embed it, ask the agents and read the reports back,
all against one temporary database.
"""

import pytest

CSV = """date-time,sender,message,type,sentiment,conflict
2024-03-01 09:00:00,Alex,Good morning! I love waking up to your texts,Incoming,positive,0
2024-03-01 09:05:00,You,Morning babe miss you already,Outgoing,positive,0
2024-03-01 21:00:00,You,You forgot about dinner again. I'm really frustrated,Outgoing,negative,1
2024-03-01 21:10:00,Alex,I'm sorry work ran late and I feel awful,Incoming,negative,1
2024-03-02 08:30:00,Alex,Can we talk tonight? I want to make it right,Incoming,neutral,0
"""


@pytest.mark.integration
class TestRelationshipFlow:
    """Import, vectorize, chat and report in sequence."""

    def test_full_flow(self, client, db):
        imported = client.post("/import-csv", json={"csvData": CSV}).json()
        assert imported["insertedCount"] == 5

        offset = 0
        while True:
            body = client.post(
                "/vectorize/populate", json={"batchSize": 2, "offset": offset}
            ).json()
            if not body["success"] or not body["vectorized"]["hasMore"]:
                break
            offset += 2
        assert db.count_vectors() >= 3
        assert client.get("/vectorize/populate").json()["status"] == "ready"

        search = client.post("/vectorize/search", json={"query": "dinner"}).json()
        assert search["messageIds"]

        chat = client.post(
            "/chat", json={"message": "Why do we keep fighting?", "userId": "flow-user"}
        ).json()
        assert chat["agentType"] == "conflict-agent"
        assert len(db.recent_interactions("flow-user")) == 1

        rag = client.post("/chat/rag", json={"message": "what happened with dinner?"}).json()
        assert rag["sources"]

        health = client.get("/insights/health-score", params={"userId": "flow-user"}).json()
        assert 0.0 <= health["currentScore"] <= 10.0
        assert db.latest_health_score("flow-user") == health["currentScore"]

        conversations = client.get("/conversations/insights", params={"timeRange": "all"}).json()
        assert conversations["totalMessages"] == 5

        stats = client.get("/dashboard/stats").json()
        assert stats["stats"]["totalMessages"] == 5
        assert stats["metadata"]["vectorized"] is True

    def test_flagged_messages_filterable(self, client):
        client.post("/import-csv", json={"csvData": CSV})
        body = client.get("/messages", params={"conflictFilter": "conflicts"}).json()
        assert body["pagination"]["total"] == 2
