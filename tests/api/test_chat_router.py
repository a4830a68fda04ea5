"""Tests for the chat and agent endpoints."""

from unittest.mock import patch

import pytest

from unmask import rag


class TestChat:
    """Tests for POST /chat."""

    def test_routes_to_conflict_agent(self, client, seeded_db):
        response = client.post("/chat", json={"message": "Why do we keep fighting?"})
        assert response.status_code == 200
        body = response.json()
        assert body["agentType"] == "conflict-agent"
        assert body["response"]
        assert 0.0 <= body["confidence"] <= 1.0
        assert isinstance(body["nextSteps"], list)
        assert body["timestamp"]

    def test_blank_message(self, client):
        response = client.post("/chat", json={"message": "   "})
        assert response.status_code == 400
        assert response.json() == {"error": "Message is required"}

    def test_records_interaction_for_user(self, client, db):
        client.post(
            "/chat",
            json={
                "message": "How do I say sorry?",
                "userId": "u1",
                "conversationHistory": [{"role": "user", "content": "hi"}],
            },
        )
        turns = db.recent_interactions("u1")
        assert len(turns) == 1
        assert turns[0]["user_message"] == "How do I say sorry?"

    def test_history_agent_type_reaches_orchestrator(self, client, orchestrator):
        history = [
            {"role": "user", "content": "we argued"},
            {"role": "assistant", "content": "tell me more", "agentType": "conflict-agent"},
        ]
        with patch.object(orchestrator, "process", wraps=orchestrator.process) as process:
            response = client.post(
                "/chat", json={"message": "hello", "conversationHistory": history}
            )
        assert response.status_code == 200
        passed = process.call_args.args[2]
        assert passed[0]["agent_type"] is None
        assert passed[1]["agent_type"] == "conflict-agent"

    def test_orchestrator_crash_gives_fallback_body(self, client, orchestrator):
        with patch.object(orchestrator, "process", side_effect=RuntimeError("boom")):
            response = client.post("/chat", json={"message": "hello"})
        assert response.status_code == 500
        assert response.json()["agentType"] == "error-fallback"


class TestChatRag:
    """Tests for /chat/rag."""

    def test_blank_query(self, client):
        response = client.post("/chat/rag", json={"message": ""})
        assert response.status_code == 200
        body = response.json()
        assert body["agentType"] == "error"
        assert body["response"] == rag.EMPTY_QUERY_RESPONSE

    def test_no_vectors(self, client, seeded_db):
        body = client.post("/chat/rag", json={"query": "dinner"}).json()
        assert body["response"] == rag.NO_SOURCES_RESPONSE
        assert body["sources"] == []

    def test_answers_from_sources(self, client, seeded_db, llm):
        from unmask.vectorize import populate

        populate(seeded_db, llm)
        body = client.post("/chat/rag", json={"message": "dinner plans", "topK": 2}).json()
        assert body["confidence"] == rag.RAG_CONFIDENCE
        assert len(body["sources"]) == 2
        assert body["nextSteps"] == rag.RAG_NEXT_STEPS

    def test_lookup_error_becomes_error_answer(self, client):
        from unmask.errors import LLMError

        with patch("api.routers.chat.rag.answer", side_effect=LLMError("down")):
            body = client.post("/chat/rag", json={"message": "hi"}).json()
        assert body["agentType"] == "error"
        assert body["response"] == rag.ERROR_RESPONSE

    def test_configuration(self, client):
        assert client.get("/chat/rag").json() == {
            "success": True,
            "configured": {"vectorize": False, "openai": False},
        }


class TestAgents:
    """Tests for /agents."""

    def test_classify(self, client):
        response = client.post("/agents/classify", json={"message": "Why do we keep fighting?"})
        assert response.status_code == 200
        body = response.json()
        assert body["classification"]["intent"] == "CONFLICT_ANALYSIS"
        assert body["classification"]["method"] == "keyword"
        assert body["route"]["primaryAgent"] == "conflict-agent"
        assert body["agent"]["name"] == "Conflict Specialist"

    def test_classify_with_context(self, client):
        body = client.post(
            "/agents/classify",
            json={"message": "hello", "context": {"primaryConcerns": ["conflict"]}},
        ).json()
        assert body["classification"]["intent"] == "CONFLICT_ANALYSIS"

    def test_classify_history_agent_type_boosts_coaching(self, client):
        """A recent coaching-agent turn in camelCase history favours coaching."""
        body = client.post(
            "/agents/classify",
            json={
                "message": "hello there",
                "conversationHistory": [
                    {"role": "assistant", "content": "hi", "agentType": "coaching-agent"}
                ],
            },
        ).json()
        classification = body["classification"]
        assert classification["intent"] == "IMMEDIATE_COACHING"
        assert classification["confidence"] == pytest.approx(0.1)
        assert classification["reasoning"].startswith("Detected patterns: ")

    def test_classify_requires_message(self, client):
        response = client.post("/agents/classify", json={})
        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["code"] == "VAL_INVALID_INPUT"

    def test_registry(self, client):
        body = client.get("/agents/registry").json()
        assert body["success"] is True
        assert set(body["agents"]) == {
            "coaching-agent",
            "pattern-agent",
            "conflict-agent",
            "emotional-agent",
            "memory-agent",
        }
