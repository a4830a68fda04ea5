"""Tests for unmask/rag.py - retrieval-augmented answers."""

from unittest.mock import MagicMock

import pytest

from unmask.errors import ValidationError
from unmask.rag import (
    NO_SOURCES_RESPONSE,
    answer,
    configuration,
    empty_query_answer,
    error_answer,
    query_agent_type,
)
from unmask.vectorize import populate


class TestQueryAgentType:
    @pytest.mark.parametrize(
        "query,agent",
        [
            ("What should I do about dinner?", "coaching"),
            ("Any trend in how we talk?", "insights"),
            ("When did we first say I love you?", "memory"),
        ],
    )
    def test_classification(self, query, agent):
        assert query_agent_type(query) == agent


class TestAnswer:
    """Tests for answering from stored chunks."""

    def test_no_vectors(self, seeded_db, llm):
        result = answer(seeded_db, llm, "what happened at dinner?")
        assert result.response == NO_SOURCES_RESPONSE
        assert result.sources == []
        assert result.related_insights == []

    def test_offline_lists_sources(self, seeded_db, llm):
        populate(seeded_db, llm)
        result = answer(seeded_db, llm, "what happened at dinner?", top_k=2)
        assert result.response.startswith("Based on your relationship data")
        assert "1. " in result.response
        assert len(result.sources) == 2
        assert result.confidence == 0.85
        assert result.agent_type == "memory"
        assert all(s["text"] for s in result.sources)

    def test_uses_completion_when_available(self, seeded_db, llm):
        populate(seeded_db, llm)
        online = MagicMock()
        online.available = True
        online.embed.side_effect = llm.embed
        online.complete.return_value = "You two talked about dinner."
        result = answer(seeded_db, online, "dinner?")
        assert result.response == "You two talked about dinner."
        messages = online.complete.call_args.args[0]
        assert messages[-1] == {"role": "user", "content": "dinner?"}

    def test_blank_query_rejected(self, seeded_db, llm):
        with pytest.raises(ValidationError):
            answer(seeded_db, llm, " ")

    def test_to_dict(self, seeded_db, llm):
        body = answer(seeded_db, llm, "help me").to_dict()
        assert body["agentType"] == "coaching"
        assert body["coachingStyle"] == "supportive"
        assert body["interventionType"] == "exploratory"
        assert len(body["nextSteps"]) == 3


class TestFallbackAnswers:
    def test_error_answer(self):
        body = error_answer().to_dict()
        assert body["agentType"] == "error"
        assert body["confidence"] == 0.1
        assert "coachingStyle" not in body
        assert body["nextSteps"][0] == "Try rephrasing your question"

    def test_empty_query_answer(self):
        body = empty_query_answer().to_dict()
        assert body["agentType"] == "error"
        assert body["nextSteps"] == []


class TestConfiguration:
    def test_reports_availability(self, seeded_db, llm):
        assert configuration(seeded_db, llm)["configured"] == {
            "vectorize": False,
            "openai": False,
        }
        populate(seeded_db, llm)
        assert configuration(seeded_db, llm)["configured"]["vectorize"] is True
