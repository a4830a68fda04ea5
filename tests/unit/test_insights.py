"""Tests for unmask/insights.py - dashboard, health, patterns, timeline, summaries.

The seeded conversation spans 2024-03-01 09:00 to 2024-03-02 08:30: two
positive, two neutral and two negative conflict-flagged messages.
"""

from datetime import datetime, timedelta

import pytest

from unmask.db.models import Message, RelationshipEvent, format_timestamp
from unmask.errors import ValidationError
from unmask.insights import (
    HealthMetrics,
    analyze_patterns,
    calculate_health_score,
    communication_health,
    conversation_insights,
    dashboard_stats,
    detect_emotional_seasons,
    detect_patterns,
    format_insight_for_user,
    health_assessment,
    message_summary,
    timeline,
    years_between,
)
from unmask.vectorize import populate

MARCH_10 = datetime(2024, 3, 10, 12, 0)


def _daily_messages(start, counts):
    """One Message per count entry per day, starting at ``start``."""
    messages = []
    for day, count in enumerate(counts):
        for i in range(count):
            ts = start + timedelta(days=day, minutes=i)
            messages.append(Message(id=None, message="hi", date_time=format_timestamp(ts)))
    return messages


class TestHelpers:
    def test_years_between(self):
        assert years_between(None, "2024-01-01") == 0.0
        assert years_between("2024-01-01", "2024-01-02") == 0.1
        assert years_between("2022-01-01", "2024-01-01") == pytest.approx(2.0, abs=0.01)

    @pytest.mark.parametrize(
        "total,years,expected",
        [(0, 0, 0.0), (2000, 1, 4.0), (6000, 1, 7.4), (100000, 1, 10.0)],
    )
    def test_communication_health(self, total, years, expected):
        assert communication_health(total, years) == pytest.approx(expected)

    def test_format_insight_for_user(self):
        assert format_insight_for_user("Talk more", [1, 2], 0.9) == (
            "Talk more\n\n*High confidence based on 2 data points*"
        )
        assert "Initial assessment" in format_insight_for_user("x", [], 0.5)


class TestDashboardStats:
    def test_seeded(self, seeded_db):
        body = dashboard_stats(seeded_db, now=MARCH_10)
        assert body["stats"]["totalMessages"] == 6
        assert body["stats"]["yearsOfData"] == 0.1
        assert body["stats"]["participants"] == 2
        assert body["stats"]["aiReady"] is True
        assert body["insights"]["messagesByMonth"] == [{"month": "2024-03", "count": 6}]
        assert body["insights"]["mostActiveHour"] == "09:00"
        assert body["metadata"]["vectorized"] is False

    def test_empty(self, db):
        body = dashboard_stats(db, now=MARCH_10)
        assert body["stats"]["totalMessages"] == 0
        assert body["stats"]["aiReady"] is False
        assert body["insights"]["mostActiveHour"] == "Unknown"
        assert body["insights"]["averagePerDay"] == 0


class TestHealth:
    """Tests for the weighted health score."""

    def test_perfect_score(self):
        metrics = HealthMetrics(
            communication_frequency=50,
            average_sentiment=1.0,
            conflict_frequency=0,
            intimacy_indicators=10,
            responsiveness=1.0,
        )
        assert calculate_health_score(metrics) == 10.0

    def test_empty_metrics(self):
        assert calculate_health_score(HealthMetrics()) == 3.5

    def test_assessment_of_seeded_window(self, seeded_db):
        body = health_assessment(seeded_db, user_id="u1", now=MARCH_10)
        assert body["currentScore"] == pytest.approx(4.18)
        assert body["trend"] == "stable"
        assert body["metrics"]["responsiveness"] == 0.75
        assert len(body["recommendations"]) == 2
        assert seeded_db.latest_health_score("u1") == pytest.approx(4.18)

    def test_assessment_without_messages(self, db):
        body = health_assessment(db, user_id="u1", now=MARCH_10)
        assert body["recommendations"] == [
            "Import your messages to get a relationship health assessment."
        ]
        assert db.latest_health_score("u1") is None


class TestEmotionalSeasons:
    def test_monthly_theme(self, seeded_db):
        seasons = detect_emotional_seasons(seeded_db.messages_between())
        assert len(seasons) == 1
        assert seasons[0]["period"] == "2024-03"
        assert seasons[0]["avgSentiment"] == 0.0
        assert seasons[0]["theme"] == "Neutral Phase"
        assert seasons[0]["keyEvents"] == ["work"]


class TestPatterns:
    def test_frequency_and_sentiment_detected(self):
        # 7 quieter days followed by 7 busier ones
        messages = _daily_messages(datetime(2024, 3, 1), [2] * 7 + [4] * 7)
        patterns = {p.type: p for p in detect_patterns(messages)}
        frequency = patterns["communication_frequency"]
        assert frequency.trend == "improving"
        assert "up 100.0%" in frequency.description
        assert patterns["sentiment_trend"].trend == "stable"
        assert "conflict_cycle" not in patterns

    def test_too_little_data(self, seeded_db):
        body = analyze_patterns(seeded_db, "7d", now=MARCH_10)
        assert body["patterns"] == []
        assert body["confidence"] == 0.8
        assert body["analysisType"] == "communication"

    def test_invalid_timeframe(self, seeded_db):
        with pytest.raises(ValidationError) as exc_info:
            analyze_patterns(seeded_db, "2w")
        assert exc_info.value.details["field"] == "timeframe"


class TestTimeline:
    def test_quiet_days_only_in_metrics(self, seeded_db):
        body = timeline(seeded_db, now=MARCH_10)
        assert body["events"] == []
        assert body["metrics"] == {
            "activeDays": 2,
            "totalMessages": 6,
            "averageSentiment": 0.0,
            "averageHealthScore": 4.75,
        }

    def test_high_connection_day_and_milestone(self, seeded_db):
        for minute in range(3):
            seeded_db.insert_message(
                date_time=f"2024-03-05T10:0{minute}:00", message="so happy", sentiment="positive"
            )
        seeded_db.create_event(
            RelationshipEvent(id=None, event_date="2024-03-03", event_type="date", title="Picnic")
        )
        body = timeline(seeded_db, start="2024-03-01", end="2024-03-31", now=MARCH_10)
        assert [e["type"] for e in body["events"]] == ["high_connection", "milestone"]
        assert body["events"][0]["date"] == "2024-03-05"
        assert body["events"][1]["title"] == "Picnic"
        assert body["insights"] == ["1 high connection days in this period"]
        assert body["dateRange"] == {"start": "2024-03-01", "end": "2024-03-31"}


class TestConversationInsights:
    def test_aggregates_chunks(self, seeded_db, llm):
        populate(seeded_db, llm)
        body = conversation_insights(seeded_db, "1month", now=MARCH_10)
        assert body["totalChunks"] == 3
        assert body["totalMessages"] == 6
        assert body["conflictRate"] == 0.333
        tones = {t["tone"]: t["count"] for t in body["toneDistribution"]}
        assert tones == {"positive": 1, "negative": 1, "neutral": 1}
        assert body["relationshipArc"][0]["month"] == "2024-03"
        assert body["chunks"][0]["startTime"].startswith("2024-03-02")

    def test_range_excludes_old_chunks(self, seeded_db, llm):
        populate(seeded_db, llm)
        body = conversation_insights(seeded_db, "1month", now=datetime(2024, 6, 1))
        assert body["totalChunks"] == 0
        assert body["conflictRate"] == 0.0

    def test_invalid_range(self, db):
        with pytest.raises(ValidationError):
            conversation_insights(db, "forever")


class TestMessageSummary:
    def test_seeded(self, seeded_db):
        body = message_summary(seeded_db, now=datetime(2024, 3, 2, 12, 0))
        assert body["total"] == 6
        assert body["bySender"][0] == {"sender": "Alex", "count": 4}
        assert len(body["byDate"]) == 30
        assert body["byDate"][-1] == {"date": "2024-03-02", "count": 1}
        assert body["byDate"][-2] == {"date": "2024-03-01", "count": 5}
        assert body["byMonth"][-1] == {"month": "2024-03", "count": 6}
        assert body["sentimentOverview"] == {
            "positive": 2,
            "negative": 2,
            "neutral": 2,
            "unanalyzed": 0,
        }
        assert body["conflictCount"] == 2
        assert body["longestStreak"] == 2
        assert body["currentStreak"] == 2

    def test_streak_broken(self, seeded_db):
        body = message_summary(seeded_db, now=datetime(2024, 3, 5, 12, 0))
        assert body["currentStreak"] == 0
        assert body["longestStreak"] == 2
