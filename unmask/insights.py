"""Relationship insights analytics.

Provides dashboard statistics, relationship health scoring, emotional
seasons, pattern analysis, daily timelines, conversation-chunk aggregates
and message summaries, all computed from the local database.

Message sentiment comes from stored scores or labels where present and from
a small word lexicon otherwise (see :mod:`unmask.sentiment`). Rolling windows
for health and pattern analysis end at the newest stored message, so
historical exports still produce meaningful results.
"""

from __future__ import annotations

import logging
from collections import Counter, defaultdict
from dataclasses import asdict, dataclass, field
from datetime import UTC, date, datetime, timedelta
from typing import TYPE_CHECKING, Any

from unmask.db.messages import MessageFilters
from unmask.db.models import Message, format_timestamp, parse_timestamp
from unmask.errors import ValidationError
from unmask.sentiment import message_polarity, sentiment_polarity

if TYPE_CHECKING:
    from unmask.db import UnmaskDB

logger = logging.getLogger(__name__)


HEALTH_WEIGHTS: dict[str, float] = {
    "communication": 0.25,
    "sentiment": 0.3,
    "conflict": 0.2,
    "intimacy": 0.15,
    "responsiveness": 0.1,
}

TIMEFRAMES: dict[str, int] = {"7d": 7, "30d": 30, "90d": 90, "1y": 365}
TIME_RANGES: dict[str, int | None] = {
    "1month": 30,
    "3months": 90,
    "6months": 180,
    "all": None,
}

KEY_EVENT_WORDS = ("birthday", "anniversary", "vacation", "work", "family", "fight", "celebration")
INTIMACY_WORDS = (
    "love you",
    "miss you",
    "i love",
    "babe",
    "baby",
    "honey",
    "thinking of you",
    "proud of you",
    "xoxo",
    "<3",
)

RESPONSE_WINDOW = timedelta(hours=1)
HEALTH_WINDOW_DAYS = 30


def _now(now: datetime | None) -> datetime:
    return now or datetime.now(UTC).replace(tzinfo=None)


def _timed(messages: list[Message]) -> list[tuple[datetime, Message]]:
    items = [(m.timestamp, m) for m in messages]
    return [(ts, m) for ts, m in items if ts is not None]


def _mean(values: list[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def _latest_message_time(db: UnmaskDB) -> datetime | None:
    _, last = db.message_date_range()
    return parse_timestamp(last)


def recent_messages(db: UnmaskDB, days: int, now: datetime | None = None) -> list[Message]:
    """Messages from the ``days`` days ending at the newest stored message."""
    end = _latest_message_time(db) or _now(now)
    start = end - timedelta(days=days)
    return db.messages_between(start.date().isoformat(), end.date().isoformat())


# Dashboard


def years_between(first: str | None, last: str | None) -> float:
    """Span of the data in years, at least 0.1 when any data exists."""
    start = parse_timestamp(first)
    end = parse_timestamp(last)
    if start is None or end is None:
        return 0.0
    return max(0.1, abs((end - start).total_seconds()) / (86400 * 365))


def communication_health(total_messages: int, years: float) -> float:
    """Score yearly message volume on a 0-10 scale."""
    if years <= 0:
        return 0.0
    per_year = total_messages / years
    if per_year < 1000:
        return min(3.0, per_year / 333)
    if per_year < 5000:
        return 3 + (per_year - 1000) / 1000
    return min(10.0, 7 + (per_year - 5000) / 2500)


def dashboard_stats(db: UnmaskDB, now: datetime | None = None) -> dict[str, Any]:
    """Headline numbers for the dashboard page."""
    now = _now(now)
    total = db.count_messages()
    first, last = db.message_date_range()
    years = years_between(first, last)

    participants = set(db.distinct_senders())
    if _has_outgoing(db):
        participants.add("You")

    recent_cutoff = (now - timedelta(days=30)).date().isoformat()
    recent = db.count_messages(MessageFilters(start_date=recent_cutoff))

    by_month = db.message_counts_by("strftime('%Y-%m', date_time)", limit=12)
    by_hour = db.message_counts_by("strftime('%H', date_time)")
    most_active_hour = "Unknown"
    if by_hour:
        hour, _ = max(by_hour, key=lambda kv: kv[1])
        if hour is not None:
            most_active_hour = f"{hour}:00"

    return {
        "stats": {
            "totalMessages": total,
            "yearsOfData": round(years, 1),
            "participants": len(participants),
            "aiReady": recent > 0,
            "lastUpdated": now.isoformat(),
        },
        "insights": {
            "messagesByMonth": [{"month": m, "count": c} for m, c in by_month if m],
            "mostActiveHour": most_active_hour,
            "averagePerDay": round(total / (years * 365)) if years > 0 else 0,
            "communicationHealth": round(communication_health(total, years), 2),
        },
        "metadata": {
            "dataSource": "live",
            "vectorized": db.count_vectors() > 0,
        },
    }


def _has_outgoing(db: UnmaskDB) -> bool:
    return any(key == "Outgoing" for key, _ in db.message_counts_by("type", dated_only=False))


# Health score


@dataclass
class HealthMetrics:
    """Raw inputs to the weighted health score.

    Attributes:
        communication_frequency: Messages per day.
        average_sentiment: Mean polarity in [-1, 1].
        conflict_frequency: Conflict-flagged messages per week.
        intimacy_indicators: Affectionate messages per day.
        responsiveness: Share of turns answered within an hour (0-1).
    """

    communication_frequency: float = 0.0
    average_sentiment: float = 0.0
    conflict_frequency: float = 0.0
    intimacy_indicators: float = 0.0
    responsiveness: float = 0.0

    def normalized(self) -> dict[str, float]:
        return {
            "communication": min(self.communication_frequency / 50, 1.0),
            "sentiment": (self.average_sentiment + 1) / 2,
            "conflict": max(0.0, 1 - self.conflict_frequency / 10),
            "intimacy": min(self.intimacy_indicators / 10, 1.0),
            "responsiveness": min(self.responsiveness, 1.0),
        }


def calculate_health_score(metrics: HealthMetrics) -> float:
    """Weighted relationship health score from 0 to 10, rounded to 2 decimals."""
    normalized = metrics.normalized()
    score = sum(normalized[key] * weight for key, weight in HEALTH_WEIGHTS.items())
    return round(score * 10, 2)


def _responsiveness(timed: list[tuple[datetime, Message]]) -> float:
    turns = 0
    answered = 0
    for (ts, msg), (next_ts, next_msg) in zip(timed, timed[1:]):
        if (next_msg.sender or "") == (msg.sender or ""):
            continue
        turns += 1
        if next_ts - ts <= RESPONSE_WINDOW:
            answered += 1
    return answered / turns if turns else 0.0


def derive_health_metrics(messages: list[Message], days: int) -> HealthMetrics:
    """Compute health metrics for messages spanning ``days`` days."""
    if not messages or days <= 0:
        return HealthMetrics()
    timed = sorted(_timed(messages), key=lambda item: item[0])
    conflicts = sum(1 for m in messages if m.conflict_detected)
    intimate = sum(
        1 for m in messages if any(word in (m.message or "").lower() for word in INTIMACY_WORDS)
    )
    return HealthMetrics(
        communication_frequency=len(messages) / days,
        average_sentiment=_mean([message_polarity(m) for m in messages]),
        conflict_frequency=conflicts / (days / 7),
        intimacy_indicators=intimate / days,
        responsiveness=_responsiveness(timed),
    )


_RECOMMENDATIONS = {
    "communication": "Set aside a regular time each day to check in with each other.",
    "sentiment": "Make a point of sharing appreciation and good news, not only logistics.",
    "conflict": "Recurring conflicts are showing up. Pick one issue and talk it through calmly.",
    "intimacy": "Express affection more often; small words of warmth add up.",
    "responsiveness": "Try to reply sooner when your partner reaches out.",
}


def health_assessment(
    db: UnmaskDB,
    user_id: str | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Score the last 30 days of messages and compare against the 30 before.

    Args:
        db: Database.
        user_id: When given, the score is stored in the user's history.
        now: Report timestamp (defaults to the current time).

    Returns:
        Dict with currentScore, breakdown, trend, recommendations, metrics
        and lastCalculated.
    """
    now = _now(now)
    end = _latest_message_time(db) or now
    window_start = end - timedelta(days=HEALTH_WINDOW_DAYS)
    previous_start = window_start - timedelta(days=HEALTH_WINDOW_DAYS)

    window = db.messages_between(window_start.date().isoformat(), end.date().isoformat())
    previous = db.messages_between(
        previous_start.date().isoformat(),
        (window_start - timedelta(days=1)).date().isoformat(),
    )

    metrics = derive_health_metrics(window, HEALTH_WINDOW_DAYS)
    score = calculate_health_score(metrics)
    normalized = metrics.normalized()
    logger.debug("Health score %.2f from %d messages ending %s", score, len(window), end)

    trend = "stable"
    if window and previous:
        change = _mean([message_polarity(m) for m in window]) - _mean(
            [message_polarity(m) for m in previous]
        )
        if change > 0.1:
            trend = "improving"
        elif change < -0.1:
            trend = "declining"

    recommendations = [
        text for key, text in _RECOMMENDATIONS.items() if window and normalized[key] < 0.5
    ]
    if not window:
        recommendations = ["Import your messages to get a relationship health assessment."]
    elif not recommendations:
        recommendations = ["Things look healthy. Keep investing in the habits that work."]

    if user_id and window:
        db.record_health_score(user_id, score)

    return {
        "currentScore": score,
        "breakdown": {key: round(value * 10, 2) for key, value in normalized.items()},
        "trend": trend,
        "recommendations": recommendations,
        "metrics": {key: round(value, 3) for key, value in asdict(metrics).items()},
        "lastCalculated": now.isoformat(),
    }


# Emotional seasons


def _emotional_theme(avg: float) -> str:
    if avg > 0.5:
        return "High Connection"
    if avg > 0.2:
        return "Stable Period"
    if avg > -0.2:
        return "Neutral Phase"
    if avg > -0.5:
        return "Tension Period"
    return "Conflict Phase"


def _key_events(messages: list[Message]) -> list[str]:
    found: list[str] = []
    for msg in messages:
        text = (msg.message or "").lower()
        for word in KEY_EVENT_WORDS:
            if word in text and word not in found:
                found.append(word)
    return found[:3]


def detect_emotional_seasons(messages: list[Message]) -> list[dict[str, Any]]:
    """Group messages by month and label each month with an emotional theme.

    Only stored sentiment scores and labels count; unlabeled messages
    contribute 0.
    """
    by_month: dict[str, list[Message]] = defaultdict(list)
    for ts, msg in _timed(messages):
        by_month[ts.strftime("%Y-%m")].append(msg)

    seasons = []
    for month in sorted(by_month):
        msgs = by_month[month]
        values = []
        for m in msgs:
            polarity = sentiment_polarity(
                m.sentiment_score if m.sentiment_score is not None else m.sentiment
            )
            values.append(polarity or 0.0)
        avg = _mean(values)
        seasons.append(
            {
                "period": month,
                "avgSentiment": round(avg, 3),
                "theme": _emotional_theme(avg),
                "keyEvents": _key_events(msgs),
            }
        )
    return seasons


def format_insight_for_user(insight: str, supporting_data: list[Any], confidence: float) -> str:
    if confidence > 0.8:
        label = "High confidence"
    elif confidence > 0.6:
        label = "Moderate confidence"
    else:
        label = "Initial assessment"
    return f"{insight}\n\n*{label} based on {len(supporting_data)} data points*"


# Patterns


@dataclass
class PatternInsight:
    """One detected communication pattern."""

    type: str
    title: str
    description: str
    trend: str
    confidence: float
    timeframe: str
    supporting_data: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "title": self.title,
            "description": self.description,
            "trend": self.trend,
            "confidence": self.confidence,
            "timeframe": self.timeframe,
            "supportingData": self.supporting_data,
        }


def _daily_groups(messages: list[Message]) -> dict[str, list[Message]]:
    groups: dict[str, list[Message]] = defaultdict(list)
    for ts, msg in _timed(messages):
        groups[ts.date().isoformat()].append(msg)
    return groups


def _frequency_pattern(days: dict[str, list[Message]]) -> PatternInsight | None:
    rows = [{"date": d, "count": len(days[d])} for d in sorted(days, reverse=True)][:30]
    if len(rows) < 7:
        return None
    recent = _mean([r["count"] for r in rows[:7]])
    older_rows = rows[7:14]
    older = _mean([r["count"] for r in older_rows])
    change = (recent - older) / older * 100 if older_rows and older else 0.0
    trend = "improving" if change > 15 else "declining" if change < -15 else "stable"
    direction = "up" if change > 0 else "down"
    return PatternInsight(
        type="communication_frequency",
        title="Communication Frequency Pattern",
        description=(
            f"Average {recent:.1f} messages per day recently, "
            f"{direction} {abs(change):.1f}% from previous week"
        ),
        trend=trend,
        confidence=0.85,
        timeframe=f"Last {len(rows)} days",
        supporting_data=rows,
    )


def _sentiment_pattern(days: dict[str, list[Message]]) -> PatternInsight | None:
    rows = [
        {
            "date": d,
            "sentiment": round(_mean([message_polarity(m) for m in days[d]]), 3),
            "count": len(days[d]),
        }
        for d in sorted(days, reverse=True)
        if len(days[d]) >= 3
    ][:30]
    if len(rows) < 7:
        return None
    recent = _mean([r["sentiment"] for r in rows[:7]])
    older_rows = rows[7:14]
    change = recent - _mean([r["sentiment"] for r in older_rows]) if older_rows else 0.0
    trend = "improving" if change > 0.1 else "declining" if change < -0.1 else "stable"
    sign = "+" if change > 0 else ""
    return PatternInsight(
        type="sentiment_trend",
        title="Emotional Sentiment Trend",
        description=f"Recent sentiment: {recent:.2f} ({sign}{change:.2f} from previous week)",
        trend=trend,
        confidence=0.8,
        timeframe=f"Last {len(rows)} days",
        supporting_data=rows,
    )


def _conflict_pattern(days: dict[str, list[Message]]) -> PatternInsight | None:
    rows = []
    for d in sorted(days, reverse=True):
        msgs = days[d]
        if len(msgs) < 5:
            continue
        polarities = [message_polarity(m) for m in msgs]
        rows.append(
            {
                "date": d,
                "negative": sum(1 for p in polarities if p < -0.3),
                "total": len(msgs),
                "sentiment": round(_mean(polarities), 3),
            }
        )
    rows = rows[:60]
    if len(rows) < 14:
        return None
    conflict_days = [
        r for r in rows if r["sentiment"] < -0.2 and r["negative"] / r["total"] > 0.3
    ]
    if len(conflict_days) < 2:
        return None
    return PatternInsight(
        type="conflict_cycle",
        title="Conflict Pattern Analysis",
        description=(
            f"{len(conflict_days)} challenging days identified in the past {len(rows)} days"
        ),
        trend="declining" if len(conflict_days) > len(rows) * 0.15 else "improving",
        confidence=0.75,
        timeframe=f"Last {len(rows)} days",
        supporting_data=conflict_days,
    )


def detect_patterns(messages: list[Message]) -> list[PatternInsight]:
    """Run every pattern detector over a set of messages."""
    days = _daily_groups(messages)
    detected = [_frequency_pattern(days), _sentiment_pattern(days), _conflict_pattern(days)]
    return [p for p in detected if p is not None]


def analyze_patterns(
    db: UnmaskDB,
    timeframe: str = "30d",
    analysis_type: str = "communication",
    now: datetime | None = None,
) -> dict[str, Any]:
    """Pattern report over the last ``timeframe`` of stored messages.

    Raises:
        ValidationError: If timeframe is not one of 7d, 30d, 90d, 1y.
    """
    if timeframe not in TIMEFRAMES:
        raise ValidationError(
            f"Invalid timeframe '{timeframe}'. Use one of: {', '.join(TIMEFRAMES)}",
            field="timeframe",
            value=timeframe,
        )
    now = _now(now)
    patterns = detect_patterns(recent_messages(db, TIMEFRAMES[timeframe], now))
    confidence = round(_mean([p.confidence for p in patterns]), 2) if patterns else 0.8
    return {
        "patterns": [p.to_dict() for p in patterns],
        "timeframe": timeframe,
        "analysisType": analysis_type,
        "confidence": confidence,
        "lastUpdated": now.isoformat(),
    }


# Timeline


def daily_health_score(polarities: list[float]) -> float:
    """Score one day of messages on a 1-10 scale."""
    score = 5 + _mean(polarities) * 3
    if len(polarities) > 20:
        score += 0.5
    if len(polarities) < 5:
        score -= 0.5
    return max(1.0, min(10.0, round(score, 1)))


def timeline(
    db: UnmaskDB,
    start: str | None = None,
    end: str | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Notable days between ``start`` and ``end`` (inclusive dates), newest first.

    A day is notable when its average sentiment is above 0.7 (high
    connection), below -0.3 (conflict) or it has more than 50 messages
    (emotional peak). Logged relationship events appear as milestones.
    """
    now = _now(now)
    days = _daily_groups(db.messages_between(start, end))
    events: list[dict[str, Any]] = []
    all_scores: list[float] = []
    all_polarities: list[float] = []

    for day, msgs in days.items():
        polarities = [message_polarity(m) for m in msgs]
        all_polarities.extend(polarities)
        health = daily_health_score(polarities)
        all_scores.append(health)
        avg = _mean(polarities)
        count = len(msgs)
        if avg > 0.7:
            kind, title = "high_connection", "High Connection Day"
            description = f"Strong positive communication with {count} messages"
        elif avg < -0.3:
            kind, title = "conflict", "Tension Period"
            description = "Challenging communication patterns detected"
        elif count > 50:
            kind, title = "emotional_peak", "High Activity Day"
            description = f"Intense communication with {count} exchanges"
        else:
            continue
        ranked = sorted(zip(polarities, msgs), key=lambda pm: abs(pm[0]), reverse=True)
        events.append(
            {
                "date": day,
                "type": kind,
                "title": title,
                "description": description,
                "healthScore": health,
                "keyMessages": [f"{m.message[:100]}..." for _, m in ranked[:3]],
            }
        )

    for event in db.events_between(start, end):
        events.append(
            {
                "date": event.event_date,
                "type": "milestone",
                "title": event.title,
                "description": event.description or event.event_type,
                "healthScore": None,
                "keyMessages": [],
            }
        )

    events.sort(key=lambda e: e["date"], reverse=True)
    counts = Counter(e["type"] for e in events)
    insights = []
    if counts["high_connection"]:
        insights.append(f"{counts['high_connection']} high connection days in this period")
    if counts["conflict"]:
        insights.append(f"{counts['conflict']} days with noticeable tension")
    if counts["emotional_peak"]:
        insights.append(f"{counts['emotional_peak']} unusually active days")

    return {
        "events": events,
        "metrics": {
            "activeDays": len(days),
            "totalMessages": len(all_polarities),
            "averageSentiment": round(_mean(all_polarities), 3),
            "averageHealthScore": round(_mean(all_scores), 2),
        },
        "insights": insights,
        "dateRange": {"start": start, "end": end},
        "lastUpdated": now.isoformat(),
    }


# Conversation chunks


def conversation_insights(
    db: UnmaskDB,
    time_range: str = "all",
    now: datetime | None = None,
) -> dict[str, Any]:
    """Aggregates over stored conversation chunks.

    Raises:
        ValidationError: If time_range is not one of 1month, 3months, 6months, all.
    """
    if time_range not in TIME_RANGES:
        raise ValidationError(
            f"Invalid timeRange '{time_range}'. Use one of: {', '.join(TIME_RANGES)}",
            field="timeRange",
            value=time_range,
        )
    now = _now(now)
    days = TIME_RANGES[time_range]
    since = format_timestamp(now - timedelta(days=days)) if days else None
    chunks = db.chunks_since(since)

    tones = Counter(c.emotional_tone for c in chunks)
    types = Counter(c.conversation_type for c in chunks)
    by_month: dict[str, list[float]] = defaultdict(list)
    for chunk in chunks:
        by_month[chunk.start_time[:7]].append(chunk.sentiment_score)

    conflicts = sum(1 for c in chunks if c.conflict_detected)
    recent = sorted(chunks, key=lambda c: c.start_time, reverse=True)[:50]
    return {
        "totalChunks": len(chunks),
        "totalMessages": sum(c.message_count for c in chunks),
        "averageSentimentScore": round(_mean([c.sentiment_score for c in chunks]), 2),
        "conflictRate": round(conflicts / len(chunks), 3) if chunks else 0.0,
        "toneDistribution": [{"tone": t, "count": n} for t, n in tones.most_common()],
        "conversationTypes": [{"type": t, "count": n} for t, n in types.most_common(10)],
        "relationshipArc": [
            {
                "month": month,
                "averageSentiment": round(_mean(scores), 2),
                "conversations": len(scores),
            }
            for month, scores in sorted(by_month.items(), reverse=True)[:12]
        ],
        "topTags": db.top_tags(since, limit=12),
        "chunks": [
            {
                "id": c.id,
                "startTime": c.start_time,
                "endTime": c.end_time,
                "messageCount": c.message_count,
                "emotionalTone": c.emotional_tone,
                "sentimentScore": c.sentiment_score,
                "conflictDetected": c.conflict_detected,
                "tags": c.tags,
                "preview": (c.chunk_text or c.chunk_summary or "")[:200],
            }
            for c in recent
        ],
    }


# Message summary


def _streaks(days: list[date], today: date) -> tuple[int, int]:
    """Longest run of consecutive days, and the run ending today."""
    if not days:
        return 0, 0
    ordered = sorted(set(days))
    longest = run = 1
    for prev, cur in zip(ordered, ordered[1:]):
        run = run + 1 if cur - prev == timedelta(days=1) else 1
        longest = max(longest, run)
    present = set(ordered)
    current = 0
    cursor = today
    while cursor in present:
        current += 1
        cursor -= timedelta(days=1)
    return longest, current


def _month_keys(today: date, months: int) -> list[str]:
    keys = []
    year, month = today.year, today.month
    for _ in range(months):
        keys.append(f"{year:04d}-{month:02d}")
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(keys))


def message_summary(db: UnmaskDB, now: datetime | None = None) -> dict[str, Any]:
    """Totals by sender, day and month plus sentiment and streak figures."""
    now = _now(now)
    today = now.date()
    total = db.count_messages()

    sender_counts = db.message_counts_by("sender", dated_only=False)
    by_sender = sorted(sender_counts, key=lambda kv: kv[1], reverse=True)

    daily = {
        key: count for key, count in db.message_counts_by("date(date_time)") if key is not None
    }
    by_date = []
    for offset in range(29, -1, -1):
        day = (today - timedelta(days=offset)).isoformat()
        by_date.append({"date": day, "count": daily.get(day, 0)})

    monthly = dict(db.message_counts_by("strftime('%Y-%m', date_time)"))
    by_month = [{"month": m, "count": monthly.get(m, 0)} for m in _month_keys(today, 12)]

    overview = {"positive": 0, "negative": 0, "neutral": 0, "unanalyzed": 0}
    for label, count in db.message_counts_by("sentiment", dated_only=False):
        polarity = sentiment_polarity(label)
        if polarity is None:
            overview["unanalyzed"] += count
        elif polarity > 0.1:
            overview["positive"] += count
        elif polarity < -0.1:
            overview["negative"] += count
        else:
            overview["neutral"] += count

    active_days = [date.fromisoformat(d) for d in daily]
    longest, current = _streaks(active_days, today)
    first, last = db.message_date_range()
    span_days = max(1.0, years_between(first, last) * 365) if total else 0.0

    return {
        "total": total,
        "bySender": [{"sender": s or "Unknown", "count": c} for s, c in by_sender],
        "byDate": by_date,
        "byMonth": by_month,
        "sentimentOverview": overview,
        "conflictCount": db.count_messages(MessageFilters(conflict="conflicts")),
        "averageMessagesPerDay": round(total / span_days) if span_days else 0,
        "longestStreak": longest,
        "currentStreak": current,
    }


__all__ = [
    "HEALTH_WEIGHTS",
    "HealthMetrics",
    "PatternInsight",
    "analyze_patterns",
    "calculate_health_score",
    "communication_health",
    "conversation_insights",
    "dashboard_stats",
    "derive_health_metrics",
    "detect_emotional_seasons",
    "detect_patterns",
    "format_insight_for_user",
    "health_assessment",
    "message_summary",
    "recent_messages",
    "timeline",
    "years_between",
]
