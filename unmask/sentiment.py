"""Sentiment label normalization.

Message exports carry free-text sentiment labels ("positive", "Very Negative",
"happy") or numeric scores. Insights and chunking need a number, so labels are
mapped onto [-1, 1]. Messages with no usable label fall back to a small
word lexicon over the message text.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from unmask.db.models import Message

POSITIVE_LABELS = frozenset(
    {"positive", "very positive", "happy", "love", "loving", "excited", "grateful", "joy"}
)
NEGATIVE_LABELS = frozenset(
    {"negative", "very negative", "angry", "sad", "frustrated", "upset", "hurt", "anxious"}
)
NEUTRAL_LABELS = frozenset({"neutral", "mixed", "none", ""})

# Word weights for messages without a sentiment label
LEXICON: dict[str, float] = {
    "love": 1.0,
    "amazing": 1.0,
    "wonderful": 1.0,
    "perfect": 0.9,
    "beautiful": 0.9,
    "great": 0.8,
    "happy": 0.8,
    "excited": 0.8,
    "grateful": 0.8,
    "thankful": 0.8,
    "proud": 0.7,
    "glad": 0.7,
    "appreciate": 0.7,
    "good": 0.6,
    "fun": 0.6,
    "sweet": 0.6,
    "miss": 0.5,
    "thanks": 0.5,
    "hate": -1.0,
    "terrible": -1.0,
    "awful": -1.0,
    "worst": -1.0,
    "angry": -0.8,
    "bad": -0.7,
    "sad": -0.7,
    "upset": -0.7,
    "hurt": -0.7,
    "frustrated": -0.7,
    "disappointed": -0.7,
    "annoyed": -0.6,
    "worried": -0.6,
    "anxious": -0.6,
    "stressed": -0.6,
    "wrong": -0.5,
    "sorry": -0.3,
}

_WORD_RE = re.compile(r"\b[a-zA-Z']+\b")


def sentiment_polarity(label: str | float | int | None) -> float | None:
    """Map a sentiment label or score onto [-1, 1].

    Numeric values in [0, 10] are treated as the chunk score scale and
    rescaled; values already in [-1, 1] pass through.

    Returns:
        Polarity, or None for unknown labels.
    """
    if label is None:
        return None
    if isinstance(label, (int, float)):
        return _clamp_numeric(float(label))
    text = str(label).strip().lower()
    try:
        return _clamp_numeric(float(text))
    except ValueError:
        pass
    if text in POSITIVE_LABELS:
        return 1.0
    if text in NEGATIVE_LABELS:
        return -1.0
    if text in NEUTRAL_LABELS:
        return 0.0
    if "pos" in text:
        return 0.5
    if "neg" in text:
        return -0.5
    return None


def _clamp_numeric(value: float) -> float:
    if -1.0 <= value <= 1.0:
        return value
    if 0.0 <= value <= 10.0:
        return (value - 5.0) / 5.0
    return max(-1.0, min(1.0, value))


def text_polarity(text: str | None) -> float:
    """Lexicon score for raw message text in [-1, 1] (0.0 when no signal)."""
    if not text:
        return 0.0
    positive = 0.0
    negative = 0.0
    for word in _WORD_RE.findall(text.lower()):
        weight = LEXICON.get(word.replace("'", ""))
        if weight is None:
            continue
        if weight > 0:
            positive += weight
        else:
            negative += -weight
    if positive == 0 and negative == 0:
        return 0.0
    score = (positive - negative) / (positive + negative + 1)
    return round(max(-1.0, min(1.0, score)), 3)


def message_polarity(message: Message) -> float:
    """Polarity of a stored message: score, then label, then text lexicon."""
    for value in (message.sentiment_score, message.sentiment):
        polarity = sentiment_polarity(value)
        if polarity is not None:
            return polarity
    return text_polarity(message.message)


def polarity_to_score(polarity: float) -> float:
    """Convert polarity in [-1, 1] to the 0-10 chunk score scale."""
    return round((max(-1.0, min(1.0, polarity)) + 1.0) * 5.0, 2)


def tone_from_polarities(polarities: list[float]) -> str:
    """Classify a set of polarities as positive, negative, neutral or mixed."""
    positive = sum(1 for p in polarities if p > 0.1)
    negative = sum(1 for p in polarities if p < -0.1)
    if positive and negative:
        return "mixed"
    if positive:
        return "positive"
    if negative:
        return "negative"
    return "neutral"
