"""Tests for unmask/sentiment.py - label normalization and lexicon fallback."""

import pytest

from unmask.db.models import Message
from unmask.sentiment import (
    message_polarity,
    polarity_to_score,
    sentiment_polarity,
    text_polarity,
    tone_from_polarities,
)


class TestSentimentPolarity:
    """Test label and score mapping onto [-1, 1]."""

    @pytest.mark.parametrize(
        "label,expected",
        [
            ("positive", 1.0),
            ("Very Negative", -1.0),
            ("happy", 1.0),
            ("neutral", 0.0),
            ("somewhat positive", 0.5),
            ("negative-ish", -0.5),
        ],
    )
    def test_labels(self, label, expected):
        assert sentiment_polarity(label) == expected

    def test_unknown_label(self):
        assert sentiment_polarity("confused") is None
        assert sentiment_polarity(None) is None

    def test_numeric_in_unit_range_passes_through(self):
        assert sentiment_polarity(0.4) == 0.4
        assert sentiment_polarity("-0.25") == -0.25

    def test_numeric_on_ten_point_scale(self):
        assert sentiment_polarity(10) == 1.0
        assert sentiment_polarity(5.0) == 0.0
        assert sentiment_polarity(2.5) == -0.5

    def test_out_of_range_clamped(self):
        assert sentiment_polarity(42) == 1.0
        assert sentiment_polarity(-3) == -1.0


class TestTextPolarity:
    def test_no_signal(self):
        assert text_polarity("see you at 7") == 0.0
        assert text_polarity("") == 0.0

    def test_positive_and_negative_words(self):
        assert text_polarity("I love this, it's amazing") > 0.5
        assert text_polarity("this is terrible and I hate it") < -0.5

    def test_bounded(self):
        assert -1.0 <= text_polarity("hate " * 50) <= 1.0


class TestMessagePolarity:
    def test_score_wins_over_label(self):
        msg = Message(id=1, message="whatever", sentiment="negative", sentiment_score=0.8)
        assert message_polarity(msg) == 0.8

    def test_label_used_when_no_score(self):
        msg = Message(id=1, message="I love you", sentiment="negative")
        assert message_polarity(msg) == -1.0

    def test_lexicon_fallback(self):
        msg = Message(id=1, message="I love you")
        assert message_polarity(msg) > 0


class TestScales:
    def test_polarity_to_score(self):
        assert polarity_to_score(-1.0) == 0.0
        assert polarity_to_score(0.0) == 5.0
        assert polarity_to_score(1.0) == 10.0
        assert polarity_to_score(3.0) == 10.0

    @pytest.mark.parametrize(
        "polarities,tone",
        [
            ([], "neutral"),
            ([0.05, -0.05], "neutral"),
            ([0.5, 0.9], "positive"),
            ([-0.5], "negative"),
            ([0.5, -0.5], "mixed"),
        ],
    )
    def test_tone(self, polarities, tone):
        assert tone_from_polarities(polarities) == tone
