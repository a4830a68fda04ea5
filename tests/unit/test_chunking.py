"""Tests for unmask/chunking.py - time-gap conversation chunking."""

from datetime import datetime, timedelta

from unmask.chunking import chunk_messages
from unmask.db.models import Message


def _msg(msg_id, when, text="hi", sender="Alex", **fields):
    return Message(id=msg_id, message=text, sender=sender, date_time=when, **fields)


class TestChunkBoundaries:
    """Test where one conversation ends and the next begins."""

    def test_empty_input(self):
        assert chunk_messages([]) == []

    def test_single_message_is_one_chunk(self):
        chunks = chunk_messages([_msg(1, "2024-03-01T09:00:00")])
        assert len(chunks) == 1
        assert chunks[0].message_count == 1
        assert chunks[0].start_time == chunks[0].end_time

    def test_gap_over_threshold_splits(self):
        chunks = chunk_messages(
            [
                _msg(1, "2024-03-01T09:00:00"),
                _msg(2, "2024-03-01T09:31:00"),
            ]
        )
        assert [c.message_ids for c in chunks] == [[1], [2]]

    def test_exact_threshold_stays_together(self):
        chunks = chunk_messages(
            [
                _msg(1, "2024-03-01T09:00:00"),
                _msg(2, "2024-03-01T09:30:00"),
            ]
        )
        assert len(chunks) == 1
        assert chunks[0].message_ids == [1, 2]

    def test_gap_measured_from_previous_message(self):
        # 09:00 -> 09:25 -> 09:50 spans 50 minutes but no single gap exceeds 30
        chunks = chunk_messages(
            [
                _msg(1, "2024-03-01T09:00:00"),
                _msg(2, "2024-03-01T09:25:00"),
                _msg(3, "2024-03-01T09:50:00"),
            ]
        )
        assert len(chunks) == 1
        assert chunks[0].end_time == datetime(2024, 3, 1, 9, 50)

    def test_input_order_does_not_matter(self):
        chunks = chunk_messages(
            [
                _msg(3, "2024-03-01T12:00:00"),
                _msg(1, "2024-03-01T09:00:00"),
                _msg(2, "2024-03-01T09:10:00"),
            ]
        )
        assert [c.message_ids for c in chunks] == [[1, 2], [3]]

    def test_custom_gap(self):
        messages = [_msg(1, "2024-03-01T09:00:00"), _msg(2, "2024-03-01T09:10:00")]
        assert len(chunk_messages(messages, gap=timedelta(minutes=5))) == 2

    def test_unparseable_timestamps_skipped(self):
        chunks = chunk_messages([_msg(1, "not a date"), _msg(2, "2024-03-01T09:00:00")])
        assert len(chunks) == 1
        assert chunks[0].message_ids == [2]

    def test_falls_back_to_date_and_time_columns(self):
        msg = Message(id=1, message="hi", date="2024-03-01", time="10:15")
        chunks = chunk_messages([msg])
        assert chunks[0].start_time == datetime(2024, 3, 1, 10, 15)


class TestChunkContent:
    """Test derived chunk fields."""

    def _chunk(self):
        return chunk_messages(
            [
                _msg(1, "2024-03-01T09:00:00", "I love you", "Alex", sentiment="positive"),
                _msg(2, "2024-03-01T09:05:00", "Ugh, bad day", "Sam", sentiment="negative"),
                _msg(3, "2024-03-01T09:06:00", "Sorry", "Alex", conflict_detected=True),
            ]
        )[0]

    def test_participants_in_first_seen_order(self):
        assert self._chunk().participants == ["Alex", "Sam"]

    def test_conversation_text(self):
        text = self._chunk().conversation_text
        assert text.splitlines() == ["Alex: I love you", "Sam: Ugh, bad day", "Alex: Sorry"]

    def test_mixed_tone_and_conflict(self):
        chunk = self._chunk()
        assert chunk.emotional_tone == "mixed"
        assert chunk.conflict_detected is True

    def test_sentiment_score_neutral_when_no_labels(self):
        chunk = chunk_messages([_msg(1, "2024-03-01T09:00:00")])[0]
        assert chunk.sentiment_score == 5.0
        assert chunk.sentiment_summary == "neutral"

    def test_vector_id_uses_index_and_start_ms(self):
        chunk = self._chunk()
        assert chunk.vector_id(4) == "conversation_4_1709283600000"

    def test_embedding_text_truncated(self):
        long_text = "x" * 3000
        chunk = chunk_messages([_msg(1, "2024-03-01T09:00:00", long_text)])[0]
        text = chunk.embedding_text(max_chars=2000)
        assert text.startswith("Conversation from 2024-03-01 09:00 to 2024-03-01 09:00")
        assert "Participants: Alex" in text
        assert text.endswith("...")
        assert "x" * 2001 not in text

    def test_metadata(self):
        meta = self._chunk().metadata()
        assert meta["date"] == "2024-03-01T09:00:00"
        assert meta["endDate"] == "2024-03-01T09:06:00"
        assert meta["sender"] == "Alex, Sam"
        assert meta["messageCount"] == 3
        assert meta["messageIds"] == [1, 2, 3]
        assert meta["type"] == "conversation"

    def test_metadata_text_truncated(self):
        chunk = chunk_messages([_msg(1, "2024-03-01T09:00:00", "y" * 1500)])[0]
        assert len(chunk.metadata(max_chars=1000)["text"]) == 1000

    def test_to_record(self):
        record = self._chunk().to_record("conversation_0_1")
        assert record.vector_id == "conversation_0_1"
        assert record.message_count == 3
        assert record.participants == "Alex, Sam"
        assert record.start_time == "2024-03-01T09:00:00"
        assert record.chunk_summary.startswith("3 messages between Alex, Sam")
        assert 0.0 <= record.sentiment_score <= 10.0
