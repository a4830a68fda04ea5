"""Tests for unmask/observability/logging.py."""

import json
import logging
import sys

import pytest

from unmask.observability.logging import (
    NO_USER,
    NOISY_LOGGERS,
    StructuredFormatter,
    UserContextFilter,
    bind_user,
    current_user,
    log_event,
    redact,
    setup_logging,
    timed_operation,
)

logger = logging.getLogger("unmask.tests.logging")


def _records(caplog, event_type):
    return [r for r in caplog.records if getattr(r, "event_type", None) == event_type]


def _record(msg="populated %d chunks", args=(3,), exc_info=None, **extra):
    return logger.makeRecord(
        logger.name, logging.INFO, __file__, 1, msg, args, exc_info, extra=extra or None
    )


class TestStructuredFormatter:
    def test_json_line(self):
        record = _record(event_type="vectorize.populate", metrics={"conversations": 3})
        entry = json.loads(StructuredFormatter().format(record))
        assert entry["message"] == "populated 3 chunks"
        assert entry["level"] == "INFO"
        assert entry["event"] == "vectorize.populate"
        assert entry["metrics"] == {"conversations": 3}
        assert entry["user"] == NO_USER
        assert "error" not in entry

    def test_exception_info(self):
        try:
            raise ValueError("bad row")
        except ValueError:
            record = _record("import failed", (), exc_info=sys.exc_info())
        entry = json.loads(StructuredFormatter().format(record))
        assert entry["error"] == {"type": "ValueError", "message": "bad row"}

    def test_bound_user_in_line(self):
        with bind_user("u1"):
            entry = json.loads(StructuredFormatter().format(_record()))
        assert entry["user"] == "u1"

    def test_message_text_redacted(self):
        record = _record(metadata={"query": "did we fight on friday", "agent": "memory-agent"})
        entry = json.loads(StructuredFormatter().format(record))
        assert entry["metadata"] == {"query": "<22 chars>", "agent": "memory-agent"}


class TestUserBinding:
    """bind_user and UserContextFilter."""

    def test_nested_bindings_restore(self):
        assert current_user() == NO_USER
        with bind_user("u1"):
            with bind_user("u2"):
                assert current_user() == "u2"
            assert current_user() == "u1"
        assert current_user() == NO_USER

    def test_none_binds_placeholder(self):
        with bind_user(None):
            assert current_user() == NO_USER

    def test_filter_tags_record(self):
        record = _record()
        with bind_user("default-user"):
            assert UserContextFilter().filter(record) is True
        assert record.user_id == "default-user"

    def test_filter_keeps_explicit_user(self):
        record = _record(user_id="u9")
        with bind_user("u1"):
            UserContextFilter().filter(record)
        assert record.user_id == "u9"


class TestRedact:
    def test_only_private_text_fields(self):
        fields = {"message": "I feel ignored", "response": "", "agent": "x", "content": 5}
        assert redact(fields) == {
            "message": "<14 chars>",
            "response": "<0 chars>",
            "agent": "x",
            "content": 5,
        }


class TestTimedOperation:
    """Tests for the timing context manager."""

    def test_logs_completion_with_metrics(self, caplog):
        caplog.set_level(logging.DEBUG, logger=logger.name)
        with timed_operation(logger, "ingest.import_csv", rows=4) as ctx:
            ctx["inserted"] = 3
            ctx["source"] = "upload"
        (record,) = _records(caplog, "ingest.import_csv.complete")
        assert record.metrics["rows"] == 4
        assert record.metrics["inserted"] == 3
        assert "latency_ms" in record.metrics
        assert record.metadata == {"source": "upload"}
        assert _records(caplog, "ingest.import_csv.start")

    def test_logs_failure_and_reraises(self, caplog):
        caplog.set_level(logging.DEBUG, logger=logger.name)
        with pytest.raises(RuntimeError):
            with timed_operation(logger, "rag.answer", query="why so distant") as ctx:
                ctx["sources"] = 0
                raise RuntimeError("embedding failed")
        (record,) = _records(caplog, "rag.answer.failed")
        assert record.levelno == logging.ERROR
        assert record.metadata == {"query": "<14 chars>", "sources": 0}
        assert not _records(caplog, "rag.answer.complete")

    def test_start_record_redacts_text(self, caplog):
        caplog.set_level(logging.DEBUG, logger=logger.name)
        with timed_operation(logger, "vectorize.search", query="anniversary"):
            pass
        (record,) = _records(caplog, "vectorize.search.start")
        assert record.metadata == {"query": "<11 chars>"}


class TestLogEvent:
    def test_splits_numeric_fields(self, caplog):
        caplog.set_level(logging.INFO, logger=logger.name)
        log_event(logger, "orchestrator.routed", agent="conflict-agent", confidence=0.4)
        (record,) = _records(caplog, "orchestrator.routed")
        assert record.getMessage() == "orchestrator.routed"
        assert record.metrics == {"confidence": 0.4}
        assert record.metadata == {"agent": "conflict-agent"}

    def test_booleans_are_metadata(self, caplog):
        caplog.set_level(logging.INFO, logger=logger.name)
        log_event(logger, "vectorize.status", message="index ready", ready=True)
        (record,) = _records(caplog, "vectorize.status")
        assert record.getMessage() == "index ready"
        assert record.metrics is None
        assert record.metadata == {"ready": True}

    def test_user_text_redacted(self, caplog):
        caplog.set_level(logging.INFO, logger=logger.name)
        log_event(logger, "chat.received", user_message="we keep fighting")
        (record,) = _records(caplog, "chat.received")
        assert record.metadata == {"user_message": "<16 chars>"}


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    saved_noisy = {name: logging.getLogger(name).level for name in NOISY_LOGGERS}
    yield root
    root.handlers = saved_handlers
    root.setLevel(saved_level)
    for name, level in saved_noisy.items():
        logging.getLogger(name).setLevel(level)


class TestSetupLogging:
    def test_levels_and_format(self, restore_logging):
        root = restore_logging
        setup_logging(verbose=True, json_format=True)
        assert root.level == logging.DEBUG
        assert isinstance(root.handlers[0].formatter, StructuredFormatter)
        setup_logging()
        assert root.level == logging.INFO
        assert not isinstance(root.handlers[0].formatter, StructuredFormatter)

    def test_http_clients_quiet_unless_verbose(self, restore_logging):
        setup_logging()
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("openai").level == logging.WARNING
        setup_logging(verbose=True)
        assert logging.getLogger("httpx").level == logging.NOTSET

    def test_text_lines_carry_user(self, restore_logging):
        setup_logging()
        handler = restore_logging.handlers[0]
        with bind_user("u1"):
            record = _record("routed")
            assert handler.filter(record)
        assert "[u1] routed" in handler.format(record)
