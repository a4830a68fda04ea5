"""Integration tests for the UNMASK CLI.

Commands run against the temporary database configured by the autouse
fixture in tests/conftest.py.
"""

from unittest.mock import patch

import pytest

from unmask.cli import create_parser, main
from unmask.db import get_db


@pytest.fixture
def csv_file(tmp_path, sample_csv):
    path = tmp_path / "messages.csv"
    path.write_text(sample_csv, encoding="utf-8")
    return path


class TestCreateParser:
    """Tests for argument parser creation."""

    def test_parser_creates_successfully(self):
        """Parser is created with the expected program name."""
        parser = create_parser()
        assert parser.prog == "unmask"

    def test_parser_has_verbose_flag(self):
        """Parser has verbose flag."""
        args = create_parser().parse_args(["--verbose", "stats"])
        assert args.verbose is True
        assert args.command == "stats"

    def test_parser_vectorize_options(self):
        """Vectorize accepts batch size, offset and --all."""
        args = create_parser().parse_args(["vectorize", "--batch-size", "50", "--all"])
        assert args.batch_size == 50
        assert args.offset == 0
        assert args.all is True

    def test_parser_chat_command(self):
        """Chat takes the message and an optional user."""
        args = create_parser().parse_args(["chat", "hello", "--user", "u1"])
        assert args.text == "hello"
        assert args.user == "u1"
        assert hasattr(args, "func")


class TestMain:
    """Tests for the main entry point."""

    def test_no_args_shows_help(self):
        """Main with no args shows help and returns zero."""
        assert main([]) == 0

    def test_version_exits(self):
        """--version prints the version and exits cleanly."""
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])
        assert exc_info.value.code == 0

    def test_init_db(self, tmp_path, capsys):
        """init-db creates a database at the given path."""
        path = tmp_path / "fresh.db"
        assert main(["init-db", "--db", str(path)]) == 0
        assert path.exists()
        assert "created" in capsys.readouterr().out


class TestImportAndVectorize:
    """Tests for the data pipeline commands."""

    def test_import_csv(self, csv_file, capsys):
        """import-csv inserts every row with a message."""
        assert main(["import-csv", str(csv_file)]) == 0
        assert get_db().count_messages() == 3
        assert "Imported 3" in capsys.readouterr().out

    def test_import_missing_file(self, tmp_path):
        """A missing file is reported, not raised."""
        assert main(["import-csv", str(tmp_path / "nope.csv")]) == 1

    def test_import_invalid_csv(self, tmp_path):
        """A CSV without a message column fails with exit code 1."""
        path = tmp_path / "bad.csv"
        path.write_text("sender\nAlex\n")
        assert main(["import-csv", str(path)]) == 1

    def test_vectorize_all(self, csv_file):
        """vectorize --all embeds every conversation."""
        main(["import-csv", str(csv_file)])
        assert main(["vectorize", "--all", "--batch-size", "2"]) == 0
        assert get_db().count_vectors() >= 2

    def test_vectorize_empty_database(self):
        """Vectorizing with no messages fails cleanly."""
        assert main(["vectorize"]) == 1


class TestQueryCommands:
    def test_classify(self, capsys):
        """classify shows the routed agent."""
        assert main(["classify", "Why do we keep fighting?"]) == 0
        out = capsys.readouterr().out
        assert "CONFLICT_ANALYSIS" in out
        assert "conflict-agent" in out

    def test_chat(self, csv_file, capsys):
        """chat answers through the orchestrator and records the turn."""
        main(["import-csv", str(csv_file)])
        assert main(["chat", "Why do we keep fighting?"]) == 0
        assert "Conflict Specialist" in capsys.readouterr().out
        assert len(get_db().recent_interactions("default-user")) == 1

    def test_stats(self, csv_file, capsys):
        """stats prints dashboard numbers."""
        main(["import-csv", str(csv_file)])
        assert main(["stats"]) == 0
        assert "Total messages" in capsys.readouterr().out


class TestServe:
    @patch("uvicorn.run")
    def test_serve_uses_config_port(self, mock_run):
        """serve starts uvicorn on the configured port."""
        assert main(["serve"]) == 0
        assert mock_run.call_args.kwargs["port"] == 8600
        assert mock_run.call_args.args[0] == "api.main:app"

    @patch("uvicorn.run")
    def test_serve_port_override(self, mock_run):
        assert main(["serve", "--port", "9001", "--reload"]) == 0
        assert mock_run.call_args.kwargs["port"] == 9001
        assert mock_run.call_args.kwargs["reload"] is True
