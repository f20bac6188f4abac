"""Unit tests for the main entry point.

Tests the main() function including:
- CLI argument parsing
- Request loading from flags, files and stdin
- Configuration loading with priority (CLI > env > config)
- The init-db, seed and notify commands against a SQLite file
- Exit code handling
- Error handling
"""

import io
import json
import logging
from unittest.mock import patch

import pytest

from sequence_notifier.config.environment import EnvironmentConfig
from sequence_notifier.config.models import AppConfig, LoggingConfig
from sequence_notifier.domain.exceptions import InputValidationError
from sequence_notifier.logging.context import clear_log_context
from sequence_notifier.main import (
    build_parser,
    load_request_payload,
    load_runtime_config,
    main,
)
from sequence_notifier.persistence import (
    CustomerRepository,
    close_database,
    get_session,
    init_database,
)
from tests.helpers import RecordingChannel, load_fixture_records

TEMPLATE = 'Hello {first_name}, we found that you have the sequence "{matches}".'

FAST_RETRY_CONFIG = """
email:
  max_retries: 1
  retry_initial_delay: 0.0
"""


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Restore root handlers replaced by configure_logging."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    clear_log_context()


@pytest.fixture
def cli_env(monkeypatch, tmp_path):
    """SQLite file store in tmp_path, no SMTP settings, no config file."""
    for name in (
        "SMTP_HOST",
        "SMTP_PORT",
        "SMTP_USER",
        "SMTP_PASS",
        "SMTP_SENDER_NAME",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    database_url = f"sqlite:///{tmp_path / 'store.db'}"
    monkeypatch.setenv("DATABASE_URL", database_url)
    monkeypatch.chdir(tmp_path)
    yield database_url
    close_database()


@pytest.fixture
def seeded_store(cli_env):
    """SQLite file store holding the customer fixtures."""
    init_database(cli_env)
    with get_session() as session:
        repo = CustomerRepository(session)
        for row in load_fixture_records():
            repo.add_customer_sequence(row["email"], row["first_name"], row["sequence"])
    close_database()
    return cli_env


def count_rows(database_url: str) -> int:
    init_database(database_url)
    try:
        with get_session() as session:
            return CustomerRepository(session).count()
    finally:
        close_database()


def notify_args(*extra):
    return ["notify", "--first-codon", "AAA", "--final-codon", "GCC", "--template", TEMPLATE, *extra]


class TestBuildParser:
    """Tests for CLI argument parsing."""

    def test_notify_with_request_file(self):
        args = build_parser().parse_args(["notify", "request.json", "--timeout", "5"])

        assert args.command == "notify"
        assert args.request == "request.json"
        assert args.timeout == 5.0
        assert args.dry_run is False

    def test_global_options(self):
        args = build_parser().parse_args(["--log-level", "DEBUG", "seed", "--rows", "3"])

        assert args.log_level == "DEBUG"
        assert args.rows == 3
        assert args.sequence_length is None

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestLoadRequestPayload:
    """Tests for building the raw request from CLI arguments."""

    def test_flags(self):
        args = build_parser().parse_args(notify_args())

        assert load_request_payload(args) == {
            "first_codon": "AAA",
            "final_codon": "GCC",
            "template": TEMPLATE,
        }

    def test_flags_take_precedence_over_file(self, tmp_path):
        request_file = tmp_path / "request.json"
        request_file.write_text(json.dumps({"first_codon": "ATG"}), encoding="utf-8")
        args = build_parser().parse_args(["notify", str(request_file), "--first-codon", "AAA"])

        assert load_request_payload(args) == {"first_codon": "AAA"}

    def test_request_file(self, tmp_path):
        payload = {"first_codon": "ATG", "final_codon": "TTG", "template": TEMPLATE}
        request_file = tmp_path / "request.json"
        request_file.write_text(json.dumps(payload), encoding="utf-8")
        args = build_parser().parse_args(["notify", str(request_file)])

        assert load_request_payload(args) == payload

    def test_stdin(self, monkeypatch):
        monkeypatch.setattr("sys.stdin", io.StringIO('{"first_codon": "ATG"}'))
        args = build_parser().parse_args(["notify", "-"])

        assert load_request_payload(args) == {"first_codon": "ATG"}

    def test_missing_request(self):
        args = build_parser().parse_args(["notify"])

        with pytest.raises(InputValidationError, match="No notification request"):
            load_request_payload(args)

    def test_invalid_json(self, tmp_path):
        request_file = tmp_path / "request.json"
        request_file.write_text("{not json", encoding="utf-8")
        args = build_parser().parse_args(["notify", str(request_file)])

        with pytest.raises(InputValidationError, match="not valid JSON"):
            load_request_payload(args)

    def test_missing_file(self, tmp_path):
        args = build_parser().parse_args(["notify", str(tmp_path / "missing.json")])

        with pytest.raises(InputValidationError, match="Cannot read request file"):
            load_request_payload(args)


class TestLoadRuntimeConfig:
    """Test suite for load_runtime_config helper."""

    def make_configs(self, env_level=None, config_level="WARNING"):
        app_config = AppConfig(logging=LoggingConfig(level=config_level))
        return app_config, EnvironmentConfig(log_level=env_level)

    def test_cli_level_wins(self):
        with patch("sequence_notifier.main.load_config") as mock_load:
            mock_load.return_value = self.make_configs(env_level="ERROR")

            _, env_config = load_runtime_config(None, "DEBUG")

        assert env_config.log_level == "DEBUG"

    def test_env_level_beats_config(self):
        with patch("sequence_notifier.main.load_config") as mock_load:
            mock_load.return_value = self.make_configs(env_level="ERROR")

            _, env_config = load_runtime_config(None, None)

        assert env_config.log_level == "ERROR"

    def test_config_level_used_last(self):
        with patch("sequence_notifier.main.load_config") as mock_load:
            mock_load.return_value = self.make_configs()

            _, env_config = load_runtime_config(None, None)

        assert env_config.log_level == "WARNING"

    def test_require_smtp_passed_through(self):
        with patch("sequence_notifier.main.load_config") as mock_load:
            mock_load.return_value = self.make_configs()

            load_runtime_config(None, None, require_smtp=False)

        mock_load.assert_called_once_with(None, require_smtp=False)


class TestDatabaseCommands:
    """Tests for init-db and seed."""

    def test_init_db(self, cli_env, tmp_path):
        assert main(["init-db"]) == 0
        assert (tmp_path / "store.db").exists()

    def test_seed(self, cli_env):
        assert main(["seed", "--rows", "5", "--sequence-length", "30", "--random-seed", "1"]) == 0
        assert count_rows(cli_env) == 5

    def test_seed_uses_config_defaults(self, cli_env, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("seed:\n  rows: 3\n", encoding="utf-8")

        assert main(["--config", str(config_file), "seed"]) == 0
        assert count_rows(cli_env) == 3


class TestNotifyCommand:
    """Tests for the notify command."""

    def test_notify_with_flags(self, seeded_store):
        channel = RecordingChannel()

        with patch("sequence_notifier.main.get_channel", return_value=channel):
            exit_code = main(notify_args("--dry-run"))

        assert exit_code == 0
        assert channel.sent_to == ["hahn@example.com", "tane@example.com"]
        assert channel.sent[0].body == 'Hello Hahn, we found that you have the sequence "TTAAGA".'
        assert len(channel.auth_calls) == 1
        assert channel.close_calls == 1

    def test_notify_with_request_file(self, seeded_store, tmp_path):
        request_file = tmp_path / "request.json"
        request_file.write_text(
            json.dumps({"first_codon": "AAA", "final_codon": "GCC", "template": TEMPLATE}),
            encoding="utf-8",
        )
        channel = RecordingChannel()

        with patch("sequence_notifier.main.get_channel", return_value=channel):
            exit_code = main(["notify", str(request_file), "--dry-run"])

        assert exit_code == 0
        assert len(channel.sent) == 2

    def test_dry_run_uses_log_channel(self, seeded_store):
        """Test a dry run end to end without an SMTP server."""
        assert main(notify_args("--dry-run")) == 0

    def test_dispatch_failure_exit_code(self, seeded_store, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text(FAST_RETRY_CONFIG, encoding="utf-8")
        channel = RecordingChannel(fail_for=["hahn@example.com"])

        with patch("sequence_notifier.main.get_channel", return_value=channel):
            exit_code = main(["--config", str(config_file), *notify_args("--dry-run")])

        assert exit_code == 1
        assert channel.sent_to == ["tane@example.com"]

    def test_missing_request(self, seeded_store, capsys):
        assert main(["notify", "--dry-run"]) == 1
        assert "Invalid request" in capsys.readouterr().err

    def test_invalid_request(self, seeded_store, capsys):
        exit_code = main(
            ["notify", "--first-codon", "", "--final-codon", "GCC", "--template", "x", "--dry-run"]
        )

        assert exit_code == 1
        assert "Invalid request" in capsys.readouterr().err

    def test_smtp_settings_required(self, seeded_store, capsys):
        """Test that a real run without SMTP settings is a configuration error."""
        assert main(notify_args()) == 1
        assert "Configuration Error" in capsys.readouterr().err

    def test_authentication_failure(self, seeded_store, capsys):
        channel = RecordingChannel(reject_auth=True)

        with patch("sequence_notifier.main.get_channel", return_value=channel):
            exit_code = main(notify_args("--dry-run"))

        assert exit_code == 1
        assert channel.attempts == []
        assert "Authentication failed" in capsys.readouterr().err

    def test_unexpected_error(self, cli_env, capsys):
        with patch("sequence_notifier.main.build_pipeline", side_effect=RuntimeError("boom")):
            exit_code = main(notify_args("--dry-run"))

        assert exit_code == 1
        assert "Fatal error: boom" in capsys.readouterr().err

    def test_keyboard_interrupt(self, cli_env):
        with patch("sequence_notifier.main.build_pipeline", side_effect=KeyboardInterrupt):
            assert main(notify_args("--dry-run")) == 0
