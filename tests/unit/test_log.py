"""
Unit tests for logging configuration.

Tests cover:
- The quiet default installed for library hosts
- Leaving a host's own structlog configuration alone
- Verbose and JSON output from configure_logging
"""

import json
from collections.abc import Generator
from pathlib import Path

import pytest
import structlog
from structlog.testing import CapturingLoggerFactory

from chatstore.log import configure_logging, get_logger
from chatstore.sessions import ChatHistory
from chatstore.store import open_store


@pytest.fixture
def unconfigured() -> Generator[None, None, None]:
    """Start from structlog's own defaults, as a fresh host process does."""
    structlog.reset_defaults()
    yield
    configure_logging()


class TestLibraryDefault:
    """Tests for logging when chatstore is used without the CLI."""

    def test_default_installed_on_first_logger(self, unconfigured: None) -> None:
        assert not structlog.is_configured()
        get_logger("chatstore.test")
        assert structlog.is_configured()

    def test_library_save_prints_nothing(
        self, unconfigured: None, db_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Opening a store and saving a session writes nothing to stdout or stderr."""
        get_logger("chatstore.test")

        handle = open_store(db_path)
        with ChatHistory(handle) as history:
            history.save_messages("1", [])
            history.delete_session("1")

        captured = capsys.readouterr()
        assert captured.out == ""
        assert captured.err == ""

    def test_warnings_go_to_stderr(self, unconfigured: None, capsys: pytest.CaptureFixture[str]) -> None:
        get_logger("chatstore.test").warning("slug_collision_retry", session_id="1")

        captured = capsys.readouterr()
        assert captured.out == ""
        assert "slug_collision_retry" in captured.err

    def test_host_configuration_is_kept(self, unconfigured: None) -> None:
        """A host that configured structlog first keeps its own settings."""
        factory = CapturingLoggerFactory()
        structlog.configure(
            processors=[structlog.processors.JSONRenderer()],
            wrapper_class=structlog.make_filtering_bound_logger(0),
            logger_factory=factory,
        )

        get_logger("chatstore.test").debug("session_saved", session_id="1")

        [call] = factory.logger.calls
        assert call.method_name == "debug"
        assert json.loads(call.args[0])["event"] == "session_saved"


class TestConfigureLogging:
    """Tests for configure_logging flags."""

    def test_debug_hidden_by_default(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging()
        get_logger("chatstore.test").debug("session_saved")
        assert capsys.readouterr().err == ""

    def test_verbose_shows_debug(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(verbose=True)
        try:
            get_logger("chatstore.test").debug("session_saved", session_id="1")
        finally:
            configure_logging()
        assert "session_saved" in capsys.readouterr().err

    def test_json_logs(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(json_logs=True)
        try:
            get_logger("chatstore.test").error("store_open_failed", db_path="x")
        finally:
            configure_logging()

        event = json.loads(capsys.readouterr().err)
        assert event["event"] == "store_open_failed"
        assert event["level"] == "error"
