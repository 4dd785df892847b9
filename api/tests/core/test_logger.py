"""Unit tests for core.logger module.

- configure_logging() installs one stdout handler on the root logger
- Noisy third-party loggers are quieted
- Credential-bearing keys never reach the output
"""

import logging

import pytest

from core.logger import _redact_credentials, configure_logging


@pytest.fixture(autouse=True)
def _clean_root_logger():
    """Save and restore root logger state around each test."""
    root = logging.getLogger()
    original_handlers = root.handlers[:]
    original_level = root.level
    yield
    root.handlers = original_handlers
    root.setLevel(original_level)


@pytest.mark.unit
class TestConfigureLogging:
    def test_single_root_handler(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")

        configure_logging()
        configure_logging()

        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert root.level == logging.DEBUG

    def test_unknown_level_defaults_to_info(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "chatty")

        configure_logging()

        assert logging.getLogger().level == logging.INFO

    def test_quiets_third_party_loggers(self):
        configure_logging()

        for name in ("uvicorn.access", "sqlalchemy.engine", "asyncpg"):
            assert logging.getLogger(name).level == logging.WARNING

    def test_json_output(self, monkeypatch, capsys):
        monkeypatch.setenv("LOG_FORMAT", "json")
        configure_logging()

        logging.getLogger("streaks.test").warning("streak.timezone.fallback")

        out = capsys.readouterr().out
        assert '"event": "streak.timezone.fallback"' in out
        assert '"level": "warning"' in out


@pytest.mark.unit
class TestRedactCredentials:
    def test_masks_credential_keys(self):
        event = {
            "event": "auth.failed",
            "authorization": "Bearer secret",
            "session": "abc.def",
            "user_id": "user_1",
        }

        result = _redact_credentials(None, "warning", event)

        assert result["authorization"] == "[redacted]"
        assert result["session"] == "[redacted]"
        assert result["user_id"] == "user_1"
