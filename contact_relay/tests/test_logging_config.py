"""
Logging Configuration Tests
===========================
"""

import logging

from contact_relay.app.core.logging_config import ContextFormatter, configure_logging


def _record(**extra):
    record = logging.LogRecord("contact_relay.test", logging.INFO, __file__, 1, "Email sent", (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestContextFormatter:
    """Tests for ContextFormatter."""

    def test_appends_extra_context(self):
        formatter = ContextFormatter("%(levelname)s %(message)s")

        line = formatter.format(_record(provider="relay_api_key", duration_ms=12))

        assert line == "INFO Email sent | provider=relay_api_key duration_ms=12"

    def test_plain_record_is_unchanged(self):
        formatter = ContextFormatter("%(message)s")

        assert formatter.format(_record()) == "Email sent"


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_is_idempotent(self, settings, monkeypatch):
        root = logging.getLogger()
        monkeypatch.setattr(root, "handlers", [])
        monkeypatch.setattr(root, "level", root.level)

        configure_logging(settings)
        configure_logging(settings)

        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, ContextFormatter)
        assert root.level == logging.INFO
