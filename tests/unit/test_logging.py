"""
Unit tests for structured logging
"""

import json
import logging

import pytest

from sendeasy.core.config import settings
from sendeasy.core.utils.logging_config import (
    StructuredFormatter,
    correlation_id_ctx,
    get_correlation_id,
    init_application_logging,
    set_correlation_id,
    setup_logging,
)

pytestmark = pytest.mark.unit


def _record(**extra):
    record = logging.LogRecord("sendeasy.test", logging.INFO, __file__, 10, "Created session", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredFormatter:
    def test_json_output(self):
        payload = json.loads(StructuredFormatter().format(_record(session_id="s-1")))

        assert payload["level"] == "INFO"
        assert payload["logger"] == "sendeasy.test"
        assert payload["message"] == "Created session"
        assert payload["extra"]["session_id"] == "s-1"

    def test_passwords_and_content_redacted(self):
        payload = json.loads(StructuredFormatter().format(_record(password="ABC123", text_content="secret note")))
        assert payload["extra"]["password"] == "[REDACTED]"
        assert payload["extra"]["text_content"] == "[REDACTED]"

    def test_sensitive_included_when_asked(self):
        payload = json.loads(StructuredFormatter(include_sensitive=True).format(_record(password="ABC123")))
        assert payload["extra"]["password"] == "ABC123"

    def test_correlation_id_attached(self):
        token = correlation_id_ctx.set("req-42")
        try:
            payload = json.loads(StructuredFormatter().format(_record()))
        finally:
            correlation_id_ctx.reset(token)
        assert payload["correlation_id"] == "req-42"


class TestCorrelationId:
    def test_generated_once(self):
        set_correlation_id(None)
        first = get_correlation_id()
        assert first
        assert get_correlation_id() == first
        set_correlation_id(None)


@pytest.fixture
def restore_root_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestSetupLogging:
    def test_log_file_receives_json(self, tmp_path, restore_root_logging):
        log_path = tmp_path / "sendeasy.log"
        setup_logging(log_level="INFO", enable_json=True, log_file=str(log_path))

        logging.getLogger("sendeasy.test").info("Swept", extra={"blocks_purged": 2})
        for handler in logging.getLogger().handlers:
            handler.flush()

        payload = json.loads(log_path.read_text().splitlines()[-1])
        assert payload["message"] == "Swept"
        assert payload["extra"]["blocks_purged"] == 2

    def test_application_logging_uses_log_file_setting(self, tmp_path, monkeypatch, restore_root_logging):
        log_path = tmp_path / "app.log"
        monkeypatch.setattr(settings, "log_file", str(log_path))

        init_application_logging()

        file_handlers = [h for h in logging.getLogger().handlers if isinstance(h, logging.FileHandler)]
        assert [h.baseFilename for h in file_handlers] == [str(log_path)]
        assert "Logging configured" in log_path.read_text()

    def test_no_file_handler_by_default(self, restore_root_logging):
        setup_logging()
        assert not any(isinstance(h, logging.FileHandler) for h in logging.getLogger().handlers)
