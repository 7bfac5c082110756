"""Tests for logging context and storage log events.

Covers:
- Logging ContextVars (request_id, owner_id)
- Upload events carry keys, never download URLs
- LOG_JSON selects the log renderer
"""

import logging

import pytest
import structlog
from structlog.testing import capture_logs

from imagestore.logging import (
    add_request_context,
    clear_request_context,
    configure_logging,
    set_request_context,
)


class TestRequestContext:
    def test_context_injected(self):
        set_request_context("req-1", owner_id="u1")

        event = add_request_context(None, "info", {"event": "x"})

        assert event["request_id"] == "req-1"
        assert event["owner_id"] == "u1"

    def test_unset_context_omitted(self):
        event = add_request_context(None, "info", {"event": "x"})
        assert event == {"event": "x"}

    def test_clear(self):
        set_request_context("req-1", owner_id="u1")

        clear_request_context()

        assert add_request_context(None, "info", {"event": "x"}) == {"event": "x"}


class TestStorageEvents:
    @pytest.mark.asyncio
    async def test_upload_logs_key_not_url(self, uploader):
        key = "user-assets/u1/t1_1.png"

        with capture_logs() as logs:
            url = await uploader.upload(key, b"x", "image/png")

        finished = [e for e in logs if e["event"] == "storage.upload.finished"]
        assert len(finished) == 1
        assert finished[0]["key"] == key
        assert finished[0]["size_bytes"] == 1
        assert all(url not in str(e) for e in logs)


@pytest.fixture
def preserved_root_logger(monkeypatch):
    """Keep configure_logging from leaking handlers or structlog config."""
    monkeypatch.setattr(structlog, "configure", lambda **kwargs: None)
    root_logger = logging.getLogger()
    handlers = list(root_logger.handlers)
    level = root_logger.level
    yield root_logger
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)


class TestConfigureLogging:
    def _renderer(self, root_logger):
        return root_logger.handlers[-1].formatter.processors[-1]

    def test_json_by_default(self, preserved_root_logger):
        configure_logging()
        renderer = self._renderer(preserved_root_logger)
        assert isinstance(renderer, structlog.processors.JSONRenderer)

    def test_log_json_false_uses_console(self, monkeypatch, preserved_root_logger):
        """LOG_JSON=false switches to console rendering."""
        monkeypatch.setenv("LOG_JSON", "false")

        configure_logging()

        renderer = self._renderer(preserved_root_logger)
        assert isinstance(renderer, structlog.dev.ConsoleRenderer)

    def test_explicit_argument_wins(self, monkeypatch, preserved_root_logger):
        monkeypatch.setenv("LOG_JSON", "false")

        configure_logging(json_format=True)

        renderer = self._renderer(preserved_root_logger)
        assert isinstance(renderer, structlog.processors.JSONRenderer)
