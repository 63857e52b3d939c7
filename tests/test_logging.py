"""Tests for structured logging behavior."""

from __future__ import annotations

import json
import logging
import tempfile
from pathlib import Path
import unittest

import httpx
import structlog

from codechat.chat import ChatSession
from codechat.logging_utils import configure_logging
from codechat.transport import ChatTransport


class SessionLoggingTests(unittest.IsolatedAsyncioTestCase):
    """Validate required event emission from the chat session."""

    async def test_network_error_event_emitted(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        client = httpx.AsyncClient(
            base_url="http://chat.test", transport=httpx.MockTransport(handler)
        )
        session = ChatSession(ChatTransport("http://chat.test", client=client), "c1")

        with self.assertLogs("codechat.chat", level="WARNING") as logs:
            await session.submit("hello")

        self.assertTrue(any("chat.request.network_error" in line for line in logs.output))
        await client.aclose()


class ConfigureLoggingTests(unittest.TestCase):
    """Validate configure_logging() handler setup behavior."""

    def setUp(self) -> None:
        root = logging.getLogger()
        self._original_level = root.level
        self._original_handlers = list(root.handlers)

    def tearDown(self) -> None:
        root = logging.getLogger()
        for handler in root.handlers:
            if handler not in self._original_handlers:
                handler.close()
        root.setLevel(self._original_level)
        root.handlers.clear()
        root.handlers.extend(self._original_handlers)

    def _stream_handlers(self) -> list[logging.Handler]:
        return [
            h
            for h in logging.getLogger().handlers
            if isinstance(h, logging.StreamHandler)
            and not isinstance(h, logging.FileHandler)
        ]

    def test_structured_uses_structlog_formatter(self) -> None:
        configure_logging({"level": "DEBUG", "structured": True, "log_to_file": False})
        formatters = [h.formatter for h in logging.getLogger().handlers]
        self.assertTrue(
            any(isinstance(f, structlog.stdlib.ProcessorFormatter) for f in formatters)
        )

    def test_structured_output_is_json_with_extra_fields(self) -> None:
        configure_logging({"level": "DEBUG", "structured": True, "log_to_file": False})
        formatter = self._stream_handlers()[0].formatter
        assert formatter is not None
        record = logging.LogRecord(
            name="codechat.state",
            level=logging.WARNING,
            pathname=__file__,
            lineno=1,
            msg="session.state.transition",
            args=(),
            exc_info=None,
        )
        record.from_state = "IDLE"
        record.to_state = "STREAMING"

        data = json.loads(formatter.format(record))

        self.assertEqual(data["event"], "session.state.transition")
        self.assertEqual(data["from_state"], "IDLE")
        self.assertEqual(data["level"], "warning")
        self.assertEqual(data["logger"], "codechat.state")

    def test_plain_formatter_when_not_structured(self) -> None:
        configure_logging({"level": "DEBUG", "structured": False, "log_to_file": False})
        formatters = [h.formatter for h in logging.getLogger().handlers]
        self.assertFalse(
            any(isinstance(f, structlog.stdlib.ProcessorFormatter) for f in formatters)
        )

    def test_sets_root_level_and_quiets_http_libraries(self) -> None:
        configure_logging({"level": "DEBUG", "structured": False, "log_to_file": False})
        self.assertEqual(logging.getLogger().level, logging.DEBUG)
        for name in ("httpx", "httpcore"):
            self.assertEqual(logging.getLogger(name).level, logging.WARNING)

    def test_file_handler_created(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            log_path = Path(tmp) / "nested" / "client.log"
            configure_logging(
                {
                    "level": "DEBUG",
                    "structured": False,
                    "log_to_file": True,
                    "log_file_path": str(log_path),
                }
            )
            file_handlers = [
                h for h in logging.getLogger().handlers if isinstance(h, logging.FileHandler)
            ]
            self.assertEqual(len(file_handlers), 1)
            self.assertTrue(log_path.exists())
            for handler in file_handlers:
                handler.close()

    def test_stderr_handler_filters_to_package(self) -> None:
        configure_logging({"level": "DEBUG", "structured": False, "log_to_file": False})
        handler = self._stream_handlers()[0]

        def _record(name: str) -> logging.LogRecord:
            return logging.LogRecord(
                name=name,
                level=logging.WARNING,
                pathname="",
                lineno=0,
                msg="msg",
                args=(),
                exc_info=None,
            )

        self.assertTrue(handler.filter(_record("codechat.chat")))
        self.assertFalse(handler.filter(_record("httpx")))


if __name__ == "__main__":
    unittest.main()
