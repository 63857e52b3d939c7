"""Tests for CLI entrypoint wiring."""

from __future__ import annotations

import contextlib
import io
import json
from pathlib import Path
import tempfile
import unittest
from unittest.mock import AsyncMock, patch

from codechat.__main__ import main
from codechat.models import FileAttachment
from codechat.transcript import format_files_for_api

from samples import APEX_CLASS


class MainEntrypointTests(unittest.TestCase):
    """Validate top-level main() behavior."""

    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.config_path = Path(self._tmp.name) / "config.toml"
        patcher = patch("codechat.__main__.configure_logging")
        self.configure_mock = patcher.start()
        self.addCleanup(patcher.stop)

    def _run(self, *argv: str) -> tuple[int, str]:
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            code = main(["--config", str(self.config_path), *argv])
        return code, out.getvalue()

    def _write(self, name: str, text: str) -> str:
        path = Path(self._tmp.name) / name
        path.write_text(text, encoding="utf-8")
        return str(path)

    def test_version_flag(self) -> None:
        code, output = self._run("--version")
        self.assertEqual(code, 0)
        self.assertTrue(output.startswith("codechat "))
        self.configure_mock.assert_not_called()

    def test_no_command_prints_help(self) -> None:
        code, output = self._run()
        self.assertEqual(code, 2)
        self.assertIn("usage:", output)

    def test_extract_prints_attachments(self) -> None:
        code, output = self._run("extract", self._write("msg.txt", APEX_CLASS))
        payload = json.loads(output)
        self.assertEqual(code, 0)
        self.assertEqual(payload["cleaned_text"], "")
        self.assertEqual(payload["attachments"][0]["language"], "apex")
        self.configure_mock.assert_called_once()

    def test_decode_prints_rebuilt_attachments(self) -> None:
        attachment = FileAttachment(
            id="x", name="a.py", content="print(1)", category="Python", language="python", extension="py"
        )
        code, output = self._run(
            "decode", self._write("legacy.txt", format_files_for_api("hi", [attachment]))
        )
        payload = json.loads(output)
        self.assertEqual(code, 0)
        self.assertEqual(payload["text"], "hi")
        self.assertEqual(payload["summary"], "Attached file: a.py (Python)")
        self.assertEqual(payload["attachments"][0]["content"], "print(1)")

    def test_ask_submits_through_session(self) -> None:
        with patch(
            "codechat.__main__.ChatSession.submit_pending", new_callable=AsyncMock
        ) as submit_mock:
            code, _ = self._run("ask", "hello")
        self.assertEqual(code, 0)
        submit_mock.assert_awaited_once()
        self.assertEqual(submit_mock.await_args.args[1], "hello")


if __name__ == "__main__":
    unittest.main()
