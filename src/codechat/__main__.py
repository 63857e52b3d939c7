"""CLI entrypoint for the code chat client."""

from __future__ import annotations

import argparse
import asyncio
from collections.abc import Sequence
from importlib import metadata
import json
from pathlib import Path
import sys
from typing import Any

from .chat import ChatSession
from .config import load_config
from .detection import CodeDetectionEngine, DetectionThresholds
from .exceptions import CodeChatError
from .file_utils import create_file_attachment_message
from .logging_utils import configure_logging
from .managers import AttachmentManager
from .models import FileUpload, generate_id
from .transcript import TranscriptDecoder

DISTRIBUTION = "codechat-client"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="codechat",
        description="codechat - client for a conversational coding assistant",
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print version and exit",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to an alternative config.toml",
    )
    commands = parser.add_subparsers(dest="command")

    extract = commands.add_parser(
        "extract", help="Split embedded code out of a message into attachments"
    )
    extract.add_argument("path", help="File to read, or '-' for stdin")

    decode = commands.add_parser(
        "decode", help="Rebuild attachments from a legacy text-only message"
    )
    decode.add_argument("path", help="File to read, or '-' for stdin")

    ask = commands.add_parser("ask", help="Send a question and stream the reply")
    ask.add_argument("text", help="Message text")
    ask.add_argument(
        "--file",
        dest="files",
        action="append",
        type=Path,
        default=[],
        help="Attach a file (repeatable)",
    )
    ask.add_argument("--chat-id", default=None, help="Reuse an existing chat id")
    ask.add_argument(
        "--no-stream",
        action="store_true",
        help="Use the non-streaming query endpoint",
    )
    return parser


def _read_source(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8")


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def _extract(config: dict[str, Any], path: str) -> int:
    engine = CodeDetectionEngine(thresholds=DetectionThresholds.from_config(config))
    result = engine.extract_code_blocks(_read_source(path))
    _print_json(
        {
            "cleaned_text": result.cleaned_text,
            "summary": create_file_attachment_message(result.attachments),
            "attachments": [item.to_dict() for item in result.attachments],
        }
    )
    return 0


def _decode(path: str) -> int:
    decoded = TranscriptDecoder().decode_text(_read_source(path))
    _print_json(
        {
            "text": decoded.text,
            "summary": create_file_attachment_message(decoded.attachments),
            "attachments": [item.to_dict() for item in decoded.attachments],
        }
    )
    return 0


async def _ask(config: dict[str, Any], args: argparse.Namespace) -> int:
    engine = CodeDetectionEngine(thresholds=DetectionThresholds.from_config(config))
    manager = AttachmentManager.from_config(config, engine)
    session = ChatSession.from_config(
        config,
        args.chat_id or generate_id(),
        streaming=not args.no_stream,
        on_delta=lambda text: print(text, end="", flush=True),
    )
    try:
        if args.files:
            await manager.add_files([FileUpload.from_path(path) for path in args.files])
            summary = create_file_attachment_message(manager.attachments)
            if summary:
                print(summary, file=sys.stderr)
            if manager.error:
                print(manager.error, file=sys.stderr)
        try:
            await session.submit_pending(manager, args.text)
        except CodeChatError as exc:
            print(f"\n{exc}", file=sys.stderr)
            return 1
        print()
        if session.error is not None:
            print(str(session.error), file=sys.stderr)
            return 1
        return 0
    finally:
        await manager.aclose()
        await session.aclose()


def main(argv: Sequence[str] | None = None) -> int:
    """Parse CLI flags, load configuration and run the selected command."""

    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    if args.version:
        try:
            version = metadata.version(DISTRIBUTION)
        except metadata.PackageNotFoundError:
            version = "0.0.0"
        print(f"codechat {version}")
        return 0

    if args.command is None:
        parser.print_help()
        return 2

    config = load_config(args.config)
    configure_logging(config["logging"])

    if args.command == "extract":
        return _extract(config, args.path)
    if args.command == "decode":
        return _decode(args.path)
    return asyncio.run(_ask(config, args))


if __name__ == "__main__":
    raise SystemExit(main())
