"""Line-oriented ``data: {json}`` frame codec for streamed responses."""

from __future__ import annotations

import codecs
import json
import logging

from .exceptions import StreamFrameError
from .models import StreamFrame

LOGGER = logging.getLogger(__name__)

DATA_PREFIX = "data: "
NETWORK_ERROR_MESSAGE = "Network Error - Please try again!"


def parse_frame_line(line: str) -> StreamFrame | None:
    """Parse one line of the stream.

    Returns None for lines that do not carry a frame. Raises
    ``StreamFrameError`` when a ``data:`` line holds invalid JSON.
    """
    if not line.startswith(DATA_PREFIX):
        return None
    try:
        payload = json.loads(line[len(DATA_PREFIX) :])
    except json.JSONDecodeError as exc:
        raise StreamFrameError(f"Invalid stream frame: {exc}") from exc
    if not isinstance(payload, dict):
        raise StreamFrameError("Stream frame must be a JSON object.")

    content = payload.get("content")
    if content is not None and not isinstance(content, str):
        content = str(content)
    return StreamFrame(content=content, done=bool(payload.get("done", False)))


def encode_frame(frame: StreamFrame) -> bytes:
    payload = {"content": frame.content or "", "done": frame.done}
    return f"{DATA_PREFIX}{json.dumps(payload, ensure_ascii=False)}\n\n".encode("utf-8")


def network_error_frames() -> list[bytes]:
    """Two-frame fallback stream used when the transport fails outright."""
    return [
        encode_frame(StreamFrame(content=NETWORK_ERROR_MESSAGE, done=False)),
        encode_frame(StreamFrame(content="", done=True)),
    ]


class FrameDecoder:
    """Turn raw body chunks into frames, one chunk at a time.

    Bytes are decoded incrementally so multi-byte characters split across
    chunks survive. A ``data:`` line cut by a chunk boundary is held back
    until its newline arrives; ``flush`` parses whatever remains at close.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._pending = ""

    def feed(self, chunk: bytes) -> list[StreamFrame]:
        text = self._pending + self._decoder.decode(chunk)
        lines = text.split("\n")
        self._pending = lines.pop()
        return self._parse_lines(lines)

    def flush(self) -> list[StreamFrame]:
        text = self._pending + self._decoder.decode(b"", final=True)
        self._pending = ""
        return self._parse_lines([text]) if text else []

    @staticmethod
    def _parse_lines(lines: list[str]) -> list[StreamFrame]:
        frames: list[StreamFrame] = []
        for line in lines:
            try:
                frame = parse_frame_line(line.rstrip("\r"))
            except StreamFrameError as exc:
                LOGGER.warning(
                    "chat.stream.frame_invalid",
                    extra={"event": "chat.stream.frame_invalid", "error": str(exc)},
                )
                continue
            if frame is not None:
                frames.append(frame)
        return frames
