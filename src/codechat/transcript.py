"""Legacy transcript decoding.

Older user messages were persisted as plain text with their attachments
inlined as ``Attached <category> (<name>):`` headers followed by fenced code,
or as content-less ``[Attached Code: <name>]`` references. ``TranscriptDecoder``
rebuilds the structured ``{text, attachments}`` shape from that text.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
import logging
import re
import secrets
import time
from typing import Any

from .detection.engine import collapse_newlines
from .detection.languages import (
    category_for_extension,
    file_extension,
    language_for_extension,
)
from .models import FileAttachment, Message

LOGGER = logging.getLogger(__name__)

SENTINEL_CONTENT = "[This content was originally a large code block in the message]"

HEADER_PATTERN = re.compile(r"Attached ([^(]+) \(([^)]+)\):")
SECTION_FENCE_PATTERN = re.compile(r"```(\w+)?\n([\s\S]*?)\n```")
ANY_FENCE_PATTERN = re.compile(r"```\w*\n[\s\S]*?\n```")
CODE_REFERENCE_PATTERN = re.compile(r"\[Attached Code: ([^\]]+)\]")


def serialize_attachment(attachment: FileAttachment) -> str:
    """Render one attachment in the inline header + fence format."""
    return (
        f"Attached {attachment.category} ({attachment.name}):\n"
        f"```{attachment.language}\n{attachment.content}\n```\n\n"
    )


def format_files_for_api(text: str, files: Iterable[FileAttachment]) -> str:
    """Append every attachment to ``text`` in the inline format sent upstream."""
    rendered = "".join(serialize_attachment(item) for item in files)
    if not rendered:
        return text
    return f"{text}\n\n{rendered}"


def _random_suffix() -> str:
    return secrets.token_hex(5)[:9]


@dataclass(frozen=True)
class DecodedMessage:
    """Visible text plus the attachments reconstructed from it."""

    text: str
    attachments: tuple[FileAttachment, ...] = field(default_factory=tuple)


class TranscriptDecoder:
    """Rebuild structured attachments from legacy text-only user messages."""

    def decode_text(self, text: str) -> DecodedMessage:
        headers = list(HEADER_PATTERN.finditer(text))
        references = list(CODE_REFERENCE_PATTERN.finditer(text))
        if not headers and not references:
            return DecodedMessage(text=text)

        attachments: list[FileAttachment] = []
        cleaned = text

        if headers:
            attachments.extend(self._decode_sections(text, headers))
            cleaned = HEADER_PATTERN.sub("", cleaned)
            cleaned = ANY_FENCE_PATTERN.sub("", cleaned)
            cleaned = collapse_newlines(cleaned)

        if references:
            stamp = int(time.time() * 1000)
            for match in references:
                file_name = match.group(1)
                extension = file_extension(file_name) or "txt"
                attachments.append(
                    FileAttachment(
                        id=f"code-{stamp}-{_random_suffix()}",
                        name=file_name,
                        content=SENTINEL_CONTENT,
                        category=category_for_extension(extension),
                        language=language_for_extension(extension),
                        extension=extension,
                    )
                )
                cleaned = cleaned.replace(match.group(0), "", 1)
            cleaned = collapse_newlines(cleaned)

        LOGGER.debug(
            "transcript.decoded",
            extra={
                "event": "transcript.decoded",
                "headers": len(headers),
                "references": len(references),
                "attachments": len(attachments),
            },
        )
        return DecodedMessage(text=cleaned, attachments=tuple(attachments))

    @staticmethod
    def _decode_sections(
        text: str, headers: list[re.Match[str]]
    ) -> list[FileAttachment]:
        bounds = [match.start() for match in headers] + [len(text)]
        stamp = int(time.time() * 1000)
        decoded: list[FileAttachment] = []
        for index, match in enumerate(headers):
            section = text[bounds[index] : bounds[index + 1]]
            category = match.group(1)
            file_name = match.group(2)
            extension = file_extension(file_name)

            fence = SECTION_FENCE_PATTERN.search(section)
            if fence is None:
                continue
            decoded.append(
                FileAttachment(
                    id=f"file-{stamp}-{index}-{_random_suffix()}",
                    name=file_name,
                    content=fence.group(2),
                    category=category,
                    language=fence.group(1) or language_for_extension(extension),
                    extension=extension,
                )
            )
        return decoded

    def decode(self, message: Message) -> Message:
        """Return ``message`` with legacy inline attachments made structured.

        Messages that already carry a file list, non-user messages and
        non-string content are returned unchanged.
        """
        if (
            message.role != "user"
            or message.files is not None
            or not isinstance(message.content, str)
        ):
            return message
        decoded = self.decode_text(message.content)
        if not decoded.attachments and decoded.text == message.content:
            return message
        return Message(
            id=message.id,
            role=message.role,
            content=decoded.text,
            created_at=message.created_at,
            files=decoded.attachments or None,
        )

    def convert_to_ui_messages(
        self, messages: Iterable[Message | dict[str, Any]]
    ) -> list[Message]:
        """Normalize stored messages for display.

        Array-shaped content (``[{"type": "text", "text": ...}]``) is flattened
        to its text parts; user messages are decoded.
        """
        converted: list[Message] = []
        for item in messages:
            message = item if isinstance(item, Message) else Message.from_dict(item)
            if isinstance(message.content, list):
                flattened = "".join(
                    str(part.get("text", ""))
                    for part in message.content
                    if isinstance(part, dict) and part.get("type") == "text"
                )
                message = message.with_content(flattened)
            converted.append(self.decode(message))
        return converted


def most_recent_user_message(messages: Iterable[Message]) -> Message | None:
    latest: Message | None = None
    for message in messages:
        if message.role == "user":
            latest = message
    return latest
