"""Transcript and attachment data containers."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Literal
import uuid

Role = Literal["system", "user", "assistant", "data"]


def generate_id() -> str:
    """Return a random UUID4 string."""
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class FileAttachment:
    """A discrete unit of source text with language/category metadata.

    ``category`` is the human-readable label ("Apex Class", "JavaScript", ...)
    and travels as ``type`` on the wire and in persisted payloads.
    """

    id: str
    name: str
    content: str
    category: str
    language: str
    extension: str

    @property
    def size_bytes(self) -> int:
        return len(self.content.encode("utf-8"))

    def metadata(self) -> dict[str, str]:
        """Return the content-less description sent as ``attached_files``."""
        return {
            "name": self.name,
            "type": self.category,
            "language": self.language,
            "extension": self.extension,
        }

    def to_dict(self) -> dict[str, str]:
        payload = self.metadata()
        payload["id"] = self.id
        payload["content"] = self.content
        return payload

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> FileAttachment:
        name = str(payload.get("name", ""))
        extension = str(payload.get("extension") or "")
        if not extension and "." in name:
            extension = name.rsplit(".", 1)[-1].lower()
        return cls(
            id=str(payload.get("id") or generate_id()),
            name=name,
            content=str(payload.get("content", "")),
            category=str(payload.get("category") or payload.get("type") or "Unknown"),
            language=str(payload.get("language") or "plaintext"),
            extension=extension,
        )


@dataclass(frozen=True)
class Message:
    """One transcript entry.

    Messages are never mutated; streaming replaces the tail message with a
    copy carrying the appended text (see ``with_appended``).
    """

    role: Role
    content: Any = ""
    id: str = field(default_factory=generate_id)
    created_at: datetime = field(default_factory=_utcnow)
    files: tuple[FileAttachment, ...] | None = None

    def with_appended(self, text: str) -> Message:
        return replace(self, content=f"{self.content}{text}")

    def with_content(self, text: str) -> Message:
        return replace(self, content=text)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "role": self.role,
            "content": self.content,
            "createdAt": self.created_at.isoformat(),
        }
        if self.files is not None:
            payload["files"] = [item.to_dict() for item in self.files]
        return payload

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> Message:
        """Build a message from a persisted payload, tolerating missing fields."""
        raw_created = payload.get("createdAt") or payload.get("created_at")
        created_at = _utcnow()
        if isinstance(raw_created, datetime):
            created_at = raw_created
        elif isinstance(raw_created, str) and raw_created.strip():
            try:
                created_at = datetime.fromisoformat(raw_created.replace("Z", "+00:00"))
            except ValueError:
                created_at = _utcnow()

        raw_files = payload.get("files")
        files: tuple[FileAttachment, ...] | None = None
        if isinstance(raw_files, list):
            files = tuple(
                FileAttachment.from_dict(item)
                for item in raw_files
                if isinstance(item, dict)
            )

        content = payload.get("content", "")
        if content is None:
            content = ""
        return cls(
            id=str(payload.get("id") or generate_id()),
            role=str(payload.get("role", "user")).strip().lower(),  # type: ignore[arg-type]
            content=content,
            created_at=created_at,
            files=files,
        )


@dataclass(frozen=True)
class StreamFrame:
    """One unit of a streamed response."""

    content: str | None = None
    done: bool = False


@dataclass(frozen=True)
class FileUpload:
    """A dropped or picked file awaiting admission.

    ``read`` is awaited only after the size and duplicate checks pass.
    """

    name: str
    size: int
    read: Callable[[], Awaitable[str]]

    @classmethod
    def from_path(cls, path: str | Path) -> FileUpload:
        resolved = Path(path).expanduser()

        async def _read() -> str:
            return await asyncio.to_thread(resolved.read_text, encoding="utf-8")

        return cls(name=resolved.name, size=resolved.stat().st_size, read=_read)

    @classmethod
    def from_text(cls, name: str, text: str) -> FileUpload:
        async def _read() -> str:
            return text

        return cls(name=name, size=len(text.encode("utf-8")), read=_read)


def attachment_metadata(files: Iterable[FileAttachment]) -> list[dict[str, str]]:
    """Return ``attached_files`` metadata for a batch of attachments."""
    return [item.metadata() for item in files]
