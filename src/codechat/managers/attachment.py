"""Pending attachment set for the next outgoing message.

Enforces the count, size and duplicate-name limits for every producer
(drag-and-drop, file picker, paste) and reports rejections through a single
error slot instead of raising.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable, Sequence
import logging
from typing import Any

from ..detection import CodeDetectionEngine
from ..detection.languages import file_extension
from ..models import FileAttachment, FileUpload, generate_id
from ..task_manager import TaskManager

LOGGER = logging.getLogger(__name__)

MAX_ATTACHMENTS = 3
MAX_FILE_BYTES = 50 * 1024
ERROR_CLEAR_SECONDS = 5.0

_ERROR_TIMER = "attachment_error_clear"


def duplicate_names(pending: Iterable[FileAttachment]) -> frozenset[str]:
    """Return the case-folded names already present in ``pending``.

    Recomputed from the current snapshot on every admission check so that
    several producers can never disagree about what is attached.
    """
    return frozenset(item.name.lower() for item in pending)


def _format_size(max_bytes: int) -> str:
    return f"{max_bytes // 1024}KB"


class AttachmentManager:
    """Own the pending attachments until ``take`` hands them to a session.

    Responsibilities:
    - Admitting dropped/picked files (count, size, duplicate checks)
    - Converting qualifying paste events into attachments
    - Bulk replacement and removal, each notifying one downstream consumer
    - A single, most-recent error message with delayed auto-clear
    """

    def __init__(
        self,
        engine: CodeDetectionEngine | None = None,
        *,
        max_attachments: int = MAX_ATTACHMENTS,
        max_file_bytes: int = MAX_FILE_BYTES,
        error_clear_seconds: float = ERROR_CLEAR_SECONDS,
        task_manager: TaskManager | None = None,
    ) -> None:
        self.engine = engine or CodeDetectionEngine()
        self.max_attachments = max_attachments
        self.max_file_bytes = max_file_bytes
        self.error_clear_seconds = error_clear_seconds
        self.task_manager = task_manager or TaskManager()
        self._pending: tuple[FileAttachment, ...] = ()
        self._add_lock = asyncio.Lock()
        self._error = ""
        self._on_change: Callable[[tuple[FileAttachment, ...]], None] | None = None
        self._on_error: Callable[[str], None] | None = None

    @classmethod
    def from_config(
        cls, config: dict[str, Any], engine: CodeDetectionEngine | None = None
    ) -> AttachmentManager:
        section = config.get("attachments", {})
        return cls(
            engine,
            max_attachments=int(section.get("max_attachments", MAX_ATTACHMENTS)),
            max_file_bytes=int(section.get("max_file_bytes", MAX_FILE_BYTES)),
            error_clear_seconds=float(
                section.get("error_clear_seconds", ERROR_CLEAR_SECONDS)
            ),
        )

    def on_change(self, callback: Callable[[tuple[FileAttachment, ...]], None]) -> None:
        """Register the consumer notified with the full set after each change."""
        self._on_change = callback

    def on_error(self, callback: Callable[[str], None]) -> None:
        """Register callback for error slot updates (empty string on clear)."""
        self._on_error = callback

    @property
    def attachments(self) -> tuple[FileAttachment, ...]:
        return self._pending

    @property
    def count(self) -> int:
        return len(self._pending)

    @property
    def error(self) -> str:
        return self._error

    @property
    def max_attachments_message(self) -> str:
        return f"Maximum {self.max_attachments} attachments allowed"

    def _set_error(self, message: str) -> None:
        self._error = message
        if message:
            LOGGER.warning(
                "attachments.rejected",
                extra={"event": "attachments.rejected", "reason": message},
            )
        if self._on_error:
            self._on_error(message)

    def clear_error(self) -> None:
        if self._error:
            self._set_error("")

    def _schedule_error_clear(self) -> None:
        self.task_manager.call_later(
            _ERROR_TIMER, self.error_clear_seconds, self.clear_error
        )

    def _commit(self, files: Sequence[FileAttachment]) -> None:
        self._pending = tuple(files)
        if self._on_change:
            self._on_change(self._pending)

    async def add_files(self, uploads: Sequence[FileUpload]) -> tuple[FileAttachment, ...]:
        """Admit dropped or picked files, returning the newly added attachments.

        One bad file does not block the others in the batch. Reads start
        concurrently but are merged back in the original file order. Batches
        from several producers are admitted one at a time.
        """
        if not uploads:
            return ()

        async with self._add_lock:
            return await self._add_files_locked(uploads)

    async def _add_files_locked(
        self, uploads: Sequence[FileUpload]
    ) -> tuple[FileAttachment, ...]:
        if len(self._pending) + len(uploads) > self.max_attachments:
            self._set_error(
                f"You can only attach up to {self.max_attachments} files at a time."
            )
            return ()

        taken = set(duplicate_names(self._pending))
        has_errors = False
        admitted: list[FileUpload] = []
        for upload in uploads:
            if upload.size > self.max_file_bytes:
                self._set_error(
                    f'File "{upload.name}" exceeds the '
                    f"{_format_size(self.max_file_bytes)} size limit."
                )
                has_errors = True
                continue
            if upload.name.lower() in taken:
                self._set_error(f'File "{upload.name}" is already attached.')
                has_errors = True
                continue
            taken.add(upload.name.lower())
            admitted.append(upload)

        results = await asyncio.gather(
            *(upload.read() for upload in admitted), return_exceptions=True
        )

        new_files: list[FileAttachment] = []
        for upload, result in zip(admitted, results):
            if isinstance(result, BaseException):
                LOGGER.error(
                    "attachments.read_failed",
                    extra={
                        "event": "attachments.read_failed",
                        "file": upload.name,
                        "error": str(result),
                    },
                )
                self._set_error(f"Failed to read {upload.name}. Please try again.")
                has_errors = True
                continue
            # A paste may have landed while the reads were in flight.
            if len(self._pending) + len(new_files) >= self.max_attachments:
                self._set_error(self.max_attachments_message)
                has_errors = True
                continue
            if upload.name.lower() in duplicate_names(self._pending):
                self._set_error(f'File "{upload.name}" is already attached.')
                has_errors = True
                continue
            new_files.append(self._build_attachment(upload.name, result))

        if new_files:
            self._commit([*self._pending, *new_files])
            LOGGER.info(
                "attachments.added",
                extra={
                    "event": "attachments.added",
                    "count": len(new_files),
                    "total": len(self._pending),
                },
            )

        if not has_errors:
            self._schedule_error_clear()
        return tuple(new_files)

    def _build_attachment(self, name: str, content: str) -> FileAttachment:
        extension = file_extension(name)
        language, category = self.engine.detect_file_type(name, content, extension)
        return FileAttachment(
            id=generate_id(),
            name=name,
            content=content,
            category=category,
            language=language,
            extension=extension,
        )

    def add_paste(self, text: str) -> bool:
        """Handle a paste event.

        Returns True when the paste was consumed (converted to an attachment,
        or blocked because the set is full) and must not reach the text input.
        """
        attachment = self.engine.classify_paste(text)
        if attachment is None:
            return False

        if len(self._pending) >= self.max_attachments:
            self._set_error(self.max_attachments_message)
            return True

        if attachment.name.lower() in duplicate_names(self._pending):
            attachment = self.engine.create_paste_attachment(
                attachment.language, attachment.category, attachment.content
            )
        self._commit([*self._pending, attachment])
        self.clear_error()
        LOGGER.info(
            "attachments.paste_converted",
            extra={
                "event": "attachments.paste_converted",
                "category": attachment.category,
                "size": attachment.size_bytes,
            },
        )
        return True

    def replace_all(self, files: Sequence[FileAttachment]) -> None:
        """Replace the whole set with a producer's view of it.

        Producers that already merged their own additions hand over the
        complete list; appending instead would double-add files both sides saw.
        """
        kept: list[FileAttachment] = []
        seen: set[str] = set()
        for item in files:
            key = item.name.lower()
            if key in seen:
                continue
            seen.add(key)
            kept.append(item)

        if len(kept) > self.max_attachments:
            self._set_error(self.max_attachments_message)
            kept = kept[: self.max_attachments]
        else:
            self.clear_error()
        self._commit(kept)

    def remove(self, attachment_id: str) -> bool:
        """Remove the attachment with ``attachment_id``; False if not present."""
        remaining = [item for item in self._pending if item.id != attachment_id]
        if len(remaining) == len(self._pending):
            return False
        self._commit(remaining)
        return True

    def take(self) -> tuple[FileAttachment, ...]:
        """Hand the pending set over to the caller and clear it."""
        taken = self._pending
        self._pending = ()
        self.clear_error()
        if taken and self._on_change:
            self._on_change(self._pending)
        return taken

    async def aclose(self) -> None:
        await self.task_manager.cancel_all()
