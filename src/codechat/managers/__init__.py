"""Manager classes that own client-side state outside the chat session.

Available managers:
- AttachmentManager: Pending attachment admission, limits and error slot
"""

from __future__ import annotations

from .attachment import (
    ERROR_CLEAR_SECONDS,
    MAX_ATTACHMENTS,
    MAX_FILE_BYTES,
    AttachmentManager,
    duplicate_names,
)

__all__ = [
    "AttachmentManager",
    "ERROR_CLEAR_SECONDS",
    "MAX_ATTACHMENTS",
    "MAX_FILE_BYTES",
    "duplicate_names",
]
