"""Small presentation helpers for attachment lists."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from .models import FileAttachment

PREVIEW_CHARS = 100


def format_files_for_message(
    files: Sequence[FileAttachment] | None,
) -> list[dict[str, str]] | None:
    if not files:
        return None
    return [
        {
            "name": item.name,
            "content": item.content,
            "type": item.category,
            "language": item.language,
        }
        for item in files
    ]


def create_file_attachment_message(files: Sequence[FileAttachment] | None) -> str:
    """Summarize attachments as ``Attached file(s): name (type), ...``."""
    if not files:
        return ""
    listing = ", ".join(f"{item.name} ({item.category})" for item in files)
    noun = "file" if len(files) == 1 else "files"
    return f"Attached {noun}: {listing}"


def format_file_info_for_display(file: FileAttachment) -> dict[str, str]:
    content = file.content
    preview = f"{content[:PREVIEW_CHARS]}..." if len(content) > PREVIEW_CHARS else content
    return {
        "name": file.name,
        "type": file.category,
        "language": file.language,
        "content_preview": preview,
    }


def parse_file_info_from_response(payload: Any) -> list[dict[str, str]] | None:
    """Normalize the optional ``files`` list of a service response.

    Missing fields default to ``Unknown`` type, empty content and
    ``plaintext`` language; entries without a name are skipped.
    """
    if not isinstance(payload, dict):
        return None
    files = payload.get("files")
    if not isinstance(files, list):
        return None

    parsed: list[dict[str, str]] = []
    for entry in files:
        if not isinstance(entry, dict) or not entry.get("name"):
            continue
        parsed.append(
            {
                "name": str(entry["name"]),
                "type": str(entry.get("type") or "Unknown"),
                "content": str(entry.get("content") or ""),
                "language": str(entry.get("language") or "plaintext"),
            }
        )
    return parsed
