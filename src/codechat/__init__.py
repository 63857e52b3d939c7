"""Top-level package for the code chat client."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .chat import ChatSession
    from .config import ensure_config_dir, load_config
    from .detection import CodeDetectionEngine, SignatureBundle
    from .exceptions import (
        ChatConnectionError,
        ChatHTTPError,
        ChatStreamingError,
        CodeChatError,
        ConfigValidationError,
        SessionBusyError,
    )
    from .file_utils import (
        create_file_attachment_message,
        format_file_info_for_display,
        format_files_for_message,
        parse_file_info_from_response,
    )
    from .managers import AttachmentManager
    from .models import FileAttachment, Message
    from .state import SessionState, StateManager
    from .transcript import TranscriptDecoder
    from .transport import ChatTransport

__all__ = [
    "AttachmentManager",
    "ChatConnectionError",
    "ChatHTTPError",
    "ChatSession",
    "ChatStreamingError",
    "ChatTransport",
    "CodeChatError",
    "CodeDetectionEngine",
    "ConfigValidationError",
    "FileAttachment",
    "Message",
    "SessionBusyError",
    "SessionState",
    "SignatureBundle",
    "StateManager",
    "TranscriptDecoder",
    "create_file_attachment_message",
    "ensure_config_dir",
    "format_file_info_for_display",
    "format_files_for_message",
    "load_config",
    "parse_file_info_from_response",
]

_EXPORTS = {
    "AttachmentManager": ".managers",
    "ChatConnectionError": ".exceptions",
    "ChatHTTPError": ".exceptions",
    "ChatSession": ".chat",
    "ChatStreamingError": ".exceptions",
    "ChatTransport": ".transport",
    "CodeChatError": ".exceptions",
    "CodeDetectionEngine": ".detection",
    "ConfigValidationError": ".exceptions",
    "FileAttachment": ".models",
    "Message": ".models",
    "SessionBusyError": ".exceptions",
    "SessionState": ".state",
    "SignatureBundle": ".detection",
    "StateManager": ".state",
    "TranscriptDecoder": ".transcript",
    "create_file_attachment_message": ".file_utils",
    "ensure_config_dir": ".config",
    "format_file_info_for_display": ".file_utils",
    "format_files_for_message": ".file_utils",
    "load_config": ".config",
    "parse_file_info_from_response": ".file_utils",
}


def __getattr__(name: str) -> Any:
    """Lazily import symbols so ``import codechat`` stays free of httpx/pydantic."""
    module_name = _EXPORTS.get(name)
    if module_name is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    from importlib import import_module

    return getattr(import_module(module_name, __name__), name)
