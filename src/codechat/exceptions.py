"""Domain exception hierarchy for the codechat client."""

from __future__ import annotations


class CodeChatError(RuntimeError):
    """Base class for all domain-level chat errors."""


class ChatHTTPError(CodeChatError):
    """Raised when the chat service answers with a non-2xx status.

    The status code is kept as a machine-readable cause so callers can apply
    their own policy (e.g. forcing a re-login on 401).
    """

    def __init__(self, status_code: int, message: str | None = None) -> None:
        self.status_code = int(status_code)
        super().__init__(message or f"HTTP error! status: {self.status_code}")

    @property
    def is_auth_expired(self) -> bool:
        """Return True when the failure means the user session expired."""
        return self.status_code == 401


class ChatConnectionError(CodeChatError):
    """Raised when the chat service cannot be reached."""


class ChatStreamingError(CodeChatError):
    """Raised when a response body cannot be consumed as a stream."""


class StreamFrameError(ChatStreamingError):
    """Raised when a single ``data:`` line is not a valid frame."""


class SessionBusyError(CodeChatError):
    """Raised when a submission arrives while another one is in flight."""


class ConfigValidationError(CodeChatError):
    """Raised when configuration cannot be validated safely."""
