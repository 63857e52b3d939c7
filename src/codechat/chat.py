"""Async chat session: submission, streamed response assembly and cancellation."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable
import inspect
import logging
from typing import TYPE_CHECKING, Any

from .exceptions import (
    ChatConnectionError,
    ChatHTTPError,
    ChatStreamingError,
    CodeChatError,
    SessionBusyError,
)
from .models import FileAttachment, Message, StreamFrame, attachment_metadata, generate_id
from .state import CancelStatus, SessionState, StateManager
from .stream import FrameDecoder, network_error_frames
from .transcript import format_files_for_api
from .transport import ChatTransport

if TYPE_CHECKING:
    from .managers.attachment import AttachmentManager

LOGGER = logging.getLogger(__name__)

STREAM_PATH_SUFFIX = "stream"


async def _invoke(callback: Callable[..., Any] | None, *args: Any) -> None:
    if callback is None:
        return
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


class ChatSession:
    """Own one conversation's transcript and drive its submissions.

    The transcript is an immutable tuple that is swapped, never mutated:
    streaming replaces the tail assistant message with an extended copy, so
    readers always observe a consistent snapshot.
    """

    def __init__(
        self,
        transport: ChatTransport,
        chat_id: str,
        *,
        user_id: str | None = None,
        api_path: str = "/api/query/stream",
        reset_path: str = "/api/chat/reset",
        new_path: str = "/api/chat/new",
        server_timeout: float | None = None,
        initial_messages: Iterable[Message] = (),
        on_finish: Callable[[], Any] | None = None,
        on_chat_reset_finish: Callable[[Any], Any] | None = None,
        on_delta: Callable[[str], None] | None = None,
    ) -> None:
        self.transport = transport
        self.chat_id = chat_id
        self.user_id = user_id
        self.api_path = api_path
        self.reset_path = reset_path
        self.new_path = new_path
        self.server_timeout = server_timeout
        self.state_manager = StateManager()
        self._messages: tuple[Message, ...] = tuple(initial_messages)
        self._input = ""
        self._error: CodeChatError | None = None
        self._cancel = CancelStatus.TERMINATED
        self._on_finish = on_finish
        self._on_chat_reset_finish = on_chat_reset_finish
        self._on_delta = on_delta

    @classmethod
    def from_config(
        cls,
        config: dict[str, Any],
        chat_id: str,
        transport: ChatTransport | None = None,
        *,
        streaming: bool = True,
        **kwargs: Any,
    ) -> ChatSession:
        api = config.get("api", {})
        user_id = str(api.get("user_id") or "").strip() or None
        if streaming:
            api_path = str(api.get("stream_path", "/api/query/stream"))
        else:
            api_path = str(api.get("query_path", "/api/query"))
        return cls(
            transport or ChatTransport.from_config(config),
            chat_id,
            user_id=user_id,
            api_path=api_path,
            reset_path=str(api.get("reset_path", "/api/chat/reset")),
            new_path=str(api.get("new_path", "/api/chat/new")),
            server_timeout=float(api.get("timeout_seconds", 90.0)),
            **kwargs,
        )

    @property
    def messages(self) -> tuple[Message, ...]:
        return self._messages

    @property
    def state(self) -> SessionState:
        return self.state_manager.current

    @property
    def is_loading(self) -> bool:
        return self.state in {SessionState.SUBMITTING, SessionState.STREAMING}

    @property
    def error(self) -> CodeChatError | None:
        return self._error

    @property
    def cancel_status(self) -> CancelStatus:
        return self._cancel

    @property
    def streaming(self) -> bool:
        """True when the configured endpoint streams ``data:`` frames."""
        return self.api_path.rstrip("/").endswith(STREAM_PATH_SUFFIX)

    @property
    def input(self) -> str:
        return self._input

    def set_input(self, text: str) -> None:
        self._input = text

    def load_messages(self, messages: Iterable[Message]) -> None:
        """Replace the transcript with a previously stored conversation."""
        if self.is_loading:
            raise SessionBusyError("Cannot load messages while a response is streaming.")
        self._messages = tuple(messages)

    def build_request(self, text: str, files: tuple[FileAttachment, ...]) -> dict[str, Any]:
        body: dict[str, Any] = {
            "query": format_files_for_api(text, files),
            "chatId": self.chat_id,
        }
        if self.user_id:
            body["userId"] = self.user_id
        if files:
            body["attached_files"] = attachment_metadata(files)
        return body

    async def submit(
        self,
        text: str | None = None,
        attachments: Iterable[FileAttachment] = (),
    ) -> Message | None:
        """Send ``text`` (default: the current input) with ``attachments``.

        Returns the final assistant message, or None when there was nothing
        to send or the request failed softly (see ``error``).

        Raises:
            SessionBusyError: If a previous submission is still in flight.
            ChatHTTPError: If the service answered with a non-2xx status.

        Errors raised by ``on_delta`` propagate after the session has moved
        to ERROR, so a later submission is still accepted.
        """
        message_text = self._input if text is None else text
        files = tuple(attachments)
        if not message_text and not files:
            return None

        if not await self.state_manager.begin_submission():
            raise SessionBusyError("Please wait for the model to finish its response!")

        self._error = None
        self._cancel = CancelStatus.ACTIVE
        body = self.build_request(message_text, files)
        user_message = Message(role="user", content=message_text, files=files or None)
        self._messages = (*self._messages, user_message, Message(role="assistant"))
        self._input = ""

        LOGGER.info(
            "chat.submit.start",
            extra={
                "event": "chat.submit.start",
                "chat_id": self.chat_id,
                "attachments": len(files),
                "streaming": self.streaming,
            },
        )

        try:
            try:
                if self.streaming:
                    await self._read_stream(body)
                else:
                    await self._fetch_once(body)
            except ChatConnectionError as exc:
                LOGGER.warning(
                    "chat.request.network_error",
                    extra={"event": "chat.request.network_error", "error": str(exc)},
                )
                self._error = exc
                self._apply_raw(network_error_frames())
                await self.state_manager.transition_to(SessionState.ERROR)
            else:
                await self._settle()
        except ChatHTTPError as exc:
            LOGGER.warning(
                "chat.request.http_error",
                extra={"event": "chat.request.http_error", "status": exc.status_code},
            )
            self._error = exc
            await self.state_manager.transition_to(SessionState.ERROR)
            raise
        except CodeChatError as exc:
            LOGGER.error(
                "chat.request.failed",
                extra={"event": "chat.request.failed", "error": str(exc)},
            )
            self._error = exc
            await self.state_manager.transition_to(SessionState.ERROR)
            return None
        except asyncio.CancelledError:
            await self.state_manager.transition_to(SessionState.CANCELLED)
            raise
        except Exception as exc:
            LOGGER.exception(
                "chat.request.unexpected_error",
                extra={"event": "chat.request.unexpected_error", "error": str(exc)},
            )
            self._error = self.transport.map_exception(exc)
            await self.state_manager.transition_to(SessionState.ERROR)
            raise
        finally:
            self._cancel = CancelStatus.TERMINATED
            await _invoke(self._on_finish)

        return self._messages[-1]

    async def _settle(self) -> None:
        if self._cancel is CancelStatus.CANCEL_REQUESTED:
            LOGGER.info(
                "chat.stream.cancelled",
                extra={"event": "chat.stream.cancelled", "chat_id": self.chat_id},
            )
            await self.state_manager.transition_to(SessionState.CANCELLED)
            return
        await self.state_manager.transition_to(SessionState.IDLE)
        LOGGER.info(
            "chat.submit.complete",
            extra={
                "event": "chat.submit.complete",
                "chat_id": self.chat_id,
                "length": len(str(self._messages[-1].content)),
            },
        )

    async def _fetch_once(self, body: dict[str, Any]) -> None:
        payload = await self.transport.post_json(self.api_path, body)
        if not isinstance(payload, dict):
            raise ChatStreamingError("Chat service returned a non-object response.")
        response = payload.get("response")
        content = "" if response is None else str(response)
        self._replace_tail(self._messages[-1].with_content(content))
        if content and self._on_delta is not None:
            self._on_delta(content)

    async def _read_stream(self, body: dict[str, Any]) -> None:
        async with self.transport.stream_post(self.api_path, body) as response:
            await self.state_manager.transition_to(SessionState.STREAMING)
            decoder = FrameDecoder()
            finished = False
            async for chunk in response.aiter_bytes():
                if self._cancel is not CancelStatus.ACTIVE:
                    break
                if self._apply_frames(decoder.feed(chunk)):
                    finished = True
                    break
            if not finished and self._cancel is CancelStatus.ACTIVE:
                self._apply_frames(decoder.flush())

    def _apply_raw(self, chunks: Iterable[bytes]) -> None:
        decoder = FrameDecoder()
        for chunk in chunks:
            if self._apply_frames(decoder.feed(chunk)):
                return

    def _apply_frames(self, frames: Iterable[StreamFrame]) -> bool:
        """Append frame content in order; True once a ``done`` frame is seen."""
        for frame in frames:
            if frame.done:
                return True
            if self._cancel is not CancelStatus.ACTIVE:
                return True
            if frame.content:
                self._replace_tail(self._messages[-1].with_appended(frame.content))
                if self._on_delta is not None:
                    self._on_delta(frame.content)
        return False

    def _replace_tail(self, message: Message) -> None:
        self._messages = (*self._messages[:-1], message)

    def stop(self) -> None:
        """Request cooperative cancellation of the in-flight response.

        Content already appended is kept; the read loop notices the request
        at its next iteration and releases the response body.
        """
        if self._cancel is CancelStatus.ACTIVE and self.is_loading:
            self._cancel = CancelStatus.CANCEL_REQUESTED
            LOGGER.info(
                "chat.stream.cancel_requested",
                extra={"event": "chat.stream.cancel_requested", "chat_id": self.chat_id},
            )

    async def submit_pending(
        self, manager: AttachmentManager, text: str | None = None
    ) -> Message | None:
        """Run code extraction on ``text`` and submit it with the pending set.

        Extracted blocks join the manager's attachments when they fit under
        its limit; otherwise the text is sent as typed.
        """
        raw = self._input if text is None else text
        result = manager.engine.extract_code_blocks(raw)
        cleaned = raw
        if result.attachments:
            if manager.count + len(result.attachments) <= manager.max_attachments:
                manager.replace_all([*manager.attachments, *result.attachments])
                cleaned = result.cleaned_text
            else:
                LOGGER.info(
                    "chat.extract.skipped",
                    extra={
                        "event": "chat.extract.skipped",
                        "extracted": len(result.attachments),
                        "pending": manager.count,
                    },
                )
        if not cleaned and manager.count == 0:
            return None
        return await self.submit(cleaned, manager.take())

    async def reset_chat(self) -> Any:
        """Reset the server-side session, then request a new one.

        Returns the new-session payload, or None on failure (``error`` set).
        """
        try:
            await self.transport.post_json(
                self.reset_path, {"chatId": self.chat_id}, timeout=self.server_timeout
            )
        except CodeChatError as exc:
            self._soft_fail("chat.reset.failed", exc)
            return None
        return await self.new_chat()

    async def new_chat(self) -> Any:
        """Ask the service for a fresh session identifier.

        On success the response payload is handed to ``on_chat_reset_finish``
        and returned; failures set ``error`` and return None.
        """
        try:
            payload = await self.transport.post_json(
                self.new_path, {"chatId": generate_id()}, timeout=self.server_timeout
            )
        except CodeChatError as exc:
            self._soft_fail("chat.new.failed", exc)
            return None

        if isinstance(payload, dict) and payload.get("status") == "error":
            self._soft_fail(
                "chat.new.failed",
                CodeChatError("Chat service could not start a new session."),
            )
            return None

        LOGGER.info("chat.new.created", extra={"event": "chat.new.created"})
        await _invoke(self._on_chat_reset_finish, payload)
        return payload

    def _soft_fail(self, event: str, exc: CodeChatError) -> None:
        LOGGER.warning(event, extra={"event": event, "error": str(exc)})
        self._error = exc

    async def aclose(self) -> None:
        self.stop()
        await self.transport.aclose()
