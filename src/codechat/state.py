"""Chat session state machine and cooperative cancellation flag."""

from __future__ import annotations

import asyncio
from enum import Enum
import logging

LOGGER = logging.getLogger(__name__)


class SessionState(str, Enum):
    """Finite state machine for one submission's lifecycle."""

    IDLE = "IDLE"
    SUBMITTING = "SUBMITTING"
    STREAMING = "STREAMING"
    ERROR = "ERROR"
    CANCELLED = "CANCELLED"


# States from which a new submission may start.
READY_STATES = frozenset(
    {SessionState.IDLE, SessionState.ERROR, SessionState.CANCELLED}
)


class CancelStatus(str, Enum):
    """Cooperative cancellation status checked at every suspension point."""

    ACTIVE = "active"
    CANCEL_REQUESTED = "cancel-requested"
    TERMINATED = "terminated"


class StateManager:
    """Manage state transitions with async lock semantics."""

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._state = SessionState.IDLE

    @property
    def current(self) -> SessionState:
        """Lock-free snapshot for synchronous readers."""
        return self._state

    async def get_state(self) -> SessionState:
        async with self._lock:
            return self._state

    async def transition_to(self, new_state: SessionState) -> SessionState:
        async with self._lock:
            self._log_transition(self._state, new_state)
            self._state = new_state
            return self._state

    async def transition_if(
        self,
        expected_state: SessionState,
        new_state: SessionState,
    ) -> bool:
        """Transition only when current state matches expected state."""
        async with self._lock:
            if self._state != expected_state:
                return False
            self._log_transition(self._state, new_state)
            self._state = new_state
            return True

    async def begin_submission(self) -> bool:
        """Atomically move from a ready state to SUBMITTING."""
        async with self._lock:
            if self._state not in READY_STATES:
                return False
            self._log_transition(self._state, SessionState.SUBMITTING)
            self._state = SessionState.SUBMITTING
            return True

    async def can_submit(self) -> bool:
        async with self._lock:
            return self._state in READY_STATES

    @staticmethod
    def _log_transition(old: SessionState, new: SessionState) -> None:
        LOGGER.debug(
            "session.state.transition",
            extra={
                "event": "session.state.transition",
                "from_state": old.value,
                "to_state": new.value,
            },
        )
