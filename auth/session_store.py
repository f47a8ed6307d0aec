from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator

from auth.models import Session, SessionState


class SessionStore:
    """Single slot holding the current login session.

    All reads and writes go through ``locked()``; the lock is never held
    across network I/O.
    """

    def __init__(self) -> None:
        self._session: Session | None = None
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def locked(self) -> AsyncIterator["SessionStore"]:
        async with self._lock:
            yield self

    @property
    def session(self) -> Session | None:
        self._require_lock()
        return self._session

    def replace(self, session: Session) -> Session | None:
        self._require_lock()
        previous, self._session = self._session, session
        return previous

    def peek(self) -> Session | None:
        """Return the current session without locking.

        Inspection only; the returned session must not be mutated outside
        ``locked()``.
        """
        return self._session

    def current_state(self) -> SessionState:
        """Lifecycle state of the current session, read without locking."""
        session = self._session
        return SessionState.IDLE if session is None else session.state

    def _require_lock(self) -> None:
        # asyncio.Lock has no owner; this only catches access outside any locked() block.
        if not self._lock.locked():
            raise RuntimeError("Session store accessed without holding its lock.")
