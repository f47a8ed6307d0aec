from __future__ import annotations

import asyncio
import inspect
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Literal

from auth.spotify_oauth2 import Token
from spotlight.constants import LOGGER


@dataclass(frozen=True)
class AuthEvent:
    kind: Literal["token", "error"]
    token: Token | None = None
    message: str | None = None

    @classmethod
    def for_token(cls, token: Token) -> "AuthEvent":
        return cls(kind="token", token=token)

    @classmethod
    def for_error(cls, message: str) -> "AuthEvent":
        return cls(kind="error", message=message)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"kind": self.kind}
        if self.token is not None:
            payload["token"] = self.token.to_payload()
        if self.message is not None:
            payload["message"] = self.message
        return payload


class ResultNotifier(ABC):
    async def notify(self, event: AuthEvent) -> bool:
        """Deliver ``event`` to the host; failures are logged, never raised."""
        try:
            await self.deliver(event)
        except Exception:
            LOGGER.exception("Failed to deliver %s event to host", event.kind)
            return False
        return True

    @abstractmethod
    async def deliver(self, event: AuthEvent) -> None:
        raise NotImplementedError


class QueueNotifier(ResultNotifier):
    def __init__(self, maxsize: int = 0) -> None:
        self.queue: asyncio.Queue[AuthEvent] = asyncio.Queue(maxsize=maxsize)

    async def deliver(self, event: AuthEvent) -> None:
        self.queue.put_nowait(event)

    async def next_event(self) -> AuthEvent:
        return await self.queue.get()


class CallbackNotifier(ResultNotifier):
    def __init__(self, callback: Callable[[AuthEvent], Awaitable[None] | None]) -> None:
        self._callback = callback

    async def deliver(self, event: AuthEvent) -> None:
        result = self._callback(event)
        if inspect.isawaitable(result):
            await result


class LoggingNotifier(ResultNotifier):
    """Fallback used when the host has not registered a listener."""

    async def deliver(self, event: AuthEvent) -> None:
        if event.kind == "token":
            LOGGER.info("Login completed; no host listener registered for the token")
        else:
            LOGGER.warning("Login failed: %s", event.message)
