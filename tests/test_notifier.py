import logging

import pytest

from auth.notifier import AuthEvent, CallbackNotifier, LoggingNotifier, QueueNotifier
from auth.spotify_oauth2 import Token


def test_event_payload_shapes() -> None:
    token = Token(access_token="AT1", token_type="Bearer", expires_in=3600, refresh_token="RT1")

    assert AuthEvent.for_token(token).to_payload() == {
        "kind": "token",
        "token": {
            "access_token": "AT1",
            "expires_in": 3600,
            "token_type": "Bearer",
            "refresh_token": "RT1",
        },
    }
    assert AuthEvent.for_error("denied").to_payload() == {"kind": "error", "message": "denied"}


@pytest.mark.asyncio
async def test_queue_notifier_delivers_event() -> None:
    notifier = QueueNotifier()
    event = AuthEvent.for_error("boom")

    assert await notifier.notify(event) is True
    assert await notifier.next_event() is event


@pytest.mark.asyncio
async def test_queue_notifier_full_is_logged_not_raised(caplog) -> None:
    notifier = QueueNotifier(maxsize=1)
    await notifier.notify(AuthEvent.for_error("first"))

    with caplog.at_level(logging.ERROR, logger="spotlight.auth"):
        delivered = await notifier.notify(AuthEvent.for_error("second"))

    assert delivered is False
    assert "Failed to deliver error event" in caplog.text


@pytest.mark.asyncio
async def test_callback_notifier_accepts_sync_and_async_callbacks() -> None:
    received = []

    async def _async_callback(event):
        received.append(("async", event.kind))

    await CallbackNotifier(lambda event: received.append(("sync", event.kind))).notify(
        AuthEvent.for_error("x")
    )
    await CallbackNotifier(_async_callback).notify(AuthEvent.for_error("y"))

    assert received == [("sync", "error"), ("async", "error")]


@pytest.mark.asyncio
async def test_callback_notifier_failure_is_best_effort() -> None:
    def _host_not_listening(event):
        raise RuntimeError("window closed")

    assert await CallbackNotifier(_host_not_listening).notify(AuthEvent.for_error("x")) is False


@pytest.mark.asyncio
async def test_logging_notifier_never_logs_token(caplog) -> None:
    token = Token(access_token="secret-access", expires_in=3600)

    with caplog.at_level(logging.INFO, logger="spotlight.auth"):
        await LoggingNotifier().notify(AuthEvent.for_token(token))

    assert "Login completed" in caplog.text
    assert "secret-access" not in caplog.text
