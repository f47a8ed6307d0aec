from __future__ import annotations

import asyncio
import hmac
import secrets
import webbrowser
from dataclasses import replace
from typing import Iterable

import httpx
from starlette.requests import Request
from starlette.responses import HTMLResponse, JSONResponse, Response
from starlette.routing import Route

from auth import spotify_oauth2
from auth.errors import (
    AuthFlowError,
    AuthorizationDeniedError,
    BrowserLaunchError,
    CsrfMismatchError,
    NoPendingSessionError,
    RefreshError,
    TokenExchangeError,
)
from auth.models import CallbackRequest, ClientConfig, Session, SessionState, dedupe_scopes
from auth.notifier import AuthEvent, LoggingNotifier, ResultNotifier
from auth.session_store import SessionStore
from auth.spotify_oauth2 import (
    Token,
    build_authorization_url,
    generate_csrf_token,
    generate_pkce_pair,
)
from spotlight.constants import LOGGER

SUCCESS_PAGE = "Authentication successful! You can close this window now."
CSRF_FAILURE_PAGE = "Authentication failed: the login request could not be verified."
NO_LOGIN_PAGE = (
    "Authentication failed: no login is in progress. Start the login again from the app."
)
DENIED_PAGE = "Authentication was cancelled."
EXCHANGE_FAILURE_PAGE = "Authentication failed."


def _states_match(expected: str | None, received: str | None) -> bool:
    if expected is None or received is None:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), received.encode("utf-8"))


def _page(message: str) -> HTMLResponse:
    return HTMLResponse(f"<html><body><h1>{message}</h1></body></html>")


def _error(code: str, description: str, status_code: int) -> Response:
    return JSONResponse(
        {"error": code, "error_description": description},
        status_code=status_code,
    )


class LoginFlow:
    """Drives one Spotify login at a time over a loopback redirect."""

    def __init__(
        self,
        *,
        client_config: ClientConfig,
        notifier: ResultNotifier | None = None,
        session_store: SessionStore | None = None,
        http_client: httpx.AsyncClient | None = None,
        open_browser_fn=webbrowser.open,
        exchange_code_fn=spotify_oauth2.exchange_code,
        refresh_token_fn=spotify_oauth2.refresh_token,
        csrf_token_fn=generate_csrf_token,
        token_bytes=secrets.token_bytes,
    ) -> None:
        self.client_config = client_config
        self.notifier = notifier or LoggingNotifier()
        self.session_store = session_store or SessionStore()
        self.http_client = http_client

        self._open_browser_fn = open_browser_fn
        self._exchange_code_fn = exchange_code_fn
        self._refresh_token_fn = refresh_token_fn
        self._csrf_token_fn = csrf_token_fn
        self._token_bytes = token_bytes

    # -- login -----------------------------------------------------------------

    async def start_login(
        self,
        client_config: ClientConfig | None = None,
        *,
        scopes: Iterable[str] | None = None,
    ) -> str:
        config = client_config or self.client_config
        if scopes is not None:
            config = replace(config, scopes=dedupe_scopes(scopes))
        config.validate()

        verifier, challenge = generate_pkce_pair(token_bytes=self._token_bytes)
        csrf_token = self._csrf_token_fn()
        authorize_url = build_authorization_url(
            config,
            state=csrf_token,
            code_challenge=challenge,
        )

        async with self.session_store.locked() as store:
            previous = store.replace(
                Session(client_config=config, pkce_verifier=verifier, csrf_token=csrf_token)
            )
        if previous is not None and previous.state.is_active:
            LOGGER.info("Abandoning %s login in favour of a new one", previous.state.value)

        await self._open_browser(authorize_url)
        LOGGER.info("Opened browser for Spotify authorization")
        return authorize_url

    async def _open_browser(self, url: str) -> None:
        try:
            opened = await asyncio.to_thread(self._open_browser_fn, url)
        except (webbrowser.Error, OSError) as error:
            LOGGER.warning("Failed to open browser: %s", error)
            raise BrowserLaunchError(f"Could not open the system browser: {error}") from error
        if opened is False:
            LOGGER.warning("No runnable browser found for the authorization URL")
            raise BrowserLaunchError("Could not open the system browser.")

    # -- callback --------------------------------------------------------------

    async def handle_callback(self, callback: CallbackRequest) -> Token:
        if not callback.is_complete():
            raise ValueError("Callback is missing code or state.")
        session, verifier = await self._claim_session(callback)
        config = session.client_config

        try:
            token = await self._exchange_code_fn(
                token_url=config.token_url,
                client_id=config.client_id,
                code=callback.code,
                redirect_uri=config.redirect_uri,
                code_verifier=verifier,
                client=self.http_client,
            )
        except asyncio.CancelledError:
            LOGGER.warning("Token exchange cancelled")
            await asyncio.shield(
                self._finish(
                    session,
                    SessionState.FAILED,
                    AuthEvent.for_error("Token exchange was cancelled."),
                )
            )
            raise
        except Exception as error:
            LOGGER.warning("Token exchange failed: %s", error)
            await self._finish(
                session,
                SessionState.FAILED,
                AuthEvent.for_error("Token exchange failed."),
            )
            if isinstance(error, TokenExchangeError):
                raise
            raise TokenExchangeError("Token exchange failed.") from error

        LOGGER.info(
            "OAuth token exchange successful; granted scopes: %s",
            " ".join(token.granted_scopes) or "(none)",
        )
        await self._finish(session, SessionState.COMPLETED, AuthEvent.for_token(token))
        return token

    async def _claim_session(self, callback: CallbackRequest) -> tuple[Session, str]:
        failed: Session | None = None
        try:
            async with self.session_store.locked() as store:
                session = store.session
                if session is None:
                    raise NoPendingSessionError("No login is in progress.")

                expected = session.take_csrf_token()
                if not _states_match(expected, callback.state):
                    if session.fail_pending():
                        failed = session
                    raise CsrfMismatchError("Callback state does not match the pending login.")

                verifier = session.take_verifier()
                if verifier is None:
                    if session.fail_pending():
                        failed = session
                    raise NoPendingSessionError("Login was already completed or abandoned.")

                if callback.error:
                    if session.fail_pending():
                        failed = session
                    raise AuthorizationDeniedError(f"Authorization was denied: {callback.error}")

                session.state = SessionState.EXCHANGING
                return session, verifier
        except AuthFlowError as error:
            if failed is not None:
                await self._notify_once(failed, AuthEvent.for_error(str(error)))
            raise

    async def _finish(self, session: Session, state: SessionState, event: AuthEvent) -> None:
        async with self.session_store.locked():
            session.state = state
        await self._notify_once(session, event)

    async def _notify_once(self, session: Session, event: AuthEvent) -> None:
        if session.notified:
            return
        session.notified = True
        await self.notifier.notify(event)

    # -- refresh ---------------------------------------------------------------

    async def refresh(self, refresh_token: str) -> Token:
        if not refresh_token:
            raise RefreshError("refresh_token is required.")

        config = self.client_config
        try:
            token = await self._refresh_token_fn(
                token_url=config.token_url,
                client_id=config.client_id,
                refresh_token=refresh_token,
                client=self.http_client,
            )
        except RefreshError:
            raise
        except Exception as error:
            LOGGER.warning("Token refresh failed: %s", error)
            raise RefreshError("Token refresh failed.") from error

        LOGGER.info(
            "Token refresh successful; granted scopes: %s",
            " ".join(token.granted_scopes) or "(unchanged)",
        )
        return token

    # -- routes ----------------------------------------------------------------

    def routes(self) -> list[Route]:
        return [
            Route("/callback", self._handle_callback_route, methods=["GET"]),
            Route("/refresh-token", self._handle_refresh_route, methods=["POST"]),
        ]

    async def _handle_callback_route(self, request: Request) -> Response:
        callback = CallbackRequest.from_query(request.query_params)
        if not callback.is_complete():
            return _error("invalid_request", "Missing code or state.", 400)

        if callback.code:
            LOGGER.info("Received OAuth callback with code: %s...", callback.code[:6])

        try:
            await self.handle_callback(callback)
        except CsrfMismatchError:
            LOGGER.warning("CSRF token mismatch on OAuth callback")
            return _page(CSRF_FAILURE_PAGE)
        except NoPendingSessionError as error:
            LOGGER.warning("Rejected OAuth callback: %s", error)
            return _page(NO_LOGIN_PAGE)
        except AuthorizationDeniedError as error:
            LOGGER.warning("%s", error)
            return _page(DENIED_PAGE)
        except TokenExchangeError:
            return _page(EXCHANGE_FAILURE_PAGE)

        return _page(SUCCESS_PAGE)

    async def _handle_refresh_route(self, request: Request) -> Response:
        try:
            payload = await request.json()
        except ValueError:
            return _error("invalid_request", "Invalid JSON body.", 400)

        refresh_token = payload.get("refresh_token") if isinstance(payload, dict) else None
        if not isinstance(refresh_token, str) or not refresh_token:
            return _error("invalid_request", "refresh_token is required.", 400)

        try:
            token = await self.refresh(refresh_token)
        except RefreshError:
            return _error("refresh_failed", "Failed to refresh token.", 500)

        return JSONResponse(token.to_payload())
