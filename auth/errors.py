from __future__ import annotations


class AuthFlowError(Exception):
    """Base class for failures raised by the login flow."""


class ConfigError(AuthFlowError):
    """Client configuration is unusable; no session is created."""


class BrowserLaunchError(AuthFlowError):
    """The authorization URL could not be opened in the system browser."""


class CsrfMismatchError(AuthFlowError):
    """Callback ``state`` did not match the pending session's CSRF token."""


class NoPendingSessionError(AuthFlowError):
    """Callback arrived with no login in progress, or one already consumed."""


class AuthorizationDeniedError(AuthFlowError):
    """The provider redirected back with an ``error`` instead of a code."""


class TokenExchangeError(AuthFlowError):
    """The token endpoint rejected the request or could not be reached."""

    def __init__(self, message: str, *, status_code: int | None = None, detail: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class RefreshError(TokenExchangeError):
    """A refresh grant failed."""
