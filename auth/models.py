from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Iterable, Mapping

from auth.errors import ConfigError
from auth.urls import require_valid_endpoints


def dedupe_scopes(scopes: Iterable[str]) -> tuple[str, ...]:
    ordered: list[str] = []
    for scope in scopes:
        scope = scope.strip()
        if scope and scope not in ordered:
            ordered.append(scope)
    return tuple(ordered)


@dataclass(frozen=True)
class ClientConfig:
    client_id: str
    authorize_url: str
    token_url: str
    redirect_uri: str
    scopes: tuple[str, ...] = ()

    @classmethod
    def build(
        cls,
        *,
        client_id: str,
        authorize_url: str,
        token_url: str,
        redirect_uri: str,
        scopes: Iterable[str] = (),
    ) -> "ClientConfig":
        return cls(
            client_id=client_id,
            authorize_url=authorize_url,
            token_url=token_url,
            redirect_uri=redirect_uri,
            scopes=dedupe_scopes(scopes),
        )

    def validate(self) -> None:
        if not self.client_id.strip():
            raise ConfigError("client_id is required.")
        require_valid_endpoints(self.authorize_url, self.token_url, self.redirect_uri)


class SessionState(str, enum.Enum):
    IDLE = "idle"
    PENDING = "pending"
    EXCHANGING = "exchanging"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_active(self) -> bool:
        return self in (SessionState.PENDING, SessionState.EXCHANGING)


@dataclass
class Session:
    """In-progress login state.

    The verifier and CSRF token are single use: ``take_*`` moves the value
    out and leaves ``None`` behind, so a second read always comes back empty.
    """

    client_config: ClientConfig
    pkce_verifier: str | None
    csrf_token: str | None
    state: SessionState = SessionState.PENDING
    notified: bool = field(default=False, compare=False)

    def take_verifier(self) -> str | None:
        verifier, self.pkce_verifier = self.pkce_verifier, None
        return verifier

    def take_csrf_token(self) -> str | None:
        token, self.csrf_token = self.csrf_token, None
        return token

    def fail_pending(self) -> bool:
        """Move a ``PENDING`` session to ``FAILED``.

        Sessions that are mid-exchange or already terminal are left unchanged.
        """
        if self.state is not SessionState.PENDING:
            return False
        self.state = SessionState.FAILED
        return True


@dataclass(frozen=True)
class CallbackRequest:
    code: str | None
    state: str | None
    error: str | None = None

    @classmethod
    def from_query(cls, params: Mapping[str, str]) -> "CallbackRequest":
        return cls(
            code=params.get("code") or None,
            state=params.get("state") or None,
            error=params.get("error") or None,
        )

    def is_complete(self) -> bool:
        if self.error:
            return bool(self.state)
        return bool(self.code and self.state)
