from __future__ import annotations

import base64
import hashlib
import secrets
import urllib.parse
from dataclasses import dataclass
from typing import Any, Callable, Iterable

import httpx

from auth.errors import RefreshError, TokenExchangeError
from auth.models import ClientConfig, dedupe_scopes
from spotlight.constants import LOGGER

MIN_VERIFIER_BYTES = 32
MAX_VERIFIER_BYTES = 96
DEFAULT_VERIFIER_BYTES = 64


@dataclass(frozen=True)
class Token:
    access_token: str
    expires_in: int | None = None
    token_type: str | None = None
    refresh_token: str | None = None
    scope: str | None = None

    @classmethod
    def from_payload(cls, payload: Any) -> "Token":
        if not isinstance(payload, dict):
            raise TokenExchangeError("Token response must be a JSON object.")

        access_token = payload.get("access_token")
        expires_in = payload.get("expires_in")
        token_type = payload.get("token_type")
        refresh_token = payload.get("refresh_token")
        scope = payload.get("scope")

        if not isinstance(access_token, str) or not access_token:
            raise TokenExchangeError("Token response missing access_token.")
        if expires_in is not None and (
            isinstance(expires_in, bool) or not isinstance(expires_in, int) or expires_in < 0
        ):
            raise TokenExchangeError("Token response expires_in must be a non-negative integer.")
        for name, value in (
            ("token_type", token_type),
            ("refresh_token", refresh_token),
            ("scope", scope),
        ):
            if value is not None and not isinstance(value, str):
                raise TokenExchangeError(f"Token response {name} must be a string.")

        return cls(
            access_token=access_token,
            expires_in=expires_in,
            token_type=token_type,
            refresh_token=refresh_token or None,
            scope=scope,
        )

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"access_token": self.access_token}
        if self.expires_in is not None:
            payload["expires_in"] = self.expires_in
        if self.token_type is not None:
            payload["token_type"] = self.token_type
        if self.refresh_token is not None:
            payload["refresh_token"] = self.refresh_token
        if self.scope is not None:
            payload["scope"] = self.scope
        return payload

    @property
    def granted_scopes(self) -> tuple[str, ...]:
        return dedupe_scopes((self.scope or "").split())


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def generate_code_verifier(
    *,
    num_bytes: int = DEFAULT_VERIFIER_BYTES,
    token_bytes: Callable[[int], bytes] = secrets.token_bytes,
) -> str:
    if not MIN_VERIFIER_BYTES <= num_bytes <= MAX_VERIFIER_BYTES:
        raise ValueError(
            f"num_bytes must be between {MIN_VERIFIER_BYTES} and {MAX_VERIFIER_BYTES}."
        )
    return _b64url(token_bytes(num_bytes))


def generate_code_challenge(verifier: str) -> str:
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return _b64url(digest)


def generate_pkce_pair(
    *,
    token_bytes: Callable[[int], bytes] = secrets.token_bytes,
) -> tuple[str, str]:
    """Return ``(verifier, challenge)`` using the S256 method."""
    verifier = generate_code_verifier(token_bytes=token_bytes)
    return verifier, generate_code_challenge(verifier)


def generate_csrf_token() -> str:
    return secrets.token_urlsafe(32)


def build_authorization_url(
    config: ClientConfig,
    *,
    state: str,
    code_challenge: str,
    scopes: Iterable[str] | None = None,
) -> str:
    config.validate()
    requested = dedupe_scopes(config.scopes if scopes is None else scopes)
    query = {
        "client_id": config.client_id,
        "response_type": "code",
        "redirect_uri": config.redirect_uri,
        "code_challenge": code_challenge,
        "code_challenge_method": "S256",
        "state": state,
        "scope": " ".join(requested),
    }
    separator = "&" if urllib.parse.urlparse(config.authorize_url).query else "?"
    return f"{config.authorize_url}{separator}{urllib.parse.urlencode(query)}"


async def _token_request(
    token_url: str,
    payload: dict[str, str],
    *,
    client: httpx.AsyncClient | None = None,
    error_cls: type[TokenExchangeError] = TokenExchangeError,
) -> Token:
    own_client = client is None
    http_client = client or httpx.AsyncClient()

    try:
        response = await http_client.post(token_url, data=payload)
        response.raise_for_status()
        body = response.json()
    except httpx.HTTPStatusError as error:
        detail = error.response.text
        LOGGER.warning(
            "Token endpoint rejected %s grant status=%s body=%s",
            payload.get("grant_type"),
            error.response.status_code,
            detail[:1000],
        )
        raise error_cls(
            f"Token request failed with status {error.response.status_code}.",
            status_code=error.response.status_code,
            detail=detail,
        ) from error
    except httpx.HTTPError as error:
        LOGGER.warning("Token endpoint unreachable: %s", error)
        raise error_cls(f"Token request failed: {error.__class__.__name__}.") from error
    except ValueError as error:
        raise error_cls("Token response was not valid JSON.") from error
    finally:
        if own_client:
            await http_client.aclose()

    try:
        return Token.from_payload(body)
    except TokenExchangeError as error:
        if isinstance(error, error_cls):
            raise
        raise error_cls(str(error)) from error


async def exchange_code(
    *,
    token_url: str,
    client_id: str,
    code: str,
    redirect_uri: str,
    code_verifier: str,
    client: httpx.AsyncClient | None = None,
) -> Token:
    return await _token_request(
        token_url,
        {
            "grant_type": "authorization_code",
            "client_id": client_id,
            "code": code,
            "redirect_uri": redirect_uri,
            "code_verifier": code_verifier,
        },
        client=client,
    )


async def refresh_token(
    *,
    token_url: str,
    client_id: str,
    refresh_token: str,
    client: httpx.AsyncClient | None = None,
) -> Token:
    return await _token_request(
        token_url,
        {
            "grant_type": "refresh_token",
            "client_id": client_id,
            "refresh_token": refresh_token,
        },
        client=client,
        error_cls=RefreshError,
    )
