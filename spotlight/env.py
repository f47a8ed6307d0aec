from __future__ import annotations

import logging
import os
from pathlib import Path

from auth.errors import ConfigError
from auth.models import ClientConfig
from auth.urls import build_loopback_redirect_uri

from .constants import (
    CALLBACK_HOST,
    CALLBACK_PORT,
    DEFAULT_SCOPES,
    LOGGER,
    SPOTIFY_AUTHORIZE_URL,
    SPOTIFY_TOKEN_URL,
)


def is_truthy(value: str | None) -> bool:
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_env_int(key: str, default: int) -> int:
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{key} must be an integer value.")


def _get_env_float(key: str, default: float) -> float:
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise RuntimeError(f"{key} must be a number.")


def load_env() -> None:
    env_path = Path(__file__).resolve().parent.parent / ".env"
    if not env_path.exists():
        return
    from dotenv import load_dotenv

    load_dotenv(env_path, override=True)


def callback_port() -> int:
    return _get_env_int("SPOTLIGHT_CALLBACK_PORT", CALLBACK_PORT)


def token_timeout() -> float:
    return _get_env_float("SPOTLIGHT_TOKEN_TIMEOUT", 30.0)


def login_on_start() -> bool:
    return is_truthy(os.getenv("SPOTLIGHT_LOGIN_ON_START", "1"))


def requested_scopes() -> list[str]:
    raw = os.getenv("SPOTIFY_SCOPES", "")
    if not raw.strip():
        return list(DEFAULT_SCOPES)
    return raw.split()


def validate_env() -> None:
    if not os.getenv("SPOTIFY_CLIENT_ID", "").strip():
        raise RuntimeError("Missing required environment variable: SPOTIFY_CLIENT_ID")

    port = callback_port()
    if not 0 < port < 65536:
        raise RuntimeError("SPOTLIGHT_CALLBACK_PORT must be between 1 and 65535.")

    if token_timeout() <= 0:
        raise RuntimeError("SPOTLIGHT_TOKEN_TIMEOUT must be positive.")

    try:
        load_client_config().validate()
    except ConfigError as error:
        raise RuntimeError(f"Invalid Spotify client configuration: {error}") from error


def load_client_config() -> ClientConfig:
    return ClientConfig.build(
        client_id=os.getenv("SPOTIFY_CLIENT_ID", "").strip(),
        authorize_url=os.getenv("SPOTIFY_AUTHORIZE_URL", SPOTIFY_AUTHORIZE_URL).strip(),
        token_url=os.getenv("SPOTIFY_TOKEN_URL", SPOTIFY_TOKEN_URL).strip(),
        redirect_uri=build_loopback_redirect_uri(CALLBACK_HOST, callback_port()),
        scopes=requested_scopes(),
    )


def setup_logging() -> bool:
    debug_enabled = is_truthy(os.getenv("SPOTLIGHT_DEBUG", "1"))
    if debug_enabled:
        logging.basicConfig(level=logging.INFO)
        LOGGER.setLevel(logging.INFO)
    return debug_enabled
