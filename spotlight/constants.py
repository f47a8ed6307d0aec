from __future__ import annotations

import logging

LOGGER = logging.getLogger("spotlight.auth")
APP_VERSION = "0.1.0"

SPOTIFY_AUTHORIZE_URL = "https://accounts.spotify.com/authorize"
SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"

CALLBACK_HOST = "127.0.0.1"
CALLBACK_PORT = 14700

DEFAULT_SCOPES = (
    "user-read-currently-playing",
    "user-read-playback-state",
    "user-modify-playback-state",
    "user-read-recently-played",
)
