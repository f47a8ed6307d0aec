import pytest

_ENV_KEYS = (
    "SPOTIFY_CLIENT_ID",
    "SPOTIFY_SCOPES",
    "SPOTIFY_AUTHORIZE_URL",
    "SPOTIFY_TOKEN_URL",
    "SPOTLIGHT_CALLBACK_PORT",
    "SPOTLIGHT_TOKEN_TIMEOUT",
    "SPOTLIGHT_LOGIN_ON_START",
    "SPOTLIGHT_DEBUG",
)


@pytest.fixture
def spotify_env(monkeypatch) -> pytest.MonkeyPatch:
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("SPOTIFY_CLIENT_ID", "abc")
    monkeypatch.setenv("SPOTLIGHT_DEBUG", "0")
    return monkeypatch
