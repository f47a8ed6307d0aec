import pytest

from spotlight import env
from spotlight.constants import DEFAULT_SCOPES, SPOTIFY_TOKEN_URL


def test_load_client_config_defaults(spotify_env) -> None:
    config = env.load_client_config()

    assert config.client_id == "abc"
    assert config.token_url == SPOTIFY_TOKEN_URL
    assert config.redirect_uri == "http://127.0.0.1:14700/callback"
    assert config.scopes == DEFAULT_SCOPES


def test_scopes_and_port_from_env(spotify_env) -> None:
    spotify_env.setenv("SPOTIFY_SCOPES", "streaming user-read-email streaming")
    spotify_env.setenv("SPOTLIGHT_CALLBACK_PORT", "9000")

    config = env.load_client_config()

    assert config.scopes == ("streaming", "user-read-email")
    assert config.redirect_uri == "http://127.0.0.1:9000/callback"


def test_validate_env_requires_client_id(spotify_env) -> None:
    spotify_env.delenv("SPOTIFY_CLIENT_ID")

    with pytest.raises(RuntimeError, match="SPOTIFY_CLIENT_ID"):
        env.validate_env()


def test_validate_env_rejects_bad_port(spotify_env) -> None:
    spotify_env.setenv("SPOTLIGHT_CALLBACK_PORT", "nope")

    with pytest.raises(RuntimeError, match="integer"):
        env.validate_env()


def test_validate_env_rejects_bad_token_url(spotify_env) -> None:
    spotify_env.setenv("SPOTIFY_TOKEN_URL", "accounts.spotify.com/api/token")

    with pytest.raises(RuntimeError, match="token_url"):
        env.validate_env()


def test_login_on_start_flag(spotify_env) -> None:
    assert env.login_on_start() is True

    spotify_env.setenv("SPOTLIGHT_LOGIN_ON_START", "off")
    assert env.login_on_start() is False


def test_is_truthy() -> None:
    assert env.is_truthy("Yes") is True
    assert env.is_truthy("0") is False
    assert env.is_truthy(None) is False
