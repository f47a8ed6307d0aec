import pytest
from starlette.testclient import TestClient

import server
from auth.login_flow import LoginFlow
from spotlight.constants import APP_VERSION


def _build_app(spotify_env, **kwargs):
    spotify_env.setattr(server, "load_env", lambda: None)
    return server.create_app(**kwargs)


def test_health_returns_version(spotify_env) -> None:
    app = _build_app(spotify_env)

    with TestClient(app) as client:
        response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "version": APP_VERSION, "login_state": "idle"}


def test_health_reports_pending_login(spotify_env) -> None:
    app = _build_app(spotify_env, open_browser_fn=lambda url: True)

    with TestClient(app) as client:
        client.portal.call(app.state.login_flow.start_login)
        response = client.get("/health")

    assert response.json()["login_state"] == "pending"


def test_create_app_exposes_login_flow(spotify_env) -> None:
    spotify_env.setenv("SPOTIFY_SCOPES", "streaming")
    app = _build_app(spotify_env)

    flow = app.state.login_flow
    assert isinstance(flow, LoginFlow)
    assert flow.client_config.client_id == "abc"
    assert flow.client_config.scopes == ("streaming",)


def test_callback_route_mounted(spotify_env) -> None:
    app = _build_app(spotify_env)

    with TestClient(app) as client:
        missing = client.get("/callback")
        no_login = client.get("/callback", params={"code": "XYZ", "state": "s"})

    assert missing.status_code == 400
    assert no_login.status_code == 200
    assert "no login is in progress" in no_login.text


def test_login_via_app_opens_browser(spotify_env) -> None:
    opened = []
    app = _build_app(spotify_env, open_browser_fn=lambda url: opened.append(url) or True)

    with TestClient(app) as client:
        url = client.portal.call(app.state.login_flow.start_login)

    assert opened == [url]
    assert "client_id=abc" in url


def test_create_app_fails_without_client_id(spotify_env) -> None:
    spotify_env.delenv("SPOTIFY_CLIENT_ID")

    with pytest.raises(RuntimeError, match="SPOTIFY_CLIENT_ID"):
        _build_app(spotify_env)
