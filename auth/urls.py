from __future__ import annotations

import ipaddress
import urllib.parse

from pydantic import AnyHttpUrl, TypeAdapter, ValidationError

from auth.errors import ConfigError

_HTTP_URL = TypeAdapter(AnyHttpUrl)


def is_absolute_http_url(url: str) -> bool:
    try:
        parsed = _HTTP_URL.validate_python(url)
    except ValidationError:
        return False
    return bool(parsed.host)


def is_loopback_redirect_uri(uri: str) -> bool:
    parsed = urllib.parse.urlparse(uri)
    if parsed.scheme != "http":
        return False
    if not parsed.hostname:
        return False
    try:
        port = parsed.port
    except ValueError:
        return False
    if not port:
        return False
    if parsed.hostname == "localhost":
        return True
    try:
        return ipaddress.ip_address(parsed.hostname).is_loopback
    except ValueError:
        return False


def build_loopback_redirect_uri(host: str, port: int, path: str = "/callback") -> str:
    netloc = f"[{host}]:{port}" if ":" in host else f"{host}:{port}"
    return urllib.parse.urlunparse(("http", netloc, path, "", "", ""))


def require_valid_endpoints(authorize_url: str, token_url: str, redirect_uri: str) -> None:
    if not is_absolute_http_url(authorize_url):
        raise ConfigError(f"authorize_url must be an absolute http(s) URL: {authorize_url!r}")
    if not is_absolute_http_url(token_url):
        raise ConfigError(f"token_url must be an absolute http(s) URL: {token_url!r}")
    if not is_loopback_redirect_uri(redirect_uri):
        raise ConfigError(
            f"redirect_uri must be an http loopback address with an explicit port: {redirect_uri!r}"
        )
