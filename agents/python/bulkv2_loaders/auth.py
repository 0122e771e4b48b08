from __future__ import annotations

import time

import httpx
import jwt

from . import config


def _with_scheme(url: str) -> str:
    url = url.rstrip("/")
    if not url.startswith("http"):
        url = f"https://{url}"
    return url


def build_jwt_assertion(settings: config.ConnectionSettings) -> str:
    now = int(time.time())
    payload = {
        "iss": settings.client_id,
        "sub": settings.username,
        "aud": _with_scheme(settings.audience),
        "exp": now + 5 * 60,
    }
    key_bytes = settings.jwt_key_path.read_bytes()
    return jwt.encode(payload, key_bytes, algorithm="RS256")


def get_access_token(
    settings: config.ConnectionSettings | None = None,
    transport: httpx.BaseTransport | None = None,
) -> tuple[str, str]:
    """Return (access_token, instance_url)."""
    if settings is None:
        settings = config.connection_settings()
    token_url = f"{_with_scheme(settings.login_url)}/services/oauth2/token"
    data = {
        "grant_type": "urn:ietf:params:oauth:grant-type:jwt-bearer",
        "assertion": build_jwt_assertion(settings),
        "client_id": settings.client_id,
    }
    with httpx.Client(timeout=config.HTTP_TIMEOUT, transport=transport) as client:
        resp = client.post(token_url, data=data)
    resp.raise_for_status()
    j = resp.json()
    return j["access_token"], j["instance_url"]
