from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


def _load_env() -> None:
    """Load .env (template) then .env.local with override=True so local values win."""
    pkg_dir = Path(__file__).resolve().parent
    env_base = pkg_dir.parent / ".env"
    env_local = pkg_dir.parent / ".env.local"
    load_dotenv(env_base, override=True)
    load_dotenv(env_local, override=True)


_load_env()


def env_str(key: str, default: str | None = None, required: bool = False) -> str | None:
    val = os.environ.get(key, default)
    if required and not val:
        raise RuntimeError(f"Missing required environment variable: {key}")
    return val


def env_positive_float(key: str, default: str) -> float:
    raw = env_str(key, default)
    try:
        val = float(raw)
    except ValueError:
        raise RuntimeError(f"Environment variable {key} must be a number, got {raw!r}")
    if val <= 0:
        raise RuntimeError(f"Environment variable {key} must be greater than 0, got {raw!r}")
    return val


# Paths
PROJECT_ROOT = Path(__file__).resolve().parents[3]

LOG_DIR = Path(env_str("BULKV2_LOG_DIR", str(PROJECT_ROOT / "agents" / "python" / "logs"))).expanduser()

# Bulk API
API_VERSION = env_str("SF_API_VERSION", "65.0")
HTTP_TIMEOUT = env_positive_float("BULKV2_HTTP_TIMEOUT", "30")
POLL_INTERVAL_SECONDS = env_positive_float("BULKV2_POLL_INTERVAL", "5")


@dataclass(frozen=True)
class ConnectionSettings:
    client_id: str
    username: str
    login_url: str
    audience: str
    jwt_key_path: Path


def resolve_key_path(raw: str) -> Path:
    raw_key_path = Path(raw).expanduser()
    candidate_paths = []
    if raw_key_path.is_absolute():
        candidate_paths.append(raw_key_path)
    else:
        # project root, agents/python, then repo config/
        candidate_paths.append((PROJECT_ROOT / raw_key_path).resolve())
        candidate_paths.append((PROJECT_ROOT / "agents" / "python" / raw_key_path).resolve())
        candidate_paths.append((PROJECT_ROOT / "config" / raw_key_path.name).resolve())

    for p in candidate_paths:
        if p.exists():
            return p
    raise FileNotFoundError(f"SF_JWT_KEY_PATH not found. Tried: {candidate_paths}")


def connection_settings() -> ConnectionSettings:
    """Read the JWT-bearer credentials; only commands that talk to an org need them."""
    return ConnectionSettings(
        client_id=env_str("SF_CLIENT_ID", required=True),
        username=env_str("SF_USERNAME", required=True),
        login_url=env_str("SF_LOGIN_URL", required=True),
        audience=env_str("SF_AUDIENCE", required=True),
        jwt_key_path=resolve_key_path(env_str("SF_JWT_KEY_PATH", required=True)),
    )


def ensure_log_dir() -> Path:
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    return LOG_DIR
