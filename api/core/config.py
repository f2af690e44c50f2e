"""
Process settings.

Everything is read from environment variables once, at startup, into an
immutable `Settings` object. FastAPI keeps it on `app.state.settings`;
routes get it through `get_settings` so tests can swap it out.

An optional env file (`.uberwald.env`, or `ENV_FILE`) is loaded first.
Variables already present in the environment are not overridden.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv
from fastapi import Request

DEFAULT_ENV_FILE = ".uberwald.env"
DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024  # 10 MiB
DEFAULT_PORT = 3000

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


class ConfigError(RuntimeError):
    pass


@dataclass(frozen=True)
class Settings:
    database_url: str = ""
    store_auth_token: str = ""
    store_timeout_s: float = 30.0
    default_collection: str = "biesenthalerbecken/features"
    areas_root: str = "wildnispate"
    sponsor_marker: int = 1
    verify_before_write: bool = True
    strict_identifiers: bool = False
    signing_key: str = "dev-change-this-secret"
    basic_username: str = ""
    basic_password: str = ""
    realm: str = "Restricted"
    features_url: str = ""
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    route_prefix: str = "/urwaldpate"
    log_level: str = "INFO"
    app_addr: str = "0.0.0.0:3000"

    def area_collection(self, area: str) -> str:
        return f"{self.areas_root}/{area}/features"

    def project_path(self, projectname: str) -> str:
        return f"{self.areas_root}/{projectname}"


def _env_str(name: str, default: str = "") -> str:
    return os.environ.get(name, "").strip() or default


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name, "").strip().lower()
    if raw in _TRUE_VALUES:
        return True
    if raw in _FALSE_VALUES:
        return False
    return default


def _normalize_prefix(prefix: str) -> str:
    prefix = "/" + prefix.strip().strip("/")
    return "" if prefix == "/" else prefix


def parse_app_addr(addr: str) -> tuple[str, int]:
    """
    Split "host:port". A bare host listens on the default port.
    """
    host, sep, port = (addr or "").strip().rpartition(":")
    if not sep:
        host, port = port, ""
    if not port:
        return host or "0.0.0.0", DEFAULT_PORT
    if not (port.isascii() and port.isdigit()) or not 0 < int(port) < 65536:
        raise ConfigError(f"Invalid APP_ADDR port: {addr!r}")
    return host or "0.0.0.0", int(port)


def load_env_file() -> Path | None:
    path = Path(_env_str("ENV_FILE", DEFAULT_ENV_FILE))
    if not path.is_file():
        return None
    load_dotenv(path, override=False)
    return path


def load_settings() -> Settings:
    load_env_file()

    max_upload_bytes = _env_int("MAX_UPLOAD_BYTES", DEFAULT_MAX_UPLOAD_BYTES)
    if max_upload_bytes <= 0:
        raise ConfigError("Invalid MAX_UPLOAD_BYTES. It must be > 0.")

    app_addr = _env_str("APP_ADDR", Settings.app_addr)
    parse_app_addr(app_addr)

    defaults = Settings()
    return Settings(
        database_url=_env_str("DATABASE_URL").rstrip("/"),
        store_auth_token=_env_str("STORE_AUTH_TOKEN"),
        store_timeout_s=_env_float("STORE_TIMEOUT_S", defaults.store_timeout_s),
        default_collection=_env_str("DEFAULT_COLLECTION", defaults.default_collection).strip("/"),
        areas_root=_env_str("AREAS_ROOT", defaults.areas_root).strip("/"),
        sponsor_marker=_env_int("SPONSOR_MARKER", defaults.sponsor_marker),
        verify_before_write=_env_bool("VERIFY_BEFORE_WRITE", defaults.verify_before_write),
        strict_identifiers=_env_bool("STRICT_IDENTIFIERS", defaults.strict_identifiers),
        signing_key=_env_str("SIGNING_KEY", defaults.signing_key),
        basic_username=_env_str("BASIC_USERNAME"),
        basic_password=_env_str("BASIC_PASSWORD"),
        realm=_env_str("REALM", defaults.realm),
        features_url=_env_str("FEATURES_URL"),
        max_upload_bytes=max_upload_bytes,
        route_prefix=_normalize_prefix(_env_str("ROUTE_PREFIX", defaults.route_prefix)),
        log_level=_env_str("LOG_LEVEL", defaults.log_level).upper(),
        app_addr=app_addr,
    )


def get_settings(request: Request) -> Settings:
    return request.app.state.settings
