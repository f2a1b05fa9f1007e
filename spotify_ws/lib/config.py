"""
Configuration loader for the spotify-ws service.

All settings come from environment variables.  A ``.env`` file in the
working directory is read first (real environment variables win), which
is handy for local dev.

Two deployment modes:
  1. Direct   — CLIENT_ID / CLIENT_SECRET / REFRESH_TOKEN are required and
                the service talks to the Spotify Web API itself.
  2. Endpoint — ENDPOINT points at a pre-built now-playing URL; no
                credentials are needed.

Usage:
    from spotify_ws.lib.config import load_config

    config = load_config()
    config.port        → 3000
    config.endpoint    → None (direct mode)
"""

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

from ..errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_HOST = "http://localhost"
DEFAULT_PORT = 3000
DEFAULT_POLL_INTERVAL = 3.0

CREDENTIAL_VARS = ("CLIENT_ID", "CLIENT_SECRET", "REFRESH_TOKEN")

_TRUE = {"1", "t", "true", "yes", "on"}
_FALSE = {"0", "f", "false", "no", "off"}

_LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

_config = None


@dataclass(frozen=True)
class Config:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    endpoint: str | None = None
    client_id: str | None = None
    client_secret: str | None = None
    refresh_token: str | None = None
    allowed_origins: tuple[str, ...] = ()
    realtime: bool = False
    poll_interval: float = DEFAULT_POLL_INTERVAL
    log_level: int = logging.INFO

    @property
    def endpoint_mode(self) -> bool:
        return bool(self.endpoint)


def _parse_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    value = value.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    logger.warning("Unrecognised boolean %r, using %s", value, default)
    return default


def _parse_port(value: str | None) -> int:
    if not value:
        return DEFAULT_PORT
    try:
        port = int(value)
    except ValueError:
        raise ConfigError(f"PORT must be an integer, got {value!r}") from None
    if not 0 < port < 65536:
        raise ConfigError(f"PORT out of range: {port}")
    return port


def _parse_interval(value: str | None) -> float:
    if not value:
        return DEFAULT_POLL_INTERVAL
    try:
        interval = float(value)
    except ValueError:
        raise ConfigError(f"POLL_INTERVAL must be a number, got {value!r}") from None
    if interval <= 0:
        raise ConfigError(f"POLL_INTERVAL must be positive, got {interval}")
    return interval


def _validate(config: Config) -> None:
    """Warn about settings that are legal but probably not what was meant."""
    if config.endpoint_mode and config.client_id:
        logger.warning("ENDPOINT is set — ignoring CLIENT_ID/CLIENT_SECRET/REFRESH_TOKEN")
    if config.endpoint and not config.endpoint.startswith(("http://", "https://")):
        logger.warning("ENDPOINT %r does not look like an http(s) URL", config.endpoint)
    if config.poll_interval < 1:
        logger.warning("POLL_INTERVAL %.2fs is aggressive — expect Spotify rate limits",
                       config.poll_interval)


def from_env(environ) -> Config:
    """Build a Config from a mapping of environment variables.

    Raises ConfigError when direct mode is selected but a credential is missing.
    """
    endpoint = environ.get("ENDPOINT") or None

    if not endpoint:
        missing = [name for name in CREDENTIAL_VARS if not environ.get(name)]
        if missing:
            raise ConfigError(
                "Missing environment variable(s): " + ", ".join(missing))

    origins = environ.get("ALLOWED_ORIGINS", "")
    allowed = tuple(o.strip() for o in origins.split(",") if o.strip())

    config = Config(
        host=environ.get("HOST") or DEFAULT_HOST,
        port=_parse_port(environ.get("PORT")),
        endpoint=endpoint,
        client_id=environ.get("CLIENT_ID") or None,
        client_secret=environ.get("CLIENT_SECRET") or None,
        refresh_token=environ.get("REFRESH_TOKEN") or None,
        allowed_origins=allowed,
        realtime=_parse_bool(environ.get("REALTIME")),
        poll_interval=_parse_interval(environ.get("POLL_INTERVAL")),
        log_level=_LOG_LEVELS.get(environ.get("LOG_LEVEL", "").lower(), logging.INFO),
    )
    _validate(config)
    return config


def load_config() -> Config:
    """Load config from the process environment. Cached after first call."""
    global _config
    if _config is not None:
        return _config

    if load_dotenv():
        logger.info("Loaded .env file")
    _config = from_env(os.environ)
    return _config


def reload_config() -> Config:
    """Force a re-read of the environment (for testing)."""
    global _config
    _config = None
    return load_config()
