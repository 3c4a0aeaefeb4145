"""Runtime configuration, read once from the environment at startup."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

DEFAULT_API_BASE_URL = "https://wallet-collection-api.apr.io"
DEFAULT_RECEIPT_TIMEOUT = 180
DEFAULT_REQUEST_TIMEOUT = 10
DEFAULT_DISPLAY_TZ = "Asia/Jakarta"


class ConfigError(Exception):
    """Raised when required settings are missing or malformed."""


def _int_setting(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {value}")
    return value


@dataclass(frozen=True)
class Config:
    private_key: str
    rpc_url: str
    api_base_url: str = DEFAULT_API_BASE_URL
    verbosity: str = "INFO"
    receipt_timeout: int = DEFAULT_RECEIPT_TIMEOUT
    request_timeout: int = DEFAULT_REQUEST_TIMEOUT
    display_timezone: str = DEFAULT_DISPLAY_TZ

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Config":
        """Build a Config from environment variables.

        PRIVATE_KEY and MONAD_RPC_URL are required; everything else has a
        default. Raises ConfigError naming every missing variable at once.
        """
        env = os.environ if environ is None else environ
        private_key = env.get("PRIVATE_KEY", "").strip()
        rpc_url = env.get("MONAD_RPC_URL", "").strip()

        missing = [
            name
            for name, value in (("PRIVATE_KEY", private_key), ("MONAD_RPC_URL", rpc_url))
            if not value
        ]
        if missing:
            raise ConfigError(f"Missing required environment variable(s): {', '.join(missing)}")

        return cls(
            private_key=private_key,
            rpc_url=rpc_url,
            api_base_url=env.get("APR_API_BASE_URL", DEFAULT_API_BASE_URL).rstrip("/"),
            verbosity=env.get("APR_CHECKIN_VERBOSITY", "INFO"),
            receipt_timeout=_int_setting(env, "APR_RECEIPT_TIMEOUT", DEFAULT_RECEIPT_TIMEOUT),
            request_timeout=_int_setting(env, "APR_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT),
            display_timezone=env.get("APR_DISPLAY_TZ", DEFAULT_DISPLAY_TZ),
        )

    def __repr__(self) -> str:  # keep the key out of logs and tracebacks
        return (
            f"Config(rpc_url={self.rpc_url!r}, api_base_url={self.api_base_url!r}, "
            f"verbosity={self.verbosity!r}, receipt_timeout={self.receipt_timeout}, "
            f"request_timeout={self.request_timeout}, display_timezone={self.display_timezone!r})"
        )


def load_config(dotenv_path: Optional[str] = None) -> Config:
    """Load .env (without overriding real env vars) then build the Config."""
    load_dotenv(dotenv_path, override=False)
    return Config.from_env()
