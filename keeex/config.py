from __future__ import annotations

import os
from dataclasses import dataclass

__all__ = [
    "DEFAULT_HOST",
    "DEFAULT_PORT",
    "API_ROOT",
    "ClientSettings",
]

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 8288
API_ROOT = "/kx/api"


def _int_from_env(key: str, default: int) -> int:
    raw = os.getenv(key)
    if raw is None or raw == "":
        return default
    try:
        return int(raw, 10)
    except ValueError as e:
        raise ValueError(f"{key} must be an integer, got {raw!r}") from e


def _float_from_env(key: str) -> float | None:
    raw = os.getenv(key)
    if raw is None or raw == "":
        return None
    try:
        val = float(raw)
    except ValueError as e:
        raise ValueError(f"{key} must be a number of seconds, got {raw!r}") from e
    if val <= 0:
        raise ValueError(f"{key} must be positive")
    return val


@dataclass
class ClientSettings:
    """Where the KeeeX desktop API listens and how long to wait for it.

    `timeout=None` means requests wait indefinitely, which is what the
    desktop app expects while it shows a consent prompt.
    """

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    api_root: str = API_ROOT
    timeout: float | None = None
    token: str | None = None

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"

    @property
    def api_base(self) -> str:
        return self.base_url + "/" + self.api_root.strip("/")

    @classmethod
    def from_env(cls) -> "ClientSettings":
        """Read KEEEX_HOST, KEEEX_PORT, KEEEX_TIMEOUT and KEEEX_TOKEN."""
        return cls(
            host=os.getenv("KEEEX_HOST") or DEFAULT_HOST,
            port=_int_from_env("KEEEX_PORT", DEFAULT_PORT),
            timeout=_float_from_env("KEEEX_TIMEOUT"),
            token=os.getenv("KEEEX_TOKEN") or None,
        )
