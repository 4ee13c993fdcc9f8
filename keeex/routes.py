from __future__ import annotations

from urllib.parse import quote

__all__ = [
    "HELLO",
    "TOKEN",
    "TOPIC",
    "USER",
    "UTIL",
    "PLUGIN",
    "READABLE_ENV_VARS",
    "WRITABLE_ENV_VARS",
    "segment",
    "topic_path",
    "user_by_email_path",
    "env_path",
]

# Route groups, relative to the API root (/kx/api).
HELLO = "/hello"
TOKEN = "/token"
TOPIC = "/topic"
USER = "/user"
UTIL = "/util"
PLUGIN = "/plugin"

READABLE_ENV_VARS = (
    "DATA_PATH",
    "KEEEX_PATH",
    "KEEEXED_PATH",
    "RECEIVED_PATH",
    "FILENAME_FORMAT",
)
WRITABLE_ENV_VARS = ("KEEEXED_PATH", "RECEIVED_PATH", "FILENAME_FORMAT")


def segment(value: str) -> str:
    """Percent-encode `value` as exactly one path segment.

    Nothing is considered safe, so "/" and "@" are escaped too.
    """
    return quote(str(value), safe="")


def topic_path(idx: str, action: str | None = None) -> str:
    """Return /topic/{idx} or /topic/{idx}/{action}."""
    p = f"{TOPIC}/{segment(idx)}"
    return f"{p}/{action}" if action else p


def user_by_email_path(email: str) -> str:
    return f"{USER}/email/{segment(email)}"


def env_path(name: str) -> str:
    return f"{UTIL}/env/{segment(name)}"
