from __future__ import annotations

from typing import Any, Callable, NamedTuple, Optional

__all__ = [
    "KeeexError",
    "KeeexAPIError",
    "Outcome",
    "Callback",
]


class KeeexError(RuntimeError):
    """Base class for errors synthesized by the client."""


class KeeexAPIError(KeeexError):
    """The local API answered with a status other than 200.

    The message is the status code followed by the raw body; the body is
    not parsed for an error code even when it is JSON.
    """

    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f"{status_code} {body}")


class Outcome(NamedTuple):
    """Exactly one of `error` and `result` is meaningful."""

    error: Optional[BaseException]
    result: Any = None

    @property
    def ok(self) -> bool:
        return self.error is None


Callback = Callable[[Optional[BaseException], Any], None]
