"""Client for the KeeeX desktop application's local HTTP/JSON API."""
from importlib.metadata import PackageNotFoundError, version

from .client import KeeexClient
from .config import ClientSettings
from .types import KeeexAPIError, KeeexError, Outcome

try:
    __version__ = version("keeex-local-api")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.0.0"

__all__ = [
    "KeeexClient",
    "ClientSettings",
    "KeeexError",
    "KeeexAPIError",
    "Outcome",
]
