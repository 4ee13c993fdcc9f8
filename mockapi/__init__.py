"""In-memory mock of the KeeeX desktop application's local API.

Used by the test-suite and for developing against the client without the
desktop app running.
"""
from .store import MockStore, fingerprint

__all__ = ["MockStore", "fingerprint"]
