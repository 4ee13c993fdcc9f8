"""Turn a finished (or failed) HTTP exchange into a single Outcome.

Every client operation funnels through handle_response(): a 200 is always a
success and anything else is always an error.
"""
from __future__ import annotations

import json
from typing import Any, Optional

import httpx

from .types import KeeexAPIError, Outcome

__all__ = ["decode_body", "handle_response"]


def decode_body(response: httpx.Response, *, as_json: bool = True) -> Any:
    """Return the response body, JSON-decoded when asked and possible.

    An empty body decodes to None; a body that is not valid JSON is returned
    as text.
    """
    text = response.text
    if not as_json:
        return text
    if not text.strip():
        return None
    try:
        return json.loads(text)
    except ValueError:
        return text


def handle_response(
    error: Optional[BaseException],
    response: Optional[httpx.Response],
    body: Any,
) -> Outcome:
    if error is not None:
        return Outcome(error)
    if response is None or response.status_code != 200:
        status = response.status_code if response is not None else 0
        raw = response.text if response is not None else ""
        return Outcome(KeeexAPIError(status, raw))
    return Outcome(None, body)
