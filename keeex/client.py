"""Async client for the KeeeX desktop application's local API.

Each public coroutine issues exactly one request and completes exactly once:

    async with KeeexClient() as kx:
        await kx.get_token("my-app")          # asks the user, stores the token
        topics = await kx.search("invoice", [], [], 0, 10, {"document": True})

Passing ``callback=`` switches delivery to ``callback(error, result)``: the
callback is invoked once and nothing is raised.
"""
from __future__ import annotations

import os
import time
from typing import Any, Optional, Sequence

import httpx

from . import routes
from .config import ClientSettings
from .logging_conf import get_logger
from .models import dump_option
from .response import decode_body, handle_response
from .types import Callback, Outcome

__all__ = ["KeeexClient"]

logger = get_logger("keeex.client")

_NO_BODY = object()


def _fspath(value: Any) -> Any:
    """Accept pathlib paths wherever a file path is sent."""
    return os.fspath(value) if isinstance(value, os.PathLike) else value


def _listed(value: Any) -> Any:
    return list(value) if isinstance(value, (list, tuple, set, frozenset)) else value


class KeeexClient:
    """Client bound to one local API endpoint and one session token."""

    def __init__(
        self,
        settings: ClientSettings | None = None,
        *,
        token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.settings = settings or ClientSettings()
        self.token: str | None = token if token is not None else self.settings.token
        self._http = httpx.AsyncClient(
            base_url=self.settings.api_base,
            timeout=self.settings.timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "KeeexClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    def set_token(self, token: str | None) -> None:
        """Use `token` for every later authorized request.

        Rarely needed: get_token() stores the token it obtains.
        """
        self.token = token

    # ------------------------
    # Plumbing
    # ------------------------
    async def _send(
        self,
        method: str,
        path: str,
        body: Any = _NO_BODY,
        *,
        auth: bool = True,
        as_json: bool = True,
    ) -> Outcome:
        headers = {"Accept": "application/json"} if as_json else {}
        if auth:
            headers["Authorization"] = self.token or ""
        kwargs: dict[str, Any] = {"headers": headers}
        if body is not _NO_BODY:
            kwargs["json"] = body

        start = time.perf_counter()
        logger.debug(
            "request.start",
            extra={"event": "request_start", "method": method, "path": path},
        )
        try:
            request = self._http.build_request(method, path, **kwargs)
        except (TypeError, ValueError) as e:
            # Unencodable body or header value; never raised past the callback.
            logger.warning(
                "request.invalid",
                extra={
                    "event": "request_invalid",
                    "method": method,
                    "path": path,
                    "error": repr(e),
                },
            )
            return handle_response(e, None, None)
        try:
            response = await self._http.send(request)
        except httpx.RequestError as e:
            logger.warning(
                "request.error",
                extra={
                    "event": "request_error",
                    "method": method,
                    "path": path,
                    "error": repr(e),
                },
            )
            return handle_response(e, None, None)

        logger.debug(
            "request.end",
            extra={
                "event": "request_end",
                "method": method,
                "path": path,
                "status_code": response.status_code,
                "elapsed_ms": round((time.perf_counter() - start) * 1000.0, 2),
            },
        )
        return handle_response(None, response, decode_body(response, as_json=as_json))

    @staticmethod
    def _deliver(outcome: Outcome, callback: Optional[Callback]) -> Any:
        if callback is not None:
            callback(outcome.error, outcome.result)
            return None
        if outcome.error is not None:
            raise outcome.error
        return outcome.result

    async def _call(
        self,
        method: str,
        path: str,
        body: Any = _NO_BODY,
        *,
        callback: Optional[Callback] = None,
    ) -> Any:
        return self._deliver(await self._send(method, path, body), callback)

    # ------------------------
    # Session
    # ------------------------
    async def hello(self, *, callback: Optional[Callback] = None) -> Any:
        """Check the API is up; the body is the literal text "hello world !"."""
        outcome = await self._send("GET", routes.HELLO, auth=False, as_json=False)
        return self._deliver(outcome, callback)

    async def get_token(self, app_name: str, *, callback: Optional[Callback] = None) -> Any:
        """Ask the desktop app for an API token on behalf of `app_name`.

        The user is prompted to allow or deny access. On success the body is
        ``{"token": ...}`` and the token is stored on this client, so no
        set_token() call is needed afterwards.
        """
        outcome = await self._send("GET", routes.TOKEN, {"appName": app_name}, auth=False)
        token = outcome.result.get("token") if isinstance(outcome.result, dict) else None
        if outcome.ok and token and isinstance(token, str):
            self.token = token
            logger.info("token.stored", extra={"event": "token_stored", "app_name": app_name})
        return self._deliver(outcome, callback)

    # ------------------------
    # Topics
    # ------------------------
    async def keeex(
        self,
        path: str | os.PathLike[str],
        refs: Sequence[str],
        prevs: Sequence[str],
        description: str,
        option: Any = None,
        *,
        callback: Optional[Callback] = None,
    ) -> Any:
        """Fingerprint the file at `path` and register it as a topic.

        Args:
            path: file to keeex
            refs: idxs the document references
            prevs: idxs of previous versions of the document
            description: topic description
            option: KeeexOptions or dict; `name` (topic name), `targetFolder`
                (None for the app's default), `timestamp`, `pattern`, `bitcoin`

        Returns ``{"path": <keeexed file>, "topic": Topic}``.
        """
        opt = dump_option(option) or {}
        body = {
            "path": _fspath(path),
            "refs": _listed(refs),
            "prevs": _listed(prevs),
            "name": opt.get("name") if isinstance(opt, dict) else None,
            "description": description,
            "option": opt,
        }
        return await self._call("POST", routes.TOPIC + "/keeex", body, callback=callback)

    async def verify(
        self,
        path: str | os.PathLike[str],
        option: Any = None,
        *,
        callback: Optional[Callback] = None,
    ) -> Any:
        """Check a file against the app's records.

        Returns ``{"verifiedStatus": 100|101|102, "idx": ...}``: 100 keeexed,
        101 not keeexed, 102 keeexed but modified since. ``option.import``
        adds a valid file to the app's database.
        """
        body = {"path": _fspath(path), "option": dump_option(option)}
        return await self._call("POST", routes.TOPIC + "/verify", body, callback=callback)

    async def get_topics(
        self, idxs: Sequence[str], *, callback: Optional[Callback] = None
    ) -> Any:
        return await self._call("GET", routes.TOPIC, {"idxs": _listed(idxs)}, callback=callback)

    async def get_locations(
        self, idxs: Sequence[str], *, callback: Optional[Callback] = None
    ) -> Any:
        """Known file locations, as ``[{"idx": ..., "location": [...]}]``."""
        return await self._call(
            "GET", routes.TOPIC + "/locations", {"idxs": _listed(idxs)}, callback=callback
        )

    async def get_author(self, idx: str, *, callback: Optional[Callback] = None) -> Any:
        return await self._call("GET", routes.topic_path(idx, "author"), callback=callback)

    async def get_comments(self, idx: str, *, callback: Optional[Callback] = None) -> Any:
        return await self._call("GET", routes.topic_path(idx, "comments"), callback=callback)

    async def comment(
        self, idx: str, message: str, *, callback: Optional[Callback] = None
    ) -> Any:
        """Post `message` on topic `idx`; returns the topic's updated comment list."""
        return await self._call(
            "POST", routes.topic_path(idx, "comment"), {"message": message}, callback=callback
        )

    async def get_prevs(self, idx: str, *, callback: Optional[Callback] = None) -> Any:
        return await self._call("GET", routes.topic_path(idx, "prevs"), callback=callback)

    async def get_nexts(self, idx: str, *, callback: Optional[Callback] = None) -> Any:
        return await self._call("GET", routes.topic_path(idx, "nexts"), callback=callback)

    async def get_refs(self, idx: str, *, callback: Optional[Callback] = None) -> Any:
        """Every topic referring to `idx`, comments and previous versions included."""
        return await self._call("GET", routes.topic_path(idx, "refs"), callback=callback)

    async def get_shared(self, idx: str, *, callback: Optional[Callback] = None) -> Any:
        """Profiles involved in sharing `idx`: ``{"received": [...], "shared": [...]}``."""
        return await self._call("GET", routes.topic_path(idx, "shared"), callback=callback)

    async def get_agreements(self, idx: str, *, callback: Optional[Callback] = None) -> Any:
        return await self._call("GET", routes.topic_path(idx, "agreements"), callback=callback)

    async def share(
        self,
        idx: str,
        path: str | os.PathLike[str],
        recipients: Sequence[str],
        option: Any = None,
        *,
        callback: Optional[Callback] = None,
    ) -> Any:
        """Share topic `idx` (file at `path`) with recipient profile idxs.

        ``option.email`` asks the app to email the recipients. Returns
        ``{"idx", "shared": {"shared", "received"}, "link"}`` where `link`
        downloads the ciphered file.
        """
        body = {
            "path": _fspath(path),
            "recipients": _listed(recipients),
            "option": dump_option(option),
        }
        return await self._call("POST", routes.topic_path(idx, "share"), body, callback=callback)

    async def make_ref(
        self,
        type: str,
        from_: Optional[str],
        to: str,
        *,
        callback: Optional[Callback] = None,
    ) -> Any:
        """Link two topics.

        `type` is "reference", "version" or "agreement"; `from_` is None for
        an agreement.
        """
        body = {"type": getattr(type, "value", type), "from": from_, "to": to}
        return await self._call("POST", routes.TOPIC + "/makeRef", body, callback=callback)

    async def remove(self, idx: str, *, callback: Optional[Callback] = None) -> Any:
        return await self._call("POST", routes.topic_path(idx, "remove"), callback=callback)

    # ------------------------
    # Users
    # ------------------------
    async def get_mine(self, *, callback: Optional[Callback] = None) -> Any:
        """Profile of the user running the desktop app."""
        return await self._call("GET", routes.USER + "/me", callback=callback)

    async def get_users(
        self, idxs: Sequence[str], *, callback: Optional[Callback] = None
    ) -> Any:
        return await self._call("GET", routes.USER, {"idxs": _listed(idxs)}, callback=callback)

    async def get_user_by_email(
        self, email: str, *, callback: Optional[Callback] = None
    ) -> Any:
        return await self._call("GET", routes.user_by_email_path(email), callback=callback)

    # ------------------------
    # Utilities
    # ------------------------
    async def generate_file(
        self,
        name: str,
        description: str,
        target: str | os.PathLike[str],
        *,
        callback: Optional[Callback] = None,
    ) -> Any:
        """Create a file in folder `target`, e.g. to keeex a message; returns ``{"file"}``."""
        body = {"name": name, "description": description, "target": _fspath(target)}
        return await self._call("POST", routes.UTIL + "/generateFile", body, callback=callback)

    async def search(
        self,
        filter: str,
        topics: Sequence[str],
        neg_topics: Sequence[str],
        skip: int,
        limit: int,
        option: Any = None,
        *,
        callback: Optional[Callback] = None,
    ) -> Any:
        """Full-text search over known topics.

        Args:
            filter: text to search for
            topics: idxs the results must all reference
            neg_topics: idxs the results must not reference
            skip: number of results to skip
            limit: maximum number of results
            option: SearchOptions or dict selecting what to search
                (document, discussion, comment, agreed, concept,
                older_version, description)
        """
        body = {
            "filter": filter,
            "topics": _listed(topics),
            "negTopics": _listed(neg_topics),
            "skip": skip,
            "limit": limit,
            "option": dump_option(option),
        }
        return await self._call("POST", routes.UTIL + "/search", body, callback=callback)

    async def get_current_view(self, *, callback: Optional[Callback] = None) -> Any:
        """idx of the topic currently displayed in the app, as ``{"idx"}``."""
        return await self._call("GET", routes.UTIL + "/currentView", callback=callback)

    async def get_env(self, name: str, *, callback: Optional[Callback] = None) -> Any:
        """Read an app variable (see routes.READABLE_ENV_VARS); returns ``{"value"}``."""
        return await self._call("GET", routes.env_path(name), callback=callback)

    async def set_env(
        self, name: str, value: str, *, callback: Optional[Callback] = None
    ) -> Any:
        """Write an app variable (see routes.WRITABLE_ENV_VARS)."""
        return await self._call("POST", routes.env_path(name), {"value": value}, callback=callback)
