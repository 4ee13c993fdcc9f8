from __future__ import annotations

import json
from collections.abc import Callable

import httpx
import pytest

from keeex import KeeexClient
from mockapi.main import create_app
from mockapi.store import MockStore


@pytest.fixture
def anyio_backend():
    return "asyncio"


class Recorder:
    """httpx.MockTransport handler that records requests and replays one reply.

    `reply` is either an httpx.Response or a callable building one from the
    request; an exception instance is raised instead of answering.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.reply: httpx.Response | Callable[[httpx.Request], httpx.Response] | Exception = (
            httpx.Response(200, json={})
        )

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if isinstance(self.reply, Exception):
            raise self.reply
        if callable(self.reply):
            return self.reply(request)
        return self.reply

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    def last_json(self):
        content = self.last.content
        return json.loads(content) if content else None


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
async def wire(recorder):
    """Client whose requests go to `recorder` instead of the network."""
    client = KeeexClient(transport=httpx.MockTransport(recorder))
    yield client
    await client.aclose()


@pytest.fixture
def store() -> MockStore:
    return MockStore()


@pytest.fixture
async def kx(store):
    """Client talking to an in-process mock of the desktop API."""
    transport = httpx.ASGITransport(app=create_app(store))
    client = KeeexClient(transport=transport)
    yield client
    await client.aclose()


@pytest.fixture
async def authed(kx):
    await kx.get_token("pytest")
    return kx
