from __future__ import annotations

import httpx
import pytest

from keeex.response import decode_body, handle_response
from keeex.types import KeeexAPIError


def test_success_only_on_exactly_200():
    resp = httpx.Response(200, json={"idx": "abc"})
    out = handle_response(None, resp, {"idx": "abc"})
    assert out.ok
    assert out.error is None
    assert out.result == {"idx": "abc"}


@pytest.mark.parametrize("status", [201, 204, 301, 400, 401, 404, 500])
def test_any_other_status_is_an_error(status):
    resp = httpx.Response(status, text="nope")
    out = handle_response(None, resp, "nope")
    assert not out.ok
    assert out.result is None
    assert isinstance(out.error, KeeexAPIError)
    assert out.error.status_code == status
    assert str(out.error) == f"{status} nope"


def test_error_body_is_not_parsed():
    body = '{"detail": {"error_code": "unauthorized"}}'
    resp = httpx.Response(401, text=body)
    out = handle_response(None, resp, {"detail": {"error_code": "unauthorized"}})
    assert out.error.body == body
    assert str(out.error) == f"401 {body}"


def test_transport_error_wins_over_response():
    err = httpx.ConnectError("connection refused")
    out = handle_response(err, httpx.Response(200, text="ignored"), "ignored")
    assert out.error is err
    assert out.result is None


def test_decode_body_variants():
    assert decode_body(httpx.Response(200, json=[1, 2])) == [1, 2]
    assert decode_body(httpx.Response(200, text="")) is None
    assert decode_body(httpx.Response(200, text="hello world !")) == "hello world !"
    assert decode_body(httpx.Response(200, text='"x"'), as_json=False) == '"x"'
