"""End-to-end: KeeexClient against the in-process mock desktop API."""
from __future__ import annotations

import httpx
import pytest

from keeex import KeeexAPIError, KeeexClient
from keeex.models import (
    KeeexResult,
    RefType,
    SearchOptions,
    Topic,
    User,
    VerifiedStatus,
    VerifyResult,
)
from mockapi.main import create_app
from mockapi.store import fingerprint

pytestmark = pytest.mark.anyio


@pytest.fixture
def doc(tmp_path):
    p = tmp_path / "contract.txt"
    p.write_text("the parties agree", encoding="utf-8")
    return p


async def test_hello_is_plain_text(kx):
    assert await kx.hello() == "hello world !"


async def test_authorized_route_rejected_without_token(kx):
    with pytest.raises(KeeexAPIError) as exc:
        await kx.get_mine()
    assert exc.value.status_code == 401
    assert "unauthorized" in exc.value.body


async def test_token_exchange_enables_authorized_calls(kx, store):
    grant = await kx.get_token("pytest")
    assert kx.token == grant["token"]
    assert grant["token"] in store.tokens

    me = User.model_validate(await kx.get_mine())
    assert me.profileIdx == store.me.profileIdx


async def test_denied_token_is_a_protocol_error():
    transport = httpx.ASGITransport(app=create_app(grant_tokens=False))
    async with KeeexClient(transport=transport) as client:
        calls = []
        await client.get_token("pytest", callback=lambda e, r: calls.append((e, r)))
    assert len(calls) == 1
    error, result = calls[0]
    assert isinstance(error, KeeexAPIError) and error.status_code == 403
    assert result is None
    assert client.token is None


async def test_verify_statuses(authed, doc):
    unknown = VerifyResult.model_validate(await authed.verify(str(doc), {"import": False}))
    assert unknown.verifiedStatus is VerifiedStatus.not_keeexed
    assert unknown.idx == fingerprint(doc.read_bytes())

    await authed.keeex(str(doc), [], [], "a contract")
    ok = await authed.verify(str(doc), {"import": False})
    assert ok == {"verifiedStatus": 100, "idx": unknown.idx}

    doc.write_text("the parties disagree", encoding="utf-8")
    changed = await authed.verify(str(doc), {"import": False})
    assert changed == {"verifiedStatus": 102, "idx": unknown.idx}


async def test_verify_import_registers_topic(authed, tmp_path):
    p = tmp_path / "received.txt"
    p.write_text("from a colleague", encoding="utf-8")
    first = await authed.verify(str(p), {"import": True})
    assert first["verifiedStatus"] == 101
    assert [t["idx"] for t in await authed.get_topics([first["idx"]])] == [first["idx"]]
    again = await authed.verify(str(p), {"import": False})
    assert again["verifiedStatus"] == 100


async def test_keeex_and_topic_queries(authed, doc, tmp_path, store):
    out_dir = tmp_path / "keeexed"
    res = KeeexResult.model_validate(
        await authed.keeex(
            str(doc), [], [], "a contract", {"name": "Contract", "targetFolder": str(out_dir)}
        )
    )
    idx = res.topic.idx
    assert res.path == str(out_dir / "contract.txt")
    assert (out_dir / "contract.txt").read_bytes() == doc.read_bytes()
    assert res.topic.name == "Contract"

    topics = [Topic.model_validate(t) for t in await authed.get_topics([idx, "nope"])]
    assert [t.idx for t in topics] == [idx]

    locations = await authed.get_locations([idx])
    assert locations[0]["idx"] == idx
    assert str((out_dir / "contract.txt").resolve()) in locations[0]["location"]

    author = await authed.get_author(idx)
    assert author["profileIdx"] == store.me.profileIdx
    assert await authed.get_current_view() == {"idx": idx}


async def test_comments(authed, doc):
    idx = (await authed.keeex(str(doc), [], [], ""))["topic"]["idx"]
    assert await authed.get_comments(idx) == []
    comments = await authed.comment(idx, "looks good")
    assert [c["name"] for c in comments] == ["looks good"]
    assert comments[0]["references"] == [idx]
    assert [c["name"] for c in await authed.get_refs(idx)] == ["looks good"]


async def test_versions_and_references(authed, tmp_path):
    v1 = tmp_path / "v1.txt"
    v1.write_text("draft", encoding="utf-8")
    v2 = tmp_path / "v2.txt"
    v2.write_text("final", encoding="utf-8")
    a = (await authed.keeex(str(v1), [], [], ""))["topic"]["idx"]
    b = (await authed.keeex(str(v2), [], [], ""))["topic"]["idx"]

    await authed.make_ref(RefType.version, b, a)
    assert [t["idx"] for t in await authed.get_prevs(b)] == [a]
    assert [t["idx"] for t in await authed.get_nexts(a)] == [b]

    await authed.make_ref("agreement", None, a)
    agreed = await authed.get_agreements(a)
    assert len(agreed) == 1

    hidden = await authed.search("", [], [], 0, 10, {})
    assert [t["idx"] for t in hidden] == [b]
    both = await authed.search("", [], [], 0, 10, SearchOptions(older_version=True))
    assert {t["idx"] for t in both} == {a, b}


async def test_share(authed, doc, store):
    store.add_user(User(profileIdx="bob", name="Bob", email="Bob@Example.org"))
    idx = (await authed.keeex(str(doc), [], [], ""))["topic"]["idx"]

    res = await authed.share(idx, str(doc), ["bob"], {"email": True})
    assert res["idx"] == idx
    assert res["shared"]["shared"] == ["bob"]
    assert res["link"]
    assert await authed.get_shared(idx) == {"received": [], "shared": ["bob"]}

    assert (await authed.get_user_by_email("bob@example.org"))["profileIdx"] == "bob"
    assert [u["name"] for u in await authed.get_users(["bob", "ghost"])] == ["Bob"]


async def test_remove_then_not_found(authed, doc):
    idx = (await authed.keeex(str(doc), [], [], ""))["topic"]["idx"]
    assert await authed.remove(idx) is None
    with pytest.raises(KeeexAPIError) as exc:
        await authed.get_author(idx)
    assert exc.value.status_code == 404


async def test_search_filters(authed, tmp_path):
    for name in ("invoice-jan.txt", "invoice-feb.txt", "notes.txt"):
        (tmp_path / name).write_text(name, encoding="utf-8")
        await authed.keeex(str(tmp_path / name), [], [], "")

    found = await authed.search("INVOICE", [], [], 0, 10, {"document": True})
    assert sorted(t["name"] for t in found) == ["invoice-feb.txt", "invoice-jan.txt"]
    assert len(await authed.search("invoice", [], [], 1, 10, {"document": True})) == 1
    assert await authed.search("invoice", [], [], 0, 10, {"comment": True}) == []


async def test_generate_file(authed, tmp_path):
    res = await authed.generate_file("message.txt", "hello Bob", str(tmp_path))
    assert res == {"file": str(tmp_path / "message.txt")}
    assert (tmp_path / "message.txt").read_text(encoding="utf-8") == "hello Bob"


async def test_env_variables(authed):
    await authed.set_env("KEEEXED_PATH", "/home/me/keeexed")
    assert await authed.get_env("KEEEXED_PATH") == {"value": "/home/me/keeexed"}

    with pytest.raises(KeeexAPIError) as exc:
        await authed.set_env("DATA_PATH", "/elsewhere")
    assert exc.value.status_code == 400
