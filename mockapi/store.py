from __future__ import annotations

import hashlib
import shutil
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Optional
from uuid import uuid4

from keeex.logging_conf import get_logger
from keeex.models import (
    KeeexResult,
    Location,
    RefType,
    SharedInfo,
    ShareResult,
    Topic,
    User,
    VerifiedStatus,
    VerifyResult,
)
from keeex.routes import READABLE_ENV_VARS, WRITABLE_ENV_VARS

__all__ = [
    "fingerprint",
    "AccessDenied",
    "MockStore",
]

logger = get_logger("mockapi.store")

_SEARCH_KINDS = ("document", "discussion", "comment", "concept")


def fingerprint(data: bytes) -> str:
    """Content identifier of a file: hex BLAKE2b-128 of its bytes."""
    return hashlib.blake2b(data, digest_size=16).hexdigest()


def _now() -> datetime:
    return datetime.now(UTC)


def _key(path: str) -> str:
    return str(Path(path).expanduser().resolve())


class AccessDenied(Exception):
    """The user refused to grant an API token."""


@dataclass
class MockStore:
    """In-memory state of a KeeeX desktop app.

    Unknown idxs, profiles and emails raise KeyError; bad arguments (missing
    file, unknown variable) raise ValueError.
    """

    grant_tokens: bool = True
    me: User = field(
        default_factory=lambda: User(
            profileIdx="profile-me", name="Local User", email="me@keeex.local"
        )
    )
    tokens: set[str] = field(default_factory=set)
    users: dict[str, User] = field(default_factory=dict)
    topics: dict[str, Topic] = field(default_factory=dict)
    kinds: dict[str, str] = field(default_factory=dict)
    authors: dict[str, str] = field(default_factory=dict)
    files: dict[str, str] = field(default_factory=dict)
    locations: dict[str, list[str]] = field(default_factory=dict)
    prevs: dict[str, list[str]] = field(default_factory=dict)
    agreements: dict[str, list[str]] = field(default_factory=dict)
    shared: dict[str, SharedInfo] = field(default_factory=dict)
    env: dict[str, str] = field(default_factory=dict)
    current_view: Optional[str] = None

    def __post_init__(self) -> None:
        self.users.setdefault(self.me.profileIdx, self.me)
        for var in READABLE_ENV_VARS:
            self.env.setdefault(var, "")
        self.env["FILENAME_FORMAT"] = self.env["FILENAME_FORMAT"] or "{name}"

    # ------------------------
    # Session
    # ------------------------
    def issue_token(self, app_name: str) -> str:
        if not self.grant_tokens:
            raise AccessDenied(app_name)
        token = uuid4().hex
        self.tokens.add(token)
        logger.info("token.issued", extra={"event": "token_issued", "app_name": app_name})
        return token

    def is_authorized(self, token: Optional[str]) -> bool:
        return bool(token) and token in self.tokens

    # ------------------------
    # Topics
    # ------------------------
    def topic(self, idx: str) -> Topic:
        return self.topics[idx]

    def _register(
        self,
        idx: str,
        *,
        name: str,
        description: str = "",
        references: Optional[list[str]] = None,
        kind: str = "document",
    ) -> Topic:
        now = _now()
        topic = Topic(
            idx=idx,
            name=name,
            description=description,
            creationDate=now,
            lastModify=now,
            references=list(references or []),
        )
        self.topics[idx] = topic
        self.kinds[idx] = kind
        self.authors[idx] = self.me.profileIdx
        return topic

    def _locate(self, idx: str, path: str) -> None:
        locs = self.locations.setdefault(idx, [])
        if path not in locs:
            locs.append(path)
        self.files[path] = idx

    def keeex(
        self,
        *,
        path: str,
        refs: list[str],
        prevs: list[str],
        name: Optional[str],
        description: str,
        target_folder: Optional[str] = None,
    ) -> KeeexResult:
        src = Path(path).expanduser()
        if not src.is_file():
            raise ValueError(f"no such file: {path}")
        data = src.read_bytes()
        idx = fingerprint(data)

        out = src
        if target_folder:
            out = Path(target_folder).expanduser() / src.name
            out.parent.mkdir(parents=True, exist_ok=True)
            if out.resolve() != src.resolve():
                shutil.copyfile(src, out)

        topic = self._register(
            idx,
            name=name or src.name,
            description=description,
            references=list(refs) + [p for p in prevs if p not in refs],
        )
        self.prevs[idx] = list(prevs)
        self._locate(idx, _key(str(out)))
        self.current_view = idx
        return KeeexResult(path=str(out), topic=topic)

    def verify(self, *, path: str, do_import: bool = False) -> VerifyResult:
        src = Path(path).expanduser()
        if not src.is_file():
            raise ValueError(f"no such file: {path}")
        digest = fingerprint(src.read_bytes())
        key = _key(path)

        known = self.files.get(key)
        if known is not None:
            status = VerifiedStatus.keeexed if known == digest else VerifiedStatus.modified
            return VerifyResult(verifiedStatus=status, idx=known)
        if digest in self.topics:
            self._locate(digest, key)
            return VerifyResult(verifiedStatus=VerifiedStatus.keeexed, idx=digest)
        if do_import:
            self._register(digest, name=src.name)
            self._locate(digest, key)
        return VerifyResult(verifiedStatus=VerifiedStatus.not_keeexed, idx=digest)

    def get_topics(self, idxs: list[str]) -> list[Topic]:
        return [self.topics[i] for i in idxs if i in self.topics]

    def get_locations(self, idxs: list[str]) -> list[Location]:
        return [
            Location(idx=i, location=list(self.locations.get(i, [])))
            for i in idxs
            if i in self.topics
        ]

    def author(self, idx: str) -> User:
        self.topic(idx)
        return self.users[self.authors[idx]]

    def comments(self, idx: str) -> list[Topic]:
        self.topic(idx)
        return [
            t
            for i, t in self.topics.items()
            if self.kinds.get(i) == "comment" and idx in t.references
        ]

    def add_comment(self, idx: str, message: str) -> list[Topic]:
        self.topic(idx)
        cid = fingerprint(f"{idx}|{message}|{_now().isoformat()}".encode())
        self._register(cid, name=message, references=[idx], kind="comment")
        return self.comments(idx)

    def get_prevs(self, idx: str) -> list[Topic]:
        self.topic(idx)
        return self.get_topics(self.prevs.get(idx, []))

    def get_nexts(self, idx: str) -> list[Topic]:
        self.topic(idx)
        return [self.topics[i] for i, ps in self.prevs.items() if idx in ps and i in self.topics]

    def get_refs(self, idx: str) -> list[Topic]:
        self.topic(idx)
        return [t for t in self.topics.values() if idx in t.references]

    def get_shared(self, idx: str) -> SharedInfo:
        self.topic(idx)
        return self.shared.get(idx, SharedInfo())

    def get_agreements(self, idx: str) -> list[User]:
        self.topic(idx)
        return [self.users[p] for p in self.agreements.get(idx, []) if p in self.users]

    def share(self, idx: str, *, path: str, recipients: list[str]) -> ShareResult:
        self.topic(idx)
        for r in recipients:
            self.user(r)
        info = self.shared.setdefault(idx, SharedInfo())
        for r in recipients:
            if r not in info.shared:
                info.shared.append(r)
        self._locate(idx, _key(path))
        return ShareResult(idx=idx, shared=info, link=f"http://localhost/kx/share/{idx}")

    def make_ref(self, ref_type: RefType, from_: Optional[str], to: str) -> None:
        """Record a link; for versions `from_` is the newer topic and `to` the older."""
        self.topic(to)
        if ref_type is RefType.agreement:
            agreed = self.agreements.setdefault(to, [])
            if self.me.profileIdx not in agreed:
                agreed.append(self.me.profileIdx)
            return
        if from_ is None:
            raise ValueError(f"{ref_type.value} needs a source topic")
        src = self.topic(from_)
        if to not in src.references:
            src.references.append(to)
        if ref_type is RefType.version:
            prevs = self.prevs.setdefault(from_, [])
            if to not in prevs:
                prevs.append(to)
        src.lastModify = _now()

    def remove(self, idx: str) -> None:
        self.topic(idx)
        for table in (self.topics, self.kinds, self.authors, self.locations,
                      self.prevs, self.agreements, self.shared):
            table.pop(idx, None)
        self.files = {p: i for p, i in self.files.items() if i != idx}
        if self.current_view == idx:
            self.current_view = None

    # ------------------------
    # Users
    # ------------------------
    def user(self, profile_idx: str) -> User:
        return self.users[profile_idx]

    def get_users(self, idxs: list[str]) -> list[User]:
        return [self.users[i] for i in idxs if i in self.users]

    def user_by_email(self, email: str) -> User:
        for u in self.users.values():
            if u.email and u.email.lower() == email.lower():
                return u
        raise KeyError(email)

    def add_user(self, user: User) -> User:
        self.users[user.profileIdx] = user
        return user

    # ------------------------
    # Utilities
    # ------------------------
    def generate_file(self, *, name: str, description: str, target: str) -> str:
        folder = Path(target).expanduser()
        if not folder.is_dir():
            raise ValueError(f"no such folder: {target}")
        out = folder / name
        out.write_text(description, encoding="utf-8")
        return str(out)

    def search(
        self,
        *,
        filter: str,
        topics: list[str],
        neg_topics: list[str],
        skip: int,
        limit: int,
        option: dict,
    ) -> list[Topic]:
        """Case-insensitive match on name (and description when asked).

        Kind flags (document, discussion, comment, concept) restrict results
        when any is set; older versions are hidden unless `older_version`.
        """
        needle = (filter or "").lower()
        kinds = {k for k in _SEARCH_KINDS if option.get(k)}
        superseded = {p for ps in self.prevs.values() for p in ps}

        hits: list[Topic] = []
        for idx, t in self.topics.items():
            text = t.name + (" " + t.description if option.get("description") else "")
            if needle and needle not in text.lower():
                continue
            if kinds and self.kinds.get(idx) not in kinds:
                continue
            if not all(r in t.references for r in topics):
                continue
            if any(r in t.references for r in neg_topics):
                continue
            if option.get("agreed") and not self.agreements.get(idx):
                continue
            if idx in superseded and not option.get("older_version"):
                continue
            hits.append(t)
        return hits[max(skip, 0):max(skip, 0) + max(limit, 0)]

    def get_env(self, name: str) -> str:
        if name not in READABLE_ENV_VARS:
            raise ValueError(f"unknown variable: {name}")
        return self.env.get(name, "")

    def set_env(self, name: str, value: str) -> None:
        if name not in WRITABLE_ENV_VARS:
            raise ValueError(f"variable is read-only or unknown: {name}")
        self.env[name] = value
