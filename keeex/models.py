"""Data transfer records of the KeeeX local API.

The client hands server bodies back untouched; these models document their
shape, back the mock server's response_model declarations and give callers a
typed view when they want one (``Topic.model_validate(body)``).
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum, IntEnum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

__all__ = [
    "VerifiedStatus",
    "RefType",
    "Topic",
    "Comment",
    "User",
    "Location",
    "SharedInfo",
    "KeeexResult",
    "VerifyResult",
    "ShareResult",
    "TokenGrant",
    "GeneratedFile",
    "CurrentView",
    "EnvValue",
    "KeeexOptions",
    "VerifyOptions",
    "ShareOptions",
    "SearchOptions",
    "dump_option",
]


class VerifiedStatus(IntEnum):
    keeexed = 100
    not_keeexed = 101
    modified = 102


class RefType(str, Enum):
    reference = "reference"
    version = "version"
    agreement = "agreement"


# ------------------------
# Responses
# ------------------------
class Topic(BaseModel):
    """A content-addressed unit: document, discussion, comment or concept."""
    idx: str
    name: str
    description: str = ""
    creationDate: Optional[datetime] = None
    lastModify: Optional[datetime] = None
    references: list[str] = Field(default_factory=list)


class Comment(Topic):
    """A topic whose `name` holds the message text."""


class User(BaseModel):
    profileIdx: str
    name: str
    avatar: Optional[str] = None
    email: Optional[str] = None


class Location(BaseModel):
    idx: str
    location: list[str] = Field(default_factory=list)


class SharedInfo(BaseModel):
    received: list[str] = Field(default_factory=list)
    shared: list[str] = Field(default_factory=list)


class KeeexResult(BaseModel):
    path: str
    topic: Topic


class VerifyResult(BaseModel):
    verifiedStatus: VerifiedStatus
    idx: Optional[str] = None


class ShareResult(BaseModel):
    idx: str
    shared: SharedInfo
    link: Optional[str] = None


class TokenGrant(BaseModel):
    token: str


class GeneratedFile(BaseModel):
    file: str


class CurrentView(BaseModel):
    idx: Optional[str] = None


class EnvValue(BaseModel):
    value: Optional[str] = None


# ------------------------
# Request options
# ------------------------
class _Options(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class KeeexOptions(_Options):
    name: Optional[str] = None
    targetFolder: Optional[str] = None  # None lets the app pick its default folder
    timestamp: Optional[bool] = None
    pattern: Optional[bool] = None
    bitcoin: Optional[bool] = None


class VerifyOptions(_Options):
    import_: Optional[bool] = Field(default=None, alias="import")


class ShareOptions(_Options):
    email: Optional[bool] = None


class SearchOptions(_Options):
    document: Optional[bool] = None
    discussion: Optional[bool] = None
    comment: Optional[bool] = None
    agreed: Optional[bool] = None
    concept: Optional[bool] = None
    older_version: Optional[bool] = None
    description: Optional[bool] = None


def dump_option(option: Any) -> Any:
    """Wire form of an option argument: models by alias without unset fields,
    anything else (dict, None) as given."""
    if isinstance(option, BaseModel):
        return option.model_dump(by_alias=True, exclude_none=True)
    return option
