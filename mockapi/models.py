from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field

from keeex.models import RefType


class TokenRequest(BaseModel):
    """Body of GET /token."""
    appName: str


class IdxsRequest(BaseModel):
    """Body of the GET routes that look up several topics or profiles."""
    idxs: list[str] = Field(default_factory=list)


class KeeexRequest(BaseModel):
    path: str
    refs: list[str] = Field(default_factory=list)
    prevs: list[str] = Field(default_factory=list)
    name: Optional[str] = None
    description: str = ""
    option: Optional[dict[str, Any]] = None


class VerifyRequest(BaseModel):
    path: str
    option: Optional[dict[str, Any]] = None


class CommentRequest(BaseModel):
    message: str


class ShareRequest(BaseModel):
    path: str
    recipients: list[str] = Field(default_factory=list)
    option: Optional[dict[str, Any]] = None


class MakeRefRequest(BaseModel):
    type: RefType
    from_: Optional[str] = Field(default=None, alias="from")
    to: str


class GenerateFileRequest(BaseModel):
    name: str
    description: str = ""
    target: str


class SearchRequest(BaseModel):
    filter: str = ""
    topics: list[str] = Field(default_factory=list)
    negTopics: list[str] = Field(default_factory=list)
    skip: int = 0
    limit: int = 20
    option: Optional[dict[str, Any]] = None


class EnvRequest(BaseModel):
    value: str
