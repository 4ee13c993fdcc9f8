from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from fastapi.responses import PlainTextResponse

from keeex.config import API_ROOT
from keeex.logging_conf import get_logger
from keeex.models import (
    Comment,
    CurrentView,
    EnvValue,
    GeneratedFile,
    KeeexResult,
    Location,
    SharedInfo,
    ShareResult,
    TokenGrant,
    Topic,
    User,
    VerifyResult,
)

from .models import (
    CommentRequest,
    EnvRequest,
    GenerateFileRequest,
    IdxsRequest,
    KeeexRequest,
    MakeRefRequest,
    SearchRequest,
    ShareRequest,
    TokenRequest,
    VerifyRequest,
)
from .store import AccessDenied, MockStore

router = APIRouter(prefix=API_ROOT)
logger = get_logger("mockapi.api")

T = TypeVar("T")


def get_store(request: Request) -> MockStore:
    return request.app.state.store


def authorized_store(
    store: MockStore = Depends(get_store),
    authorization: str | None = Header(default=None),
) -> MockStore:
    """Reject requests whose Authorization header is not an issued token."""
    if not store.is_authorized(authorization):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error_code": "unauthorized", "error_message": "missing or unknown token"},
        )
    return store


def _run(fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """Call a store operation, mapping KeyError to 404 and ValueError to 400."""
    try:
        return fn(*args, **kwargs)
    except KeyError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error_code": "not_found", "error_message": f"unknown id: {e.args[0]}"},
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error_code": "malformed_request", "error_message": str(e)},
        )


# ------------------------
# Session
# ------------------------
@router.get("/hello", response_class=PlainTextResponse, summary="Connectivity check")
async def hello() -> str:
    return "hello world !"


@router.get("/token", response_model=TokenGrant, summary="Request an API token")
async def token(req: TokenRequest, store: MockStore = Depends(get_store)) -> TokenGrant:
    """Grant (or deny, when consent is off) a token for the calling application."""
    try:
        return TokenGrant(token=store.issue_token(req.appName))
    except AccessDenied:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"error_code": "denied", "error_message": "user denied access"},
        )


# ------------------------
# Topics
# ------------------------
@router.post("/topic/keeex", response_model=KeeexResult)
async def keeex(req: KeeexRequest, store: MockStore = Depends(authorized_store)) -> KeeexResult:
    opt = req.option or {}
    return _run(
        store.keeex,
        path=req.path,
        refs=req.refs,
        prevs=req.prevs,
        name=req.name,
        description=req.description,
        target_folder=opt.get("targetFolder"),
    )


@router.post("/topic/verify", response_model=VerifyResult)
async def verify(req: VerifyRequest, store: MockStore = Depends(authorized_store)) -> VerifyResult:
    opt = req.option or {}
    return _run(store.verify, path=req.path, do_import=bool(opt.get("import")))


@router.get("/topic", response_model=list[Topic])
async def get_topics(req: IdxsRequest, store: MockStore = Depends(authorized_store)):
    return store.get_topics(req.idxs)


@router.get("/topic/locations", response_model=list[Location])
async def get_locations(req: IdxsRequest, store: MockStore = Depends(authorized_store)):
    return store.get_locations(req.idxs)


@router.post("/topic/makeRef")
async def make_ref(req: MakeRefRequest, store: MockStore = Depends(authorized_store)) -> None:
    _run(store.make_ref, req.type, req.from_, req.to)


@router.get("/topic/{idx}/author", response_model=User)
async def get_author(idx: str, store: MockStore = Depends(authorized_store)):
    return _run(store.author, idx)


@router.get("/topic/{idx}/comments", response_model=list[Comment])
async def get_comments(idx: str, store: MockStore = Depends(authorized_store)):
    return _run(store.comments, idx)


@router.post("/topic/{idx}/comment", response_model=list[Comment])
async def post_comment(
    idx: str, req: CommentRequest, store: MockStore = Depends(authorized_store)
):
    return _run(store.add_comment, idx, req.message)


@router.get("/topic/{idx}/prevs", response_model=list[Topic])
async def get_prevs(idx: str, store: MockStore = Depends(authorized_store)):
    return _run(store.get_prevs, idx)


@router.get("/topic/{idx}/nexts", response_model=list[Topic])
async def get_nexts(idx: str, store: MockStore = Depends(authorized_store)):
    return _run(store.get_nexts, idx)


@router.get("/topic/{idx}/refs", response_model=list[Topic])
async def get_refs(idx: str, store: MockStore = Depends(authorized_store)):
    return _run(store.get_refs, idx)


@router.get("/topic/{idx}/shared", response_model=SharedInfo)
async def get_shared(idx: str, store: MockStore = Depends(authorized_store)):
    return _run(store.get_shared, idx)


@router.get("/topic/{idx}/agreements", response_model=list[User])
async def get_agreements(idx: str, store: MockStore = Depends(authorized_store)):
    return _run(store.get_agreements, idx)


@router.post("/topic/{idx}/share", response_model=ShareResult)
async def share(idx: str, req: ShareRequest, store: MockStore = Depends(authorized_store)):
    result = _run(store.share, idx, path=req.path, recipients=req.recipients)
    if (req.option or {}).get("email"):
        logger.info(
            "share.email",
            extra={"event": "share_email", "idx": idx, "recipients": len(req.recipients)},
        )
    return result


@router.post("/topic/{idx}/remove")
async def remove(idx: str, store: MockStore = Depends(authorized_store)) -> None:
    _run(store.remove, idx)


# ------------------------
# Users
# ------------------------
@router.get("/user/me", response_model=User)
async def get_mine(store: MockStore = Depends(authorized_store)):
    return store.me


@router.get("/user", response_model=list[User])
async def get_users(req: IdxsRequest, store: MockStore = Depends(authorized_store)):
    return store.get_users(req.idxs)


@router.get("/user/email/{email}", response_model=User)
async def get_user_by_email(email: str, store: MockStore = Depends(authorized_store)):
    return _run(store.user_by_email, email)


# ------------------------
# Utilities
# ------------------------
@router.post("/util/generateFile", response_model=GeneratedFile)
async def generate_file(req: GenerateFileRequest, store: MockStore = Depends(authorized_store)):
    path = _run(store.generate_file, name=req.name, description=req.description, target=req.target)
    return GeneratedFile(file=path)


@router.post("/util/search", response_model=list[Topic])
async def search(req: SearchRequest, store: MockStore = Depends(authorized_store)):
    return store.search(
        filter=req.filter,
        topics=req.topics,
        neg_topics=req.negTopics,
        skip=req.skip,
        limit=req.limit,
        option=req.option or {},
    )


@router.get("/util/currentView", response_model=CurrentView)
async def current_view(store: MockStore = Depends(authorized_store)):
    return CurrentView(idx=store.current_view)


@router.get("/util/env/{name}", response_model=EnvValue)
async def get_env(name: str, store: MockStore = Depends(authorized_store)):
    return EnvValue(value=_run(store.get_env, name))


@router.post("/util/env/{name}")
async def set_env(
    name: str, req: EnvRequest, store: MockStore = Depends(authorized_store)
) -> None:
    _run(store.set_env, name, req.value)
