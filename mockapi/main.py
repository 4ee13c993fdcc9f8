"""FastAPI stand-in for the KeeeX desktop app's local API.

Run it where the desktop app would listen:

    uvicorn mockapi.main:app --port 8288
"""
from __future__ import annotations

import os
import time
from collections.abc import Callable
from uuid import uuid4

from fastapi import FastAPI, Request, Response

from keeex.logging_conf import get_logger, setup_logging

from .routes import router as api_router
from .store import MockStore

setup_logging()
logger = get_logger("mockapi")


def create_app(store: MockStore | None = None, *, grant_tokens: bool = True) -> FastAPI:
    """Build the app around `store` (a fresh MockStore by default).

    With grant_tokens=False every token request is denied, as if the user
    clicked "deny" in the desktop consent prompt.
    """
    app = FastAPI(
        title="KeeeX local API (mock)",
        version=os.getenv("APP_VERSION", "0.1.0"),
    )
    app.state.store = store or MockStore(grant_tokens=grant_tokens)

    @app.on_event("startup")
    async def _on_startup() -> None:
        logger.info("startup", extra={"event": "startup"})

    @app.on_event("shutdown")
    async def _on_shutdown() -> None:
        logger.info("shutdown", extra={"event": "shutdown"})

    @app.middleware("http")
    async def request_logger(request: Request, call_next: Callable[[Request], Response]):
        """Log start/end of every request with a correlation id.

        The Authorization header is never logged.
        """
        request_id = request.headers.get("X-Request-ID", str(uuid4()))
        start = time.perf_counter()
        logger.info(
            "request.start",
            extra={
                "event": "request_start",
                "method": request.method,
                "path": request.url.path,
                "request_id": request_id,
            },
        )
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "request.error",
                extra={
                    "event": "request_error",
                    "method": request.method,
                    "path": request.url.path,
                    "request_id": request_id,
                },
            )
            raise
        elapsed_ms = (time.perf_counter() - start) * 1000.0

        response.headers["X-Request-ID"] = request_id
        logger.info(
            "request.end",
            extra={
                "event": "request_end",
                "status_code": response.status_code,
                "elapsed_ms": round(elapsed_ms, 2),
                "request_id": request_id,
            },
        )
        return response

    app.include_router(api_router)
    return app


# ASGI entrypoint for uvicorn: `uvicorn mockapi.main:app --port 8288`
app = create_app()
