# src/pagecomments/main.py
"""Main entry point for the comment service."""

from __future__ import annotations

import logging

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from pagecomments.api.v1 import (
    admin_router,
    auth_router,
    comments_router,
    subscriptions_router,
    unsubscribe_router,
)
from pagecomments.api.v1.dependencies import prune_sometimes
from pagecomments.core.errors import CommentServiceError
from pagecomments.core.logging import configure_logging
from pagecomments.core.settings import settings
from pagecomments.services.email_queue import EmailQueueWorker

logger = logging.getLogger(__name__)

API_PREFIX = "/api"
INVALID_ACTION = "Invalid action"

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Cache-Control": "no-store, no-cache, must-revalidate",
}

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Self-hosted comments for static sites",
    version=settings.app_version,
)

# Add CORS middleware; only allow-listed origins get credentialed headers
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)


def _cors_headers(origin: str | None) -> dict[str, str]:
    if not origin or origin not in settings.cors_origins:
        return {}
    return {
        "Access-Control-Allow-Origin": origin,
        "Access-Control-Allow-Credentials": "true",
        "Access-Control-Allow-Methods": ", ".join(settings.cors_allow_methods),
        "Access-Control-Allow-Headers": ", ".join(settings.cors_allow_headers),
        "Vary": "Origin",
    }


@app.middleware("http")
async def preflight_and_security_headers(request: Request, call_next):
    """Answer every OPTIONS with an empty 200 and harden API responses."""
    if request.method == "OPTIONS":
        return Response(status_code=200, headers=_cors_headers(request.headers.get("origin")))

    response = await call_next(request)
    if request.url.path.startswith(API_PREFIX):
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
    return response


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@app.exception_handler(CommentServiceError)
async def comment_service_error_handler(
    request: Request, exc: CommentServiceError
) -> JSONResponse:
    return _error(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        problems.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return _error(400, "Invalid request" + (": " + "; ".join(problems) if problems else ""))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if request.url.path.startswith(API_PREFIX) and exc.status_code in (404, 405):
        return _error(400, INVALID_ACTION)
    return _error(exc.status_code, str(exc.detail))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error(500, "Internal server error")


# Include API routers; every request occasionally prunes stale auth rows
for router in (comments_router, auth_router, admin_router, subscriptions_router):
    app.include_router(router, dependencies=[Depends(prune_sometimes)])
app.include_router(unsubscribe_router)


@app.on_event("startup")
async def on_startup() -> None:
    configure_logging()
    if settings.email_worker_enabled:
        worker = EmailQueueWorker()
        await worker.start()
        app.state.email_worker = worker
    else:
        app.state.email_worker = None


@app.on_event("shutdown")
async def on_shutdown() -> None:
    worker: EmailQueueWorker | None = getattr(app.state, "email_worker", None)
    if worker:
        await worker.stop()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("pagecomments.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
