"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exception_handlers import http_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from quizboard.config import settings
from quizboard.core.errors import QuizboardError
from quizboard.schemas.common import ErrorResponse
from quizboard.api import (
    health_router,
    quizzes_router,
    attempts_router,
    leaderboard_router,
)

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s  %(name)-25s  %(levelname)-8s  %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🚀 Quizboard backend starting (env=%s)…", settings.ENV)
    yield
    logger.info("✅ Quizboard backend shut down")


app = FastAPI(
    title="Quizboard API",
    description="Quiz attempts, scoring and leaderboards",
    version="0.1.0",
    lifespan=lifespan,
)

# ── Middleware ─────────────────────────────────────────────────────────────────

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.ALLOWED_HOSTS)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    response = await call_next(request)
    logger.info(
        "%s %s → %d (%s)",
        request.method,
        request.url.path,
        response.status_code,
        request.headers.get("user-agent", "-"),
    )
    return response


# ── Error handling ────────────────────────────────────────────────────────────


@app.exception_handler(QuizboardError)
async def quizboard_error_handler(request: Request, exc: QuizboardError):
    logger.warning(
        "%s %s failed: %s (%s)", request.method, request.url.path, exc.error_code, exc.message
    )
    body = ErrorResponse(error_code=exc.error_code, message=exc.message, details=exc.details)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


@app.exception_handler(StarletteHTTPException)
async def unknown_route_handler(request: Request, exc: StarletteHTTPException):
    """Unmatched routes get the same envelope as domain errors."""
    if exc.status_code != status.HTTP_404_NOT_FOUND or exc.detail != "Not Found":
        return await http_exception_handler(request, exc)
    body = ErrorResponse(
        error_code="not_found",
        message=f"Route {request.method} {request.url.path} not found",
        details={"path": request.url.path, "method": request.method},
    )
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


# ── Routers ───────────────────────────────────────────────────────────────────

app.include_router(health_router, tags=["Health"])
app.include_router(quizzes_router, prefix="/api/quizzes", tags=["Quizzes"])
app.include_router(attempts_router, prefix="/api/attempts", tags=["Attempts"])
app.include_router(leaderboard_router, prefix="/api/leaderboard", tags=["Leaderboard"])


@app.get("/")
async def root():
    return {
        "name": "Quizboard API",
        "version": "0.1.0",
        "docs": "/docs",
        "health": "/health",
    }
