"""Installer API entry point (port 3002)."""

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from scalardb_setup.api.routes import (
    config_files,
    database,
    docker,
    health,
    install,
    java,
    prerequisites,
    scalardb,
    wizard,
    ws,
)
from scalardb_setup.config import settings
from scalardb_setup.core.errors import InstallerError, PrerequisiteError
from scalardb_setup.core.log_setup import configure_logging
from scalardb_setup.middleware.request_id import RequestIDMiddleware
from scalardb_setup.middleware.security_headers import SecurityHeadersMiddleware
from scalardb_setup.services.installation_orchestrator import InstallationOrchestrator
from scalardb_setup.services.redis_client import close_redis
from scalardb_setup.services.scalardb_downloader import get_user_friendly_error
from scalardb_setup.services.scheduler import start_scheduler, stop_scheduler

logger = logging.getLogger(__name__)

configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager - handles startup and shutdown."""
    # Startup
    app.state.orchestrator = InstallationOrchestrator()
    start_scheduler()  # Prune finished installations
    logger.info("ScalarDB Installer API ready on port %d", settings.installer_port)
    yield
    # Shutdown
    await app.state.orchestrator.shutdown()
    stop_scheduler()
    await close_redis()

app = FastAPI(
    title="ScalarDB Installer API",
    description="Prerequisite checks, configuration and installation for ScalarDB",
    version="0.1.0",
    docs_url="/docs" if settings.dev_mode else None,
    redoc_url="/redoc" if settings.dev_mode else None,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestIDMiddleware)

# ---------------------------------------------------------------------------
# Exception handlers: every failure keeps the {"success": false, "error"} shape
# ---------------------------------------------------------------------------


def _error(status_code: int, error: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": error, **extra})


def _validation_errors(exc: RequestValidationError) -> list[dict]:
    return [{"loc": list(e.get("loc", ())), "msg": e.get("msg", "")} for e in exc.errors()]


@app.exception_handler(StarletteHTTPException)
async def _http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def _validation_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error(422, "Invalid request body", details=_validation_errors(exc))


@app.exception_handler(PrerequisiteError)
async def _prerequisite_handler(_request: Request, exc: PrerequisiteError) -> JSONResponse:
    return _error(500, str(exc), userMessage=exc.user_message, actionLink=exc.action_link)


@app.exception_handler(InstallerError)
async def _installer_error_handler(request: Request, exc: InstallerError) -> JSONResponse:
    logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
    return _error(500, str(exc))


@app.exception_handler(httpx.HTTPError)
async def _upstream_error_handler(request: Request, exc: httpx.HTTPError) -> JSONResponse:
    logger.warning("%s %s upstream error: %s", request.method, request.url.path, exc)
    return _error(500, get_user_friendly_error(exc))


@app.exception_handler(Exception)
async def _global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled exception on %s %s", request.method, request.url.path, exc_info=True)
    return _error(500, str(exc) if settings.dev_mode else "Internal server error")


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Accept", "X-Request-ID"],
)

# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

app.include_router(health.router, prefix="/api", tags=["health"])
app.include_router(prerequisites.router, prefix="/api/prerequisites", tags=["prerequisites"])
app.include_router(java.router, prefix="/api/java", tags=["java"])
app.include_router(scalardb.router, prefix="/api/scalardb", tags=["scalardb"])
app.include_router(config_files.router, prefix="/api/config", tags=["config"])
app.include_router(database.router, prefix="/api/database", tags=["database"])
app.include_router(install.router, prefix="/api/install", tags=["install"])
app.include_router(docker.router, prefix="/api/docker", tags=["docker"])
app.include_router(wizard.router, prefix="/api/wizard", tags=["wizard"])
app.include_router(ws.router, tags=["websocket"])
