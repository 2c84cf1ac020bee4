"""FastAPI application."""

import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Awaitable, Callable

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from crmhub import __version__
from crmhub.api.routes import contacts, webhooks
from crmhub.core.config import get_settings
from crmhub.core.exceptions import APIException, CRMHubException
from crmhub.core.logging import bind_request_context, clear_request_context, get_logger
from crmhub.storage.database.base import close_db

settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan manager."""
    logger.info("application_starting", version=__version__)
    yield
    await close_db()
    logger.info("application_shutting_down")


app = FastAPI(
    title="CRM Hub API",
    description="Contacts, activity logs and outbound automation webhooks",
    version=__version__,
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_context_middleware(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """Tag every log line of a request with its request id."""
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    clear_request_context()
    bind_request_context(request_id=request_id)

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(APIException)
async def api_exception_handler(request: Request, exc: APIException) -> JSONResponse:
    """Render API exceptions as JSON errors."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "details": exc.details},
    )


@app.exception_handler(CRMHubException)
async def app_exception_handler(request: Request, exc: CRMHubException) -> JSONResponse:
    """Render unexpected application errors without leaking internals."""
    logger.error("unhandled_application_error", path=request.url.path, error=exc.message)
    return JSONResponse(status_code=500, content={"detail": "Internal server error", "details": {}})


app.include_router(contacts.router, prefix="/api")
app.include_router(webhooks.router, prefix="/api")


@app.get("/")
async def root() -> dict:
    """Root endpoint."""
    return {
        "name": "CRM Hub API",
        "version": __version__,
        "status": "running",
        "docs": "/api/docs",
    }


@app.get("/health")
async def health() -> dict:
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": __version__,
    }
