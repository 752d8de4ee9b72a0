"""
FastAPI application factory for the vending machine registration API.

Run with ``uvicorn --factory vending_registry.server.main:create_app`` or the
``vending-server`` command.
"""
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from .. import __version__
from ..errors import CollaboratorError, ErrorKind
from ..queues.memory import InMemoryQueueProvisioner
from ..service.registration import RegistrationService
from ..store.database import build_engine, build_session_factory, create_tables
from ..store.memory import InMemoryDeviceStore
from ..store.sql import SqlDeviceStore
from .api import devices
from .config import Settings, get_settings

LOGGER = logging.getLogger(__name__)


def build_service(settings: Settings) -> RegistrationService:
    """Wire the registration service to the store named by DATABASE_URL."""
    if settings.uses_memory_store:
        store = InMemoryDeviceStore()
    else:
        engine = build_engine(settings.DATABASE_URL)
        create_tables(engine)
        store = SqlDeviceStore(build_session_factory(engine))
    provisioner = InMemoryQueueProvisioner(prefix=settings.QUEUE_ENDPOINT_PREFIX)
    return RegistrationService(store, provisioner)


def create_app(settings: Optional[Settings] = None, service: Optional[RegistrationService] = None) -> FastAPI:
    """Build the API; tests pass their own settings and service."""
    settings = settings or get_settings()
    settings.validate_config()
    logging.getLogger("vending_registry").setLevel(settings.LOG_LEVEL.upper())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        LOGGER.info("Registration API starting (store=%s)", "memory" if settings.uses_memory_store else "sql")
        LOGGER.info("CORS enabled for: %s", settings.cors_origins_list)
        yield
        LOGGER.info("Registration API shutting down")

    app = FastAPI(
        title="Vending Machine Registration API",
        description="Self-registration and administrative approval for vending machines",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.service = service or build_service(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(devices.router, prefix="/api/devices")

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "success",
            "message": "Server is running",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.exception_handler(CollaboratorError)
    async def collaborator_error_handler(request: Request, exc: CollaboratorError):
        LOGGER.error("Collaborator failure on %s %s: %s", request.method, request.url.path, exc)
        return devices.envelope(
            status.HTTP_503_SERVICE_UNAVAILABLE,
            "A backing service is unavailable; retry later",
            kind=ErrorKind.COLLABORATOR_FAILURE,
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
        return devices.envelope(status.HTTP_400_BAD_REQUEST, message, kind=ErrorKind.INVALID_INPUT)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        response = devices.envelope(exc.status_code, str(exc.detail))
        if getattr(exc, "headers", None):
            response.headers.update(exc.headers)
        return response

    return app
