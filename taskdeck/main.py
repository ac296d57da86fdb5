import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api import auth, categories, health, history, notices, tasks
from .config import Settings, configure_logging
from .errors import (
    AuthError,
    CategoryError,
    ConfigError,
    NotFoundError,
    RangeError,
    RemoteFailure,
    ValidationError,
)
from .services.workspace import Workspace, create_auth, create_engine_for, default_remote_factory

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    RangeError: status.HTTP_400_BAD_REQUEST,
    CategoryError: status.HTTP_409_CONFLICT,
    RemoteFailure: status.HTTP_502_BAD_GATEWAY,
    AuthError: status.HTTP_401_UNAUTHORIZED,
    ConfigError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _error_handler(status_code: int):
    async def handler(request: Request, exc: Exception):
        if status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc}")
        headers = {"WWW-Authenticate": "Bearer"} if status_code == status.HTTP_401_UNAUTHORIZED else None
        return JSONResponse(status_code=status_code, content={"detail": str(exc)}, headers=headers)

    return handler


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application; settings are read from the environment at startup when omitted."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app_settings = settings or Settings.from_env()
        configure_logging(app_settings.log_level)
        engine = create_engine_for(app_settings) if app_settings.backend != "supabase" else None
        app.state.settings = app_settings
        app.state.workspace = Workspace(
            app_settings,
            create_auth(app_settings, engine),
            default_remote_factory(app_settings, engine),
        )
        logger.info(f"taskdeck started with the {app_settings.backend} backend")
        yield
        await app.state.workspace.close()
        app.state.workspace = None

    app = FastAPI(title="taskdeck", lifespan=lifespan)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    for error_cls, status_code in ERROR_STATUS.items():
        app.add_exception_handler(error_cls, _error_handler(status_code))

    # Mount routers
    app.include_router(auth.router, prefix="/api/v1", tags=["auth"])
    app.include_router(tasks.router, prefix="/api/v1", tags=["tasks"])
    app.include_router(categories.router, prefix="/api/v1", tags=["categories"])
    app.include_router(history.router, prefix="/api/v1", tags=["history"])
    app.include_router(notices.router, prefix="/api/v1", tags=["notices"])

    # Health check endpoints for Kubernetes probes
    app.include_router(health.router, tags=["health"])

    @app.get("/")
    async def read_root():
        return {"message": "Welcome to taskdeck!"}

    return app


app = create_app()
