"""Application entrypoint for the OTP registration service.

This module wires together the FastAPI application with its lifespan hooks,
database metadata, Redis cleanup, logging, error handlers and CORS
configuration. It is the root that other modules depend on when the API
process starts.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from otpauth.api.errors import register_exception_handlers
from otpauth.api.routes import auth_router
from otpauth.core.config import settings
from otpauth.core.logging import configure_logging
from otpauth.db import models  # noqa: F401
from otpauth.db.base import Base
from otpauth.db.session import engine
from otpauth.services.otp import close_redis_client


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create database tables on startup and dispose shared clients on shutdown.

    Dependencies:
    - Uses the async SQLAlchemy engine from `otpauth.db.session` to ensure the
      metadata defined in `otpauth.db.base.Base` (and the imported models) exists.
    - Cleans up the Redis client via `close_redis_client` so connections are
      properly released when the FastAPI app stops.
    """

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await close_redis_client()
    await engine.dispose()


def create_application() -> FastAPI:
    """Assemble and configure the FastAPI application instance.

    - Configures logging at `settings.LOG_LEVEL`.
    - Injects the lifespan manager defined above to manage startup/shutdown.
    - Applies CORS settings sourced from environment-driven `settings`.
    - Registers the exception handlers and the router that exposes the OTP flow.
    """

    configure_logging(settings.LOG_LEVEL)

    application = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.PROJECT_VERSION,
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(application)
    application.include_router(auth_router)

    @application.get("/")
    async def healthcheck():
        """Lightweight health endpoint used by uptime monitors."""
        return {"success": True, "message": f"{settings.PROJECT_NAME} is running!"}

    @application.get("/ping", response_class=PlainTextResponse)
    async def ping() -> str:
        return "pong"

    return application


app = create_application()
