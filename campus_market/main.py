"""FastAPI application — main entry point."""

from contextlib import asynccontextmanager
from typing import Callable, Optional

import structlog
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from campus_market.config import Settings, get_settings
from campus_market.core.exceptions import AppError, global_exception_handler, request_validation_handler
from campus_market.core.logging import configure_logging
from campus_market.core.middleware import setup_middleware
from campus_market.infrastructure.container import AppContainer, build_container
from campus_market.infrastructure.database import Base

# Import all models so SQLAlchemy knows about them
from campus_market.domain.models.product import Product  # noqa: F401
from campus_market.domain.models.report import Report  # noqa: F401
from campus_market.domain.models.user import User  # noqa: F401

from campus_market.interfaces.api.auth import router as auth_router
from campus_market.interfaces.api.moderation import router as moderation_router
from campus_market.interfaces.api.products import router as products_router
from campus_market.interfaces.api.users import router as users_router

logger = structlog.get_logger(__name__)

APP_VERSION = "1.0.0"


def create_app(
    settings: Optional[Settings] = None,
    container_factory: Callable[[Settings], AppContainer] = build_container,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan — startup and shutdown events."""
        logger.info("Starting Campus Market API...", env=settings.ENVIRONMENT)

        container = container_factory(settings)

        # Create DB tables (dev only — use migrations in production)
        Base.metadata.create_all(bind=container.engine)
        logger.info("Database tables created/verified")

        app.state.container = container
        try:
            yield
        finally:
            container.close()
            logger.info("Campus Market API stopped")

    app = FastAPI(
        title="Campus Market",
        description="API Backend — campus marketplace with moderation-aware listings",
        version=APP_VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings

    # Setup Middleware (Correlation ID, Logging)
    setup_middleware(app)

    # Global Exception Handling
    app.add_exception_handler(AppError, global_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.FRONTEND_URL],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth_router)
    app.include_router(products_router)
    app.include_router(moderation_router)
    app.include_router(users_router)

    @app.get("/")
    def root():
        return {
            "name": "Campus Market",
            "version": APP_VERSION,
            "status": "running",
            "docs": "/docs",
        }

    @app.get("/health")
    def health():
        return {"status": "healthy"}

    return app


app = create_app()
