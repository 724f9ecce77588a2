"""Military asset management FastAPI application."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from mams.core.audit.router import router as activity_logs_router
from mams.core.auth.router import router as auth_router
from mams.core.config import settings
from mams.core.database import async_session
from mams.core.exceptions import AppException
from mams.core.exceptions.handlers import (
    app_exception_handler,
    http_exception_handler,
    sqlalchemy_db_error_handler,
    validation_exception_handler,
)
from mams.core.logging import configure_logging
from mams.modules.assets.router import router as assets_router
from mams.modules.assignments.router import router as assignments_router
from mams.modules.expenditures.router import router as expenditures_router
from mams.modules.purchases.router import router as purchases_router
from mams.modules.transfers.router import router as transfers_router
from mams.modules.transfers.service import TransferService
from mams.modules.users.router import router as users_router

logger = logging.getLogger(__name__)


async def recover_transfers() -> int:
    """Finish transfer updates interrupted by a previous crash."""
    async with async_session() as session:
        return await TransferService(session).recover_incomplete()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    if settings.recover_transfers_on_startup:
        try:
            recovered = await recover_transfers()
        except (SQLAlchemyError, OSError):
            logger.exception("Transfer recovery on startup failed")
        else:
            if recovered:
                logger.info("Recovered %s incomplete transfer intents", recovered)
    yield
    # Shutdown


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Military Asset Management",
        description="Per-base ledger of military assets and their movements",
        version="0.1.0",
        debug=settings.debug,
        lifespan=lifespan,
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_db_error_handler)

    @app.get("/health")
    async def health_check():
        return {"status": "healthy"}

    # Routers
    app.include_router(auth_router, prefix="/api/v1")
    app.include_router(users_router, prefix="/api/v1")
    app.include_router(assets_router, prefix="/api/v1")
    app.include_router(purchases_router, prefix="/api/v1")
    app.include_router(transfers_router, prefix="/api/v1")
    app.include_router(assignments_router, prefix="/api/v1")
    app.include_router(expenditures_router, prefix="/api/v1")
    app.include_router(activity_logs_router, prefix="/api/v1")

    return app


app = create_app()
