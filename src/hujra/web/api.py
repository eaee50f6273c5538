"""FastAPI application factory.

Main entry point for the hujra ledger Web API.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from hujra.core.ledger import get_ledger
from hujra.db.database import StorageUnavailableError
from hujra.web.routes import (
    backup_router,
    health_router,
    reports_router,
    students_router,
    visits_router,
)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Open the ledger on startup, close it on shutdown."""
    ledger = get_ledger()
    try:
        await ledger.start()
        logger.info(
            "api_startup",
            db_path=str(ledger.store.db_path.absolute()),
            students=len(ledger.cache.students),
            visits=len(ledger.cache.visits),
        )
    except StorageUnavailableError as e:
        # Requests answer 503 until the store can be opened
        logger.error("api_startup_storage_unavailable", error=str(e))
    yield
    await ledger.close()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI app instance
    """
    app = FastAPI(
        title="Hujra Ledger API",
        description="Students, visits and curriculum progress of a hujra",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health_router)
    app.include_router(students_router)
    app.include_router(visits_router)
    app.include_router(backup_router)
    app.include_router(reports_router)

    return app


# Default app instance for uvicorn
app = create_app()
