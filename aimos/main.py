"""
FastAPI application entry point for the AIM OS Growth Intelligence API.

Serves the three growth dashboards (referrals, revops, quality), the CRUD
endpoints behind them and the admin seed endpoint. Configures logging and CORS,
registers the routers and manages the asyncpg pool lifecycle.

Run locally:
    uvicorn aimos.main:app --reload
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from aimos.core.config import get_settings
from aimos.core.database import init_db, close_db
from aimos.api import api_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

API_TITLE = "AIM OS Growth Intelligence API"
API_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Open the database pool on startup and close it on shutdown.

    A database that is unreachable at startup does not stop the API: the
    dashboards serve their mock payloads until the pool can be created.
    """
    logger.info(f"{API_TITLE} starting")
    try:
        await init_db()
        logger.info("Database connection pool initialized")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")

    yield

    logger.info(f"{API_TITLE} shutting down")
    try:
        await close_db()
        logger.info("Database connection pool closed")
    except Exception as e:
        logger.error(f"Error closing database pool: {e}")


app = FastAPI(
    title=API_TITLE,
    version=API_VERSION,
    description=(
        "Derived growth metrics for the AIM OS clinic network: referral "
        "intelligence, revenue operations and clinical quality dashboards."
    ),
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)


@app.get("/health")
async def health_check():
    """Liveness probe."""
    return {"status": "healthy"}


@app.get("/")
async def root():
    """
    Root endpoint providing API information.

    Returns:
        Dict with API name and version
    """
    return {
        "name": API_TITLE,
        "version": API_VERSION,
        "docs": "/docs",
        "openapi": "/openapi.json",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "aimos.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
