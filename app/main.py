"""FastAPI application entry point."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging

from app.config import settings
from app.database import connect_to_mongo, close_mongo_connection, get_client
from app.database_utils import check_connection
from app.api.applications import router as applications_router
from app.api.queue import router as queue_router
from app.api.dependencies import close_queue_service
from app.services.logging_service import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    setup_logging(settings.log_level, settings.log_format)
    logger.info(f"Starting {settings.app_name}...")
    await connect_to_mongo()
    logger.info("Application startup complete")

    yield

    # Shutdown
    logger.info("Shutting down application...")
    await close_queue_service()
    await close_mongo_connection()
    logger.info("Application shutdown complete")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    description="Job application queue and worker polling API",
    version="0.1.0",
    debug=settings.debug,
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(applications_router, prefix="/applications", tags=["applications"])
app.include_router(queue_router, prefix="/queue", tags=["queue"])


@app.get("/")
async def root():
    """Root endpoint for health check."""
    return {
        "message": settings.app_name,
        "version": "0.1.0",
        "status": "running"
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    client = get_client()
    if client is None:
        return {"status": "starting", "database": {"status": "disconnected"}}
    database = await check_connection(client)
    return {
        "status": "healthy" if database["status"] == "healthy" else "degraded",
        "database": database
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=3001, log_level=settings.log_level.lower())
