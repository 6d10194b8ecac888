"""permchecker API - Installed app permission analysis."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from permchecker.config import get_settings
from permchecker.dependencies import get_scan_dispatcher
from permchecker.routers import apps, health, scans

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.api_log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info(f"Starting permchecker API ({settings.registry_backend} registry)...")
    dispatcher = get_scan_dispatcher()
    yield
    logger.info("Shutting down permchecker API...")
    dispatcher.shutdown(wait=False)
    get_scan_dispatcher.cache_clear()


app = FastAPI(
    title="permchecker",
    description="Installed app permission analysis",
    version="0.1.0",
    debug=settings.api_debug,
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(apps.router, prefix="/api/apps", tags=["Apps"])
app.include_router(scans.router, prefix="/api/scans", tags=["Scans"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "permchecker",
        "version": "0.1.0",
        "description": "Installed app permission analysis",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "permchecker.main:app",
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.api_log_level,
    )
