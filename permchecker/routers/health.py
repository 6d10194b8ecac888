"""Health check router."""

import asyncio

from fastapi import APIRouter, Depends

from permchecker.dependencies import get_registry
from permchecker.services.registry import PackageRegistry

router = APIRouter()

VERSION = "0.1.0"


@router.get("/health")
async def health_check(registry: PackageRegistry = Depends(get_registry)):
    """Check API and package registry health."""
    try:
        available = await asyncio.to_thread(registry.is_available)
        registry_status = "healthy" if available else "unreachable"
    except Exception as e:
        registry_status = f"unhealthy: {str(e)}"

    return {
        "status": "healthy" if registry_status == "healthy" else "degraded",
        "registry": registry_status,
        "backend": registry.name,
        "version": VERSION,
    }


@router.get("/ready")
async def readiness_check():
    """Check if the API is ready to receive traffic."""
    return {"ready": True}
