"""Dependency providers for the API routers."""

import logging
from functools import lru_cache

from fastapi import Depends, HTTPException

from permchecker.config import Settings, get_settings
from permchecker.errors import PermissionCheckerError, PlatformNotSupportedError
from permchecker.services.cache import TTLCache
from permchecker.services.permission_checker import PermissionCheckerService
from permchecker.services.registry import (
    AdbPackageRegistry,
    PackageRegistry,
    SnapshotPackageRegistry,
)
from permchecker.services.scan_dispatcher import ScanDispatcher, ScanSession

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES = {
    "INVALID_ARGUMENT": 400,
    "PACKAGE_NOT_FOUND": 404,
    "SYSTEM_ERROR": 503,
    "PLATFORM_NOT_SUPPORTED": 503,
}


def build_registry(settings: Settings) -> PackageRegistry:
    """Create the package registry selected by ``settings.registry_backend``.

    Raises:
        PlatformNotSupportedError: If the backend is unknown.
        RegistryError: If the snapshot cannot be loaded.
    """
    backend = settings.registry_backend
    if backend == "adb":
        return AdbPackageRegistry(
            adb_path=settings.adb_path,
            serial=settings.adb_serial or None,
            timeout=settings.adb_timeout_seconds,
            cache=TTLCache(ttl=settings.permission_cache_ttl_seconds),
            user_id=settings.adb_user_id,
        )
    if backend == "snapshot":
        return SnapshotPackageRegistry.from_file(settings.snapshot_path)
    raise PlatformNotSupportedError(backend)


@lru_cache
def _registry() -> PackageRegistry:
    registry = build_registry(get_settings())
    logger.info(f"Using {registry.name} package registry")
    return registry


def to_http_exception(exc: PermissionCheckerError) -> HTTPException:
    """Translate a domain error into an ``HTTPException`` with a structured detail."""
    status_code = ERROR_STATUS_CODES.get(exc.code, 500)
    return HTTPException(status_code=status_code, detail=exc.to_dict())


def get_registry() -> PackageRegistry:
    """Dependency to get the configured package registry."""
    try:
        return _registry()
    except PermissionCheckerError as e:
        logger.error(f"Package registry unavailable: {e}")
        raise to_http_exception(e)


def get_permission_checker(
    registry: PackageRegistry = Depends(get_registry),
) -> PermissionCheckerService:
    """Dependency to get a permission checker bound to the registry."""
    return PermissionCheckerService(registry, top_n=get_settings().top_risk_count)


@lru_cache
def get_scan_session() -> ScanSession:
    """Dependency to get the shared scan session."""
    return ScanSession()


@lru_cache
def get_scan_dispatcher() -> ScanDispatcher:
    """Dependency to get the shared scan worker pool."""
    return ScanDispatcher(max_workers=get_settings().scan_workers)
