"""Installed apps router."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from permchecker.config import get_settings
from permchecker.dependencies import get_permission_checker, get_scan_dispatcher, to_http_exception
from permchecker.errors import PermissionCheckerError
from permchecker.models.schemas import (
    AppListResponse,
    AppPermissionResponse,
    CheckPermissionsRequest,
    PermissionGrantResponse,
    ScanAggregateResponse,
)
from permchecker.services.engine import FilterConfig, explain_risk
from permchecker.services.engine.models import AppPermissionRecord
from permchecker.services.permission_checker import PermissionCheckerService, filter_view
from permchecker.services.scan_dispatcher import ScanDispatcher

router = APIRouter()
logger = logging.getLogger(__name__)
settings = get_settings()


def _app_response(record: AppPermissionRecord, explain: bool = False) -> AppPermissionResponse:
    data = record.to_dict()
    if explain:
        for entry, permission in zip(data["permissions"], record.permissions):
            entry["risk_rule"] = explain_risk(permission)[0]
    return AppPermissionResponse.model_validate(data)


def _filter_config(
    include_system_apps: bool | None,
    only_useful_apps: bool,
    permission: list[str],
) -> FilterConfig:
    if include_system_apps is None:
        include_system_apps = settings.include_system_apps
    return FilterConfig.build(
        include_system_apps=include_system_apps,
        only_useful_apps=only_useful_apps,
        filter_by_permissions=permission,
    )


@router.get("", response_model=AppListResponse)
async def list_apps(
    include_system_apps: bool | None = None,
    only_useful_apps: bool = False,
    permission: list[str] = Query([]),
    q: str | None = None,
    dangerous_only: bool = False,
    granted_only: bool = False,
    service: PermissionCheckerService = Depends(get_permission_checker),
    dispatcher: ScanDispatcher = Depends(get_scan_dispatcher),
):
    """List installed apps with their analysed permissions.

    ``permission`` narrows the list to apps requesting any of the given
    permissions. ``q`` searches app and package names. ``dangerous_only`` and
    ``granted_only`` trim each app's permission list.
    """
    filter_config = _filter_config(include_system_apps, only_useful_apps, permission)
    try:
        records = await dispatcher.run(service.get_all_apps_permissions, filter_config)
    except PermissionCheckerError as e:
        logger.error(f"Failed to list apps: {e}")
        raise to_http_exception(e)

    records = filter_view(records, query=q or "", genuine_risk_only=dangerous_only, granted_only=granted_only)
    return AppListResponse(items=[_app_response(r) for r in records], total=len(records))


@router.get("/summary", response_model=ScanAggregateResponse)
async def get_summary(
    include_system_apps: bool | None = None,
    only_useful_apps: bool = False,
    permission: list[str] = Query([]),
    top_n: int | None = None,
    service: PermissionCheckerService = Depends(get_permission_checker),
    dispatcher: ScanDispatcher = Depends(get_scan_dispatcher),
):
    """Totals and the risk ranking for the filtered app list."""
    filter_config = _filter_config(include_system_apps, only_useful_apps, permission)
    try:
        _records, aggregate = await dispatcher.run(service.summarize, filter_config, top_n)
    except PermissionCheckerError as e:
        raise to_http_exception(e)
    return ScanAggregateResponse.model_validate(aggregate.to_dict())


@router.post("/check", response_model=AppListResponse)
async def check_permissions(
    request: CheckPermissionsRequest,
    service: PermissionCheckerService = Depends(get_permission_checker),
    dispatcher: ScanDispatcher = Depends(get_scan_dispatcher),
):
    """Check specific packages. Packages that are not installed are omitted."""
    try:
        records = await dispatcher.run(
            service.check_permissions,
            request.package_names,
            request.include_system_apps,
        )
    except PermissionCheckerError as e:
        raise to_http_exception(e)
    return AppListResponse(items=[_app_response(r) for r in records], total=len(records))


@router.get("/{package_name}", response_model=AppPermissionResponse)
async def get_app(
    package_name: str,
    service: PermissionCheckerService = Depends(get_permission_checker),
    dispatcher: ScanDispatcher = Depends(get_scan_dispatcher),
):
    """Get one app, system apps included."""
    try:
        record = await dispatcher.run(service.check_single_app_permissions, package_name)
    except PermissionCheckerError as e:
        raise to_http_exception(e)

    if record is None:
        raise HTTPException(
            status_code=404,
            detail={"code": "PACKAGE_NOT_FOUND", "message": f"Package not found: {package_name}"},
        )
    return _app_response(record, explain=True)


@router.get("/{package_name}/permissions/{permission}", response_model=PermissionGrantResponse)
async def get_permission_grant(
    package_name: str,
    permission: str,
    service: PermissionCheckerService = Depends(get_permission_checker),
    dispatcher: ScanDispatcher = Depends(get_scan_dispatcher),
):
    """Whether the app currently holds a permission."""
    try:
        granted = await dispatcher.run(service.is_permission_granted, package_name, permission)
    except PermissionCheckerError as e:
        raise to_http_exception(e)
    return PermissionGrantResponse(package_name=package_name, permission=permission, granted=granted)
