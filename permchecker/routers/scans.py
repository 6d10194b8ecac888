"""Background scans router."""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends

from permchecker.config import get_settings
from permchecker.dependencies import get_permission_checker, get_scan_dispatcher, get_scan_session
from permchecker.models.schemas import ScanCreate, ScanStartedResponse, ScanStatusResponse
from permchecker.services.engine import FilterConfig
from permchecker.services.permission_checker import PermissionCheckerService
from permchecker.services.scan_dispatcher import ScanDispatcher, ScanSession

router = APIRouter()
logger = logging.getLogger(__name__)
settings = get_settings()


@router.post("", response_model=ScanStartedResponse, status_code=202)
async def start_scan(
    background_tasks: BackgroundTasks,
    scan_data: ScanCreate | None = None,
    service: PermissionCheckerService = Depends(get_permission_checker),
    session: ScanSession = Depends(get_scan_session),
    dispatcher: ScanDispatcher = Depends(get_scan_dispatcher),
):
    """Start a full scan in the background.

    A scan already in flight is superseded; only the newest scan's result is
    kept.
    """
    scan_data = scan_data or ScanCreate()
    include_system_apps = scan_data.include_system_apps
    if include_system_apps is None:
        include_system_apps = settings.include_system_apps
    filter_config = FilterConfig.build(
        include_system_apps=include_system_apps,
        only_useful_apps=scan_data.only_useful_apps,
        filter_by_permissions=scan_data.filter_by_permissions,
    )

    epoch = session.begin()
    background_tasks.add_task(dispatcher.run_scan, session, service, epoch, filter_config, scan_data.top_n)
    return ScanStartedResponse(epoch=epoch, state=session.state.value)


@router.get("/current", response_model=ScanStatusResponse)
async def get_current_scan(session: ScanSession = Depends(get_scan_session)):
    """Get the state of the latest scan."""
    return ScanStatusResponse.model_validate(session.to_dict())


@router.delete("/current", response_model=ScanStatusResponse)
async def reset_scan(session: ScanSession = Depends(get_scan_session)):
    """Drop the latest result and return to idle."""
    session.reset()
    logger.info("Scan session reset")
    return ScanStatusResponse.model_validate(session.to_dict())
