"""Tests for background scan dispatch and scan session supersession."""

import asyncio
import threading

import pytest
import pytest_asyncio

from permchecker.errors import RegistryError
from permchecker.services.engine import FilterConfig, ScanAggregate
from permchecker.services.permission_checker import PermissionCheckerService
from permchecker.services.registry import SnapshotPackageRegistry
from permchecker.services.scan_dispatcher import ScanDispatcher, ScanSession, ScanState


class GatedRegistry(SnapshotPackageRegistry):
    """Snapshot registry whose enumeration waits for a gate to open."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.gate = threading.Event()

    def list_installed_packages(self):
        self.gate.wait(timeout=5)
        return super().list_installed_packages()


class FailingRegistry(SnapshotPackageRegistry):
    def list_installed_packages(self):
        raise RegistryError("device offline")


def start_scan(dispatcher, session, service, filter_config=None):
    """Begin a scan in ``session`` and schedule it on the running loop."""
    epoch = session.begin()
    return epoch, asyncio.create_task(dispatcher.run_scan(session, service, epoch, filter_config))


class TestScanSession:
    def test_initial_state(self):
        session = ScanSession()
        assert session.state is ScanState.IDLE
        assert session.epoch == 0
        assert session.aggregate is None

    def test_begin_increments_epoch(self):
        session = ScanSession()
        assert session.begin() == 1
        assert session.begin() == 2
        assert session.state is ScanState.SCANNING

    def test_complete_current_epoch(self):
        session = ScanSession()
        epoch = session.begin()
        assert session.complete(epoch, [], ScanAggregate()) is True
        assert session.state is ScanState.READY
        assert session.completed_at is not None

    def test_stale_completion_discarded(self):
        session = ScanSession()
        old = session.begin()
        new = session.begin()
        assert session.complete(old, [], ScanAggregate(total_apps=99)) is False
        assert session.state is ScanState.SCANNING
        assert session.aggregate is None
        assert session.complete(new, [], ScanAggregate(total_apps=1)) is True
        assert session.aggregate.total_apps == 1

    def test_completion_after_ready_discarded(self):
        session = ScanSession()
        epoch = session.begin()
        session.complete(epoch, [], ScanAggregate(total_apps=1))
        assert session.complete(epoch, [], ScanAggregate(total_apps=2)) is False
        assert session.aggregate.total_apps == 1

    def test_fail(self):
        session = ScanSession()
        epoch = session.begin()
        assert session.fail(epoch, RegistryError("device offline")) is True
        assert session.state is ScanState.ERROR
        assert session.to_dict()["error"] == {"code": "SYSTEM_ERROR", "message": "device offline"}

    def test_stale_failure_discarded(self):
        session = ScanSession()
        old = session.begin()
        session.begin()
        assert session.fail(old, RegistryError("device offline")) is False
        assert session.state is ScanState.SCANNING

    def test_reset_returns_to_idle_and_supersedes(self):
        session = ScanSession()
        epoch = session.begin()
        session.reset()
        assert session.state is ScanState.IDLE
        assert session.complete(epoch, [], ScanAggregate()) is False
        assert session.state is ScanState.IDLE

    def test_begin_after_error_clears_error(self):
        session = ScanSession()
        session.fail(session.begin(), RegistryError("device offline"))
        session.begin()
        assert session.error is None


class TestScanDispatcher:
    @pytest_asyncio.fixture
    async def dispatcher(self):
        dispatcher = ScanDispatcher(max_workers=2)
        yield dispatcher
        dispatcher.shutdown()

    def test_rejects_empty_pool(self):
        with pytest.raises(ValueError):
            ScanDispatcher(max_workers=0)

    @pytest.mark.asyncio
    async def test_run_executes_off_loop_thread(self, dispatcher):
        loop_thread = threading.get_ident()
        worker_thread = await dispatcher.run(threading.get_ident)
        assert worker_thread != loop_thread

    @pytest.mark.asyncio
    async def test_run_scan_applies_result(self, dispatcher, checker):
        session = ScanSession()
        epoch = session.begin()
        applied = await dispatcher.run_scan(session, checker, epoch)
        assert applied is True
        assert session.state is ScanState.READY
        assert session.aggregate.total_apps == 4
        assert len(session.records) == 4

    @pytest.mark.asyncio
    async def test_run_scan_with_filters(self, dispatcher, checker):
        session = ScanSession()
        epoch = session.begin()
        await dispatcher.run_scan(session, checker, epoch, FilterConfig(include_system_apps=True), top_n=2)
        assert session.aggregate.total_apps == 6
        assert len(session.aggregate.top_risk_apps) == 2

    @pytest.mark.asyncio
    async def test_run_scan_records_failure(self, dispatcher, snapshot_data):
        service = PermissionCheckerService(FailingRegistry.from_dict(snapshot_data))
        session = ScanSession()
        epoch = session.begin()
        await dispatcher.run_scan(session, service, epoch)
        assert session.state is ScanState.ERROR
        assert session.error.code == "SYSTEM_ERROR"

    @pytest.mark.asyncio
    async def test_superseded_scan_is_discarded(self, dispatcher, snapshot_data):
        slow_registry = GatedRegistry.from_dict(snapshot_data)
        slow = PermissionCheckerService(slow_registry)
        fast = PermissionCheckerService(SnapshotPackageRegistry.from_dict(snapshot_data))
        session = ScanSession()

        first_epoch, first = start_scan(dispatcher, session, slow, FilterConfig(include_system_apps=True))
        second_epoch, second = start_scan(dispatcher, session, fast)
        assert await second is True
        assert session.aggregate.total_apps == 4

        slow_registry.gate.set()
        assert await first is False
        assert first_epoch < second_epoch == session.epoch
        assert session.state is ScanState.READY
        assert session.aggregate.total_apps == 4

    @pytest.mark.asyncio
    async def test_concurrent_scans_are_independent(self, dispatcher, checker):
        sessions = [ScanSession(), ScanSession()]
        tasks = [start_scan(dispatcher, s, checker)[1] for s in sessions]
        assert await asyncio.gather(*tasks) == [True, True]
        assert sessions[0].aggregate.to_dict() == sessions[1].aggregate.to_dict()
