"""Shared fixtures for permchecker tests."""

import copy

import pytest
from fastapi.testclient import TestClient

from permchecker.dependencies import get_registry, get_scan_session
from permchecker.main import app
from permchecker.services.permission_checker import PermissionCheckerService
from permchecker.services.registry import SnapshotPackageRegistry
from permchecker.services.scan_dispatcher import ScanSession

# Registry order matters: it is the order apps come back in and the
# tie-break order for the risk ranking.
SAMPLE_PACKAGES = [
    {
        "package_name": "com.example.camera",
        "app_name": "Camera Plus",
        "version_name": "2.4.1",
        "version_code": 241,
        "is_system": False,
        "installer_source": "com.android.vending",
        "install_time": "2024-03-01T10:15:00",
        "requested_permissions": [
            "android.permission.CAMERA",
            "android.permission.INTERNET",
            "android.permission.ACCESS_FINE_LOCATION",
        ],
        "requested_permissions_granted": [True, True, False],
    },
    {
        "package_name": "com.example.messenger",
        "app_name": "Messenger",
        "is_system": False,
        "requested_permissions": [
            "android.permission.READ_SMS",
            "android.permission.READ_CONTACTS",
            "android.permission.RECORD_AUDIO",
            "android.permission.INTERNET",
            "android.permission.POST_NOTIFICATIONS",
        ],
        "requested_permissions_granted": [True, True, True, True, True],
    },
    {
        "package_name": "com.example.notes",
        "app_name": "Notes",
        "is_system": False,
        "requested_permissions": [
            "android.permission.INTERNET",
            "android.permission.WAKE_LOCK",
        ],
        "requested_permissions_granted": [True, True],
    },
    {
        "package_name": "com.example.flashlight",
        "app_name": "Flashlight",
        "is_system": False,
    },
    {
        "package_name": "com.android.settings",
        "app_name": "Settings",
        "is_system": True,
        "requested_permissions": ["android.permission.READ_PHONE_STATE"],
        "requested_permissions_granted": [True],
    },
    {
        "package_name": "com.google.android.gm",
        "app_name": "Gmail",
        "is_system": True,
        "is_updated_system": True,
        "installer_source": "com.android.vending",
        "requested_permissions": [
            "android.permission.READ_CONTACTS",
            "android.permission.INTERNET",
        ],
        "requested_permissions_granted": [True, True],
    },
]

SAMPLE_PERMISSIONS = {
    "android.permission.CAMERA": {
        "protection_level": "dangerous|instant",
        "description": "Allows the app to take pictures and videos with the camera.",
    },
    "android.permission.ACCESS_FINE_LOCATION": {"protection_level": "dangerous"},
    "android.permission.INTERNET": {"protection_level": "normal|instant"},
    "android.permission.READ_SMS": {"protection_level": "dangerous"},
    "android.permission.READ_CONTACTS": {"protection_level": 1},
    "android.permission.RECORD_AUDIO": {"protection_level": "dangerous|instant"},
    "android.permission.POST_NOTIFICATIONS": {"protection_level": "dangerous"},
    "android.permission.WAKE_LOCK": {"protection_level": 0},
    "android.permission.READ_PHONE_STATE": {"protection_level": "dangerous"},
}


@pytest.fixture
def snapshot_data():
    """A fresh copy of the sample snapshot document."""
    return {
        "packages": copy.deepcopy(SAMPLE_PACKAGES),
        "permissions": copy.deepcopy(SAMPLE_PERMISSIONS),
    }


@pytest.fixture
def snapshot_registry(snapshot_data):
    return SnapshotPackageRegistry.from_dict(snapshot_data)


@pytest.fixture
def checker(snapshot_registry):
    return PermissionCheckerService(snapshot_registry)


@pytest.fixture
def scan_session():
    return ScanSession()


@pytest.fixture
def client(snapshot_registry, scan_session):
    """Test client backed by the sample snapshot."""
    app.dependency_overrides[get_registry] = lambda: snapshot_registry
    app.dependency_overrides[get_scan_session] = lambda: scan_session
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
