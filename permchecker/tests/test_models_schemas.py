"""
Tests for Pydantic schemas.
"""

import pytest
from pydantic import ValidationError

from permchecker.models.schemas import (
    AppPermissionResponse,
    CheckPermissionsRequest,
    PermissionResponse,
    ScanCreate,
    ScanStatusResponse,
)


class TestPermissionSchemas:
    """Tests for permission schemas."""

    def test_permission_response(self):
        """Test building a permission response."""
        permission = PermissionResponse(
            permission="android.permission.CAMERA",
            granted=True,
            protection_level="dangerous",
            category="Camera",
            readable_name="Camera",
            is_genuine_risk=True,
        )
        assert permission.description is None
        assert permission.risk_rule is None

    def test_permission_response_invalid_level(self):
        """Test an unknown protection level is rejected."""
        with pytest.raises(ValidationError):
            PermissionResponse(
                permission="android.permission.CAMERA",
                granted=True,
                protection_level="critical",
                category="Camera",
                readable_name="Camera",
            )


class TestAppSchemas:
    """Tests for app schemas."""

    def test_app_response_minimal(self):
        """Test an app with no permissions."""
        app = AppPermissionResponse(app_name="Flashlight", package_name="com.example.flashlight")
        assert app.permissions == []
        assert app.installer_source == ""

    def test_check_request_strips_names(self):
        """Test package names are stripped."""
        request = CheckPermissionsRequest(package_names=[" com.example.app "])
        assert request.package_names == ["com.example.app"]
        assert request.include_system_apps is False

    def test_check_request_requires_names(self):
        """Test an empty package list is rejected."""
        with pytest.raises(ValidationError):
            CheckPermissionsRequest(package_names=[])

    def test_check_request_rejects_blank_name(self):
        """Test blank package names are rejected."""
        with pytest.raises(ValidationError):
            CheckPermissionsRequest(package_names=["com.example.app", ""])


class TestScanSchemas:
    """Tests for scan schemas."""

    def test_scan_create_defaults(self):
        """Test scan defaults defer to settings."""
        scan = ScanCreate()
        assert scan.include_system_apps is None
        assert scan.top_n is None

    def test_scan_create_negative_top_n(self):
        """Test a negative ranking size is rejected."""
        with pytest.raises(ValidationError):
            ScanCreate(top_n=-1)

    def test_scan_status_invalid_state(self):
        """Test an unknown lifecycle state is rejected."""
        with pytest.raises(ValidationError):
            ScanStatusResponse(state="cancelled", epoch=1)

    def test_scan_status_with_error(self):
        """Test an error scan status."""
        status = ScanStatusResponse(
            state="error",
            epoch=3,
            error={"code": "SYSTEM_ERROR", "message": "device offline"},
        )
        assert status.error.code == "SYSTEM_ERROR"
