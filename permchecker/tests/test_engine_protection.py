"""Tests for protection level resolution."""

import pytest

from permchecker.errors import RegistryError
from permchecker.services.engine.models import ProtectionLevel
from permchecker.services.engine.protection import (
    parse_protection_level,
    resolve_description,
    resolve_protection_level,
)


class StubRegistry:
    """Registry stub returning fixed permission metadata."""

    def __init__(self, levels=None, descriptions=None, error=None):
        self.levels = levels or {}
        self.descriptions = descriptions or {}
        self.error = error
        self.calls = []

    def get_permission_protection_level(self, identifier):
        self.calls.append(identifier)
        if self.error:
            raise self.error
        return self.levels.get(identifier)

    def get_permission_description(self, identifier):
        if self.error:
            raise self.error
        return self.descriptions.get(identifier)


class TestParseProtectionLevel:
    """Tests for parse_protection_level."""

    @pytest.mark.parametrize("raw,expected", [
        (0, ProtectionLevel.NORMAL),
        (1, ProtectionLevel.DANGEROUS),
        (2, ProtectionLevel.SIGNATURE),
        (3, ProtectionLevel.SIGNATURE_OR_SYSTEM),
        (0x1001, ProtectionLevel.DANGEROUS),
        (0x12, ProtectionLevel.SIGNATURE),
        (4, ProtectionLevel.UNKNOWN),
    ])
    def test_integer_base_bits(self, raw, expected):
        """Test integer levels use the base protection bits."""
        assert parse_protection_level(raw) is expected

    @pytest.mark.parametrize("raw,expected", [
        ("normal", ProtectionLevel.NORMAL),
        ("dangerous", ProtectionLevel.DANGEROUS),
        ("Dangerous", ProtectionLevel.DANGEROUS),
        ("dangerous|instant", ProtectionLevel.DANGEROUS),
        ("signature", ProtectionLevel.SIGNATURE),
        ("signature|appop", ProtectionLevel.SIGNATURE),
        ("signatureOrSystem", ProtectionLevel.SIGNATURE_OR_SYSTEM),
        ("signature|privileged", ProtectionLevel.SIGNATURE_OR_SYSTEM),
        ("0x1", ProtectionLevel.DANGEROUS),
        ("2", ProtectionLevel.SIGNATURE),
    ])
    def test_string_values(self, raw, expected):
        """Test protection level strings are parsed."""
        assert parse_protection_level(raw) is expected

    @pytest.mark.parametrize("raw", [None, "", "   ", "internal", "0xZZ", True, 1.5, object()])
    def test_unrecognised_values_are_unknown(self, raw):
        """Test unrecognised values are unknown."""
        assert parse_protection_level(raw) is ProtectionLevel.UNKNOWN

    def test_enum_passes_through(self):
        """Test a ProtectionLevel passes through unchanged."""
        assert parse_protection_level(ProtectionLevel.SIGNATURE) is ProtectionLevel.SIGNATURE


class TestResolveProtectionLevel:
    """Tests for protection level resolution."""

    def test_resolves_through_registry(self):
        """Test the level is looked up in the registry."""
        registry = StubRegistry(levels={"android.permission.CAMERA": "dangerous"})
        assert resolve_protection_level("android.permission.CAMERA", registry) is ProtectionLevel.DANGEROUS
        assert registry.calls == ["android.permission.CAMERA"]

    def test_unregistered_permission_is_unknown(self):
        """Test unregistered permission is unknown."""
        registry = StubRegistry()
        assert resolve_protection_level("com.example.CUSTOM", registry) is ProtectionLevel.UNKNOWN

    def test_registry_error_is_unknown(self):
        """Test registry error is unknown."""
        registry = StubRegistry(error=RegistryError("device offline"))
        assert resolve_protection_level("android.permission.CAMERA", registry) is ProtectionLevel.UNKNOWN

    def test_unexpected_error_is_unknown(self):
        """Test unexpected error is unknown."""
        registry = StubRegistry(error=RuntimeError("boom"))
        assert resolve_protection_level("android.permission.CAMERA", registry) is ProtectionLevel.UNKNOWN


class TestResolveDescription:
    """Tests for description resolution."""

    def test_returns_description(self):
        """Test the registry description is returned."""
        registry = StubRegistry(descriptions={"android.permission.CAMERA": "  Take pictures.  "})
        assert resolve_description("android.permission.CAMERA", registry) == "Take pictures."

    def test_blank_description_is_absent(self):
        """Test blank description is absent."""
        registry = StubRegistry(descriptions={"android.permission.CAMERA": "   "})
        assert resolve_description("android.permission.CAMERA", registry) is None

    def test_error_is_absent(self):
        """Test a registry error yields no description."""
        registry = StubRegistry(error=RegistryError("device offline"))
        assert resolve_description("android.permission.CAMERA", registry) is None
