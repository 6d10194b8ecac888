"""Snapshot-backed package registry.

Serves registry data captured earlier (or hand-written for tests) from a
JSON document::

    {
      "packages": [
        {
          "package_name": "com.example.camera",
          "app_name": "Camera Plus",
          "is_system": false,
          "requested_permissions": ["android.permission.CAMERA"],
          "requested_permissions_granted": [true]
        }
      ],
      "permissions": {
        "android.permission.CAMERA": {"protection_level": "dangerous"}
      }
    }

Every package entry is validated; malformed entries are rejected and kept in
``rejected`` for inspection instead of being filled in with defaults.
"""

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from permchecker.errors import PackageNotFoundError, RegistryError
from permchecker.services.engine.models import AppDescriptor
from permchecker.services.registry.base import PackageRegistry
from permchecker.services.registry.models import (
    PermissionInfoRecord,
    RecordValidation,
    validate_package_records,
)

logger = logging.getLogger(__name__)


class SnapshotPackageRegistry(PackageRegistry):
    """In-memory registry built from snapshot data."""

    name = "snapshot"

    def __init__(
        self,
        packages: list[dict[str, Any]] | None = None,
        permissions: dict[str, Any] | None = None,
    ):
        descriptors, rejected = validate_package_records(packages or [])
        self._packages: dict[str, AppDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.package_name in self._packages:
                logger.warning(f"Duplicate package in snapshot ignored: {descriptor.package_name}")
                continue
            self._packages[descriptor.package_name] = descriptor
        self.rejected: list[RecordValidation] = rejected

        self._permissions: dict[str, PermissionInfoRecord] = {}
        for identifier, info in (permissions or {}).items():
            try:
                self._permissions[identifier] = PermissionInfoRecord.model_validate(info)
            except ValidationError as e:
                logger.warning(f"Skipping malformed permission entry {identifier}: {e.error_count()} errors")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SnapshotPackageRegistry":
        """Build a registry from a parsed snapshot document.

        Raises:
            RegistryError: If the document does not have the expected shape.
        """
        if not isinstance(data, dict):
            raise RegistryError("Snapshot must be a JSON object")
        packages = data.get("packages", [])
        permissions = data.get("permissions", {})
        if not isinstance(packages, list) or not isinstance(permissions, dict):
            raise RegistryError("Snapshot 'packages' must be a list and 'permissions' an object")
        return cls(packages=packages, permissions=permissions)

    @classmethod
    def from_file(cls, path: Path) -> "SnapshotPackageRegistry":
        """Load a snapshot from a JSON file.

        Raises:
            RegistryError: If the file is missing or not valid JSON.
        """
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
        except FileNotFoundError:
            raise RegistryError(f"Snapshot file not found: {path}")
        except (OSError, json.JSONDecodeError) as e:
            raise RegistryError(f"Failed to read snapshot {path}: {e}")
        registry = cls.from_dict(data)
        logger.info(
            f"Loaded snapshot {path}: {len(registry._packages)} packages, "
            f"{len(registry.rejected)} rejected"
        )
        return registry

    def list_installed_packages(self) -> list[AppDescriptor]:
        return list(self._packages.values())

    def get_package_info(self, package_name: str) -> AppDescriptor:
        descriptor = self._packages.get(package_name)
        if descriptor is None:
            raise PackageNotFoundError(package_name)
        return descriptor

    def get_installer_package_name(self, package_name: str) -> str | None:
        return self.get_package_info(package_name).installer_source

    def get_permission_protection_level(self, identifier: str) -> Any:
        info = self._permissions.get(identifier)
        return info.protection_level if info else None

    def get_permission_description(self, identifier: str) -> str | None:
        info = self._permissions.get(identifier)
        return info.description if info else None
