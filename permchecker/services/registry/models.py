"""Pydantic models for raw package registry records.

Registry output (parsed ``dumpsys`` text or a JSON snapshot) is loosely
typed. Each record is validated against these models before it becomes an
``AppDescriptor``; malformed records are rejected rather than filled in with
defaults.
"""

import logging
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from permchecker.services.engine.models import AppDescriptor, RequestedPermission

logger = logging.getLogger(__name__)

PACKAGE_NAME_PATTERN = r"^[A-Za-z][A-Za-z0-9_]*(\.[A-Za-z0-9_]+)*$"


class RawPackageRecord(BaseModel):
    """A package as reported by the registry.

    ``requested_permissions`` and ``requested_permissions_granted`` are
    parallel lists, mirroring Android's ``requestedPermissions`` and
    ``requestedPermissionsFlags`` arrays.
    """

    package_name: str = Field(..., pattern=PACKAGE_NAME_PATTERN, max_length=255)
    app_name: str | None = Field(None, description="User-visible label, if the registry knows it")
    version_name: str | None = None
    version_code: int | None = Field(None, ge=0)
    is_system: bool = Field(..., description="FLAG_SYSTEM is set")
    is_updated_system: bool = Field(False, description="FLAG_UPDATED_SYSTEM_APP is set")
    installer_source: str | None = None
    install_time: datetime | None = None
    requested_permissions: list[str] = Field(default_factory=list)
    requested_permissions_granted: list[bool] = Field(default_factory=list)

    @field_validator("requested_permissions")
    @classmethod
    def validate_permission_identifiers(cls, v: list[str]) -> list[str]:
        """Reject blank or whitespace-containing permission identifiers."""
        for identifier in v:
            if not identifier or not identifier.strip() or any(c.isspace() for c in identifier):
                raise ValueError(f"Invalid permission identifier: {identifier!r}")
        return v

    @field_validator("installer_source")
    @classmethod
    def normalize_installer(cls, v: str | None) -> str | None:
        """Android reports a missing installer as the literal ``null``."""
        if v is None or v.strip() in ("", "null"):
            return None
        return v.strip()

    @model_validator(mode="after")
    def validate_consistency(self) -> "RawPackageRecord":
        if len(self.requested_permissions) != len(self.requested_permissions_granted):
            raise ValueError(
                "requested_permissions and requested_permissions_granted differ in length "
                f"({len(self.requested_permissions)} != {len(self.requested_permissions_granted)})"
            )
        if self.is_updated_system and not self.is_system:
            raise ValueError("is_updated_system requires is_system")
        return self

    def to_descriptor(self) -> AppDescriptor:
        """Convert to the engine's immutable descriptor."""
        return AppDescriptor(
            package_name=self.package_name,
            app_name=self.app_name or "",
            version_name=self.version_name,
            version_code=self.version_code,
            is_system=self.is_system,
            is_updated_system=self.is_updated_system,
            installer_source=self.installer_source,
            install_time=self.install_time,
            requested_permissions=tuple(
                RequestedPermission(identifier=identifier, granted=granted)
                for identifier, granted in zip(self.requested_permissions, self.requested_permissions_granted)
            ),
        )


class PermissionInfoRecord(BaseModel):
    """Platform metadata for one permission."""

    protection_level: str | int | None = None
    description: str | None = None


class RecordValidation(BaseModel):
    """Outcome of validating one raw package record."""

    index: int
    package_name: str | None = None
    descriptor: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def validate_package_record(raw: Any, index: int = 0) -> RecordValidation:
    """Validate one raw record.

    Args:
        raw: Mapping from the registry.
        index: Position of the record in its source, for error reporting.

    Returns:
        A ``RecordValidation`` holding either the descriptor or the error.
    """
    package_name = raw.get("package_name") if isinstance(raw, dict) else None
    if package_name is not None:
        package_name = str(package_name)
    try:
        record = RawPackageRecord.model_validate(raw)
    except ValidationError as e:
        errors = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'record'}: {err['msg']}"
            for err in e.errors()
        )
        return RecordValidation(index=index, package_name=package_name, error=errors)
    return RecordValidation(index=index, package_name=record.package_name, descriptor=record.to_descriptor())


def validate_package_records(raws: Iterable[Any]) -> tuple[list[AppDescriptor], list[RecordValidation]]:
    """Validate a batch of raw records, keeping order.

    Returns:
        Tuple of ``(descriptors, rejected)``.
    """
    descriptors: list[AppDescriptor] = []
    rejected: list[RecordValidation] = []
    for index, raw in enumerate(raws):
        outcome = validate_package_record(raw, index=index)
        if outcome.ok:
            descriptors.append(outcome.descriptor)
        else:
            logger.warning(f"Rejected package record #{index} ({outcome.package_name}): {outcome.error}")
            rejected.append(outcome)
    return descriptors, rejected
