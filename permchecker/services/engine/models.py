"""Data models for the permission analysis engine.

Every model here is created fresh for a scan and is immutable afterwards.
Nothing is persisted across scans.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from permchecker.services.engine.classifier import categorize, readable_name
from permchecker.services.engine.risk import is_genuine_risk


class ProtectionLevel(str, Enum):
    """OS-assigned sensitivity of a permission."""
    NORMAL = "normal"
    DANGEROUS = "dangerous"
    SIGNATURE = "signature"
    SIGNATURE_OR_SYSTEM = "signatureOrSystem"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class RequestedPermission:
    """A permission as requested by a package, with its grant flag."""

    identifier: str
    granted: bool = False


@dataclass(frozen=True, eq=False)
class PermissionRecord:
    """A classified permission requested by one app.

    ``category`` and ``readable_name`` may be supplied by the caller; blank
    values are replaced with the classifier's output. ``is_genuine_risk`` is
    always derived and cannot be passed in.
    """

    identifier: str
    granted: bool
    protection_level: ProtectionLevel = ProtectionLevel.UNKNOWN
    category: str | None = None
    readable_name: str | None = None
    description: str | None = None
    is_genuine_risk: bool = field(init=False)

    def __post_init__(self) -> None:
        if not isinstance(self.protection_level, ProtectionLevel):
            object.__setattr__(self, "protection_level", ProtectionLevel(self.protection_level))
        if not self.category or not self.category.strip():
            object.__setattr__(self, "category", categorize(self.identifier))
        if not self.readable_name or not self.readable_name.strip():
            object.__setattr__(self, "readable_name", readable_name(self.identifier))
        object.__setattr__(self, "is_genuine_risk", is_genuine_risk(self))

    @property
    def is_dangerous(self) -> bool:
        return self.protection_level is ProtectionLevel.DANGEROUS

    @property
    def is_normal(self) -> bool:
        return self.protection_level is ProtectionLevel.NORMAL

    @property
    def is_signature(self) -> bool:
        return self.protection_level is ProtectionLevel.SIGNATURE

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "permission": self.identifier,
            "granted": self.granted,
            "protection_level": self.protection_level.value,
            "category": self.category,
            "readable_name": self.readable_name,
            "description": self.description,
            "is_genuine_risk": self.is_genuine_risk,
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PermissionRecord):
            return NotImplemented
        return self.identifier == other.identifier

    def __hash__(self) -> int:
        return hash(self.identifier)


@dataclass(frozen=True)
class AppDescriptor:
    """Raw app metadata as reported by the package registry."""

    package_name: str
    app_name: str
    version_name: str | None = None
    version_code: int | None = None
    is_system: bool = False
    is_updated_system: bool = False
    installer_source: str | None = None
    install_time: datetime | None = None
    requested_permissions: tuple[RequestedPermission, ...] = ()

    @property
    def requested_identifiers(self) -> frozenset[str]:
        return frozenset(p.identifier for p in self.requested_permissions)


@dataclass(frozen=True, eq=False)
class AppPermissionRecord:
    """An assembled app with its classified permissions.

    Identity is the package name: two records with the same package name are
    the same app, whatever their other fields say.
    """

    app_name: str
    package_name: str
    permissions: tuple[PermissionRecord, ...] = ()
    version_name: str | None = None
    version_code: int | None = None
    is_system: bool = False
    is_updated_system: bool = False
    installer_source: str = ""
    install_time: datetime | None = None

    @property
    def is_useful(self) -> bool:
        """Not a system app, or a system app the user has updated."""
        return not self.is_system or self.is_updated_system

    @property
    def granted_permissions(self) -> list[PermissionRecord]:
        return [p for p in self.permissions if p.granted]

    @property
    def denied_permissions(self) -> list[PermissionRecord]:
        return [p for p in self.permissions if not p.granted]

    @property
    def dangerous_permissions(self) -> list[PermissionRecord]:
        return [p for p in self.permissions if p.is_dangerous]

    @property
    def granted_dangerous_permissions(self) -> list[PermissionRecord]:
        return [p for p in self.permissions if p.is_dangerous and p.granted]

    @property
    def genuine_risk_permissions(self) -> list[PermissionRecord]:
        return [p for p in self.permissions if p.is_genuine_risk]

    def has_permission(self, identifier: str) -> bool:
        return any(p.identifier == identifier for p in self.permissions)

    def is_permission_granted(self, identifier: str) -> bool:
        return any(p.identifier == identifier and p.granted for p in self.permissions)

    def permissions_by_category(self) -> dict[str, list[PermissionRecord]]:
        """Group permissions by category, keeping first-seen category order."""
        grouped: dict[str, list[PermissionRecord]] = {}
        for permission in self.permissions:
            grouped.setdefault(permission.category, []).append(permission)
        return grouped

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "app_name": self.app_name,
            "package_name": self.package_name,
            "version_name": self.version_name,
            "version_code": self.version_code,
            "is_system": self.is_system,
            "is_updated_system": self.is_updated_system,
            "installer_source": self.installer_source,
            "install_time": self.install_time.isoformat() if self.install_time else None,
            "permissions": [p.to_dict() for p in self.permissions],
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AppPermissionRecord):
            return NotImplemented
        return self.package_name == other.package_name

    def __hash__(self) -> int:
        return hash(self.package_name)


@dataclass(frozen=True)
class FilterConfig:
    """Inclusion filters applied while assembling records."""

    include_system_apps: bool = False
    only_useful_apps: bool = False
    filter_by_permissions: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        if not isinstance(self.filter_by_permissions, frozenset):
            object.__setattr__(self, "filter_by_permissions", frozenset(self.filter_by_permissions))

    @classmethod
    def build(
        cls,
        include_system_apps: bool = False,
        only_useful_apps: bool = False,
        filter_by_permissions: Iterable[str] | None = None,
    ) -> "FilterConfig":
        """Build a filter config, ignoring blank permission identifiers."""
        permissions = frozenset(p.strip() for p in filter_by_permissions or () if p and p.strip())
        return cls(
            include_system_apps=include_system_apps,
            only_useful_apps=only_useful_apps,
            filter_by_permissions=permissions,
        )


@dataclass(frozen=True)
class RiskRankingEntry:
    """An app's position in the risk ranking."""

    record: AppPermissionRecord
    score: int
    dangerous_granted_count: int
    normal_granted_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "package_name": self.record.package_name,
            "app_name": self.record.app_name,
            "score": self.score,
            "dangerous_granted_count": self.dangerous_granted_count,
            "normal_granted_count": self.normal_granted_count,
        }


@dataclass(frozen=True)
class ScanAggregate:
    """Scan-wide totals and the top-N risk ranking."""

    total_apps: int = 0
    total_permissions: int = 0
    total_genuine_risk: int = 0
    top_risk_apps: tuple[RiskRankingEntry, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_apps": self.total_apps,
            "total_permissions": self.total_permissions,
            "total_genuine_risk": self.total_genuine_risk,
            "top_risk_apps": [entry.to_dict() for entry in self.top_risk_apps],
        }
