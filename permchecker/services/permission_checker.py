"""Permission checker service.

The query layer between callers (HTTP routers, scan tasks) and the analysis
engine. It validates arguments, fetches descriptors from the package
registry, runs them through the assembler and applies the error policy:

    - invalid arguments are rejected before the registry is touched
    - packages missing from the registry are dropped from bulk results and
      reported as ``None`` / ``False`` by single-package queries
    - registry failures abort the query with ``RegistryError``

Every method blocks on the registry. Async callers go through
``ScanDispatcher``.
"""

import dataclasses
import logging
from collections.abc import Iterable

from permchecker.errors import InvalidArgumentError, PackageNotFoundError
from permchecker.services.engine import (
    AppPermissionRecord,
    AppRecordAssembler,
    FilterConfig,
    ScanAggregate,
    aggregate,
)
from permchecker.services.engine.aggregation import DEFAULT_TOP_N
from permchecker.services.registry.base import PackageRegistry

logger = logging.getLogger(__name__)


def _require(value: str | None, what: str) -> str:
    if value is None or not str(value).strip():
        raise InvalidArgumentError(f"{what} is required")
    return str(value).strip()


def filter_view(
    records: Iterable[AppPermissionRecord],
    query: str = "",
    genuine_risk_only: bool = False,
    granted_only: bool = False,
) -> list[AppPermissionRecord]:
    """Narrow assembled records for display.

    ``query`` matches app name or package name, case-insensitively. The
    permission filters trim each record's permission list; an app left with
    no matching permissions is dropped from the view.
    """
    needle = (query or "").strip().lower()
    result: list[AppPermissionRecord] = []
    for record in records:
        if needle and needle not in record.app_name.lower() and needle not in record.package_name.lower():
            continue
        if genuine_risk_only or granted_only:
            permissions = tuple(
                p for p in record.permissions
                if (not genuine_risk_only or p.is_genuine_risk) and (not granted_only or p.granted)
            )
            if not permissions:
                continue
            record = dataclasses.replace(record, permissions=permissions)
        result.append(record)
    return result


class PermissionCheckerService:
    """Answers permission queries against a package registry."""

    def __init__(
        self,
        registry: PackageRegistry,
        assembler: AppRecordAssembler | None = None,
        top_n: int = DEFAULT_TOP_N,
    ):
        self.registry = registry
        self.assembler = assembler or AppRecordAssembler()
        self.top_n = top_n

    def check_permissions(
        self,
        package_names: Iterable[str],
        include_system_apps: bool = False,
    ) -> list[AppPermissionRecord]:
        """Check the permissions of specific packages.

        Args:
            package_names: Packages to look up, in the order results should come back.
            include_system_apps: Keep system apps in the result.

        Returns:
            Records for the packages that exist and pass the filter.

        Raises:
            InvalidArgumentError: If any package name is blank.
            RegistryError: If the registry cannot be queried.
        """
        names = [_require(name, "Package name") for name in package_names]
        filter_config = FilterConfig(include_system_apps=include_system_apps)

        records: list[AppPermissionRecord] = []
        seen: set[str] = set()
        for name in names:
            if name in seen:
                continue
            seen.add(name)
            try:
                descriptor = self.registry.get_package_info(name)
            except PackageNotFoundError:
                logger.info(f"Package not found, skipping: {name}")
                continue
            record = self.assembler.assemble(descriptor, filter_config, self.registry)
            if record is not None:
                records.append(record)
        return records

    def check_single_app_permissions(self, package_name: str) -> AppPermissionRecord | None:
        """Check one package, system apps included.

        Returns:
            The record, or ``None`` if the package is not installed.
        """
        package_name = _require(package_name, "Package name")
        try:
            descriptor = self.registry.get_package_info(package_name)
        except PackageNotFoundError:
            return None
        return self.assembler.assemble(descriptor, FilterConfig(include_system_apps=True), self.registry)

    def get_all_apps_permissions(self, filter_config: FilterConfig | None = None) -> list[AppPermissionRecord]:
        """Assemble every installed app that passes ``filter_config``.

        Results keep registry enumeration order.
        """
        filter_config = filter_config or FilterConfig()
        descriptors = self.registry.list_installed_packages()
        records = []
        for descriptor in descriptors:
            record = self.assembler.assemble(descriptor, filter_config, self.registry)
            if record is not None:
                records.append(record)
        logger.info(
            f"Assembled {len(records)} of {len(descriptors)} packages "
            f"(system={filter_config.include_system_apps}, useful_only={filter_config.only_useful_apps}, "
            f"permission_filter={len(filter_config.filter_by_permissions)})"
        )
        return records

    def is_permission_granted(self, package_name: str, permission: str) -> bool:
        """Whether ``package_name`` holds ``permission``.

        Unknown packages and permissions the package never requested are
        reported as not granted.
        """
        package_name = _require(package_name, "Package name")
        permission = _require(permission, "Permission")
        try:
            descriptor = self.registry.get_package_info(package_name)
        except PackageNotFoundError:
            return False
        return any(p.identifier == permission and p.granted for p in descriptor.requested_permissions)

    def summarize(
        self,
        filter_config: FilterConfig | None = None,
        top_n: int | None = None,
    ) -> tuple[list[AppPermissionRecord], ScanAggregate]:
        """Run a full scan and aggregate it.

        Returns:
            Tuple of ``(records, aggregate)``.
        """
        top_n = self.top_n if top_n is None else top_n
        if top_n < 0:
            raise InvalidArgumentError(f"top_n must be >= 0, got {top_n}")
        records = self.get_all_apps_permissions(filter_config)
        return records, aggregate(records, top_n=top_n)
