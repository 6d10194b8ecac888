"""App record assembly.

Combines a raw ``AppDescriptor`` with its classified and risk-flagged
permissions into an immutable ``AppPermissionRecord``, or omits the app when
an inclusion filter rejects it.

Exclusion rules, evaluated before any permission lookups:
    1. System app while ``include_system_apps`` is off.
    2. With system apps included and ``only_useful_apps`` on: a system app
       that was never updated by the user.
    3. A non-empty ``filter_by_permissions`` that shares no identifier with
       the app's requested permissions.

All registry reads go through the registry passed in; the assembler keeps
no state between calls.
"""

import logging

from permchecker.services.engine.models import (
    AppDescriptor,
    AppPermissionRecord,
    FilterConfig,
    PermissionRecord,
    RequestedPermission,
)
from permchecker.services.engine.protection import resolve_description, resolve_protection_level

logger = logging.getLogger(__name__)


def exclusion_reason(descriptor: AppDescriptor, filter_config: FilterConfig) -> str | None:
    """Return why ``descriptor`` is filtered out, or ``None`` to keep it."""
    if descriptor.is_system and not filter_config.include_system_apps:
        return "system_app"
    if (
        filter_config.include_system_apps
        and filter_config.only_useful_apps
        and descriptor.is_system
        and not descriptor.is_updated_system
    ):
        return "not_useful"
    if filter_config.filter_by_permissions and not (
        descriptor.requested_identifiers & filter_config.filter_by_permissions
    ):
        return "permission_filter"
    return None


class AppRecordAssembler:
    """Builds ``AppPermissionRecord`` objects from registry descriptors."""

    def build_permission(self, requested: RequestedPermission, registry) -> PermissionRecord:
        """Classify and score a single requested permission."""
        return PermissionRecord(
            identifier=requested.identifier,
            granted=requested.granted,
            protection_level=resolve_protection_level(requested.identifier, registry),
            description=resolve_description(requested.identifier, registry),
        )

    def assemble(
        self,
        descriptor: AppDescriptor,
        filter_config: FilterConfig,
        registry,
    ) -> AppPermissionRecord | None:
        """Assemble a record for ``descriptor``.

        Args:
            descriptor: Raw app metadata from the registry.
            filter_config: Inclusion filters.
            registry: Package registry used for permission and installer lookups.

        Returns:
            The assembled record, or ``None`` when a filter omits the app.
        """
        reason = exclusion_reason(descriptor, filter_config)
        if reason is not None:
            logger.debug(f"Omitting {descriptor.package_name}: {reason}")
            return None

        permissions = tuple(
            self.build_permission(requested, registry)
            for requested in descriptor.requested_permissions
        )

        return AppPermissionRecord(
            app_name=self._resolve_app_name(descriptor, registry),
            package_name=descriptor.package_name,
            permissions=permissions,
            version_name=descriptor.version_name,
            version_code=descriptor.version_code,
            is_system=descriptor.is_system,
            is_updated_system=descriptor.is_updated_system,
            installer_source=self._resolve_installer(descriptor, registry),
            install_time=descriptor.install_time,
        )

    @staticmethod
    def _resolve_app_name(descriptor: AppDescriptor, registry) -> str:
        if descriptor.app_name and descriptor.app_name.strip():
            return descriptor.app_name
        try:
            label = registry.get_application_label(descriptor)
        except Exception as e:
            logger.warning(f"Label lookup failed for {descriptor.package_name}: {e}")
            return descriptor.package_name
        return label or descriptor.package_name

    @staticmethod
    def _resolve_installer(descriptor: AppDescriptor, registry) -> str:
        if descriptor.installer_source:
            return descriptor.installer_source
        try:
            installer = registry.get_installer_package_name(descriptor.package_name)
        except Exception as e:
            logger.warning(f"Installer lookup failed for {descriptor.package_name}: {e}")
            return ""
        return installer or ""
