"""Package registry interface.

A package registry is the OS-owned source of installed-app metadata and
permission grants. The engine only ever reads from it; implementations may
block (subprocess calls, file reads) but must be safe for concurrent reads.
"""

from abc import ABC, abstractmethod
from typing import Any

from permchecker.services.engine.models import AppDescriptor


class PackageRegistry(ABC):
    """Abstract base class for package registries.

    Implementations must:
        - return descriptors from ``list_installed_packages`` in the
          registry's own enumeration order
        - raise ``PackageNotFoundError`` from ``get_package_info`` for
          packages that are not installed
        - raise ``RegistryError`` when the registry itself is unusable
    """

    name: str = "base"

    @abstractmethod
    def list_installed_packages(self) -> list[AppDescriptor]:
        """Enumerate every installed package with its requested permissions."""
        ...

    @abstractmethod
    def get_package_info(self, package_name: str) -> AppDescriptor:
        """Look up a single installed package."""
        ...

    @abstractmethod
    def get_installer_package_name(self, package_name: str) -> str | None:
        """Return the package that installed ``package_name``, if known."""
        ...

    @abstractmethod
    def get_permission_protection_level(self, identifier: str) -> Any:
        """Return the raw protection level for ``identifier``, or ``None``."""
        ...

    @abstractmethod
    def get_permission_description(self, identifier: str) -> str | None:
        """Return the platform description of ``identifier``, if any."""
        ...

    def get_application_label(self, descriptor: AppDescriptor) -> str:
        """Return the user-visible app label, falling back to the package name."""
        return descriptor.app_name or descriptor.package_name

    def is_available(self) -> bool:
        """Whether the registry can currently be queried."""
        return True
