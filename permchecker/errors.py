"""Exception hierarchy for permission checking.

Every exception carries a machine-readable ``code`` so that the HTTP layer
(and any other caller) can translate failures without string matching.

Propagation policy:
    - ``PackageNotFoundError`` is a per-item miss. Bulk queries skip the
      package; single-package queries turn it into an empty result.
    - ``RegistryError`` means the package registry itself failed. It aborts
      the affected query only.
    - ``InvalidArgumentError`` is raised before the registry is touched.
    - Permission metadata lookups never raise; they degrade to ``unknown``.
"""


class PermissionCheckerError(Exception):
    """Base exception for permission checking failures."""

    code = "PLUGIN_ERROR"

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def to_dict(self) -> dict[str, str]:
        """Serialize for API error payloads."""
        return {"code": self.code, "message": self.message}

    def __str__(self) -> str:
        return f"{self.message} (Code: {self.code})"


class PackageNotFoundError(PermissionCheckerError):
    """A requested package is not installed."""

    code = "PACKAGE_NOT_FOUND"

    def __init__(self, package_name: str):
        super().__init__(f"Package not found: {package_name}")
        self.package_name = package_name


class RegistryError(PermissionCheckerError):
    """The package registry is unreachable or returned inconsistent data."""

    code = "SYSTEM_ERROR"


class InvalidArgumentError(PermissionCheckerError):
    """A required package name or permission identifier is missing."""

    code = "INVALID_ARGUMENT"


class PlatformNotSupportedError(PermissionCheckerError):
    """The configured registry backend is not available."""

    code = "PLATFORM_NOT_SUPPORTED"

    def __init__(self, backend: str):
        super().__init__(f"Permission checking is not supported for backend: {backend}")
        self.backend = backend
