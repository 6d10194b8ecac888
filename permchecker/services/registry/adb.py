"""ADB-backed package registry.

Reads installed-package metadata and permission grants from an Android
device through ``adb shell``:

    - ``dumpsys package packages``   enumerates every package with grants
    - ``dumpsys package <name>``     looks up a single package
    - ``pm list permissions -f``     provides protection levels/descriptions

Security:
    Device serials and package names are validated against strict patterns
    before being placed in an argument list. Subprocesses are always run
    with explicit argument lists (no ``shell=True``).

Blocking:
    Every call here blocks on a subprocess. Callers running inside an event
    loop dispatch scans through ``ScanDispatcher`` rather than calling this
    class directly from a coroutine.
"""

import logging
import re
import subprocess
from collections.abc import Callable
from typing import Any

from permchecker.errors import InvalidArgumentError, PackageNotFoundError, RegistryError
from permchecker.services.cache import TTLCache
from permchecker.services.engine.models import AppDescriptor
from permchecker.services.registry.base import PackageRegistry
from permchecker.services.registry.dumpsys import (
    parse_dumpsys_packages,
    parse_permission_listing,
)
from permchecker.services.registry.models import (
    PermissionInfoRecord,
    validate_package_record,
    validate_package_records,
)

logger = logging.getLogger(__name__)

# Regex pattern for valid device IDs (alphanumeric, dots, colons, hyphens, underscores)
VALID_DEVICE_ID_PATTERN = re.compile(r'^[a-zA-Z0-9.:_-]+$')
VALID_PACKAGE_NAME_PATTERN = re.compile(r'^[a-zA-Z0-9._]+$')

PERMISSIONS_CACHE_KEY = "permissions"


def _validate_device_id(device_id: str) -> str:
    """Validate device ID to prevent command injection.

    Args:
        device_id: Device identifier string

    Returns:
        Validated device ID

    Raises:
        InvalidArgumentError: If device ID is too long or contains invalid characters
    """
    if not device_id or len(device_id) > 128:
        raise InvalidArgumentError("Invalid device ID length")
    if not VALID_DEVICE_ID_PATTERN.match(device_id):
        raise InvalidArgumentError(f"Invalid device ID format: {device_id}")
    return device_id


def validate_package_name(package_name: str) -> str:
    """Validate a package name before it reaches a subprocess.

    Raises:
        InvalidArgumentError: If the name is empty or contains invalid characters
    """
    if not package_name or not package_name.strip():
        raise InvalidArgumentError("Package name is required")
    package_name = package_name.strip()
    if len(package_name) > 255 or not VALID_PACKAGE_NAME_PATTERN.match(package_name):
        raise InvalidArgumentError(f"Invalid package name format: {package_name}")
    return package_name


class AdbPackageRegistry(PackageRegistry):
    """Package registry reading from a device over ADB.

    Permission metadata is read once per ``cache`` TTL window; package data is
    always read fresh so that every scan reflects the device's current state.
    Installers seen in the most recent package read answer
    ``get_installer_package_name`` without another ``dumpsys`` call.
    """

    name = "adb"

    def __init__(
        self,
        adb_path: str = "adb",
        serial: str | None = None,
        timeout: float = 30,
        cache: TTLCache | None = None,
        user_id: int = 0,
        runner: Callable[..., Any] = subprocess.run,
    ):
        """Initialize the registry.

        Args:
            adb_path: Path to the ``adb`` binary.
            serial: Device serial passed as ``-s``; ``None`` uses the only device.
            timeout: Per-command timeout in seconds.
            cache: Cache for the permission table; a private one is created if omitted.
            user_id: Android user whose runtime grants are reported.
            runner: ``subprocess.run`` compatible callable.
        """
        self.adb_path = adb_path
        self.serial = _validate_device_id(serial) if serial else None
        self.timeout = timeout
        self.cache = cache if cache is not None else TTLCache()
        self.user_id = user_id
        self._run = runner
        self._installers: dict[str, str | None] = {}

    def _adb_command(self, *args: str) -> list[str]:
        command = [self.adb_path]
        if self.serial:
            command += ["-s", self.serial]
        command += ["shell", *args]
        return command

    def _shell(self, *args: str) -> str:
        """Run ``adb shell`` with ``args`` and return stdout.

        Raises:
            RegistryError: If adb is missing, times out or exits non-zero.
        """
        command = self._adb_command(*args)
        try:
            result = self._run(
                command,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            logger.error(f"ADB command timed out: {' '.join(args)}")
            raise RegistryError(f"ADB command timed out after {self.timeout}s: {' '.join(args)}")
        except FileNotFoundError:
            logger.error("ADB not found in PATH")
            raise RegistryError(f"ADB binary not found: {self.adb_path}")
        except OSError as e:
            raise RegistryError(f"Failed to run ADB: {e}")

        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            raise RegistryError(f"ADB command failed ({result.returncode}): {stderr or ' '.join(args)}")
        return result.stdout or ""

    def is_available(self) -> bool:
        """Check whether a device answers ``adb shell echo``."""
        try:
            return self._shell("echo", "ok").strip() == "ok"
        except RegistryError as e:
            logger.warning(f"ADB registry unavailable: {e}")
            return False

    def list_installed_packages(self) -> list[AppDescriptor]:
        """Enumerate installed packages from a single ``dumpsys package packages`` call.

        Records that fail validation are logged and skipped.
        """
        raw_records = parse_dumpsys_packages(
            self._shell("dumpsys", "package", "packages"),
            user_id=self.user_id,
        )
        if not raw_records:
            raise RegistryError("dumpsys returned no packages")

        descriptors, _rejected = validate_package_records(raw_records)
        self._installers = {d.package_name: d.installer_source for d in descriptors}
        return descriptors

    def get_package_info(self, package_name: str) -> AppDescriptor:
        """Look up one package via ``dumpsys package <name>``.

        Raises:
            InvalidArgumentError: If the package name is malformed.
            PackageNotFoundError: If the package is not installed.
            RegistryError: If the device cannot be queried or the record is malformed.
        """
        package_name = validate_package_name(package_name)
        raw_records = parse_dumpsys_packages(
            self._shell("dumpsys", "package", package_name),
            user_id=self.user_id,
        )
        for raw in raw_records:
            if raw["package_name"] == package_name:
                outcome = validate_package_record(raw)
                if not outcome.ok:
                    raise RegistryError(f"Malformed registry record for {package_name}: {outcome.error}")
                self._installers[package_name] = outcome.descriptor.installer_source
                return outcome.descriptor
        raise PackageNotFoundError(package_name)

    def get_installer_package_name(self, package_name: str) -> str | None:
        # None is a real answer here (sideloaded or preinstalled).
        if package_name in self._installers:
            return self._installers[package_name]
        return self.get_package_info(package_name).installer_source

    def _permission_table(self) -> dict[str, PermissionInfoRecord]:
        def load() -> dict[str, PermissionInfoRecord]:
            parsed = parse_permission_listing(self._shell("pm", "list", "permissions", "-f"))
            logger.info(f"Loaded {len(parsed)} permission definitions from device")
            return {
                identifier: PermissionInfoRecord.model_validate(info)
                for identifier, info in parsed.items()
            }

        return self.cache.get_or_load(PERMISSIONS_CACHE_KEY, load)

    def get_permission_protection_level(self, identifier: str) -> Any:
        info = self._permission_table().get(identifier)
        return info.protection_level if info else None

    def get_permission_description(self, identifier: str) -> str | None:
        info = self._permission_table().get(identifier)
        return info.description if info else None
