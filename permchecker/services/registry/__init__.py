"""Package registry backends.

- ``AdbPackageRegistry`` reads a live device through ``adb shell``.
- ``SnapshotPackageRegistry`` serves a captured JSON snapshot.
"""

from permchecker.services.registry.base import PackageRegistry
from permchecker.services.registry.adb import AdbPackageRegistry
from permchecker.services.registry.snapshot import SnapshotPackageRegistry

__all__ = [
    "PackageRegistry",
    "AdbPackageRegistry",
    "SnapshotPackageRegistry",
]
