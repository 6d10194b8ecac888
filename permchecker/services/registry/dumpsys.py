"""Parsers for Android package manager shell output.

Handles two commands:
    - ``dumpsys package [name]``      -> per-package metadata and grants
    - ``pm list permissions -f``      -> permission protection levels

The parsers are best-effort and line based. They return plain dicts shaped
like ``RawPackageRecord`` / ``PermissionInfoRecord``; validation happens in
``permchecker.services.registry.models``.
"""

import re
from datetime import datetime
from typing import Any

_PACKAGE_HEADER_RE = re.compile(r"^\s*Package \[(?P<name>[^\]]+)\]")
_TOP_SECTION_RE = re.compile(r"^(?P<section>\S[^:]*):\s*$")
_VERSION_CODE_RE = re.compile(r"\bversionCode=(?P<code>\d+)")
_VERSION_NAME_RE = re.compile(r"^\s*versionName=(?P<name>.*)$")
_FLAGS_RE = re.compile(r"^\s*(?:pkgFlags|flags)=\[(?P<flags>[^\]]*)\]")
_FIRST_INSTALL_RE = re.compile(r"^\s*firstInstallTime=(?P<time>.+)$")
_INSTALLER_RE = re.compile(r"^\s*installerPackageName=(?P<installer>\S+)")
_USER_RE = re.compile(r"^\s*User\s+(?P<user_id>\d+)\s*:")
_PERM_SECTION_RE = re.compile(
    r"^\s*(?P<section>requested permissions|install permissions|runtime permissions|"
    r"granted\s*permissions)\s*:\s*$",
    flags=re.IGNORECASE,
)
_PERM_GRANTED_RE = re.compile(
    r"^\s*(?P<perm>[A-Za-z0-9_.]+)\s*:\s*granted=(?P<granted>true|false)\b",
    flags=re.IGNORECASE,
)
_PERM_NAME_RE = re.compile(r"^\s*(?P<perm>[A-Za-z0-9_.$]+)\s*(?::.*)?$")

DUMPSYS_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def _indent(line: str) -> int:
    return len(line) - len(line.lstrip(" "))


def _parse_install_time(value: str) -> datetime | None:
    try:
        return datetime.strptime(value.strip(), DUMPSYS_TIME_FORMAT)
    except ValueError:
        return None


def _new_block(package_name: str) -> dict[str, Any]:
    return {
        "package_name": package_name,
        "version_name": None,
        "version_code": None,
        "flags": [],
        "install_time": None,
        "installer_source": None,
        "requested": [],
        "install": {},
        "runtime": {},
        "granted_list": set(),
    }


def _finish_block(block: dict[str, Any]) -> dict[str, Any]:
    requested: list[str] = block["requested"]
    if not requested:
        # Old releases omit "requested permissions"; fall back to what was granted
        for source in (block["install"], block["runtime"], sorted(block["granted_list"])):
            for perm in source:
                if perm not in requested:
                    requested.append(perm)

    granted = [
        bool(
            block["install"].get(perm)
            or block["runtime"].get(perm)
            or perm in block["granted_list"]
        )
        for perm in requested
    ]
    flags = block["flags"]
    return {
        "package_name": block["package_name"],
        "version_name": block["version_name"],
        "version_code": block["version_code"],
        "is_system": "SYSTEM" in flags,
        "is_updated_system": "UPDATED_SYSTEM_APP" in flags,
        "installer_source": block["installer_source"],
        "install_time": block["install_time"],
        "requested_permissions": list(requested),
        "requested_permissions_granted": granted,
    }


def parse_dumpsys_packages(text: str, *, user_id: int = 0) -> list[dict[str, Any]]:
    """Parse the ``Packages:`` section of ``dumpsys package`` output.

    Hidden system packages (the factory copies of updated system apps) are
    skipped, so every package appears at most once.

    Args:
        text: Raw ``dumpsys package`` output.
        user_id: Android user whose runtime grants are reported.

    Returns:
        List of raw record dicts, in dumpsys order.
    """
    records: list[dict[str, Any]] = []
    block: dict[str, Any] | None = None
    in_packages = False
    section: str | None = None
    section_indent = 0
    current_user: int | None = None

    for line in (text or "").replace("\r", "").splitlines():
        if not line.strip():
            continue

        top = _TOP_SECTION_RE.match(line)
        if top:
            if block is not None:
                records.append(_finish_block(block))
                block = None
            in_packages = top.group("section").strip().lower() == "packages"
            section = None
            continue

        if not in_packages:
            continue

        header = _PACKAGE_HEADER_RE.match(line)
        if header:
            if block is not None:
                records.append(_finish_block(block))
            block = _new_block(header.group("name").strip())
            section = None
            current_user = None
            continue

        if block is None:
            continue

        indent = _indent(line)
        if section is not None and indent <= section_indent:
            section = None

        user_match = _USER_RE.match(line)
        if user_match:
            current_user = int(user_match.group("user_id"))
            section = None
            continue

        perm_section = _PERM_SECTION_RE.match(line)
        if perm_section:
            name = re.sub(r"\s+", " ", perm_section.group("section").strip().lower())
            section = {
                "requested permissions": "requested",
                "install permissions": "install",
                "runtime permissions": "runtime",
            }.get(name, "granted_list")
            section_indent = indent
            continue

        if section in ("install", "runtime"):
            m = _PERM_GRANTED_RE.match(line)
            if m:
                granted = m.group("granted").lower() == "true"
                if section == "install":
                    block["install"][m.group("perm")] = granted
                elif current_user is None or current_user == user_id:
                    block["runtime"][m.group("perm")] = granted
            continue

        if section in ("requested", "granted_list"):
            m = _PERM_NAME_RE.match(line)
            if m:
                perm = m.group("perm")
                if section == "requested":
                    if perm not in block["requested"]:
                        block["requested"].append(perm)
                else:
                    block["granted_list"].add(perm)
            continue

        m = _VERSION_CODE_RE.search(line)
        if m and line.strip().startswith("versionCode="):
            block["version_code"] = int(m.group("code"))
            continue
        m = _VERSION_NAME_RE.match(line)
        if m:
            value = m.group("name").strip()
            block["version_name"] = value if value and value != "null" else None
            continue
        m = _FLAGS_RE.match(line)
        if m:
            block["flags"] = m.group("flags").split()
            continue
        m = _FIRST_INSTALL_RE.match(line)
        if m:
            block["install_time"] = _parse_install_time(m.group("time"))
            continue
        m = _INSTALLER_RE.match(line)
        if m:
            block["installer_source"] = m.group("installer")
            continue

    if block is not None:
        records.append(_finish_block(block))
    return records


def parse_permission_listing(text: str) -> dict[str, dict[str, Any]]:
    """Parse ``pm list permissions -f`` output.

    Blocks look like::

        + permission:android.permission.CAMERA
          package:android
          label:take pictures and videos
          description:This app can take pictures and record videos ...
          protectionLevel:dangerous|instant

    Returns:
        Mapping of permission identifier to ``PermissionInfoRecord``-shaped dicts.
    """
    permissions: dict[str, dict[str, Any]] = {}
    current: dict[str, Any] | None = None

    for line in (text or "").replace("\r", "").splitlines():
        stripped = line.strip()
        if not stripped:
            continue
        if stripped.startswith("+ permission:") or stripped.startswith("permission:"):
            identifier = stripped.split("permission:", 1)[1].strip()
            current = {"protection_level": None, "description": None}
            permissions[identifier] = current
            continue
        if stripped.startswith("+ group:") or stripped.startswith("group:"):
            current = None
            continue
        if current is None or ":" not in stripped:
            continue
        key, value = stripped.split(":", 1)
        value = value.strip()
        if value in ("", "null"):
            value = None
        if key == "protectionLevel":
            current["protection_level"] = value
        elif key == "description":
            current["description"] = value

    return permissions
