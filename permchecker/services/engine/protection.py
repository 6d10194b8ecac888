"""Protection level resolution.

Looks a permission up in the package registry and maps the registry's raw
classification onto ``ProtectionLevel``. Android reports protection levels
either as an integer (base type in the low four bits, flags above) or as a
pipe-separated string such as ``dangerous|instant``. Lookup failures never
propagate: unregistered or custom permissions, unparseable values and
registry errors all resolve to ``ProtectionLevel.UNKNOWN``.
"""

import logging
from typing import Any

from permchecker.services.engine.models import ProtectionLevel

logger = logging.getLogger(__name__)

# PermissionInfo.PROTECTION_MASK_BASE
PROTECTION_MASK_BASE = 0xF

_BASE_LEVELS = {
    0: ProtectionLevel.NORMAL,
    1: ProtectionLevel.DANGEROUS,
    2: ProtectionLevel.SIGNATURE,
    3: ProtectionLevel.SIGNATURE_OR_SYSTEM,
}

_NAMED_LEVELS = {
    "normal": ProtectionLevel.NORMAL,
    "dangerous": ProtectionLevel.DANGEROUS,
    "signature": ProtectionLevel.SIGNATURE,
    "signatureorsystem": ProtectionLevel.SIGNATURE_OR_SYSTEM,
}


def parse_protection_level(raw: Any) -> ProtectionLevel:
    """Map a raw registry value onto a protection level.

    Args:
        raw: ``ProtectionLevel``, integer bitfield, string or ``None``.

    Returns:
        The matching level, or ``UNKNOWN`` when the value is not recognised.
    """
    if raw is None:
        return ProtectionLevel.UNKNOWN
    if isinstance(raw, ProtectionLevel):
        return raw
    if isinstance(raw, bool):
        return ProtectionLevel.UNKNOWN
    if isinstance(raw, int):
        return _BASE_LEVELS.get(raw & PROTECTION_MASK_BASE, ProtectionLevel.UNKNOWN)
    if isinstance(raw, str):
        value = raw.strip().lower()
        if not value:
            return ProtectionLevel.UNKNOWN
        if value.startswith("0x"):
            try:
                return parse_protection_level(int(value, 16))
            except ValueError:
                return ProtectionLevel.UNKNOWN
        if value.isdigit():
            return parse_protection_level(int(value))
        if value in _NAMED_LEVELS:
            return _NAMED_LEVELS[value]
        # "dangerous|instant", "signature|privileged|development"
        base = value.split("|", 1)[0]
        if base == "signature" and "privileged" in value.split("|"):
            return ProtectionLevel.SIGNATURE_OR_SYSTEM
        return _NAMED_LEVELS.get(base, ProtectionLevel.UNKNOWN)
    return ProtectionLevel.UNKNOWN


def resolve_protection_level(identifier: str, registry) -> ProtectionLevel:
    """Resolve the protection level of ``identifier`` through ``registry``."""
    try:
        raw = registry.get_permission_protection_level(identifier)
    except Exception as e:
        logger.warning(f"Protection level lookup failed for {identifier}: {e}")
        return ProtectionLevel.UNKNOWN
    return parse_protection_level(raw)


def resolve_description(identifier: str, registry) -> str | None:
    """Resolve a permission description; absent on any lookup failure."""
    try:
        description = registry.get_permission_description(identifier)
    except Exception as e:
        logger.warning(f"Permission description lookup failed for {identifier}: {e}")
        return None
    if description is None:
        return None
    description = str(description).strip()
    return description or None
