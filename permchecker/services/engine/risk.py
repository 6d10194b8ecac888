"""Genuine-risk heuristic for individual permissions.

Narrows "dangerous" down to permissions that are granted and actually touch
user privacy or safety. The decision is an ordered rule table; the first
rule that returns a verdict decides:

    1. ``not_granted``        -> not a risk
    2. ``not_dangerous``      -> not a risk
    3. ``routine_operational``-> not a risk (checked before rule 4)
    4. ``sensitive``          -> risk
    5. ``default``            -> not a risk

An identifier matching both the routine allowlist and the sensitive keyword
set is therefore not a risk.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from permchecker.services.engine.models import PermissionRecord

DANGEROUS = "dangerous"

ROUTINE_OPERATIONAL_KEYWORDS: tuple[str, ...] = (
    "internet",
    "vibrate",
    "wake_lock",
    "access_network_state",
    "change_network_state",
    "post_notifications",
    "foreground_service",
    "receive_boot_completed",
    "schedule_exact_alarm",
)

SENSITIVE_KEYWORDS: tuple[str, ...] = (
    # Camera and microphone
    "camera",
    "record_audio",
    "microphone",
    # Location
    "access_fine_location",
    "access_coarse_location",
    "precise_location",
    "background_location",
    "location",
    # Contacts
    "read_contacts",
    "write_contacts",
    "contacts",
    # Messaging
    "read_sms",
    "send_sms",
    "receive_sms",
    "sms",
    # Telephony
    "read_call_log",
    "write_call_log",
    "call_log",
    "process_outgoing_calls",
    "read_phone_state",
    "phone",
    # Calendar
    "read_calendar",
    "write_calendar",
    "calendar",
    # Body and activity
    "body_sensors",
    "activity_recognition",
    "health",
    # Storage
    "read_external_storage",
    "write_external_storage",
    "manage_external_storage",
    "media_location",
    "storage",
)


def _contains_any(identifier: str, keywords: tuple[str, ...]) -> bool:
    lowered = identifier.lower()
    return any(keyword in lowered for keyword in keywords)


@dataclass(frozen=True)
class RiskRule:
    """A named rule; ``verdict`` applies when ``applies`` is true."""

    name: str
    applies: Callable[["PermissionRecord"], bool]
    verdict: bool


def is_routine_operational(identifier: str) -> bool:
    """Whether the permission is expected plumbing (network, alarms, ...)."""
    return _contains_any(identifier, ROUTINE_OPERATIONAL_KEYWORDS)


def is_sensitive(identifier: str) -> bool:
    """Whether the permission touches privacy-sensitive data or sensors."""
    return _contains_any(identifier, SENSITIVE_KEYWORDS)


RISK_RULES: tuple[RiskRule, ...] = (
    RiskRule("not_granted", lambda p: not p.granted, False),
    RiskRule("not_dangerous", lambda p: p.protection_level != DANGEROUS, False),
    RiskRule("routine_operational", lambda p: is_routine_operational(p.identifier), False),
    RiskRule("sensitive", lambda p: is_sensitive(p.identifier), True),
)

DEFAULT_RULE = "default"


def explain_risk(record: "PermissionRecord", rules: tuple[RiskRule, ...] = RISK_RULES) -> tuple[str, bool]:
    """Return ``(rule_name, verdict)`` for the first decisive rule."""
    for rule in rules:
        if rule.applies(record):
            return rule.name, rule.verdict
    return DEFAULT_RULE, False


def is_genuine_risk(record: "PermissionRecord") -> bool:
    """Whether a permission instance is a genuine privacy/safety risk."""
    return explain_risk(record)[1]
