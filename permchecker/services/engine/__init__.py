"""Permission analysis engine.

Turns raw ``(package, permission, grant flag)`` data into classified,
risk-flagged records, applies inclusion filters and produces ranked
aggregates. Everything in this package is pure and stateless.
"""

from permchecker.services.engine.models import (
    AppDescriptor,
    AppPermissionRecord,
    FilterConfig,
    PermissionRecord,
    ProtectionLevel,
    RequestedPermission,
    RiskRankingEntry,
    ScanAggregate,
)
from permchecker.services.engine.classifier import classify
from permchecker.services.engine.protection import resolve_protection_level
from permchecker.services.engine.risk import explain_risk, is_genuine_risk
from permchecker.services.engine.assembler import AppRecordAssembler
from permchecker.services.engine.aggregation import aggregate, rank_apps, score_app

__all__ = [
    "AppDescriptor",
    "AppPermissionRecord",
    "FilterConfig",
    "PermissionRecord",
    "ProtectionLevel",
    "RequestedPermission",
    "RiskRankingEntry",
    "ScanAggregate",
    "classify",
    "resolve_protection_level",
    "explain_risk",
    "is_genuine_risk",
    "AppRecordAssembler",
    "aggregate",
    "rank_apps",
    "score_app",
]
