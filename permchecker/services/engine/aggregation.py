"""Scan-wide aggregation and risk ranking.

A genuinely risky permission weighs three
times as much as a granted normal-level permission. Apps scoring zero are
left out of the ranking; ties keep their input order.
"""

from collections.abc import Iterable

from permchecker.errors import InvalidArgumentError
from permchecker.services.engine.models import (
    AppPermissionRecord,
    RiskRankingEntry,
    ScanAggregate,
)

DEFAULT_TOP_N = 5
GENUINE_RISK_WEIGHT = 3
NORMAL_GRANTED_WEIGHT = 1


def score_app(record: AppPermissionRecord) -> RiskRankingEntry:
    """Score a single app."""
    dangerous = sum(1 for p in record.permissions if p.is_genuine_risk)
    normal = sum(1 for p in record.permissions if p.is_normal and p.granted)
    return RiskRankingEntry(
        record=record,
        score=GENUINE_RISK_WEIGHT * dangerous + NORMAL_GRANTED_WEIGHT * normal,
        dangerous_granted_count=dangerous,
        normal_granted_count=normal,
    )


def rank_apps(records: Iterable[AppPermissionRecord], top_n: int = DEFAULT_TOP_N) -> list[RiskRankingEntry]:
    """Return the ``top_n`` highest-scoring apps, highest first.

    Raises:
        InvalidArgumentError: If ``top_n`` is negative.
    """
    if top_n < 0:
        raise InvalidArgumentError(f"top_n must be >= 0, got {top_n}")
    scored = [entry for entry in (score_app(r) for r in records) if entry.score > 0]
    # list.sort is stable, so equal scores keep registry order
    scored.sort(key=lambda entry: entry.score, reverse=True)
    return scored[:top_n]


def aggregate(records: Iterable[AppPermissionRecord], top_n: int = DEFAULT_TOP_N) -> ScanAggregate:
    """Fold assembled records into totals and a risk ranking.

    Args:
        records: Assembled records, in registry order.
        top_n: Number of ranking entries to keep.

    Returns:
        A fresh ``ScanAggregate``.
    """
    records = list(records)
    return ScanAggregate(
        total_apps=len(records),
        total_permissions=sum(len(r.permissions) for r in records),
        total_genuine_risk=sum(1 for r in records for p in r.permissions if p.is_genuine_risk),
        top_risk_apps=tuple(rank_apps(records, top_n=top_n)),
    )
