"""
Maintenance KPIs computed on read from breakdown records.

MTTR is the mean engineer repair time (job start to completion). MTBF is the
mean gap between consecutive breakdowns reported against the same asset.
"""
from collections import defaultdict
from dataclasses import dataclass, asdict
from datetime import date, datetime, time
from typing import Dict, List, Optional

from sqlalchemy.orm import Session, joinedload

from ..models.models import BreakdownOperatorEntry
from .breakdowns import naive


@dataclass
class KPIMetrics:
    breakdown_count: int
    repaired_count: int
    mttr_hours: Optional[float]
    mtbf_hours: Optional[float]
    total_downtime_hours: float

    def to_dict(self) -> dict:
        return asdict(self)


def _hours(delta) -> float:
    return delta.total_seconds() / 3600.0


def _reported_at(entry: BreakdownOperatorEntry) -> datetime:
    return datetime.combine(entry.entry_date, entry.entry_time or time.min)


def _mean(values: List[float]) -> Optional[float]:
    if not values:
        return None
    return round(sum(values) / len(values), 2)


def compute_kpis(entries: List[BreakdownOperatorEntry]) -> KPIMetrics:
    repair_hours = []
    for e in entries:
        eng = e.engineer_entry
        if eng and eng.job_start and eng.job_completion_date:
            duration = _hours(naive(eng.job_completion_date) - naive(eng.job_start))
            if duration >= 0:
                repair_hours.append(duration)

    by_asset: Dict[object, List[datetime]] = defaultdict(list)
    for e in entries:
        if e.asset_id is not None:
            by_asset[e.asset_id].append(_reported_at(e))
    gaps = []
    for stamps in by_asset.values():
        stamps.sort()
        gaps.extend(_hours(b - a) for a, b in zip(stamps, stamps[1:]))

    return KPIMetrics(
        breakdown_count=len(entries),
        repaired_count=len(repair_hours),
        mttr_hours=_mean(repair_hours),
        mtbf_hours=_mean(gaps),
        total_downtime_hours=round(sum(repair_hours), 2),
    )


def load_kpis(db: Session, since: Optional[date] = None, until: Optional[date] = None) -> KPIMetrics:
    query = db.query(BreakdownOperatorEntry).options(joinedload(BreakdownOperatorEntry.engineer_entry))
    if since:
        query = query.filter(BreakdownOperatorEntry.entry_date >= since)
    if until:
        query = query.filter(BreakdownOperatorEntry.entry_date <= until)
    return compute_kpis(query.all())
