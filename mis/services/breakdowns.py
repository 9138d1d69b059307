"""
Breakdown lifecycle rules.
"""
import uuid
from datetime import date, datetime
from typing import Optional

from ..errors import ValidationFailed
from ..schemas.breakdowns import BD_STATUSES


# Only these roles may move a breakdown through its lifecycle
STATUS_CHANGER_ROLES = ("engineer", "admin")


def generate_bd_code(entry_date: Optional[date] = None) -> str:
    entry_date = entry_date or date.today()
    return f"BD-{entry_date:%Y%m%d}-{uuid.uuid4().hex[:6].upper()}"


def check_transition(current: str, new: str) -> None:
    """Raise unless ``new`` is the same as or later than ``current``."""
    if new == current:
        return
    if BD_STATUSES.index(new) < BD_STATUSES.index(current):
        allowed = list(BD_STATUSES[BD_STATUSES.index(current):])
        raise ValidationFailed(
            "bd_status",
            f"Cannot move breakdown from {current} back to {new}. Must be one of: " + ", ".join(allowed),
            allowed,
        )


def naive(dt: Optional[datetime]) -> Optional[datetime]:
    """Drop tzinfo so stored and submitted stamps compare on the same footing."""
    if dt is None:
        return None
    return dt.replace(tzinfo=None) if dt.tzinfo else dt


def check_repair_window(job_start: Optional[datetime], job_completion_date: Optional[datetime]) -> None:
    start, end = naive(job_start), naive(job_completion_date)
    if start and end and end < start:
        raise ValidationFailed("job_completion_date", "job_completion_date must not be before job_start")
