"""
Preventive-maintenance scheduling rules.

"Overdue" is never written by a background job; it is derived on read from
the schedule's due date.
"""
from datetime import date, timedelta
from typing import Optional

from sqlalchemy import or_, and_

from ..models.models import PMSchedule
from ..schemas.pm import FREQUENCY_DAYS


def effective_status(schedule: PMSchedule, today: Optional[date] = None) -> str:
    today = today or date.today()
    if schedule.status == "scheduled" and schedule.next_pm_date is not None and schedule.next_pm_date < today:
        return "overdue"
    return schedule.status


def overdue_clause(today: Optional[date] = None):
    """SQL filter matching schedules whose effective status is overdue."""
    today = today or date.today()
    return or_(
        PMSchedule.status == "overdue",
        and_(PMSchedule.status == "scheduled", PMSchedule.next_pm_date < today),
    )


def resolve_interval_days(frequency_interval: Optional[str], interval_days: Optional[int]) -> Optional[int]:
    if interval_days:
        return interval_days
    if frequency_interval:
        return FREQUENCY_DAYS.get(frequency_interval)
    return None


def complete_schedule(schedule: PMSchedule, completed_on: Optional[date] = None) -> PMSchedule:
    """Record a completed PM and roll a recurring schedule forward.

    Recurring schedules go back to ``scheduled`` with the next due date one
    interval after the completion; one-off schedules stay ``completed``.
    """
    completed_on = completed_on or date.today()
    schedule.last_pm_date = completed_on
    days = resolve_interval_days(schedule.frequency_interval, schedule.interval_days)
    if days:
        schedule.next_pm_date = completed_on + timedelta(days=days)
        schedule.status = "scheduled"
    else:
        schedule.status = "completed"
    return schedule
