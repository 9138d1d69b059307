import uuid
from datetime import date, datetime, time
from typing import Optional

from pydantic import BaseModel, field_validator

from .common import normalize_choice, empty_to_none


# Lifecycle order; a breakdown only ever moves forward along this list
BD_STATUSES = ("open", "acknowledged", "in_progress", "resolved", "closed")
BD_STATUS_ALIASES = {"ack": "acknowledged", "in-progress": "in_progress"}


def _shift(v):
    v = empty_to_none(v)
    return v.upper() if isinstance(v, str) else v


class BreakdownFields(BaseModel):
    shift_id: Optional[str] = None
    entry_date: Optional[date] = None
    entry_time: Optional[time] = None
    asset_location: Optional[str] = None
    bu_name: Optional[str] = None
    operator_name: Optional[str] = None
    key_issue: Optional[str] = None
    nature_of_complaint: Optional[str] = None
    note: Optional[str] = None

    @field_validator("shift_id", mode="before")
    @classmethod
    def _shift_upper(cls, v):
        return _shift(v)


class BreakdownCreate(BreakdownFields):
    bd_code: Optional[str] = None
    asset_id: uuid.UUID


class BreakdownUpdate(BreakdownFields):
    asset_id: Optional[uuid.UUID] = None
    bd_status: Optional[str] = None

    @field_validator("bd_status", mode="before")
    @classmethod
    def _status(cls, v):
        return normalize_choice(empty_to_none(v), BD_STATUSES, "bd_status", aliases=BD_STATUS_ALIASES)


class EngineerEntryInput(BaseModel):
    action_taken: Optional[str] = None
    engineer_findings: Optional[str] = None
    job_start: Optional[datetime] = None
    job_completion_date: Optional[datetime] = None
    responsible_person: Optional[str] = None
    spare_usage_id: Optional[uuid.UUID] = None


class EngineerEntryResponse(EngineerEntryInput):
    id: uuid.UUID
    bd_operator_id: uuid.UUID
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BreakdownResponse(BreakdownFields):
    id: uuid.UUID
    bd_code: str
    asset_id: Optional[uuid.UUID] = None
    asset_name: Optional[str] = None
    bd_status: str
    reported_by: Optional[uuid.UUID] = None
    created_at: Optional[datetime] = None
    engineer: Optional[EngineerEntryResponse] = None
