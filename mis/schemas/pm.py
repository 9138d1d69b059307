import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .common import normalize_choice, empty_to_none


PM_STATUSES = ("scheduled", "completed", "overdue")

# Days per recurrence label, used when interval_days is not given explicitly
FREQUENCY_DAYS = {
    "daily": 1,
    "weekly": 7,
    "monthly": 30,
    "quarterly": 91,
    "half_yearly": 182,
    "yearly": 365,
}


class PMFields(BaseModel):
    frequency_interval: Optional[str] = None
    interval_days: Optional[int] = Field(default=None, gt=0)
    last_pm_date: Optional[date] = None
    next_pm_date: Optional[date] = None
    checklist_ref: Optional[str] = None
    responsible_person: Optional[str] = None
    status: Optional[str] = None

    @field_validator("frequency_interval", mode="before")
    @classmethod
    def _frequency(cls, v):
        return normalize_choice(empty_to_none(v), FREQUENCY_DAYS, "frequency_interval", aliases={"half-yearly": "half_yearly"})

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, v):
        return normalize_choice(empty_to_none(v), PM_STATUSES, "status")


class PMCreate(PMFields):
    asset_id: uuid.UUID
    pm_title: str


class PMUpdate(PMFields):
    pm_title: Optional[str] = None


class PMComplete(BaseModel):
    completed_on: Optional[date] = None


class PMResponse(BaseModel):
    id: uuid.UUID
    asset_id: Optional[uuid.UUID] = None
    pm_title: str
    frequency_interval: Optional[str] = None
    interval_days: Optional[int] = None
    last_pm_date: Optional[date] = None
    next_pm_date: Optional[date] = None
    checklist_ref: Optional[str] = None
    responsible_person: Optional[str] = None
    status: str
    effective_status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
