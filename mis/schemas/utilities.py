import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from .common import normalize_choice, empty_to_none


UTILITY_TYPES = ("power", "water", "air", "gas")
UTILITY_TYPE_ALIASES = {"compressed_air": "air", "electricity": "power"}


def normalize_utility_type(v):
    return normalize_choice(empty_to_none(v), UTILITY_TYPES, "utility_type", aliases=UTILITY_TYPE_ALIASES)


class UtilityLogCreate(BaseModel):
    utility_type: str
    meter_point: str
    reading_value: float
    reading_unit: Optional[str] = None
    timestamp: Optional[datetime] = None
    asset_id: Optional[uuid.UUID] = None
    business_unit_id: Optional[str] = None
    location_id: Optional[str] = None
    remarks: Optional[str] = None

    @field_validator("utility_type", mode="before")
    @classmethod
    def _utility_type(cls, v):
        return normalize_utility_type(v)


class UtilityLogResponse(UtilityLogCreate):
    id: uuid.UUID
    timestamp: datetime
    recorded_by: Optional[uuid.UUID] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
