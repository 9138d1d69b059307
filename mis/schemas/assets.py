import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from .common import normalize_choice, empty_to_none


ASSET_TYPES = ("machine", "utility", "auxiliary")
ASSET_STATUSES = ("active", "under_amc", "inactive", "disposed")


class AssetFields(BaseModel):
    asset_location: Optional[str] = None
    bu_name: Optional[str] = None
    asset_type: Optional[str] = None
    manufacturer: Optional[str] = None
    model_number: Optional[str] = None
    model_name: Optional[str] = None
    serial_number: Optional[str] = None
    install_date: Optional[date] = None
    asset_status: Optional[str] = None
    warranty_expiry: Optional[date] = None
    qr_code: Optional[str] = None

    @field_validator("asset_type", mode="before")
    @classmethod
    def _asset_type(cls, v):
        return normalize_choice(empty_to_none(v), ASSET_TYPES, "asset_type")

    @field_validator("asset_status", mode="before")
    @classmethod
    def _asset_status(cls, v):
        return normalize_choice(empty_to_none(v), ASSET_STATUSES, "asset_status")

    @field_validator("asset_location", "bu_name", "manufacturer", "model_number", "model_name", "serial_number", "qr_code", mode="before")
    @classmethod
    def _strip(cls, v):
        return empty_to_none(v)


class AssetCreate(AssetFields):
    asset_code: str
    asset_name: str


class AssetUpdate(AssetFields):
    asset_code: Optional[str] = None
    asset_name: Optional[str] = None


class AssetResponse(AssetCreate):
    id: uuid.UUID
    asset_status: str
    created_by: Optional[uuid.UUID] = None
    updated_by: Optional[uuid.UUID] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
