import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .common import normalize_choice, empty_to_none


DIRECTIONS = ("issue", "return")
PM_BD_TYPES = ("pm", "bd")


class SpareFields(BaseModel):
    part_no: Optional[str] = None
    min_level: Optional[int] = Field(default=None, ge=0)
    reorder_level: Optional[int] = Field(default=None, ge=0)
    unit_cost: Optional[float] = Field(default=None, ge=0)
    supplier: Optional[str] = None
    spare_location: Optional[str] = None
    bu_name: Optional[str] = None

    @field_validator("part_no", "supplier", "spare_location", "bu_name", mode="before")
    @classmethod
    def _strip(cls, v):
        return empty_to_none(v)


class SpareCreate(SpareFields):
    part_code: str
    part_name: str
    current_stock: int = Field(default=0, ge=0)


class SpareUpdate(SpareFields):
    # no current_stock: stock only moves through transactions
    part_code: Optional[str] = None
    part_name: Optional[str] = None


class SpareResponse(BaseModel):
    id: uuid.UUID
    part_code: str
    part_name: str
    part_no: Optional[str] = None
    min_level: int = 0
    reorder_level: int = 0
    current_stock: int = 0
    unit_cost: float = 0
    supplier: Optional[str] = None
    spare_location: Optional[str] = None
    bu_name: Optional[str] = None
    last_updated: Optional[datetime] = None
    last_updated_by: Optional[uuid.UUID] = None

    class Config:
        from_attributes = True


class StockTransactionRequest(BaseModel):
    part_id: uuid.UUID
    quantity: int = Field(gt=0)
    direction: str
    asset_id: Optional[uuid.UUID] = None
    pm_bd_id: Optional[uuid.UUID] = None
    pm_bd_type: Optional[str] = None
    purpose: Optional[str] = None

    @field_validator("direction", mode="before")
    @classmethod
    def _direction(cls, v):
        return normalize_choice(v, DIRECTIONS, "direction")

    @field_validator("pm_bd_type", mode="before")
    @classmethod
    def _pm_bd_type(cls, v):
        return normalize_choice(empty_to_none(v), PM_BD_TYPES, "pm_bd_type")


class SpareTransactionResponse(BaseModel):
    id: uuid.UUID
    part_id: uuid.UUID
    part_code: str
    quantity: int
    direction: str
    asset_id: Optional[uuid.UUID] = None
    pm_bd_id: Optional[uuid.UUID] = None
    pm_bd_type: Optional[str] = None
    purpose: Optional[str] = None
    balance_after: int
    created_by: Optional[uuid.UUID] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class StockTransactionResult(BaseModel):
    transaction: SpareTransactionResponse
    inventory: SpareResponse
