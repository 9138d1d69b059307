import uuid
from datetime import datetime, timezone
from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, Query
from slugify import slugify
from sqlalchemy.orm import Session

from ..db import get_db
from ..auth.security import require_permissions
from ..models.models import Asset, User
from ..schemas.assets import AssetCreate, AssetUpdate, AssetResponse, ASSET_STATUSES, ASSET_TYPES
from ..schemas.common import normalize_choice
from ..services.records import provided_fields, apply_changes
from ..errors import ResourceNotFound, ValidationFailed


router = APIRouter(prefix="/api", tags=["assets"])
log = structlog.get_logger()


def default_qr_code(asset_code: str) -> str:
    return "QR-" + slugify(asset_code, separator="-").upper()


def _filter_choice(value: Optional[str], allowed, field: str) -> Optional[str]:
    try:
        return normalize_choice(value, allowed, field)
    except ValueError as e:
        raise ValidationFailed(field, str(e), allowed)


def _get_asset_or_404(db: Session, asset_id: uuid.UUID) -> Asset:
    row = db.query(Asset).filter(Asset.id == asset_id).first()
    if not row:
        raise ResourceNotFound("Asset", asset_id)
    return row


@router.get("/assets", response_model=List[AssetResponse])
def list_assets(
    status: Optional[str] = None,
    asset_type: Optional[str] = Query(None, alias="type"),
    q: Optional[str] = None,
    db: Session = Depends(get_db),
    _=Depends(require_permissions("view_assets")),
):
    query = db.query(Asset)
    if status:
        query = query.filter(Asset.asset_status == _filter_choice(status, ASSET_STATUSES, "status"))
    if asset_type:
        query = query.filter(Asset.asset_type == _filter_choice(asset_type, ASSET_TYPES, "type"))
    if q:
        like = f"%{q}%"
        query = query.filter((Asset.asset_code.ilike(like)) | (Asset.asset_name.ilike(like)) | (Asset.asset_location.ilike(like)))
    return query.order_by(Asset.created_at.desc()).all()


@router.get("/assets/{asset_id}", response_model=AssetResponse)
def get_asset(asset_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_permissions("view_assets"))):
    return _get_asset_or_404(db, asset_id)


@router.post("/assets", response_model=AssetResponse, status_code=201)
def create_asset(
    payload: AssetCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_permissions("create_assets")),
):
    data = payload.model_dump()
    data["asset_status"] = data.get("asset_status") or "active"
    data["qr_code"] = data.get("qr_code") or default_qr_code(payload.asset_code)
    row = Asset(**data, created_by=user.id)
    db.add(row)
    db.commit()
    db.refresh(row)
    log.info("asset_created", asset_id=str(row.id), asset_code=row.asset_code, by=str(user.id))
    return row


@router.put("/assets/{asset_id}", response_model=AssetResponse)
def update_asset(
    asset_id: uuid.UUID,
    payload: AssetUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_permissions("update_assets")),
):
    row = _get_asset_or_404(db, asset_id)
    diff = apply_changes(row, provided_fields(payload))
    row.updated_at = datetime.now(timezone.utc)
    row.updated_by = user.id
    db.commit()
    db.refresh(row)
    if diff:
        log.info("asset_updated", asset_id=str(row.id), fields=sorted(diff), by=str(user.id))
    return row


@router.delete("/assets/{asset_id}")
def delete_asset(asset_id: uuid.UUID, db: Session = Depends(get_db), admin: User = Depends(require_permissions("delete_assets"))):
    row = _get_asset_or_404(db, asset_id)
    db.delete(row)
    db.commit()
    log.info("asset_deleted", asset_id=str(asset_id), by=str(admin.id))
    return {"message": "Asset deleted successfully"}


@router.get("/qr/{qr_code}", response_model=AssetResponse)
def get_asset_by_qr(qr_code: str, db: Session = Depends(get_db), _=Depends(require_permissions("view_assets"))):
    row = db.query(Asset).filter(Asset.qr_code == qr_code).first()
    if not row:
        raise ResourceNotFound("Asset", qr_code)
    return row
