import uuid
from datetime import datetime, timezone
from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from ..auth.security import require_permissions
from ..errors import Conflict, ResourceNotFound
from ..models.models import SparePart, SpareTransaction, User
from ..schemas.spares import (
    SpareCreate,
    SpareUpdate,
    SpareResponse,
    SpareTransactionResponse,
    StockTransactionRequest,
    StockTransactionResult,
)
from ..services.inventory import apply_stock_transaction
from ..services.records import provided_fields, apply_changes


router = APIRouter(prefix="/api/spares", tags=["spares"])
log = structlog.get_logger()


def _get_part_or_404(db: Session, part_id: uuid.UUID) -> SparePart:
    row = db.query(SparePart).filter(SparePart.id == part_id).first()
    if not row:
        raise ResourceNotFound("Spare part", part_id)
    return row


@router.get("", response_model=List[SpareResponse])
def list_spares(q: Optional[str] = None, db: Session = Depends(get_db), _=Depends(require_permissions("view_spares"))):
    query = db.query(SparePart)
    if q:
        like = f"%{q}%"
        query = query.filter((SparePart.part_code.ilike(like)) | (SparePart.part_name.ilike(like)))
    return query.order_by(SparePart.part_name.asc()).all()


@router.get("/low-stock", response_model=List[SpareResponse])
def low_stock_spares(db: Session = Depends(get_db), _=Depends(require_permissions("view_spares"))):
    return (
        db.query(SparePart)
        .filter(SparePart.current_stock <= SparePart.reorder_level)
        .order_by(SparePart.part_name.asc())
        .all()
    )


@router.get("/transactions", response_model=List[SpareTransactionResponse])
def list_transactions(
    part_id: Optional[uuid.UUID] = None,
    limit: int = 100,
    db: Session = Depends(get_db),
    _=Depends(require_permissions("view_spares")),
):
    limit = min(max(1, limit), 500)
    query = db.query(SpareTransaction)
    if part_id:
        query = query.filter(SpareTransaction.part_id == part_id)
    return query.order_by(SpareTransaction.created_at.desc()).limit(limit).all()


@router.post("/transaction", response_model=StockTransactionResult, status_code=201)
def post_transaction(
    payload: StockTransactionRequest,
    db: Session = Depends(get_db),
    user: User = Depends(require_permissions("issue_spares")),
):
    movement = apply_stock_transaction(
        db,
        part_id=payload.part_id,
        direction=payload.direction,
        quantity=payload.quantity,
        actor_id=user.id,
        asset_id=payload.asset_id,
        pm_bd_id=payload.pm_bd_id,
        pm_bd_type=payload.pm_bd_type,
        purpose=payload.purpose,
    )
    return StockTransactionResult(
        transaction=SpareTransactionResponse.model_validate(movement.transaction),
        inventory=SpareResponse.model_validate(movement.part),
    )


@router.get("/{part_id}", response_model=SpareResponse)
def get_spare(part_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_permissions("view_spares"))):
    return _get_part_or_404(db, part_id)


@router.post("", response_model=SpareResponse, status_code=201)
def create_spare(
    payload: SpareCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_permissions("create_spares")),
):
    data = payload.model_dump()
    data["min_level"] = data.get("min_level") or 0
    data["reorder_level"] = data["reorder_level"] if data.get("reorder_level") is not None else 1
    data["unit_cost"] = data.get("unit_cost") or 0
    row = SparePart(**data, last_updated_by=user.id)
    db.add(row)
    db.commit()
    db.refresh(row)
    log.info("spare_created", part_id=str(row.id), part_code=row.part_code, by=str(user.id))
    return row


@router.put("/{part_id}", response_model=SpareResponse)
def update_spare(
    part_id: uuid.UUID,
    payload: SpareUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_permissions("update_spares")),
):
    row = _get_part_or_404(db, part_id)
    diff = apply_changes(row, provided_fields(payload))
    if diff:
        row.last_updated = datetime.now(timezone.utc)
        row.last_updated_by = user.id
        db.commit()
        db.refresh(row)
        log.info("spare_updated", part_id=str(row.id), fields=sorted(diff), by=str(user.id))
    return row


@router.delete("/{part_id}")
def delete_spare(part_id: uuid.UUID, db: Session = Depends(get_db), admin: User = Depends(require_permissions("delete_spares"))):
    row = _get_part_or_404(db, part_id)
    # Movements are the audit trail for the stock balance
    if db.query(SpareTransaction.id).filter(SpareTransaction.part_id == part_id).first():
        raise Conflict("Spare part has transaction history and cannot be deleted")
    db.delete(row)
    db.commit()
    log.info("spare_deleted", part_id=str(part_id), by=str(admin.id))
    return {"message": "Spare part deleted successfully"}
