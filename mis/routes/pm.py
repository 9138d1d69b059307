import uuid
from datetime import datetime, timedelta, timezone, date
from typing import List, Optional

import structlog
from fastapi import APIRouter, Body, Depends
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..db import get_db
from ..auth.security import require_permissions
from ..errors import ResourceNotFound, ValidationFailed
from ..models.models import Asset, PMSchedule, User
from ..schemas.common import normalize_choice
from ..schemas.pm import PMCreate, PMUpdate, PMComplete, PMResponse, PM_STATUSES
from ..services.pm import effective_status, overdue_clause, resolve_interval_days, complete_schedule
from ..services.records import provided_fields, apply_changes


router = APIRouter(prefix="/api/pm", tags=["pm"])
log = structlog.get_logger()


def _serialize(row: PMSchedule, today: Optional[date] = None) -> PMResponse:
    data = {f: getattr(row, f) for f in PMResponse.model_fields if f != "effective_status"}
    data["effective_status"] = effective_status(row, today)
    return PMResponse(**data)


def _get_schedule_or_404(db: Session, pm_id: uuid.UUID) -> PMSchedule:
    row = db.query(PMSchedule).filter(PMSchedule.id == pm_id).first()
    if not row:
        raise ResourceNotFound("PM schedule", pm_id)
    return row


@router.get("", response_model=List[PMResponse])
def list_schedules(
    status: Optional[str] = None,
    asset_id: Optional[uuid.UUID] = None,
    db: Session = Depends(get_db),
    _=Depends(require_permissions("view_pm")),
):
    today = date.today()
    query = db.query(PMSchedule)
    if asset_id:
        query = query.filter(PMSchedule.asset_id == asset_id)
    if status:
        try:
            wanted = normalize_choice(status, PM_STATUSES, "status")
        except ValueError as e:
            raise ValidationFailed("status", str(e), PM_STATUSES)
        if wanted == "overdue":
            query = query.filter(overdue_clause(today))
        elif wanted == "scheduled":
            query = query.filter(
                PMSchedule.status == "scheduled",
                or_(PMSchedule.next_pm_date.is_(None), PMSchedule.next_pm_date >= today),
            )
        else:
            query = query.filter(PMSchedule.status == wanted)
    rows = query.order_by(PMSchedule.next_pm_date.asc()).all()
    return [_serialize(r, today) for r in rows]


@router.get("/{pm_id}", response_model=PMResponse)
def get_schedule(pm_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_permissions("view_pm"))):
    return _serialize(_get_schedule_or_404(db, pm_id))


@router.post("", response_model=PMResponse, status_code=201)
def create_schedule(
    payload: PMCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_permissions("create_pm")),
):
    if not db.query(Asset.id).filter(Asset.id == payload.asset_id).first():
        raise ValidationFailed("asset_id", "Asset not found")
    data = payload.model_dump()
    data["status"] = data.get("status") or "scheduled"
    data["interval_days"] = resolve_interval_days(payload.frequency_interval, payload.interval_days)
    if data.get("next_pm_date") is None and payload.last_pm_date and data["interval_days"]:
        data["next_pm_date"] = payload.last_pm_date + timedelta(days=data["interval_days"])
    data["responsible_person"] = data.get("responsible_person") or (user.full_name or user.email)
    row = PMSchedule(**data)
    db.add(row)
    db.commit()
    db.refresh(row)
    log.info("pm_created", pm_id=str(row.id), asset_id=str(row.asset_id), by=str(user.id))
    return _serialize(row)


@router.put("/{pm_id}", response_model=PMResponse)
def update_schedule(
    pm_id: uuid.UUID,
    payload: PMUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_permissions("update_pm")),
):
    row = _get_schedule_or_404(db, pm_id)
    changes = provided_fields(payload)
    if "frequency_interval" in changes and "interval_days" not in changes:
        changes["interval_days"] = resolve_interval_days(changes["frequency_interval"], None)
    diff = apply_changes(row, changes)
    if diff:
        row.updated_at = datetime.now(timezone.utc)
        db.commit()
        db.refresh(row)
        log.info("pm_updated", pm_id=str(row.id), fields=sorted(diff), by=str(user.id))
    return _serialize(row)


@router.post("/{pm_id}/complete", response_model=PMResponse)
def complete(
    pm_id: uuid.UUID,
    payload: Optional[PMComplete] = Body(None),
    db: Session = Depends(get_db),
    user: User = Depends(require_permissions("update_pm")),
):
    row = _get_schedule_or_404(db, pm_id)
    complete_schedule(row, payload.completed_on if payload else None)
    row.updated_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(row)
    log.info("pm_completed", pm_id=str(row.id), next_pm_date=str(row.next_pm_date), by=str(user.id))
    return _serialize(row)


@router.delete("/{pm_id}")
def delete_schedule(pm_id: uuid.UUID, db: Session = Depends(get_db), admin: User = Depends(require_permissions("delete_pm"))):
    row = _get_schedule_or_404(db, pm_id)
    db.delete(row)
    db.commit()
    log.info("pm_deleted", pm_id=str(pm_id), by=str(admin.id))
    return {"message": "PM Schedule deleted successfully"}
