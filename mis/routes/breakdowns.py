import uuid
from datetime import date, datetime
from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session, joinedload

from ..db import get_db
from ..auth.security import require_permissions, require_roles, is_role_allowed
from ..errors import PermissionDenied, ResourceNotFound, ValidationFailed
from ..models.models import Asset, BreakdownOperatorEntry, BreakdownEngineerEntry, User
from ..schemas.breakdowns import (
    BreakdownCreate,
    BreakdownUpdate,
    BreakdownResponse,
    EngineerEntryInput,
    EngineerEntryResponse,
    BD_STATUSES,
    BD_STATUS_ALIASES,
)
from ..schemas.common import normalize_choice
from ..services.breakdowns import STATUS_CHANGER_ROLES, generate_bd_code, check_transition, check_repair_window
from ..services.records import provided_fields, apply_changes


router = APIRouter(prefix="/api/breakdowns", tags=["breakdowns"])
log = structlog.get_logger()


def _serialize(row: BreakdownOperatorEntry) -> BreakdownResponse:
    return BreakdownResponse(
        id=row.id,
        bd_code=row.bd_code,
        shift_id=row.shift_id,
        entry_date=row.entry_date,
        entry_time=row.entry_time,
        asset_id=row.asset_id,
        asset_name=row.asset.asset_name if row.asset else None,
        asset_location=row.asset_location,
        bu_name=row.bu_name,
        operator_name=row.operator_name,
        key_issue=row.key_issue,
        nature_of_complaint=row.nature_of_complaint,
        note=row.note,
        bd_status=row.bd_status,
        reported_by=row.reported_by,
        created_at=row.created_at,
        engineer=EngineerEntryResponse.model_validate(row.engineer_entry) if row.engineer_entry else None,
    )


def _base_query(db: Session):
    return db.query(BreakdownOperatorEntry).options(
        joinedload(BreakdownOperatorEntry.engineer_entry),
        joinedload(BreakdownOperatorEntry.asset),
    )


def _get_breakdown_or_404(db: Session, bd_id: uuid.UUID) -> BreakdownOperatorEntry:
    row = _base_query(db).filter(BreakdownOperatorEntry.id == bd_id).first()
    if not row:
        raise ResourceNotFound("Breakdown", bd_id)
    return row


@router.get("", response_model=List[BreakdownResponse])
def list_breakdowns(
    entry_date: Optional[date] = Query(None, alias="date"),
    status: Optional[str] = None,
    asset_id: Optional[uuid.UUID] = None,
    db: Session = Depends(get_db),
    _=Depends(require_permissions("view_breakdowns")),
):
    query = _base_query(db)
    if entry_date:
        query = query.filter(BreakdownOperatorEntry.entry_date == entry_date)
    if status:
        try:
            wanted = normalize_choice(status, BD_STATUSES, "status", aliases=BD_STATUS_ALIASES)
        except ValueError as e:
            raise ValidationFailed("status", str(e), BD_STATUSES)
        query = query.filter(BreakdownOperatorEntry.bd_status == wanted)
    if asset_id:
        query = query.filter(BreakdownOperatorEntry.asset_id == asset_id)
    rows = query.order_by(BreakdownOperatorEntry.entry_date.desc(), BreakdownOperatorEntry.entry_time.desc()).all()
    return [_serialize(r) for r in rows]


@router.get("/{bd_id}", response_model=BreakdownResponse)
def get_breakdown(bd_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_permissions("view_breakdowns"))):
    return _serialize(_get_breakdown_or_404(db, bd_id))


@router.post("", response_model=BreakdownResponse, status_code=201)
def create_breakdown(
    payload: BreakdownCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_permissions("create_breakdown")),
):
    asset = db.query(Asset).filter(Asset.id == payload.asset_id).first()
    if not asset:
        raise ValidationFailed("asset_id", "Asset not found")
    now = datetime.now()
    data = payload.model_dump()
    data["entry_date"] = data.get("entry_date") or now.date()
    data["entry_time"] = data.get("entry_time") or now.time().replace(microsecond=0)
    data["bd_code"] = data.get("bd_code") or generate_bd_code(data["entry_date"])
    data["asset_location"] = data.get("asset_location") or asset.asset_location
    data["bu_name"] = data.get("bu_name") or asset.bu_name
    data["operator_name"] = data.get("operator_name") or (user.full_name or user.email)
    row = BreakdownOperatorEntry(**data, bd_status="open", reported_by=user.id)
    db.add(row)
    db.commit()
    log.info("breakdown_reported", bd_id=str(row.id), bd_code=row.bd_code, asset_id=str(asset.id), by=str(user.id))
    return _serialize(_get_breakdown_or_404(db, row.id))


@router.put("/{bd_id}", response_model=BreakdownResponse)
def update_breakdown(
    bd_id: uuid.UUID,
    payload: BreakdownUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_permissions("update_breakdown")),
):
    row = _get_breakdown_or_404(db, bd_id)
    changes = provided_fields(payload)
    new_status = changes.get("bd_status")
    if new_status and new_status != row.bd_status:
        if not is_role_allowed(user.role, STATUS_CHANGER_ROLES):
            raise PermissionDenied(STATUS_CHANGER_ROLES, your_role=user.role)
        check_transition(row.bd_status, new_status)
    diff = apply_changes(row, changes)
    db.commit()
    if diff:
        log.info("breakdown_updated", bd_id=str(row.id), fields=sorted(diff), by=str(user.id))
    return _serialize(_get_breakdown_or_404(db, bd_id))


@router.post("/{bd_id}/engineer", response_model=EngineerEntryResponse, status_code=201)
def upsert_engineer_entry(
    bd_id: uuid.UUID,
    payload: EngineerEntryInput,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*STATUS_CHANGER_ROLES)),
):
    operator_entry = _get_breakdown_or_404(db, bd_id)
    entry = operator_entry.engineer_entry
    changes = provided_fields(payload)
    # Validate the window the row will end up with, not just the payload
    merged = {
        f: changes.get(f, getattr(entry, f) if entry else None)
        for f in ("job_start", "job_completion_date")
    }
    check_repair_window(merged["job_start"], merged["job_completion_date"])
    if entry is None:
        data = payload.model_dump()
        data["responsible_person"] = data.get("responsible_person") or (user.full_name or user.email)
        entry = BreakdownEngineerEntry(bd_operator_id=operator_entry.id, **data)
        db.add(entry)
        action = "created"
    else:
        apply_changes(entry, changes)
        action = "updated"
    db.commit()
    db.refresh(entry)
    log.info("engineer_entry_saved", bd_id=str(bd_id), action=action, by=str(user.id))
    return entry
