from datetime import datetime
from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from ..auth.security import require_permissions
from ..errors import ValidationFailed
from ..models.models import Asset, UtilityLog, User
from ..schemas.utilities import UtilityLogCreate, UtilityLogResponse, UTILITY_TYPES, normalize_utility_type


# Readings are append-only: no update or delete routes
router = APIRouter(prefix="/api/utilities", tags=["utilities"])


@router.get("", response_model=List[UtilityLogResponse])
def list_utility_logs(
    utility_type: Optional[str] = None,
    meter_point: Optional[str] = None,
    since: Optional[datetime] = None,
    until: Optional[datetime] = None,
    limit: int = 500,
    db: Session = Depends(get_db),
    _=Depends(require_permissions("view_utilities")),
):
    query = db.query(UtilityLog)
    if utility_type:
        try:
            query = query.filter(UtilityLog.utility_type == normalize_utility_type(utility_type))
        except ValueError as e:
            raise ValidationFailed("utility_type", str(e), UTILITY_TYPES)
    if meter_point:
        query = query.filter(UtilityLog.meter_point == meter_point)
    if since:
        query = query.filter(UtilityLog.timestamp >= since)
    if until:
        query = query.filter(UtilityLog.timestamp <= until)
    limit = min(max(1, limit), 5000)
    return query.order_by(UtilityLog.timestamp.desc()).limit(limit).all()


@router.post("", response_model=UtilityLogResponse, status_code=201)
def create_utility_log(
    payload: UtilityLogCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_permissions("create_utilities")),
):
    if payload.asset_id is not None and db.get(Asset, payload.asset_id) is None:
        raise ValidationFailed("asset_id", "Asset not found")
    data = payload.model_dump()
    data["timestamp"] = data.get("timestamp") or datetime.utcnow()
    row = UtilityLog(**data, recorded_by=user.id)
    db.add(row)
    db.commit()
    db.refresh(row)
    structlog.get_logger().info("utility_reading_logged", log_id=str(row.id), utility_type=row.utility_type, meter_point=row.meter_point)
    return row
