from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..db import get_db
from ..auth.security import require_permissions
from ..models.models import Asset, BreakdownOperatorEntry, PMSchedule, SparePart, UtilityLog
from ..services.kpi import load_kpis
from ..services.pm import overdue_clause


router = APIRouter(prefix="/api", tags=["dashboard"])


@router.get("/dashboard/stats")
def dashboard_stats(db: Session = Depends(get_db), _=Depends(require_permissions("view_dashboard"))):
    assets = db.query(func.count(Asset.id)).scalar() or 0
    active_assets = db.query(func.count(Asset.id)).filter(Asset.asset_status == "active").scalar() or 0
    overdue_pm = db.query(func.count(PMSchedule.id)).filter(overdue_clause(date.today())).scalar() or 0
    open_breakdowns = (
        db.query(func.count(BreakdownOperatorEntry.id)).filter(BreakdownOperatorEntry.bd_status == "open").scalar() or 0
    )
    total_stock = db.query(func.coalesce(func.sum(SparePart.current_stock), 0)).scalar() or 0
    low_stock = (
        db.query(func.count(SparePart.id)).filter(SparePart.current_stock <= SparePart.reorder_level).scalar() or 0
    )
    meters = db.query(func.count(func.distinct(UtilityLog.meter_point))).scalar() or 0
    return {
        "assets": int(assets),
        "activeAssets": int(active_assets),
        "preventiveMaintenance": int(overdue_pm),
        "breakdownMaintenance": int(open_breakdowns),
        "spareInventory": float(total_stock),
        "lowStockItems": int(low_stock),
        "utilitiesMonitoring": int(meters),
    }


@router.get("/kpi")
def kpi(
    since: Optional[date] = None,
    until: Optional[date] = None,
    db: Session = Depends(get_db),
    _=Depends(require_permissions("view_kpi")),
):
    return load_kpis(db, since, until).to_dict()
