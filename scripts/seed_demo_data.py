"""
Seed the local database with one user per role plus a few assets and spares.

Usage:
  python scripts/seed_demo_data.py

This script is idempotent: running it multiple times will upsert the same
records based on unique fields (email for users, code for assets and spares).
"""

import os
from datetime import date, datetime, timedelta, timezone

from mis.config import settings
from mis.db import Base, engine, session_scope
from mis.models.models import User, Asset, PMSchedule, SparePart
from mis.auth.security import get_password_hash
from mis.routes.assets import default_qr_code
from mis.schemas.pm import FREQUENCY_DAYS


DEMO_PASSWORD = "Demo1234!"


def ensure_user(session, email: str, full_name: str, role: str) -> User:
    user = session.query(User).filter(User.email == email).first()
    if user:
        user.full_name = full_name
        user.role = role
        # Keep existing password
        if not user.password:
            user.password = get_password_hash(DEMO_PASSWORD)
        session.add(user)
        session.flush()
        return user
    user = User(
        email=email,
        full_name=full_name,
        password=get_password_hash(DEMO_PASSWORD),
        role=role,
        is_active=True,
        created_at=datetime.now(timezone.utc),
    )
    session.add(user)
    session.flush()
    return user


def ensure_asset(session, code: str, name: str, created_by, **kwargs) -> Asset:
    asset = session.query(Asset).filter(Asset.asset_code == code).first()
    if asset:
        asset.asset_name = name
        for k, v in kwargs.items():
            if hasattr(asset, k):
                setattr(asset, k, v)
        asset.updated_at = datetime.now(timezone.utc)
        session.add(asset)
        session.flush()
        return asset
    asset = Asset(
        asset_code=code,
        asset_name=name,
        asset_status="active",
        qr_code=default_qr_code(code),
        created_by=created_by,
        **{k: v for k, v in kwargs.items() if hasattr(Asset, k)}
    )
    session.add(asset)
    session.flush()
    return asset


def ensure_pm(session, asset: Asset, title: str, frequency: str) -> PMSchedule:
    row = session.query(PMSchedule).filter(PMSchedule.asset_id == asset.id, PMSchedule.pm_title == title).first()
    if row:
        return row
    days = FREQUENCY_DAYS[frequency]
    row = PMSchedule(
        asset_id=asset.id,
        pm_title=title,
        frequency_interval=frequency,
        interval_days=days,
        next_pm_date=date.today() + timedelta(days=days),
        status="scheduled",
    )
    session.add(row)
    session.flush()
    return row


def ensure_spare(session, code: str, name: str, stock: int, **kwargs) -> SparePart:
    part = session.query(SparePart).filter(SparePart.part_code == code).first()
    if part:
        # Stock only changes through transactions once the part exists
        part.part_name = name
        for k, v in kwargs.items():
            if hasattr(part, k):
                setattr(part, k, v)
        session.add(part)
        session.flush()
        return part
    part = SparePart(part_code=code, part_name=name, current_stock=stock, **{k: v for k, v in kwargs.items() if hasattr(SparePart, k)})
    session.add(part)
    session.flush()
    return part


def main() -> None:
    if settings.database_url.startswith("sqlite:///./"):
        os.makedirs("var", exist_ok=True)
    # Ensure tables exist (safe for SQLite dev)
    Base.metadata.create_all(bind=engine)

    with session_scope() as session:
        admin = ensure_user(session, "admin@example.com", "Ada Admin", "admin")
        ensure_user(session, "manager@example.com", "Max Manager", "manager")
        ensure_user(session, "engineer@example.com", "Erin Engineer", "engineer")
        ensure_user(session, "operator@example.com", "Otto Operator", "operator")

        press = ensure_asset(
            session, "PRS-001", "Hydraulic Press 200T", admin.id,
            asset_type="machine", asset_location="Shop Floor A", bu_name="Forming", manufacturer="Schuler",
        )
        comp = ensure_asset(
            session, "CMP-001", "Screw Compressor 55kW", admin.id,
            asset_type="utility", asset_location="Compressor Room", bu_name="Utilities", manufacturer="Atlas Copco",
        )
        ensure_asset(
            session, "CNV-001", "Infeed Conveyor", admin.id,
            asset_type="auxiliary", asset_location="Shop Floor A", bu_name="Forming",
        )

        ensure_pm(session, press, "Hydraulic oil and filter check", "monthly")
        ensure_pm(session, comp, "Air filter replacement", "quarterly")

        ensure_spare(session, "SP-BRG-6205", "Ball bearing 6205", 40, min_level=10, reorder_level=15, unit_cost=4.5, supplier="SKF")
        ensure_spare(session, "SP-FLT-AIR", "Compressor air filter", 6, min_level=2, reorder_level=4, unit_cost=38.0)
        ensure_spare(session, "SP-SEAL-HYD", "Hydraulic cylinder seal kit", 3, min_level=2, reorder_level=3, unit_cost=120.0)

    print(f"Seed completed. Demo users share the password {DEMO_PASSWORD!r}.")


if __name__ == "__main__":
    main()
