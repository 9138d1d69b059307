import uuid
from datetime import datetime, date, time
from typing import Optional

from sqlalchemy import (
    String,
    DateTime,
    Date,
    Time,
    Boolean,
    ForeignKey,
    Integer,
    Float,
    Text,
    Index,
    CheckConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship, Mapped, mapped_column

from ..db import Base


def uuid_pk() -> Mapped[uuid.UUID]:
    return mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = uuid_pk()
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    full_name: Mapped[Optional[str]] = mapped_column(String(255))
    # Either a bcrypt hash or a legacy plaintext credential awaiting migration on next login
    password: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="operator")  # operator|engineer|manager|admin
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    last_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))


class Asset(Base):
    __tablename__ = "asset_master"

    id: Mapped[uuid.UUID] = uuid_pk()
    asset_code: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    asset_name: Mapped[str] = mapped_column(String(255), nullable=False)
    asset_location: Mapped[Optional[str]] = mapped_column(String(255))
    bu_name: Mapped[Optional[str]] = mapped_column(String(255))
    asset_type: Mapped[Optional[str]] = mapped_column(String(20))  # machine|utility|auxiliary
    manufacturer: Mapped[Optional[str]] = mapped_column(String(255))
    model_number: Mapped[Optional[str]] = mapped_column(String(100))
    model_name: Mapped[Optional[str]] = mapped_column(String(255))
    serial_number: Mapped[Optional[str]] = mapped_column(String(100))
    install_date: Mapped[Optional[date]] = mapped_column(Date)
    asset_status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")  # active|under_amc|inactive|disposed
    warranty_expiry: Mapped[Optional[date]] = mapped_column(Date)
    qr_code: Mapped[Optional[str]] = mapped_column(String(255), unique=True, index=True)
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"))
    updated_by: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))


class BreakdownOperatorEntry(Base):
    __tablename__ = "bd_entry_operator"

    id: Mapped[uuid.UUID] = uuid_pk()
    bd_code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    shift_id: Mapped[Optional[str]] = mapped_column(String(10))
    entry_date: Mapped[date] = mapped_column(Date, nullable=False, default=date.today)
    entry_time: Mapped[Optional[time]] = mapped_column(Time)
    asset_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), ForeignKey("asset_master.id", ondelete="SET NULL"), index=True)
    asset_location: Mapped[Optional[str]] = mapped_column(String(255))
    bu_name: Mapped[Optional[str]] = mapped_column(String(255))
    operator_name: Mapped[Optional[str]] = mapped_column(String(255))
    key_issue: Mapped[Optional[str]] = mapped_column(String(255))
    nature_of_complaint: Mapped[Optional[str]] = mapped_column(Text)
    note: Mapped[Optional[str]] = mapped_column(Text)
    bd_status: Mapped[str] = mapped_column(String(20), nullable=False, default="open")  # open|acknowledged|in_progress|resolved|closed
    reported_by: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)

    engineer_entry = relationship(
        "BreakdownEngineerEntry",
        back_populates="operator_entry",
        uselist=False,
        cascade="all, delete-orphan",
    )
    asset = relationship("Asset")


class BreakdownEngineerEntry(Base):
    __tablename__ = "bd_entry_engineer"

    id: Mapped[uuid.UUID] = uuid_pk()
    bd_operator_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("bd_entry_operator.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    action_taken: Mapped[Optional[str]] = mapped_column(Text)
    engineer_findings: Mapped[Optional[str]] = mapped_column(Text)  # root cause
    job_start: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    job_completion_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    responsible_person: Mapped[Optional[str]] = mapped_column(String(255))
    spare_usage_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), ForeignKey("spare_transactions.id", ondelete="SET NULL"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)

    operator_entry = relationship("BreakdownOperatorEntry", back_populates="engineer_entry")


class PMSchedule(Base):
    __tablename__ = "pm_schedule"

    id: Mapped[uuid.UUID] = uuid_pk()
    asset_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), ForeignKey("asset_master.id", ondelete="CASCADE"), index=True)
    pm_title: Mapped[str] = mapped_column(String(255), nullable=False)
    frequency_interval: Mapped[Optional[str]] = mapped_column(String(20))  # daily|weekly|monthly|quarterly|half_yearly|yearly
    interval_days: Mapped[Optional[int]] = mapped_column(Integer)
    last_pm_date: Mapped[Optional[date]] = mapped_column(Date)
    next_pm_date: Mapped[Optional[date]] = mapped_column(Date, index=True)
    checklist_ref: Mapped[Optional[str]] = mapped_column(String(255))
    responsible_person: Mapped[Optional[str]] = mapped_column(String(255))
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="scheduled")  # scheduled|completed|overdue
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))


class SparePart(Base):
    __tablename__ = "spare_parts_inventory"
    __table_args__ = (CheckConstraint("current_stock >= 0", name="ck_spare_stock_non_negative"),)

    id: Mapped[uuid.UUID] = uuid_pk()
    part_code: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    part_name: Mapped[str] = mapped_column(String(255), nullable=False)
    part_no: Mapped[Optional[str]] = mapped_column(String(100))
    min_level: Mapped[int] = mapped_column(Integer, default=0)
    reorder_level: Mapped[int] = mapped_column(Integer, default=1)
    current_stock: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    unit_cost: Mapped[float] = mapped_column(Float, default=0)
    supplier: Mapped[Optional[str]] = mapped_column(String(255))
    spare_location: Mapped[Optional[str]] = mapped_column(String(255))
    bu_name: Mapped[Optional[str]] = mapped_column(String(255))
    last_updated: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    last_updated_by: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"))

    transactions = relationship("SpareTransaction", back_populates="part", passive_deletes=True)


class SpareTransaction(Base):
    __tablename__ = "spare_transactions"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_spare_txn_quantity_positive"),
        Index("ix_spare_txn_part_created", "part_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = uuid_pk()
    part_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("spare_parts_inventory.id", ondelete="RESTRICT"), nullable=False)
    part_code: Mapped[str] = mapped_column(String(100), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    direction: Mapped[str] = mapped_column(String(10), nullable=False)  # issue|return
    asset_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), ForeignKey("asset_master.id", ondelete="SET NULL"))
    pm_bd_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    pm_bd_type: Mapped[Optional[str]] = mapped_column(String(5))  # pm|bd
    purpose: Mapped[Optional[str]] = mapped_column(Text)
    balance_after: Mapped[int] = mapped_column(Integer, nullable=False)
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)

    part = relationship("SparePart", back_populates="transactions")


class UtilityLog(Base):
    __tablename__ = "utility_logs"
    __table_args__ = (Index("ix_utility_logs_type_ts", "utility_type", "timestamp"),)

    id: Mapped[uuid.UUID] = uuid_pk()
    utility_type: Mapped[str] = mapped_column(String(20), nullable=False)  # power|water|air|gas
    meter_point: Mapped[str] = mapped_column(String(255), nullable=False)
    reading_unit: Mapped[Optional[str]] = mapped_column(String(50))
    reading_value: Mapped[float] = mapped_column(Float, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    asset_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), ForeignKey("asset_master.id", ondelete="SET NULL"))
    business_unit_id: Mapped[Optional[str]] = mapped_column(String(100))
    location_id: Mapped[Optional[str]] = mapped_column(String(100))
    remarks: Mapped[Optional[str]] = mapped_column(Text)
    recorded_by: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
