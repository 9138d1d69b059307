"""
Spare-part stock movements.

Stock is never edited directly; every change goes through
``apply_stock_transaction`` which records an immutable transaction row and
updates the part's balance in the same database transaction.
"""
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..errors import InsufficientStock, ResourceNotFound, ValidationFailed
from ..models.models import Asset, SparePart, SpareTransaction


log = structlog.get_logger()


@dataclass
class StockMovement:
    transaction: SpareTransaction
    part: SparePart


def locked_part_query(part_id: uuid.UUID):
    """SELECT of a single part holding a row lock until commit/rollback."""
    return select(SparePart).where(SparePart.id == part_id).with_for_update()


def next_balance(current: int, direction: str, quantity: int) -> int:
    if direction == "issue":
        return current - quantity
    return current + quantity


def apply_stock_transaction(
    db: Session,
    part_id: uuid.UUID,
    direction: str,
    quantity: int,
    actor_id: Optional[uuid.UUID] = None,
    asset_id: Optional[uuid.UUID] = None,
    pm_bd_id: Optional[uuid.UUID] = None,
    pm_bd_type: Optional[str] = None,
    purpose: Optional[str] = None,
) -> StockMovement:
    """Issue or return stock for one part as a single atomic unit.

    The part row is locked before the stock check so two concurrent issues
    cannot both pass against the same stale balance. Any failure rolls back
    both the transaction row and the inventory update.
    """
    try:
        part = db.execute(locked_part_query(part_id)).scalar_one_or_none()
        if part is None:
            raise ResourceNotFound("Spare part", part_id)
        if asset_id is not None and db.get(Asset, asset_id) is None:
            raise ValidationFailed("asset_id", "Asset not found")

        current = int(part.current_stock or 0)
        if direction == "issue" and quantity > current:
            raise InsufficientStock(part.part_code, current, quantity)

        balance = next_balance(current, direction, quantity)
        txn = SpareTransaction(
            part_id=part.id,
            part_code=part.part_code,
            quantity=quantity,
            direction=direction,
            asset_id=asset_id,
            pm_bd_id=pm_bd_id,
            pm_bd_type=pm_bd_type,
            purpose=purpose,
            balance_after=balance,
            created_by=actor_id,
        )
        db.add(txn)
        part.current_stock = balance
        part.last_updated = datetime.now(timezone.utc)
        part.last_updated_by = actor_id
        db.commit()
    except Exception as e:
        db.rollback()
        log.warning("stock_transaction_rejected", part_id=str(part_id), direction=direction, quantity=quantity, error=str(e))
        raise

    db.refresh(txn)
    db.refresh(part)
    log.info(
        "stock_transaction_applied",
        part_id=str(part.id),
        part_code=part.part_code,
        direction=direction,
        quantity=quantity,
        balance_after=balance,
    )
    return StockMovement(transaction=txn, part=part)
