from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from stockflow.app.db.models.models_v1 import (
    Batch,
    Inventory,
    Sku,
    Stock,
    StockHistory,
)
from stockflow.services.common import insert_if_missing, paginate, require
from stockflow.services.errors import InsufficientStock, ValidationError

logger = logging.getLogger(__name__)


# Reasons written by the automated flows. Anything else is a manual edit.
AUTOMATED_REASON_MARKERS = (
    "Production batch",
    "Transfer Order",
    "Receive Order",
)

MIN_REASON_LENGTH = 3
MAX_REASON_LENGTH = 1000


def _lock_cell(
    db: Session,
    inventory_id: int,
    sku_id: int,
    batch_id: int,
    *,
    create: bool = False,
) -> Stock | None:
    """
    Lock one stock cell FOR UPDATE. With create=True a missing cell is first
    inserted at 0, so the lock always has a row to hold.
    """
    if create:
        insert_if_missing(db, Stock, inventory_id=inventory_id, sku_id=sku_id, batch_id=batch_id, quantity=0)

    return (
        db.execute(
            select(Stock)
            .where(Stock.inventory_id == inventory_id)
            .where(Stock.sku_id == sku_id)
            .where(Stock.batch_id == batch_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        .scalar_one_or_none()
    )


def _write_cell(
    db: Session,
    cell: Stock,
    *,
    old_quantity: int,
    new_quantity: int,
    user_id: int,
    reason: str,
) -> None:
    cell.quantity = new_quantity
    db.add(
        StockHistory(
            inventory_id=cell.inventory_id,
            sku_id=cell.sku_id,
            batch_id=cell.batch_id,
            user_id=user_id,
            old_quantity=old_quantity,
            new_quantity=new_quantity,
            reason=reason,
        )
    )
    db.flush()


def get_cell(db: Session, inventory_id: int, sku_id: int, batch_id: int) -> int:
    qty = db.execute(
        select(Stock.quantity)
        .where(Stock.inventory_id == inventory_id)
        .where(Stock.sku_id == sku_id)
        .where(Stock.batch_id == batch_id)
    ).scalar_one_or_none()
    return int(qty or 0)


def adjust(
    db: Session,
    *,
    inventory_id: int,
    sku_id: int,
    batch_id: int,
    delta: int,
    user_id: int,
    reason: str,
) -> int:
    """
    Apply a relative change to one stock cell and append its history row.

    The cell row is locked (FOR UPDATE) for the rest of the transaction, so
    the negative check and the write cannot interleave with another writer.
    Raises InsufficientStock, leaving the cell untouched, when the result
    would be negative. A zero delta is a no-op and writes no history.
    Only increments create a missing cell.
    """
    cell = _lock_cell(db, inventory_id, sku_id, batch_id, create=delta > 0)
    old_quantity = cell.quantity if cell else 0

    if delta == 0:
        return old_quantity

    new_quantity = old_quantity + delta
    if new_quantity < 0:
        raise InsufficientStock(
            inventory_id=inventory_id,
            sku_id=sku_id,
            batch_id=batch_id,
            available=old_quantity,
            requested=-delta,
        )

    _write_cell(
        db,
        cell,
        old_quantity=old_quantity,
        new_quantity=new_quantity,
        user_id=user_id,
        reason=reason,
    )
    return new_quantity


def set_absolute(
    db: Session,
    *,
    inventory_id: int,
    sku_id: int,
    batch_id: int,
    new_quantity: int,
    user_id: int,
    reason: str,
) -> int:
    if new_quantity < 0:
        raise ValidationError("Quantity cannot be negative")

    cell = _lock_cell(db, inventory_id, sku_id, batch_id, create=True)
    old_quantity = cell.quantity

    _write_cell(
        db,
        cell,
        old_quantity=old_quantity,
        new_quantity=new_quantity,
        user_id=user_id,
        reason=reason,
    )
    return new_quantity


def edit_stock(
    db: Session,
    *,
    inventory_id: int,
    sku_id: int,
    batch_id: int,
    new_quantity: int,
    reason: str,
    user_id: int,
) -> int:
    """
    Manual stock edit (cycle count, damage write-off...).

    The only path that sets an absolute quantity. The reason is stored
    verbatim so manual rows stay distinguishable from the automated flows.
    """
    if reason is None or len(reason.strip()) < MIN_REASON_LENGTH:
        raise ValidationError(f"Reason must be at least {MIN_REASON_LENGTH} characters")
    if len(reason) > MAX_REASON_LENGTH:
        raise ValidationError(f"Reason must be at most {MAX_REASON_LENGTH} characters")
    if new_quantity < 0:
        raise ValidationError("Quantity cannot be negative")

    require(db, Inventory, inventory_id)
    require(db, Sku, sku_id, "SKU")
    require(db, Batch, batch_id)

    old_quantity = get_cell(db, inventory_id, sku_id, batch_id)
    qty = set_absolute(
        db,
        inventory_id=inventory_id,
        sku_id=sku_id,
        batch_id=batch_id,
        new_quantity=new_quantity,
        user_id=user_id,
        reason=reason,
    )
    logger.info(
        "Manual stock edit inventory=%s sku=%s batch=%s %s -> %s",
        inventory_id,
        sku_id,
        batch_id,
        old_quantity,
        qty,
    )
    return qty


def list_by_sku(
    db: Session,
    *,
    inventory_id: int,
    sku_id: int | None = None,
    batch_code: str | None = None,
) -> list[dict]:
    """
    Stock on hand for one inventory, grouped per SKU with a batch breakdown.
    Zero cells are left out.
    """
    stmt = (
        select(Stock)
        .join(Sku, Sku.id == Stock.sku_id)
        .join(Batch, Batch.id == Stock.batch_id)
        .where(Stock.inventory_id == inventory_id)
        .where(Stock.quantity > 0)
        .order_by(Sku.code, Batch.code)
    )
    if sku_id is not None:
        stmt = stmt.where(Stock.sku_id == sku_id)
    if batch_code:
        stmt = stmt.where(Batch.code == batch_code)

    grouped: dict[int, dict] = {}
    for cell in db.execute(stmt).scalars().all():
        entry = grouped.get(cell.sku_id)
        if entry is None:
            entry = grouped[cell.sku_id] = {
                "sku_id": cell.sku_id,
                "sku_code": cell.sku.code,
                "sku_name": cell.sku.name,
                "total_quantity": 0,
                "batches": [],
            }
        entry["total_quantity"] += cell.quantity
        entry["batches"].append(
            {
                "batch_id": cell.batch_id,
                "batch_code": cell.batch.code,
                "production_date": cell.batch.production_date,
                "quantity": cell.quantity,
            }
        )

    # dict keeps insertion order, which follows the SKU code ordering
    return list(grouped.values())


def available_batches(db: Session, *, inventory_id: int, sku_id: int) -> list[dict]:
    rows = (
        db.execute(
            select(Stock)
            .join(Batch, Batch.id == Stock.batch_id)
            .where(Stock.inventory_id == inventory_id)
            .where(Stock.sku_id == sku_id)
            .where(Stock.quantity > 0)
            .order_by(Batch.code)
        )
        .scalars()
        .all()
    )
    return [
        {
            "batch_id": s.batch_id,
            "batch_code": s.batch.code,
            "production_date": s.batch.production_date,
            "quantity": s.quantity,
        }
        for s in rows
    ]


def list_history(
    db: Session,
    *,
    inventory_id: int | None = None,
    sku_id: int | None = None,
    batch_id: int | None = None,
    only_manual: bool = False,
    page: int = 1,
    page_size: int = 25,
) -> tuple[list[StockHistory], int]:
    stmt = select(StockHistory).order_by(StockHistory.created_at.desc(), StockHistory.id.desc())

    if inventory_id is not None:
        stmt = stmt.where(StockHistory.inventory_id == inventory_id)
    if sku_id is not None:
        stmt = stmt.where(StockHistory.sku_id == sku_id)
    if batch_id is not None:
        stmt = stmt.where(StockHistory.batch_id == batch_id)
    if only_manual:
        for marker in AUTOMATED_REASON_MARKERS:
            stmt = stmt.where(StockHistory.reason.not_like(f"%{marker}%"))

    return paginate(db, stmt, page=page, page_size=page_size)
