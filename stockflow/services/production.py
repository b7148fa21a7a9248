from __future__ import annotations

import logging
from datetime import date
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from stockflow.app.db.models.models_v1 import Batch, BatchItem, Inventory, Sku
from stockflow.app.db.models.core_types import DocumentKind, InventoryType
from stockflow.services.common import paginate, require
from stockflow.services.errors import ValidationError
from stockflow.services.inventory import adjust
from stockflow.services.sequences import next_document_number

logger = logging.getLogger(__name__)


def create_batch(
    db: Session,
    *,
    inventory_id: int,
    items: Iterable[tuple[int, int]],
    user_id: int,
    production_date: date | None = None,
) -> Batch:
    """
    Register a production lot and put its output on the shelf.

    ``items`` is a list of (sku_id, quantity). The batch, its item rows and
    the stock increments are flushed into the caller's transaction.
    """
    totals: dict[int, int] = {}
    for sku_id, qty in items:
        if qty < 1:
            raise ValidationError(f"Quantity for SKU {sku_id} must be at least 1")
        totals[sku_id] = totals.get(sku_id, 0) + qty
    if not totals:
        raise ValidationError("A batch needs at least one item")

    inventory = require(db, Inventory, inventory_id)
    if inventory.type != InventoryType.production:
        raise ValidationError(f"Inventory {inventory.code} is not a production inventory")
    for sku_id in totals:
        require(db, Sku, sku_id, "SKU")

    code = next_document_number(db, DocumentKind.batch)
    batch = Batch(
        code=code,
        inventory_id=inventory_id,
        production_date=production_date or date.today(),
        created_by=user_id,
    )
    db.add(batch)
    db.flush()  # batch.id

    for sku_id, qty in totals.items():
        db.add(BatchItem(batch_id=batch.id, sku_id=sku_id, quantity=qty))
        adjust(
            db,
            inventory_id=inventory_id,
            sku_id=sku_id,
            batch_id=batch.id,
            delta=qty,
            user_id=user_id,
            reason=f"Production batch {code} created",
        )

    db.flush()
    logger.info("Batch %s created at %s with %d item(s)", code, inventory.code, len(totals))
    return batch


def list_batches(
    db: Session,
    *,
    inventory_id: int | None = None,
    page: int = 1,
    page_size: int = 10,
) -> tuple[list[Batch], int]:
    stmt = select(Batch).order_by(Batch.created_at.desc(), Batch.id.desc())
    if inventory_id is not None:
        stmt = stmt.where(Batch.inventory_id == inventory_id)
    return paginate(db, stmt, page=page, page_size=page_size)


def get_batch(db: Session, batch_id: int) -> Batch:
    return require(db, Batch, batch_id)
