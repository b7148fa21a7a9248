"""
Purchase orders.

A PO is request metadata only: it never touches stock. Its status is driven
by transfer and receive orders (see ``stockflow.services.transfers`` and
``stockflow.services.receiving``), never set by callers.
"""

from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from stockflow.app.db.models.models_v1 import (
    Inventory,
    POItem,
    PurchaseOrder,
    ReceiveOrder,
    Sku,
    TransferOrder,
)
from stockflow.app.db.models.core_types import DocumentKind, POStatus
from stockflow.services.common import lock, paginate, require
from stockflow.services.errors import ValidationError
from stockflow.services.sequences import next_document_number

logger = logging.getLogger(__name__)


def validate_inventory_pair(db: Session, first_id: int, second_id: int) -> tuple[Inventory, Inventory]:
    if first_id == second_id:
        raise ValidationError("From and To inventory must be different")
    return require(db, Inventory, first_id), require(db, Inventory, second_id)


def create_po(
    db: Session,
    *,
    requesting_inventory_id: int,
    fulfilling_inventory_id: int,
    items: Iterable[tuple[int, int]],
    user_id: int,
) -> PurchaseOrder:
    """``items`` is a list of (sku_id, requested_quantity)."""
    totals: dict[int, int] = {}
    for sku_id, qty in items:
        if qty < 1:
            raise ValidationError(f"Requested quantity for SKU {sku_id} must be at least 1")
        totals[sku_id] = totals.get(sku_id, 0) + qty
    if not totals:
        raise ValidationError("A purchase order needs at least one item")

    validate_inventory_pair(db, requesting_inventory_id, fulfilling_inventory_id)
    for sku_id in totals:
        require(db, Sku, sku_id, "SKU")

    po = PurchaseOrder(
        po_number=next_document_number(db, DocumentKind.purchase_order),
        requesting_inventory_id=requesting_inventory_id,
        fulfilling_inventory_id=fulfilling_inventory_id,
        status=POStatus.created,
        is_active=True,
        created_by=user_id,
    )
    db.add(po)
    db.flush()  # get po.id

    for sku_id, qty in totals.items():
        db.add(POItem(po_id=po.id, sku_id=sku_id, requested_quantity=qty))

    db.flush()
    logger.info(
        "PO %s created: %s requests from %s, %d item(s)",
        po.po_number,
        requesting_inventory_id,
        fulfilling_inventory_id,
        len(totals),
    )
    return po


def list_pos(
    db: Session,
    *,
    direction: str | None = None,
    inventory_id: int | None = None,
    status: POStatus | None = None,
    only_active: bool = False,
    page: int = 1,
    page_size: int = 10,
) -> tuple[list[PurchaseOrder], int]:
    """
    direction="incoming": POs the inventory has to ship (it fulfils them).
    direction="outgoing": POs the inventory has raised (it requests them).
    Without a direction, any PO involving the inventory.
    """
    stmt = select(PurchaseOrder).order_by(PurchaseOrder.created_at.desc(), PurchaseOrder.id.desc())

    if inventory_id is not None:
        if direction == "incoming":
            stmt = stmt.where(PurchaseOrder.fulfilling_inventory_id == inventory_id)
        elif direction == "outgoing":
            stmt = stmt.where(PurchaseOrder.requesting_inventory_id == inventory_id)
        elif direction is None:
            stmt = stmt.where(
                or_(
                    PurchaseOrder.fulfilling_inventory_id == inventory_id,
                    PurchaseOrder.requesting_inventory_id == inventory_id,
                )
            )
        else:
            raise ValidationError(f"Unknown direction {direction!r}")

    if status is not None:
        stmt = stmt.where(PurchaseOrder.status == status)
    if only_active:
        stmt = stmt.where(PurchaseOrder.is_active.is_(True))

    return paginate(db, stmt, page=page, page_size=page_size)


def get_po(db: Session, po_id: int) -> PurchaseOrder:
    return require(db, PurchaseOrder, po_id, "Purchase Order")


def deactivate_po(db: Session, po_id: int) -> PurchaseOrder:
    po = lock(db, PurchaseOrder, po_id, "Purchase Order")
    if po.status != POStatus.created:
        raise ValidationError("Only POs in CREATED status can be deactivated")
    po.is_active = False
    db.flush()
    logger.info("PO %s deactivated", po.po_number)
    return po


def refresh_fulfilment(db: Session, po: PurchaseOrder) -> bool:
    """
    Mark the PO FULFILLED once every one of its TOs has a receive order.
    Returns True when the PO is fulfilled after the call.
    """
    db.flush()

    total, received = db.execute(
        select(func.count(TransferOrder.id), func.count(ReceiveOrder.id))
        .select_from(TransferOrder)
        .outerjoin(ReceiveOrder, ReceiveOrder.transfer_order_id == TransferOrder.id)
        .where(TransferOrder.purchase_order_id == po.id)
    ).one()

    if total and total == received:
        po.status = POStatus.fulfilled
        db.flush()
        return True
    return False
