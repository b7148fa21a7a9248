"""
Transfer orders: physical dispatch of batches out of an inventory.

Every TO hangs off a purchase order. In ``from_po`` mode the PO exists and
the TO ships from the PO's fulfilling inventory. In ``manual`` mode a PO is
synthesized on the fly, already IN_TRANSIT, so that every TO can be traced
back to a request.

Availability is checked for all lines before the first decrement, and the
decrements run under row locks, so a TO either moves all of its stock or
none of it.

Status: CREATED -> FULFILLED, the latter only set when a receive order is
booked against the TO. There is no cancel path.
"""

from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from stockflow.app.db.models.models_v1 import (
    Employee,
    POItem,
    PurchaseOrder,
    TOItem,
    TransferOrder,
)
from stockflow.app.db.models.core_types import DocumentKind, POStatus, TOStatus
from stockflow.services.common import BatchLine, lock, paginate, require, validate_lines
from stockflow.services.errors import InsufficientStock, ValidationError
from stockflow.services.inventory import adjust, get_cell
from stockflow.services.procurement import validate_inventory_pair
from stockflow.services.sequences import next_document_number

logger = logging.getLogger(__name__)


def check_availability(db: Session, inventory_id: int, lines: Iterable[BatchLine]) -> None:
    """Raise InsufficientStock for the first (sku, batch) the inventory cannot cover."""
    requested: dict[tuple[int, int], int] = {}
    for line in lines:
        key = (line.sku_id, line.batch_id)
        requested[key] = requested.get(key, 0) + line.quantity

    for (sku_id, batch_id), qty in requested.items():
        available = get_cell(db, inventory_id, sku_id, batch_id)
        if available < qty:
            raise InsufficientStock(
                inventory_id=inventory_id,
                sku_id=sku_id,
                batch_id=batch_id,
                available=available,
                requested=qty,
            )


def _dispatch(
    db: Session,
    *,
    po: PurchaseOrder,
    sending_inventory_id: int,
    employee_id: int,
    lines: list[BatchLine],
    user_id: int,
) -> TransferOrder:
    to_number = next_document_number(db, DocumentKind.transfer_order)
    to = TransferOrder(
        to_number=to_number,
        purchase_order_id=po.id,
        employee_id=employee_id,
        status=TOStatus.created,
        created_by=user_id,
    )
    db.add(to)
    db.flush()  # to.id

    for line in lines:
        adjust(
            db,
            inventory_id=sending_inventory_id,
            sku_id=line.sku_id,
            batch_id=line.batch_id,
            delta=-line.quantity,
            user_id=user_id,
            reason=f"Transfer Order {to_number} (sent out)",
        )
        db.add(
            TOItem(
                transfer_order_id=to.id,
                sku_id=line.sku_id,
                batch_id=line.batch_id,
                sent_quantity=line.quantity,
            )
        )

    db.flush()
    return to


def create_to_from_po(
    db: Session,
    *,
    purchase_order_id: int,
    employee_id: int,
    lines: Iterable[BatchLine],
    user_id: int,
) -> TransferOrder:
    lines = validate_lines(db, lines, min_quantity=1, document="transfer order")

    # held until commit: receive orders on this PO wait for the new TO
    po = lock(db, PurchaseOrder, purchase_order_id, "Purchase Order")
    if not po.is_active:
        raise ValidationError(f"Purchase Order {po.po_number} is deactivated")
    if po.status == POStatus.fulfilled:
        raise ValidationError(f"Purchase Order {po.po_number} is already fulfilled")
    require(db, Employee, employee_id)

    sending_inventory_id = po.fulfilling_inventory_id
    check_availability(db, sending_inventory_id, lines)

    to = _dispatch(
        db,
        po=po,
        sending_inventory_id=sending_inventory_id,
        employee_id=employee_id,
        lines=lines,
        user_id=user_id,
    )

    po.status = POStatus.in_transit
    db.flush()

    logger.info(
        "TO %s created from PO %s: %d line(s) sent from inventory %s",
        to.to_number,
        po.po_number,
        len(lines),
        sending_inventory_id,
    )
    return to


def create_manual_to(
    db: Session,
    *,
    from_inventory_id: int,
    to_inventory_id: int,
    employee_id: int,
    lines: Iterable[BatchLine],
    user_id: int,
) -> TransferOrder:
    lines = validate_lines(db, lines, min_quantity=1, document="transfer order")
    validate_inventory_pair(db, from_inventory_id, to_inventory_id)
    require(db, Employee, employee_id)

    check_availability(db, from_inventory_id, lines)

    # The receiver of the TO is the one requesting the goods, the sender fulfils.
    po = PurchaseOrder(
        po_number=next_document_number(db, DocumentKind.purchase_order),
        requesting_inventory_id=to_inventory_id,
        fulfilling_inventory_id=from_inventory_id,
        status=POStatus.in_transit,
        is_active=True,
        created_by=user_id,
    )
    db.add(po)
    db.flush()

    sku_totals: dict[int, int] = {}
    for line in lines:
        sku_totals[line.sku_id] = sku_totals.get(line.sku_id, 0) + line.quantity
    for sku_id, qty in sku_totals.items():
        db.add(POItem(po_id=po.id, sku_id=sku_id, requested_quantity=qty))

    to = _dispatch(
        db,
        po=po,
        sending_inventory_id=from_inventory_id,
        employee_id=employee_id,
        lines=lines,
        user_id=user_id,
    )

    logger.info(
        "Manual TO %s created (PO %s): %d line(s) from inventory %s to %s",
        to.to_number,
        po.po_number,
        len(lines),
        from_inventory_id,
        to_inventory_id,
    )
    return to


def list_tos(
    db: Session,
    *,
    inventory_id: int | None = None,
    page: int = 1,
    page_size: int = 10,
) -> tuple[list[TransferOrder], int]:
    stmt = (
        select(TransferOrder)
        .join(PurchaseOrder, PurchaseOrder.id == TransferOrder.purchase_order_id)
        .order_by(TransferOrder.created_at.desc(), TransferOrder.id.desc())
    )
    if inventory_id is not None:
        stmt = stmt.where(
            or_(
                PurchaseOrder.requesting_inventory_id == inventory_id,
                PurchaseOrder.fulfilling_inventory_id == inventory_id,
            )
        )
    return paginate(db, stmt, page=page, page_size=page_size)


def get_to(db: Session, to_id: int) -> TransferOrder:
    return require(db, TransferOrder, to_id, "Transfer Order")
