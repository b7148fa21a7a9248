"""
Receive orders: physical acceptance of batches into an inventory.

A receive order booked against a transfer order credits the PO's requesting
inventory with what actually arrived, which may differ from what was sent.
The difference is kept on the TO items (received_quantity next to
sent_quantity) and never corrected. Receive orders are terminal.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Iterable

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from stockflow.app.db.models.models_v1 import (
    PurchaseOrder,
    ReceiveOrder,
    ROItem,
    TOItem,
    TransferOrder,
)
from stockflow.app.db.models.core_types import DocumentKind, TOStatus
from stockflow.services.common import BatchLine, lock, paginate, require, validate_lines
from stockflow.services.errors import ValidationError
from stockflow.services.inventory import adjust
from stockflow.services.procurement import refresh_fulfilment, validate_inventory_pair
from stockflow.services.sequences import next_document_number

logger = logging.getLogger(__name__)


def _receive_lines(
    db: Session,
    ro: ReceiveOrder,
    *,
    receiving_inventory_id: int,
    lines: list[BatchLine],
    user_id: int,
    reason: str,
) -> None:
    for line in lines:
        db.add(
            ROItem(
                receive_order_id=ro.id,
                sku_id=line.sku_id,
                batch_id=line.batch_id,
                received_quantity=line.quantity,
            )
        )
        adjust(
            db,
            inventory_id=receiving_inventory_id,
            sku_id=line.sku_id,
            batch_id=line.batch_id,
            delta=line.quantity,
            user_id=user_id,
            reason=reason,
        )
    db.flush()


def _reconcile(ro_number: str, to: TransferOrder, lines: list[BatchLine]) -> None:
    """
    Record what arrived on the TO items, next to what was sent.

    A (sku, batch) pair may appear on several TO items: the received quantity
    fills them in order up to each sent_quantity, and any surplus lands on
    the last one.
    """
    sent_items: dict[tuple[int, int], list[TOItem]] = defaultdict(list)
    for item in sorted(to.items, key=lambda i: i.id):
        sent_items[(item.sku_id, item.batch_id)].append(item)

    received: dict[tuple[int, int], int] = defaultdict(int)
    for line in lines:
        key = (line.sku_id, line.batch_id)
        if key not in sent_items:
            logger.warning(
                "RO %s: SKU %s batch %s was not on TO %s",
                ro_number,
                line.sku_id,
                line.batch_id,
                to.to_number,
            )
            continue
        received[key] += line.quantity

    for key, qty in received.items():
        items = sent_items[key]
        for item in items[:-1]:
            item.received_quantity = min(qty, item.sent_quantity)
            qty -= item.received_quantity
        items[-1].received_quantity = qty

        sent = sum(i.sent_quantity for i in items)
        got = sum(i.received_quantity for i in items)
        if sent != got:
            logger.warning(
                "RO %s: SKU %s batch %s sent %s, received %s",
                ro_number,
                key[0],
                key[1],
                sent,
                got,
            )


def create_ro_from_to(
    db: Session,
    *,
    transfer_order_id: int,
    lines: Iterable[BatchLine],
    user_id: int,
) -> ReceiveOrder:
    lines = validate_lines(db, lines, min_quantity=0, document="receive order")

    # Lock order is PO then TO, as in create_to_from_po. Every RO and TO of a
    # PO serializes on the PO row, so the fulfilment count below sees them all.
    purchase_order_id = require(db, TransferOrder, transfer_order_id, "Transfer Order").purchase_order_id
    po = lock(db, PurchaseOrder, purchase_order_id, "Purchase Order")
    to = lock(db, TransferOrder, transfer_order_id, "Transfer Order")

    already_received = db.execute(
        select(ReceiveOrder.id).where(ReceiveOrder.transfer_order_id == to.id)
    ).scalar_one_or_none()
    if already_received is not None or to.status == TOStatus.fulfilled:
        raise ValidationError(f"Transfer Order {to.to_number} has already been received")

    receiving_inventory_id = po.requesting_inventory_id

    ro_number = next_document_number(db, DocumentKind.receive_order)
    ro = ReceiveOrder(ro_number=ro_number, transfer_order=to, created_by=user_id)
    db.add(ro)
    db.flush()  # ro.id

    _receive_lines(
        db,
        ro,
        receiving_inventory_id=receiving_inventory_id,
        lines=lines,
        user_id=user_id,
        reason=f"Receive Order {ro_number} from Transfer Order",
    )

    _reconcile(ro_number, to, lines)

    # ---------- STATUSES ----------
    to.status = TOStatus.fulfilled
    po_fulfilled = refresh_fulfilment(db, po)

    logger.info(
        "RO %s created from TO %s into inventory %s (PO %s %s)",
        ro_number,
        to.to_number,
        receiving_inventory_id,
        po.po_number,
        "fulfilled" if po_fulfilled else "still open",
    )
    return ro


def create_manual_ro(
    db: Session,
    *,
    from_inventory_id: int,
    to_inventory_id: int,
    lines: Iterable[BatchLine],
    user_id: int,
) -> ReceiveOrder:
    lines = validate_lines(db, lines, min_quantity=0, document="receive order")
    validate_inventory_pair(db, from_inventory_id, to_inventory_id)

    ro_number = next_document_number(db, DocumentKind.receive_order)
    ro = ReceiveOrder(
        ro_number=ro_number,
        transfer_order_id=None,
        to_inventory_id=to_inventory_id,
        from_inventory_id=from_inventory_id,
        created_by=user_id,
    )
    db.add(ro)
    db.flush()

    _receive_lines(
        db,
        ro,
        receiving_inventory_id=to_inventory_id,
        lines=lines,
        user_id=user_id,
        reason=f"Manual Receive Order {ro_number}",
    )

    logger.info(
        "Manual RO %s created: %d line(s) from inventory %s into %s",
        ro_number,
        len(lines),
        from_inventory_id,
        to_inventory_id,
    )
    return ro


def receiving_inventory_id(ro: ReceiveOrder) -> int:
    if ro.transfer_order is not None:
        return ro.transfer_order.purchase_order.requesting_inventory_id
    return ro.to_inventory_id


def list_ros(
    db: Session,
    *,
    inventory_id: int | None = None,
    page: int = 1,
    page_size: int = 10,
) -> tuple[list[ReceiveOrder], int]:
    stmt = (
        select(ReceiveOrder)
        .outerjoin(TransferOrder, TransferOrder.id == ReceiveOrder.transfer_order_id)
        .outerjoin(PurchaseOrder, PurchaseOrder.id == TransferOrder.purchase_order_id)
        .order_by(ReceiveOrder.created_at.desc(), ReceiveOrder.id.desc())
    )
    if inventory_id is not None:
        stmt = stmt.where(
            or_(
                PurchaseOrder.requesting_inventory_id == inventory_id,
                ReceiveOrder.to_inventory_id == inventory_id,
            )
        )
    return paginate(db, stmt, page=page, page_size=page_size)


def list_incoming_tos(db: Session, *, inventory_id: int) -> list[TransferOrder]:
    """TOs on their way to the inventory that nobody has received yet."""
    rows = (
        db.execute(
            select(TransferOrder)
            .join(PurchaseOrder, PurchaseOrder.id == TransferOrder.purchase_order_id)
            .outerjoin(ReceiveOrder, ReceiveOrder.transfer_order_id == TransferOrder.id)
            .where(PurchaseOrder.requesting_inventory_id == inventory_id)
            .where(TransferOrder.status == TOStatus.created)
            .where(ReceiveOrder.id.is_(None))
            .order_by(TransferOrder.created_at.desc(), TransferOrder.id.desc())
        )
        .scalars()
        .all()
    )
    return list(rows)


def get_ro(db: Session, ro_id: int) -> ReceiveOrder:
    return require(db, ReceiveOrder, ro_id, "Receive Order")
