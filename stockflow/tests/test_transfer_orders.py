import pytest
from sqlalchemy import func, select

from stockflow.app.db.models.models_v1 import (
    DocumentSequence,
    PurchaseOrder,
    StockHistory,
    TOItem,
    TransferOrder,
)
from stockflow.app.db.models.core_types import POStatus, TOStatus
from stockflow.services import inventory, procurement, transfers
from stockflow.services.common import BatchLine
from stockflow.services.errors import InsufficientStock, NotFound, ValidationError
from stockflow.services.production import create_batch


@pytest.fixture
def b001(db_session, world):
    b = create_batch(db_session, inventory_id=world.prd.id, items=[(world.beef.id, 20)], user_id=world.user.id)
    db_session.commit()
    return b


@pytest.fixture
def po(db_session, world):
    p = procurement.create_po(
        db_session,
        requesting_inventory_id=world.hub.id,
        fulfilling_inventory_id=world.prd.id,
        items=[(world.beef.id, 20)],
        user_id=world.user.id,
    )
    db_session.commit()
    return p


def _count(db, model):
    return db.execute(select(func.count()).select_from(model)).scalar_one()


def test_to_from_po_drains_sender_and_moves_po_in_transit(db_session, world, b001, po):
    to = transfers.create_to_from_po(
        db_session,
        purchase_order_id=po.id,
        employee_id=world.employee.id,
        lines=[BatchLine(world.beef.id, b001.id, 20)],
        user_id=world.user.id,
    )
    db_session.commit()

    assert to.to_number == "TO00001"
    assert to.status == TOStatus.created
    assert to.purchase_order_id == po.id
    assert inventory.get_cell(db_session, world.prd.id, world.beef.id, b001.id) == 0
    assert db_session.get(PurchaseOrder, po.id).status == POStatus.in_transit

    [item] = to.items
    assert (item.sku_id, item.batch_id, item.sent_quantity, item.received_quantity) == (
        world.beef.id,
        b001.id,
        20,
        None,
    )

    last = db_session.execute(select(StockHistory).order_by(StockHistory.id.desc())).scalars().first()
    assert (last.old_quantity, last.new_quantity) == (20, 0)
    assert last.reason == "Transfer Order TO00001 (sent out)"


def test_second_to_beyond_stock_fails_and_leaves_cell_alone(db_session, world, b001, po):
    transfers.create_to_from_po(
        db_session,
        purchase_order_id=po.id,
        employee_id=world.employee.id,
        lines=[BatchLine(world.beef.id, b001.id, 20)],
        user_id=world.user.id,
    )
    db_session.commit()

    with pytest.raises(InsufficientStock):
        transfers.create_to_from_po(
            db_session,
            purchase_order_id=po.id,
            employee_id=world.employee.id,
            lines=[BatchLine(world.beef.id, b001.id, 1)],
            user_id=world.user.id,
        )
    db_session.rollback()

    assert inventory.get_cell(db_session, world.prd.id, world.beef.id, b001.id) == 0
    assert _count(db_session, TransferOrder) == 1


def test_failing_line_aborts_the_whole_to(db_session, world, b001, po):
    chicken_batch = create_batch(
        db_session, inventory_id=world.prd.id, items=[(world.chicken.id, 3)], user_id=world.user.id
    )
    db_session.commit()
    history_before = _count(db_session, StockHistory)

    with pytest.raises(InsufficientStock) as exc:
        transfers.create_to_from_po(
            db_session,
            purchase_order_id=po.id,
            employee_id=world.employee.id,
            lines=[
                BatchLine(world.beef.id, b001.id, 10),
                BatchLine(world.chicken.id, chicken_batch.id, 4),
            ],
            user_id=world.user.id,
        )
    db_session.rollback()

    assert exc.value.sku_id == world.chicken.id
    assert inventory.get_cell(db_session, world.prd.id, world.beef.id, b001.id) == 20
    assert inventory.get_cell(db_session, world.prd.id, world.chicken.id, chicken_batch.id) == 3
    assert _count(db_session, TransferOrder) == 0
    assert _count(db_session, TOItem) == 0
    assert _count(db_session, StockHistory) == history_before
    assert db_session.get(PurchaseOrder, po.id).status == POStatus.created

    # resubmitting the fixed document starts from the untouched quantity and number
    to = transfers.create_to_from_po(
        db_session,
        purchase_order_id=po.id,
        employee_id=world.employee.id,
        lines=[
            BatchLine(world.beef.id, b001.id, 10),
            BatchLine(world.chicken.id, chicken_batch.id, 3),
        ],
        user_id=world.user.id,
    )
    db_session.commit()

    assert to.to_number == "TO00001"
    assert inventory.get_cell(db_session, world.prd.id, world.beef.id, b001.id) == 10
    assert inventory.get_cell(db_session, world.prd.id, world.chicken.id, chicken_batch.id) == 0


def test_duplicate_lines_are_checked_together(db_session, world, b001, po):
    with pytest.raises(InsufficientStock) as exc:
        transfers.create_to_from_po(
            db_session,
            purchase_order_id=po.id,
            employee_id=world.employee.id,
            lines=[BatchLine(world.beef.id, b001.id, 15), BatchLine(world.beef.id, b001.id, 6)],
            user_id=world.user.id,
        )
    db_session.rollback()

    assert exc.value.requested == 21
    assert inventory.get_cell(db_session, world.prd.id, world.beef.id, b001.id) == 20


def test_empty_lines_rejected_before_touching_stock(db_session, world, b001, po):
    with pytest.raises(ValidationError):
        transfers.create_to_from_po(
            db_session,
            purchase_order_id=po.id,
            employee_id=world.employee.id,
            lines=[],
            user_id=world.user.id,
        )
    with pytest.raises(ValidationError):
        transfers.create_manual_to(
            db_session,
            from_inventory_id=world.prd.id,
            to_inventory_id=world.hub.id,
            employee_id=world.employee.id,
            lines=[],
            user_id=world.user.id,
        )

    assert db_session.get(DocumentSequence, "TO") is None
    assert inventory.get_cell(db_session, world.prd.id, world.beef.id, b001.id) == 20


def test_zero_quantity_line_rejected(db_session, world, b001, po):
    with pytest.raises(ValidationError):
        transfers.create_to_from_po(
            db_session,
            purchase_order_id=po.id,
            employee_id=world.employee.id,
            lines=[BatchLine(world.beef.id, b001.id, 0)],
            user_id=world.user.id,
        )


def test_unknown_po_and_employee(db_session, world, b001, po):
    with pytest.raises(NotFound):
        transfers.create_to_from_po(
            db_session,
            purchase_order_id=po.id + 50,
            employee_id=world.employee.id,
            lines=[BatchLine(world.beef.id, b001.id, 1)],
            user_id=world.user.id,
        )
    with pytest.raises(NotFound):
        transfers.create_to_from_po(
            db_session,
            purchase_order_id=po.id,
            employee_id=world.employee.id + 50,
            lines=[BatchLine(world.beef.id, b001.id, 1)],
            user_id=world.user.id,
        )


def test_deactivated_po_rejects_transfers(db_session, world, b001, po):
    procurement.deactivate_po(db_session, po.id)
    db_session.commit()

    with pytest.raises(ValidationError):
        transfers.create_to_from_po(
            db_session,
            purchase_order_id=po.id,
            employee_id=world.employee.id,
            lines=[BatchLine(world.beef.id, b001.id, 1)],
            user_id=world.user.id,
        )


def test_manual_to_synthesizes_inverse_po(db_session, world, b001):
    to = transfers.create_manual_to(
        db_session,
        from_inventory_id=world.prd.id,
        to_inventory_id=world.hub.id,
        employee_id=world.employee.id,
        lines=[BatchLine(world.beef.id, b001.id, 5), BatchLine(world.beef.id, b001.id, 3)],
        user_id=world.user.id,
    )
    db_session.commit()

    po = to.purchase_order
    assert po.po_number == "PO00001"
    assert po.status == POStatus.in_transit
    # the TO's receiver requests, its sender fulfils
    assert po.requesting_inventory_id == world.hub.id
    assert po.fulfilling_inventory_id == world.prd.id
    assert [(i.sku_id, i.requested_quantity) for i in po.items] == [(world.beef.id, 8)]

    assert len(to.items) == 2
    assert inventory.get_cell(db_session, world.prd.id, world.beef.id, b001.id) == 12


def test_manual_to_requires_distinct_inventories(db_session, world, b001):
    with pytest.raises(ValidationError):
        transfers.create_manual_to(
            db_session,
            from_inventory_id=world.prd.id,
            to_inventory_id=world.prd.id,
            employee_id=world.employee.id,
            lines=[BatchLine(world.beef.id, b001.id, 1)],
            user_id=world.user.id,
        )


def test_manual_to_insufficient_stock_creates_no_po(db_session, world, b001):
    with pytest.raises(InsufficientStock):
        transfers.create_manual_to(
            db_session,
            from_inventory_id=world.hub.id,
            to_inventory_id=world.store.id,
            employee_id=world.employee.id,
            lines=[BatchLine(world.beef.id, b001.id, 1)],
            user_id=world.user.id,
        )
    db_session.rollback()

    assert _count(db_session, PurchaseOrder) == 0
    assert _count(db_session, TransferOrder) == 0


def test_list_tos_by_inventory(db_session, world, b001, po):
    to = transfers.create_to_from_po(
        db_session,
        purchase_order_id=po.id,
        employee_id=world.employee.id,
        lines=[BatchLine(world.beef.id, b001.id, 2)],
        user_id=world.user.id,
    )
    db_session.commit()

    for inv in (world.prd, world.hub):
        rows, total = transfers.list_tos(db_session, inventory_id=inv.id)
        assert (total, [r.id for r in rows]) == (1, [to.id])

    rows, total = transfers.list_tos(db_session, inventory_id=world.store.id)
    assert (rows, total) == ([], 0)

    assert transfers.get_to(db_session, to.id).to_number == "TO00001"
    with pytest.raises(NotFound):
        transfers.get_to(db_session, to.id + 1)


def test_to_from_po_locks_the_po_before_checking_it(db_session, world, b001, po, for_update_tables):
    transfers.create_to_from_po(
        db_session,
        purchase_order_id=po.id,
        employee_id=world.employee.id,
        lines=[BatchLine(world.beef.id, b001.id, 1)],
        user_id=world.user.id,
    )

    assert for_update_tables[0] == "purchase_orders"
    # then the TO number counter and the sender's cell
    assert for_update_tables[1:] == ["document_sequences", "stock"]
