import pytest
from sqlalchemy import func, insert, select

from stockflow.app.db.models.models_v1 import DocumentSequence, Stock, StockHistory
from stockflow.app.db.models.core_types import POStatus
from stockflow.services import procurement
from stockflow.services.errors import NotFound, ValidationError


def test_create_po_is_metadata_only(db_session, world):
    po = procurement.create_po(
        db_session,
        requesting_inventory_id=world.hub.id,
        fulfilling_inventory_id=world.prd.id,
        items=[(world.beef.id, 20), (world.chicken.id, 5)],
        user_id=world.user.id,
    )
    db_session.commit()

    assert po.po_number == "PO00001"
    assert po.status == POStatus.created
    assert po.is_active is True
    assert sorted((i.sku_id, i.requested_quantity) for i in po.items) == sorted(
        [(world.beef.id, 20), (world.chicken.id, 5)]
    )
    assert db_session.execute(select(func.count()).select_from(Stock)).scalar_one() == 0
    assert db_session.execute(select(func.count()).select_from(StockHistory)).scalar_one() == 0


def test_po_numbers_are_sequential(db_session, world):
    numbers = [
        procurement.create_po(
            db_session,
            requesting_inventory_id=world.store.id,
            fulfilling_inventory_id=world.hub.id,
            items=[(world.beef.id, 1)],
            user_id=world.user.id,
        ).po_number
        for _ in range(2)
    ]
    assert numbers == ["PO00001", "PO00002"]


@pytest.mark.parametrize(
    "items",
    [
        [],
        [("beef", 0)],
        [("beef", -1)],
    ],
)
def test_create_po_rejects_bad_items(db_session, world, items):
    resolved = [(getattr(world, sku).id, qty) for sku, qty in items]
    with pytest.raises(ValidationError):
        procurement.create_po(
            db_session,
            requesting_inventory_id=world.hub.id,
            fulfilling_inventory_id=world.prd.id,
            items=resolved,
            user_id=world.user.id,
        )


def test_create_po_rejects_same_inventory(db_session, world):
    with pytest.raises(ValidationError):
        procurement.create_po(
            db_session,
            requesting_inventory_id=world.hub.id,
            fulfilling_inventory_id=world.hub.id,
            items=[(world.beef.id, 1)],
            user_id=world.user.id,
        )


def test_create_po_unknown_inventory(db_session, world):
    with pytest.raises(NotFound):
        procurement.create_po(
            db_session,
            requesting_inventory_id=world.hub.id,
            fulfilling_inventory_id=world.hub.id + 1000,
            items=[(world.beef.id, 1)],
            user_id=world.user.id,
        )


def test_list_pos_by_direction(db_session, world):
    hub_asks_prd = procurement.create_po(
        db_session,
        requesting_inventory_id=world.hub.id,
        fulfilling_inventory_id=world.prd.id,
        items=[(world.beef.id, 1)],
        user_id=world.user.id,
    )
    store_asks_hub = procurement.create_po(
        db_session,
        requesting_inventory_id=world.store.id,
        fulfilling_inventory_id=world.hub.id,
        items=[(world.beef.id, 1)],
        user_id=world.user.id,
    )
    db_session.commit()

    incoming, _ = procurement.list_pos(db_session, direction="incoming", inventory_id=world.hub.id)
    outgoing, _ = procurement.list_pos(db_session, direction="outgoing", inventory_id=world.hub.id)
    either, total = procurement.list_pos(db_session, inventory_id=world.hub.id)

    assert [p.id for p in incoming] == [store_asks_hub.id]
    assert [p.id for p in outgoing] == [hub_asks_prd.id]
    assert total == 2
    assert {p.id for p in either} == {hub_asks_prd.id, store_asks_hub.id}

    with pytest.raises(ValidationError):
        procurement.list_pos(db_session, direction="sideways", inventory_id=world.hub.id)


def test_deactivate_only_created(db_session, world):
    po = procurement.create_po(
        db_session,
        requesting_inventory_id=world.hub.id,
        fulfilling_inventory_id=world.prd.id,
        items=[(world.beef.id, 1)],
        user_id=world.user.id,
    )
    db_session.commit()

    procurement.deactivate_po(db_session, po.id)
    db_session.commit()
    assert po.is_active is False

    active, total = procurement.list_pos(db_session, only_active=True)
    assert (active, total) == ([], 0)

    po.status = POStatus.in_transit
    db_session.commit()
    with pytest.raises(ValidationError):
        procurement.deactivate_po(db_session, po.id)


def test_get_po_not_found(db_session, world):
    with pytest.raises(NotFound):
        procurement.get_po(db_session, 999)


def test_deactivate_locks_the_po(db_session, world, for_update_tables):
    po = procurement.create_po(
        db_session,
        requesting_inventory_id=world.hub.id,
        fulfilling_inventory_id=world.prd.id,
        items=[(world.beef.id, 1)],
        user_id=world.user.id,
    )
    db_session.commit()
    for_update_tables.clear()

    procurement.deactivate_po(db_session, po.id)

    assert for_update_tables == ["purchase_orders"]


def test_numbering_continues_from_an_existing_counter_row(db_session, world, executed_sql):
    # counter row committed by someone else, unknown to this session
    db_session.execute(insert(DocumentSequence).values(name="PO", last_value=41))
    db_session.commit()

    po = procurement.create_po(
        db_session,
        requesting_inventory_id=world.hub.id,
        fulfilling_inventory_id=world.prd.id,
        items=[(world.beef.id, 1)],
        user_id=world.user.id,
    )
    db_session.commit()

    assert po.po_number == "PO00042"
    assert db_session.get(DocumentSequence, "PO").last_value == 42
    assert any(
        s.startswith("INSERT INTO document_sequences") and "ON CONFLICT DO NOTHING" in s for s in executed_sql
    )
