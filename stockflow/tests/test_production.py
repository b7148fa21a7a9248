from datetime import date

import pytest
from sqlalchemy import select

from stockflow.app.db.models.models_v1 import Batch, BatchItem, StockHistory
from stockflow.services import inventory
from stockflow.services.errors import NotFound, ValidationError
from stockflow.services.production import create_batch, get_batch, list_batches


def test_production_batch_puts_stock_on_the_shelf(db_session, world):
    """Production creates B001 at PRD-001 with 20 beef: cell 0 -> 20, one history row."""
    batch = create_batch(
        db_session,
        inventory_id=world.prd.id,
        production_date=date(2026, 10, 1),
        items=[(world.beef.id, 20)],
        user_id=world.user.id,
    )
    db_session.commit()

    assert batch.code == "B001"
    assert batch.production_date == date(2026, 10, 1)
    assert inventory.get_cell(db_session, world.prd.id, world.beef.id, batch.id) == 20

    history = db_session.execute(select(StockHistory)).scalars().all()
    assert len(history) == 1
    row = history[0]
    assert (row.old_quantity, row.new_quantity) == (0, 20)
    assert row.reason == "Production batch B001 created"

    items = db_session.execute(select(BatchItem).where(BatchItem.batch_id == batch.id)).scalars().all()
    assert [(i.sku_id, i.quantity) for i in items] == [(world.beef.id, 20)]


def test_batch_codes_are_sequential(db_session, world):
    codes = []
    for _ in range(3):
        b = create_batch(db_session, inventory_id=world.prd.id, items=[(world.beef.id, 1)], user_id=world.user.id)
        codes.append(b.code)
    db_session.commit()

    assert codes == ["B001", "B002", "B003"]


def test_production_date_defaults_to_today(db_session, world):
    b = create_batch(db_session, inventory_id=world.prd.id, items=[(world.beef.id, 1)], user_id=world.user.id)
    assert b.production_date == date.today()


def test_duplicate_sku_lines_are_merged(db_session, world):
    b = create_batch(
        db_session,
        inventory_id=world.prd.id,
        items=[(world.beef.id, 4), (world.beef.id, 6)],
        user_id=world.user.id,
    )
    db_session.commit()

    assert inventory.get_cell(db_session, world.prd.id, world.beef.id, b.id) == 10
    assert len(b.items) == 1


def test_batch_only_at_production_inventory(db_session, world):
    with pytest.raises(ValidationError):
        create_batch(db_session, inventory_id=world.hub.id, items=[(world.beef.id, 1)], user_id=world.user.id)
    db_session.rollback()

    assert db_session.execute(select(Batch)).scalars().all() == []


@pytest.mark.parametrize("items", [[], [(1, 0)], [(1, -3)]])
def test_batch_rejects_bad_items(db_session, world, items):
    with pytest.raises(ValidationError):
        create_batch(db_session, inventory_id=world.prd.id, items=items, user_id=world.user.id)


def test_batch_unknown_sku(db_session, world):
    with pytest.raises(NotFound):
        create_batch(db_session, inventory_id=world.prd.id, items=[(world.beef.id + 100, 1)], user_id=world.user.id)


def test_list_and_get_batches(db_session, world):
    b1 = create_batch(db_session, inventory_id=world.prd.id, items=[(world.beef.id, 1)], user_id=world.user.id)
    b2 = create_batch(db_session, inventory_id=world.prd.id, items=[(world.chicken.id, 2)], user_id=world.user.id)
    db_session.commit()

    rows, total = list_batches(db_session, inventory_id=world.prd.id, page=1, page_size=1)
    assert total == 2
    assert [r.id for r in rows] == [b2.id]

    rows, total = list_batches(db_session, inventory_id=world.hub.id)
    assert (rows, total) == ([], 0)

    assert get_batch(db_session, b1.id).code == "B001"
    with pytest.raises(NotFound):
        get_batch(db_session, 12345)
