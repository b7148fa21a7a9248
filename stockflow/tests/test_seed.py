from sqlalchemy import func, select

from stockflow.app.db.models.models_v1 import Employee, Inventory, Sku, User
from stockflow.app.db.seed import INVENTORIES, SKUS, seed


def test_seed_is_idempotent(db_session):
    assert seed(db_session) == 1 + len(INVENTORIES) + len(SKUS) + 1
    db_session.commit()

    assert seed(db_session) == 0
    db_session.commit()

    for model, expected in ((User, 1), (Inventory, 3), (Sku, 2), (Employee, 1)):
        assert db_session.execute(select(func.count()).select_from(model)).scalar_one() == expected

    prd = db_session.execute(select(Inventory).where(Inventory.code == "PRD-001")).scalar_one()
    assert prd.type.value == "PRODUCTION"
