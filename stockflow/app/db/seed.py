from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from stockflow.app.db.session import session_scope
from stockflow.app.db.models.models_v1 import Employee, Inventory, Sku, User
from stockflow.app.db.models.core_types import InventoryType

logger = logging.getLogger(__name__)


INVENTORIES = [
    ("PRD-001", "Central Kitchen", InventoryType.production),
    ("HUB-001", "North Hub", InventoryType.hub),
    ("STR-001", "Downtown Store", InventoryType.store),
]

SKUS = [
    ("SKU-BEEF-500", "Beef patty 500g"),
    ("SKU-CHKN-250", "Chicken breast 250g"),
]

EMPLOYEES = [
    ("EMP-001", "Default Dispatcher"),
]


def seed(db: Session) -> int:
    """Insert missing master data. Safe to run repeatedly; returns rows added."""
    added = 0

    # 1) Admin user
    if not db.scalar(select(User).where(User.username == "admin")):
        db.add(User(username="admin", full_name="Administrator", active=True))
        added += 1

    # 2) Inventories
    for code, name, inv_type in INVENTORIES:
        if not db.scalar(select(Inventory).where(Inventory.code == code)):
            db.add(Inventory(code=code, name=name, type=inv_type, active=True))
            added += 1

    # 3) SKUs
    for code, name in SKUS:
        if not db.scalar(select(Sku).where(Sku.code == code)):
            db.add(Sku(code=code, name=name, active=True))
            added += 1

    # 4) Dispatchers
    for code, full_name in EMPLOYEES:
        if not db.scalar(select(Employee).where(Employee.code == code)):
            db.add(Employee(code=code, full_name=full_name, active=True))
            added += 1

    db.flush()
    return added


def run_seed():
    with session_scope() as db:
        added = seed(db)
    logger.info("Seed done: %d row(s) added", added)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    run_seed()
