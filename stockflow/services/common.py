from __future__ import annotations

from typing import Any, Iterable, NamedTuple, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from stockflow.app.db.models.models_v1 import Batch, Sku
from stockflow.services.errors import NotFound, ValidationError

T = TypeVar("T")

# INSERT ... ON CONFLICT DO NOTHING per backend (Postgres in production, SQLite in tests)
UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class BatchLine(NamedTuple):
    """One (sku, batch, quantity) line of a transfer or receive order."""

    sku_id: int
    batch_id: int
    quantity: int


def validate_lines(db: Session, lines: Iterable[BatchLine], *, min_quantity: int, document: str) -> list[BatchLine]:
    lines = [BatchLine(*line) for line in lines]
    if not lines:
        raise ValidationError(f"A {document} needs at least one item")

    for line in lines:
        if line.quantity < min_quantity:
            raise ValidationError(
                f"Quantity for SKU {line.sku_id} in batch {line.batch_id} must be at least {min_quantity}"
            )

    for sku_id in {line.sku_id for line in lines}:
        require(db, Sku, sku_id, "SKU")
    for batch_id in {line.batch_id for line in lines}:
        require(db, Batch, batch_id)

    return lines


def require(db: Session, model: type[T], entity_id: int, label: str | None = None) -> T:
    """db.get() that raises NotFound instead of returning None."""
    obj = db.get(model, entity_id)
    if obj is None:
        raise NotFound(label or model.__name__, entity_id)
    return obj


def lock(db: Session, model: type[T], entity_id: int, label: str | None = None) -> T:
    """Like require(), but the row stays locked (FOR UPDATE) until the transaction ends."""
    obj = (
        db.execute(
            select(model)
            .where(model.id == entity_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        .scalar_one_or_none()
    )
    if obj is None:
        raise NotFound(label or model.__name__, entity_id)
    return obj


def insert_if_missing(db: Session, model: type, **values: Any) -> None:
    """
    Create a keyed row unless it already exists (INSERT ... ON CONFLICT DO NOTHING).

    FOR UPDATE on a missing row locks nothing: call this first, then lock.
    """
    dialect = db.get_bind().dialect.name
    try:
        insert = UPSERT_INSERTS[dialect]
    except KeyError:
        raise RuntimeError(f"No upsert support for dialect {dialect!r}") from None
    db.execute(insert(model).values(**values).on_conflict_do_nothing())


def paginate(db: Session, stmt: Select, *, page: int, page_size: int) -> tuple[list[Any], int]:
    page = max(page, 1)
    page_size = max(page_size, 1)

    total = db.execute(select(func.count()).select_from(stmt.order_by(None).subquery())).scalar_one()
    rows = db.execute(stmt.offset((page - 1) * page_size).limit(page_size)).scalars().all()
    return list(rows), int(total)
