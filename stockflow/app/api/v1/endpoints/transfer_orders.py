from __future__ import annotations

from typing import Annotated, Literal, Union

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from stockflow.app.api.deps import get_db, require_privilege
from stockflow.app.db.models.models_v1 import User
from stockflow.app.schemas.common import paginated
from stockflow.app.schemas.orders import TransferOrderRead
from stockflow.app.schemas.stock import StockBatchRead
from stockflow.services import inventory, transfers
from stockflow.services.common import BatchLine

router = APIRouter(prefix="/transfer-orders")


# ---------- Schemas ----------
class BatchQuantity(BaseModel):
    batch_id: int
    quantity: int = Field(ge=1)


class TOItemCreate(BaseModel):
    sku_id: int
    batches: list[BatchQuantity] = Field(min_length=1)


class TOCreateFromPO(BaseModel):
    mode: Literal["from_po"]
    purchase_order_id: int
    employee_id: int
    items: list[TOItemCreate] = Field(min_length=1)


class TOCreateManual(BaseModel):
    mode: Literal["manual"]
    from_inventory_id: int
    to_inventory_id: int
    employee_id: int
    items: list[TOItemCreate] = Field(min_length=1)


TOCreate = Annotated[Union[TOCreateFromPO, TOCreateManual], Field(discriminator="mode")]


def _lines(items: list[TOItemCreate]) -> list[BatchLine]:
    return [BatchLine(it.sku_id, b.batch_id, b.quantity) for it in items for b in it.batches]


# ---------- Endpoints ----------
@router.get("")
def list_tos(
    inventory_id: int | None = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    user: User = Depends(require_privilege("inventory", "send_stock", "view")),
):
    rows, total = transfers.list_tos(db, inventory_id=inventory_id, page=page, page_size=page_size)
    return paginated(rows, total, page=page, page_size=page_size, schema=TransferOrderRead)


@router.get("/available-batches", response_model=list[StockBatchRead])
def available_batches(
    inventory_id: int,
    sku_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_privilege("inventory", "send_stock", "view")),
):
    """Batches with stock on hand for one SKU, to pick TO lines from."""
    return inventory.available_batches(db, inventory_id=inventory_id, sku_id=sku_id)


@router.get("/{to_id}", response_model=TransferOrderRead)
def get_to(
    to_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_privilege("inventory", "send_stock", "view")),
):
    return transfers.get_to(db, to_id)


@router.post("", response_model=TransferOrderRead, status_code=201)
def create_to(
    payload: TOCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_privilege("inventory", "send_stock", "create")),
):
    if isinstance(payload, TOCreateFromPO):
        to = transfers.create_to_from_po(
            db,
            purchase_order_id=payload.purchase_order_id,
            employee_id=payload.employee_id,
            lines=_lines(payload.items),
            user_id=user.id,
        )
    else:
        to = transfers.create_manual_to(
            db,
            from_inventory_id=payload.from_inventory_id,
            to_inventory_id=payload.to_inventory_id,
            employee_id=payload.employee_id,
            lines=_lines(payload.items),
            user_id=user.id,
        )

    db.commit()
    db.refresh(to)
    return to
