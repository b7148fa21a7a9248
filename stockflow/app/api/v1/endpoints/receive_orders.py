from __future__ import annotations

from typing import Annotated, Literal, Union

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from stockflow.app.api.deps import get_db, require_privilege
from stockflow.app.db.models.models_v1 import User
from stockflow.app.schemas.common import paginated
from stockflow.app.schemas.orders import ReceiveOrderRead, TransferOrderRead
from stockflow.services import receiving
from stockflow.services.common import BatchLine

router = APIRouter(prefix="/receive-orders")


# ---------- Schemas ----------
class ReceivedBatch(BaseModel):
    batch_id: int
    quantity: int = Field(ge=0)  # 0 = the whole line was lost in transit


class ROItemCreate(BaseModel):
    sku_id: int
    batches: list[ReceivedBatch] = Field(min_length=1)


class ROCreateFromTO(BaseModel):
    mode: Literal["from_to"]
    transfer_order_id: int
    items: list[ROItemCreate] = Field(min_length=1)


class ROCreateManual(BaseModel):
    mode: Literal["manual"]
    from_inventory_id: int
    to_inventory_id: int
    items: list[ROItemCreate] = Field(min_length=1)


ROCreate = Annotated[Union[ROCreateFromTO, ROCreateManual], Field(discriminator="mode")]


def _lines(items: list[ROItemCreate]) -> list[BatchLine]:
    return [BatchLine(it.sku_id, b.batch_id, b.quantity) for it in items for b in it.batches]


# ---------- Endpoints ----------
@router.get("")
def list_ros(
    inventory_id: int | None = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    user: User = Depends(require_privilege("inventory", "receive_stock", "view")),
):
    rows, total = receiving.list_ros(db, inventory_id=inventory_id, page=page, page_size=page_size)
    return paginated(rows, total, page=page, page_size=page_size, schema=ReceiveOrderRead)


@router.get("/incoming", response_model=list[TransferOrderRead])
def list_incoming(
    inventory_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_privilege("inventory", "receive_stock", "view")),
):
    return receiving.list_incoming_tos(db, inventory_id=inventory_id)


@router.get("/{ro_id}", response_model=ReceiveOrderRead)
def get_ro(
    ro_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_privilege("inventory", "receive_stock", "view")),
):
    return receiving.get_ro(db, ro_id)


@router.post("", response_model=ReceiveOrderRead, status_code=201)
def create_ro(
    payload: ROCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_privilege("inventory", "receive_stock", "create")),
):
    if isinstance(payload, ROCreateFromTO):
        ro = receiving.create_ro_from_to(
            db,
            transfer_order_id=payload.transfer_order_id,
            lines=_lines(payload.items),
            user_id=user.id,
        )
    else:
        ro = receiving.create_manual_ro(
            db,
            from_inventory_id=payload.from_inventory_id,
            to_inventory_id=payload.to_inventory_id,
            lines=_lines(payload.items),
            user_id=user.id,
        )

    db.commit()
    db.refresh(ro)
    return ro
