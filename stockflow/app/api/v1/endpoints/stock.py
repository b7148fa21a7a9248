from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from stockflow.app.api.deps import get_db, require_privilege
from stockflow.app.db.models.models_v1 import User
from stockflow.app.schemas.common import paginated
from stockflow.app.schemas.stock import StockBySkuRead, StockCellRead, StockHistoryRead
from stockflow.services import inventory

router = APIRouter(prefix="/stock")


class StockEdit(BaseModel):
    inventory_id: int
    sku_id: int
    batch_id: int
    new_quantity: int = Field(ge=0)
    reason: str = Field(min_length=3, max_length=1000)


@router.get(
    "",
    response_model=list[StockBySkuRead],
)
def get_stock(
    inventory_id: int,
    sku_id: int | None = None,
    batch: str | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(require_privilege("inventory", "manage_stock", "view")),
):
    """
    Stock on hand (READ ONLY)
    - grouped per SKU, batch breakdown inside
    - zero cells are hidden
    """
    return inventory.list_by_sku(db, inventory_id=inventory_id, sku_id=sku_id, batch_code=batch)


@router.put("", response_model=StockCellRead)
def edit_stock(
    payload: StockEdit,
    db: Session = Depends(get_db),
    user: User = Depends(require_privilege("inventory", "manage_stock", "edit")),
):
    qty = inventory.edit_stock(
        db,
        inventory_id=payload.inventory_id,
        sku_id=payload.sku_id,
        batch_id=payload.batch_id,
        new_quantity=payload.new_quantity,
        reason=payload.reason,
        user_id=user.id,
    )
    db.commit()
    return {
        "inventory_id": payload.inventory_id,
        "sku_id": payload.sku_id,
        "batch_id": payload.batch_id,
        "quantity": qty,
    }


@router.get("/history")
def stock_history(
    inventory_id: int | None = None,
    sku_id: int | None = None,
    batch_id: int | None = None,
    only_manual: bool = False,
    page: int = Query(1, ge=1),
    page_size: int = Query(25, ge=1, le=100),
    db: Session = Depends(get_db),
    user: User = Depends(require_privilege("inventory", "manage_stock", "view")),
):
    rows, total = inventory.list_history(
        db,
        inventory_id=inventory_id,
        sku_id=sku_id,
        batch_id=batch_id,
        only_manual=only_manual,
        page=page,
        page_size=page_size,
    )
    return paginated(rows, total, page=page, page_size=page_size, schema=StockHistoryRead)
