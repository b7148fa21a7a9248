from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from stockflow.app.api.deps import get_db, require_privilege
from stockflow.app.db.models.models_v1 import User
from stockflow.app.db.models.core_types import POStatus
from stockflow.app.schemas.common import paginated
from stockflow.app.schemas.orders import PurchaseOrderRead
from stockflow.services import procurement

router = APIRouter(prefix="/purchase-orders")


class POItemCreate(BaseModel):
    sku_id: int
    requested_quantity: int = Field(ge=1)


class POCreate(BaseModel):
    requesting_inventory_id: int
    fulfilling_inventory_id: int
    items: list[POItemCreate] = Field(min_length=1)


@router.get("")
def list_pos(
    direction: Literal["incoming", "outgoing"] | None = None,
    inventory_id: int | None = None,
    status: POStatus | None = None,
    only_active: bool = False,
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    user: User = Depends(require_privilege("inventory", "purchase_order", "view")),
):
    rows, total = procurement.list_pos(
        db,
        direction=direction,
        inventory_id=inventory_id,
        status=status,
        only_active=only_active,
        page=page,
        page_size=page_size,
    )
    return paginated(rows, total, page=page, page_size=page_size, schema=PurchaseOrderRead)


@router.get("/{po_id}", response_model=PurchaseOrderRead)
def get_po(
    po_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_privilege("inventory", "purchase_order", "view")),
):
    return procurement.get_po(db, po_id)


@router.post("", response_model=PurchaseOrderRead, status_code=201)
def create_po(
    payload: POCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_privilege("inventory", "purchase_order", "create")),
):
    po = procurement.create_po(
        db,
        requesting_inventory_id=payload.requesting_inventory_id,
        fulfilling_inventory_id=payload.fulfilling_inventory_id,
        items=[(it.sku_id, it.requested_quantity) for it in payload.items],
        user_id=user.id,
    )
    db.commit()
    db.refresh(po)
    return po


@router.post("/{po_id}/deactivate", response_model=PurchaseOrderRead)
def deactivate_po(
    po_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_privilege("inventory", "purchase_order", "edit")),
):
    po = procurement.deactivate_po(db, po_id)
    db.commit()
    db.refresh(po)
    return po
