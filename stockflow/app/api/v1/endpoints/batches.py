from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from stockflow.app.api.deps import get_db, require_privilege
from stockflow.app.db.models.models_v1 import User
from stockflow.app.schemas.common import paginated
from stockflow.app.schemas.orders import BatchRead
from stockflow.services import production

router = APIRouter(prefix="/batches")


class BatchItemCreate(BaseModel):
    sku_id: int
    quantity: int = Field(ge=1)


class BatchCreate(BaseModel):
    inventory_id: int
    production_date: date | None = None
    items: list[BatchItemCreate] = Field(min_length=1)


@router.get("")
def list_batches(
    inventory_id: int | None = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    user: User = Depends(require_privilege("production", "daily_production", "view")),
):
    rows, total = production.list_batches(db, inventory_id=inventory_id, page=page, page_size=page_size)
    return paginated(rows, total, page=page, page_size=page_size, schema=BatchRead)


@router.get("/{batch_id}", response_model=BatchRead)
def get_batch(
    batch_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_privilege("production", "daily_production", "view")),
):
    return production.get_batch(db, batch_id)


@router.post("", response_model=BatchRead, status_code=201)
def create_batch(
    payload: BatchCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_privilege("production", "daily_production", "create")),
):
    batch = production.create_batch(
        db,
        inventory_id=payload.inventory_id,
        production_date=payload.production_date,
        items=[(it.sku_id, it.quantity) for it in payload.items],
        user_id=user.id,
    )
    db.commit()
    db.refresh(batch)
    return batch
