from __future__ import annotations

import math
from datetime import date
from typing import Any, Iterable

from pydantic import BaseModel

from stockflow.app.db.models.core_types import InventoryType


class ORMModel(BaseModel):
    class Config:
        from_attributes = True


class InventoryRef(ORMModel):
    id: int
    code: str
    name: str
    type: InventoryType


class SkuRef(ORMModel):
    id: int
    code: str
    name: str


class BatchRef(ORMModel):
    id: int
    code: str
    production_date: date


class EmployeeRef(ORMModel):
    id: int
    code: str
    full_name: str


class Pagination(BaseModel):
    page: int
    page_size: int
    total: int
    total_pages: int


def paginated(rows: Iterable[Any], total: int, *, page: int, page_size: int, schema: type[ORMModel]) -> dict:
    # same clamping as services.common.paginate, so the envelope matches the rows
    page, page_size = max(page, 1), max(page_size, 1)
    return {
        "data": [schema.model_validate(r) for r in rows],
        "pagination": Pagination(
            page=page,
            page_size=page_size,
            total=total,
            total_pages=math.ceil(total / page_size),
        ),
    }
