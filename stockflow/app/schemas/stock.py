from datetime import date, datetime

from pydantic import BaseModel

from stockflow.app.schemas.common import BatchRef, InventoryRef, ORMModel, SkuRef


class StockBatchRead(BaseModel):
    batch_id: int
    batch_code: str
    production_date: date
    quantity: int


class StockBySkuRead(BaseModel):
    sku_id: int
    sku_code: str
    sku_name: str
    total_quantity: int
    batches: list[StockBatchRead]


class StockCellRead(BaseModel):
    inventory_id: int
    sku_id: int
    batch_id: int
    quantity: int


class StockHistoryRead(ORMModel):
    id: int
    inventory_id: int
    sku_id: int
    batch_id: int
    user_id: int

    old_quantity: int
    new_quantity: int
    reason: str
    created_at: datetime

    inventory: InventoryRef
    sku: SkuRef
    batch: BatchRef
