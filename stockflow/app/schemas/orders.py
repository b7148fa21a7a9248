from __future__ import annotations

from datetime import date, datetime

from stockflow.app.db.models.core_types import POStatus, TOStatus
from stockflow.app.schemas.common import BatchRef, EmployeeRef, InventoryRef, ORMModel, SkuRef


# ---------- PURCHASE ORDERS ----------
class POItemRead(ORMModel):
    sku_id: int
    requested_quantity: int
    sku: SkuRef


class TransferOrderSummary(ORMModel):
    id: int
    to_number: str
    status: TOStatus
    employee_id: int
    created_at: datetime


class PurchaseOrderRead(ORMModel):
    id: int
    po_number: str
    status: POStatus
    is_active: bool
    requesting_inventory_id: int
    fulfilling_inventory_id: int
    created_by: int
    created_at: datetime

    requesting_inventory: InventoryRef
    fulfilling_inventory: InventoryRef
    items: list[POItemRead]
    transfer_orders: list[TransferOrderSummary]


class PurchaseOrderSummary(ORMModel):
    id: int
    po_number: str
    status: POStatus
    requesting_inventory: InventoryRef
    fulfilling_inventory: InventoryRef


# ---------- TRANSFER ORDERS ----------
class TOItemRead(ORMModel):
    id: int
    sku_id: int
    batch_id: int
    sent_quantity: int
    received_quantity: int | None
    sku: SkuRef
    batch: BatchRef


class TransferOrderRead(ORMModel):
    id: int
    to_number: str
    status: TOStatus
    purchase_order_id: int
    employee_id: int
    created_by: int
    created_at: datetime

    purchase_order: PurchaseOrderSummary
    employee: EmployeeRef
    items: list[TOItemRead]


# ---------- RECEIVE ORDERS ----------
class ROItemRead(ORMModel):
    id: int
    sku_id: int
    batch_id: int
    received_quantity: int
    sku: SkuRef
    batch: BatchRef


class ReceiveOrderTransferRef(ORMModel):
    id: int
    to_number: str
    status: TOStatus
    purchase_order: PurchaseOrderSummary


class ReceiveOrderRead(ORMModel):
    id: int
    ro_number: str
    transfer_order_id: int | None
    to_inventory_id: int | None
    from_inventory_id: int | None
    created_by: int
    created_at: datetime

    transfer_order: ReceiveOrderTransferRef | None
    to_inventory: InventoryRef | None
    from_inventory: InventoryRef | None
    items: list[ROItemRead]


# ---------- BATCHES ----------
class BatchItemRead(ORMModel):
    sku_id: int
    quantity: int
    sku: SkuRef


class BatchRead(ORMModel):
    id: int
    code: str
    inventory_id: int
    production_date: date
    created_by: int
    created_at: datetime

    inventory: InventoryRef
    items: list[BatchItemRead]
