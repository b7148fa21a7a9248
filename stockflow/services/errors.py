"""
Domain errors raised by the stock services.

The HTTP layer maps them to status codes (see ``stockflow.app.main``);
services never catch them, so the request's transaction is never committed.
"""

from __future__ import annotations


class StockflowError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(StockflowError):
    status_code = 400


class NotFound(StockflowError):
    status_code = 404

    def __init__(self, entity: str, entity_id: object):
        super().__init__(f"{entity} not found (id={entity_id})")
        self.entity = entity
        self.entity_id = entity_id


class InsufficientStock(StockflowError):
    status_code = 409

    def __init__(self, *, inventory_id: int, sku_id: int, batch_id: int, available: int, requested: int):
        super().__init__(
            f"Insufficient stock for SKU {sku_id} in batch {batch_id} at inventory {inventory_id}. "
            f"Available: {available}, Requested: {requested}"
        )
        self.inventory_id = inventory_id
        self.sku_id = sku_id
        self.batch_id = batch_id
        self.available = available
        self.requested = requested
