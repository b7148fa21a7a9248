import enum

class InventoryType(str, enum.Enum):
    production = "PRODUCTION"
    hub = "HUB"
    store = "STORE"

class POStatus(str, enum.Enum):
    created = "CREATED"
    in_transit = "IN_TRANSIT"
    fulfilled = "FULFILLED"

class TOStatus(str, enum.Enum):
    created = "CREATED"
    fulfilled = "FULFILLED"

class DocumentKind(str, enum.Enum):
    purchase_order = "PO"
    transfer_order = "TO"
    receive_order = "RO"
    batch = "BATCH"
