from __future__ import annotations

from datetime import datetime, date, timezone

from sqlalchemy import (
    String,
    Integer,
    BigInteger,
    DateTime,
    Date,
    Boolean,
    ForeignKey,
    Text,
    Enum,
    UniqueConstraint,
    Index,
    CheckConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stockflow.app.db.base import Base
from stockflow.app.db.models.core_types import (
    InventoryType,
    POStatus,
    TOStatus,
)

# SQLite only autoincrements INTEGER PRIMARY KEY
BigIntPK = BigInteger().with_variant(Integer, "sqlite")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------- MASTER DATA ----------
class Inventory(Base):
    __tablename__ = "inventories"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    code: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    type: Mapped[InventoryType] = mapped_column(Enum(InventoryType, name="inventory_type"), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class Sku(Base):
    __tablename__ = "skus"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    code: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class Employee(Base):
    __tablename__ = "employees"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    code: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


# ---------- AUTH ----------
class User(Base):
    __tablename__ = "users"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


# ---------- NUMBERING ----------
class DocumentSequence(Base):
    __tablename__ = "document_sequences"
    name: Mapped[str] = mapped_column(String(16), primary_key=True)
    last_value: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


# ---------- PRODUCTION ----------
class Batch(Base):
    __tablename__ = "batches"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    code: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    inventory_id: Mapped[int] = mapped_column(ForeignKey("inventories.id", ondelete="RESTRICT"), nullable=False)
    production_date: Mapped[date] = mapped_column(Date, nullable=False)
    created_by: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    inventory: Mapped[Inventory] = relationship()
    items: Mapped[list["BatchItem"]] = relationship(back_populates="batch", cascade="all, delete-orphan")


class BatchItem(Base):
    __tablename__ = "batch_items"
    batch_id: Mapped[int] = mapped_column(ForeignKey("batches.id", ondelete="CASCADE"), primary_key=True)
    sku_id: Mapped[int] = mapped_column(ForeignKey("skus.id", ondelete="RESTRICT"), primary_key=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    batch: Mapped[Batch] = relationship(back_populates="items")
    sku: Mapped[Sku] = relationship()

    __table_args__ = (CheckConstraint("quantity > 0", name="ck_batch_item_qty_pos"),)


# ---------- INVENTORY ----------
class Stock(Base):
    __tablename__ = "stock"
    inventory_id: Mapped[int] = mapped_column(ForeignKey("inventories.id", ondelete="RESTRICT"), primary_key=True)
    sku_id: Mapped[int] = mapped_column(ForeignKey("skus.id", ondelete="RESTRICT"), primary_key=True)
    batch_id: Mapped[int] = mapped_column(ForeignKey("batches.id", ondelete="RESTRICT"), primary_key=True)

    quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )

    inventory: Mapped[Inventory] = relationship()
    sku: Mapped[Sku] = relationship()
    batch: Mapped[Batch] = relationship()

    __table_args__ = (CheckConstraint("quantity >= 0", name="ck_stock_quantity_nonneg"),)


# ---------- AUDIT ----------
class StockHistory(Base):
    __tablename__ = "stock_history"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    inventory_id: Mapped[int] = mapped_column(ForeignKey("inventories.id", ondelete="RESTRICT"), nullable=False)
    sku_id: Mapped[int] = mapped_column(ForeignKey("skus.id", ondelete="RESTRICT"), nullable=False)
    batch_id: Mapped[int] = mapped_column(ForeignKey("batches.id", ondelete="RESTRICT"), nullable=False)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    old_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    new_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    inventory: Mapped[Inventory] = relationship()
    sku: Mapped[Sku] = relationship()
    batch: Mapped[Batch] = relationship()
    user: Mapped[User] = relationship()

    __table_args__ = (
        CheckConstraint("new_quantity >= 0", name="ck_stock_history_new_nonneg"),
        Index("ix_stock_history_cell", "inventory_id", "sku_id", "batch_id", "id"),
    )


# ---------- ORDERS ----------
class PurchaseOrder(Base):
    __tablename__ = "purchase_orders"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    po_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    # requesting = receives the goods, fulfilling = ships them
    requesting_inventory_id: Mapped[int] = mapped_column(
        ForeignKey("inventories.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    fulfilling_inventory_id: Mapped[int] = mapped_column(
        ForeignKey("inventories.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    status: Mapped[POStatus] = mapped_column(Enum(POStatus, name="po_status"), default=POStatus.created, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_by: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    requesting_inventory: Mapped[Inventory] = relationship(foreign_keys=[requesting_inventory_id])
    fulfilling_inventory: Mapped[Inventory] = relationship(foreign_keys=[fulfilling_inventory_id])
    items: Mapped[list["POItem"]] = relationship(back_populates="po", cascade="all, delete-orphan")
    transfer_orders: Mapped[list["TransferOrder"]] = relationship(
        back_populates="purchase_order",
        order_by="TransferOrder.id",
    )

    __table_args__ = (
        CheckConstraint("requesting_inventory_id <> fulfilling_inventory_id", name="ck_po_inventories_differ"),
    )


class POItem(Base):
    __tablename__ = "po_items"
    po_id: Mapped[int] = mapped_column(ForeignKey("purchase_orders.id", ondelete="CASCADE"), primary_key=True)
    sku_id: Mapped[int] = mapped_column(ForeignKey("skus.id", ondelete="RESTRICT"), primary_key=True)
    requested_quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    po: Mapped[PurchaseOrder] = relationship(back_populates="items")
    sku: Mapped[Sku] = relationship()

    __table_args__ = (CheckConstraint("requested_quantity > 0", name="ck_po_item_qty_pos"),)


class TransferOrder(Base):
    __tablename__ = "transfer_orders"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    to_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    purchase_order_id: Mapped[int] = mapped_column(
        ForeignKey("purchase_orders.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    employee_id: Mapped[int] = mapped_column(ForeignKey("employees.id", ondelete="RESTRICT"), nullable=False)
    status: Mapped[TOStatus] = mapped_column(Enum(TOStatus, name="to_status"), default=TOStatus.created, nullable=False)
    created_by: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    purchase_order: Mapped[PurchaseOrder] = relationship(back_populates="transfer_orders")
    employee: Mapped[Employee] = relationship()
    items: Mapped[list["TOItem"]] = relationship(
        back_populates="transfer_order",
        cascade="all, delete-orphan",
        order_by="TOItem.id",
    )
    receive_order: Mapped["ReceiveOrder | None"] = relationship(back_populates="transfer_order", uselist=False)


class TOItem(Base):
    __tablename__ = "to_items"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    transfer_order_id: Mapped[int] = mapped_column(
        ForeignKey("transfer_orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sku_id: Mapped[int] = mapped_column(ForeignKey("skus.id", ondelete="RESTRICT"), nullable=False)
    batch_id: Mapped[int] = mapped_column(ForeignKey("batches.id", ondelete="RESTRICT"), nullable=False)
    sent_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    # written once by the RO; may differ from sent_quantity
    received_quantity: Mapped[int | None] = mapped_column(Integer)

    transfer_order: Mapped[TransferOrder] = relationship(back_populates="items")
    sku: Mapped[Sku] = relationship()
    batch: Mapped[Batch] = relationship()

    __table_args__ = (
        CheckConstraint("sent_quantity > 0", name="ck_to_item_sent_pos"),
        CheckConstraint("received_quantity >= 0", name="ck_to_item_received_nonneg"),
    )


class ReceiveOrder(Base):
    __tablename__ = "receive_orders"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    ro_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    transfer_order_id: Mapped[int | None] = mapped_column(
        ForeignKey("transfer_orders.id", ondelete="RESTRICT"),
        unique=True,
    )
    # manual ROs only
    to_inventory_id: Mapped[int | None] = mapped_column(ForeignKey("inventories.id", ondelete="RESTRICT"), index=True)
    from_inventory_id: Mapped[int | None] = mapped_column(ForeignKey("inventories.id", ondelete="RESTRICT"))
    created_by: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    transfer_order: Mapped[TransferOrder | None] = relationship(back_populates="receive_order")
    to_inventory: Mapped[Inventory | None] = relationship(foreign_keys=[to_inventory_id])
    from_inventory: Mapped[Inventory | None] = relationship(foreign_keys=[from_inventory_id])
    items: Mapped[list["ROItem"]] = relationship(
        back_populates="receive_order",
        cascade="all, delete-orphan",
        order_by="ROItem.id",
    )

    __table_args__ = (
        CheckConstraint(
            "transfer_order_id IS NOT NULL OR to_inventory_id IS NOT NULL",
            name="ck_ro_has_destination",
        ),
    )


class ROItem(Base):
    __tablename__ = "ro_items"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    receive_order_id: Mapped[int] = mapped_column(
        ForeignKey("receive_orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sku_id: Mapped[int] = mapped_column(ForeignKey("skus.id", ondelete="RESTRICT"), nullable=False)
    batch_id: Mapped[int] = mapped_column(ForeignKey("batches.id", ondelete="RESTRICT"), nullable=False)
    received_quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    receive_order: Mapped[ReceiveOrder] = relationship(back_populates="items")
    sku: Mapped[Sku] = relationship()
    batch: Mapped[Batch] = relationship()

    __table_args__ = (CheckConstraint("received_quantity >= 0", name="ck_ro_item_received_nonneg"),)
