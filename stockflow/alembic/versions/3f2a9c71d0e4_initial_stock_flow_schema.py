"""initial stock flow schema

Revision ID: 3f2a9c71d0e4
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f2a9c71d0e4"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

INVENTORY_TYPE = sa.Enum("production", "hub", "store", name="inventory_type")
PO_STATUS = sa.Enum("created", "in_transit", "fulfilled", name="po_status")
TO_STATUS = sa.Enum("created", "fulfilled", name="to_status")


def _id() -> sa.Column:
    return sa.Column("id", sa.BigInteger(), primary_key=True)


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), nullable=False)


def upgrade() -> None:
    # ---------- MASTER DATA ----------
    op.create_table(
        "inventories",
        _id(),
        sa.Column("code", sa.String(64), nullable=False, unique=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("type", INVENTORY_TYPE, nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False),
    )
    op.create_table(
        "skus",
        _id(),
        sa.Column("code", sa.String(64), nullable=False, unique=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False),
    )
    op.create_table(
        "employees",
        _id(),
        sa.Column("code", sa.String(64), nullable=False, unique=True),
        sa.Column("full_name", sa.String(200), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False),
    )
    op.create_table(
        "users",
        _id(),
        sa.Column("username", sa.String(100), nullable=False, unique=True),
        sa.Column("full_name", sa.String(200), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False),
        _created_at(),
    )
    op.create_table(
        "document_sequences",
        sa.Column("name", sa.String(16), primary_key=True),
        sa.Column("last_value", sa.Integer(), nullable=False),
    )

    # ---------- PRODUCTION ----------
    op.create_table(
        "batches",
        _id(),
        sa.Column("code", sa.String(32), nullable=False, unique=True),
        sa.Column("inventory_id", sa.BigInteger(), sa.ForeignKey("inventories.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("production_date", sa.Date(), nullable=False),
        sa.Column("created_by", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        _created_at(),
    )
    op.create_table(
        "batch_items",
        sa.Column("batch_id", sa.BigInteger(), sa.ForeignKey("batches.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("sku_id", sa.BigInteger(), sa.ForeignKey("skus.id", ondelete="RESTRICT"), primary_key=True),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.CheckConstraint("quantity > 0", name="ck_batch_item_qty_pos"),
    )

    # ---------- INVENTORY ----------
    op.create_table(
        "stock",
        sa.Column("inventory_id", sa.BigInteger(), sa.ForeignKey("inventories.id", ondelete="RESTRICT"), primary_key=True),
        sa.Column("sku_id", sa.BigInteger(), sa.ForeignKey("skus.id", ondelete="RESTRICT"), primary_key=True),
        sa.Column("batch_id", sa.BigInteger(), sa.ForeignKey("batches.id", ondelete="RESTRICT"), primary_key=True),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("quantity >= 0", name="ck_stock_quantity_nonneg"),
    )

    # ---------- AUDIT ----------
    op.create_table(
        "stock_history",
        _id(),
        sa.Column("inventory_id", sa.BigInteger(), sa.ForeignKey("inventories.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("sku_id", sa.BigInteger(), sa.ForeignKey("skus.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("batch_id", sa.BigInteger(), sa.ForeignKey("batches.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("user_id", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("old_quantity", sa.Integer(), nullable=False),
        sa.Column("new_quantity", sa.Integer(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        _created_at(),
        sa.CheckConstraint("new_quantity >= 0", name="ck_stock_history_new_nonneg"),
    )
    op.create_index("ix_stock_history_cell", "stock_history", ["inventory_id", "sku_id", "batch_id", "id"])

    # ---------- ORDERS ----------
    op.create_table(
        "purchase_orders",
        _id(),
        sa.Column("po_number", sa.String(32), nullable=False, unique=True),
        sa.Column(
            "requesting_inventory_id",
            sa.BigInteger(),
            sa.ForeignKey("inventories.id", ondelete="RESTRICT"),
            nullable=False,
            index=True,
        ),
        sa.Column(
            "fulfilling_inventory_id",
            sa.BigInteger(),
            sa.ForeignKey("inventories.id", ondelete="RESTRICT"),
            nullable=False,
            index=True,
        ),
        sa.Column("status", PO_STATUS, nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_by", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        _created_at(),
        sa.CheckConstraint("requesting_inventory_id <> fulfilling_inventory_id", name="ck_po_inventories_differ"),
    )
    op.create_table(
        "po_items",
        sa.Column("po_id", sa.BigInteger(), sa.ForeignKey("purchase_orders.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("sku_id", sa.BigInteger(), sa.ForeignKey("skus.id", ondelete="RESTRICT"), primary_key=True),
        sa.Column("requested_quantity", sa.Integer(), nullable=False),
        sa.CheckConstraint("requested_quantity > 0", name="ck_po_item_qty_pos"),
    )
    op.create_table(
        "transfer_orders",
        _id(),
        sa.Column("to_number", sa.String(32), nullable=False, unique=True),
        sa.Column(
            "purchase_order_id",
            sa.BigInteger(),
            sa.ForeignKey("purchase_orders.id", ondelete="RESTRICT"),
            nullable=False,
            index=True,
        ),
        sa.Column("employee_id", sa.BigInteger(), sa.ForeignKey("employees.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("status", TO_STATUS, nullable=False),
        sa.Column("created_by", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        _created_at(),
    )
    op.create_table(
        "to_items",
        _id(),
        sa.Column(
            "transfer_order_id",
            sa.BigInteger(),
            sa.ForeignKey("transfer_orders.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("sku_id", sa.BigInteger(), sa.ForeignKey("skus.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("batch_id", sa.BigInteger(), sa.ForeignKey("batches.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("sent_quantity", sa.Integer(), nullable=False),
        sa.Column("received_quantity", sa.Integer(), nullable=True),
        sa.CheckConstraint("sent_quantity > 0", name="ck_to_item_sent_pos"),
        sa.CheckConstraint("received_quantity >= 0", name="ck_to_item_received_nonneg"),
    )
    op.create_table(
        "receive_orders",
        _id(),
        sa.Column("ro_number", sa.String(32), nullable=False, unique=True),
        sa.Column(
            "transfer_order_id",
            sa.BigInteger(),
            sa.ForeignKey("transfer_orders.id", ondelete="RESTRICT"),
            nullable=True,
            unique=True,
        ),
        sa.Column(
            "to_inventory_id",
            sa.BigInteger(),
            sa.ForeignKey("inventories.id", ondelete="RESTRICT"),
            nullable=True,
            index=True,
        ),
        sa.Column("from_inventory_id", sa.BigInteger(), sa.ForeignKey("inventories.id", ondelete="RESTRICT"), nullable=True),
        sa.Column("created_by", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        _created_at(),
        sa.CheckConstraint(
            "transfer_order_id IS NOT NULL OR to_inventory_id IS NOT NULL",
            name="ck_ro_has_destination",
        ),
    )
    op.create_table(
        "ro_items",
        _id(),
        sa.Column(
            "receive_order_id",
            sa.BigInteger(),
            sa.ForeignKey("receive_orders.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("sku_id", sa.BigInteger(), sa.ForeignKey("skus.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("batch_id", sa.BigInteger(), sa.ForeignKey("batches.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("received_quantity", sa.Integer(), nullable=False),
        sa.CheckConstraint("received_quantity >= 0", name="ck_ro_item_received_nonneg"),
    )


def downgrade() -> None:
    for table in (
        "ro_items",
        "receive_orders",
        "to_items",
        "transfer_orders",
        "po_items",
        "purchase_orders",
        "stock_history",
        "stock",
        "batch_items",
        "batches",
        "document_sequences",
        "users",
        "employees",
        "skus",
        "inventories",
    ):
        op.drop_table(table)

    bind = op.get_bind()
    TO_STATUS.drop(bind, checkfirst=True)
    PO_STATUS.drop(bind, checkfirst=True)
    INVENTORY_TYPE.drop(bind, checkfirst=True)
