"""
Sequential document numbers (PO00001, TO00001, RO00001, B001).

One counter row per document kind, locked FOR UPDATE and bumped inside the
caller's transaction: concurrent writers serialize on the row, and a rolled
back document gives its number back.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from stockflow.app.db.models.models_v1 import DocumentSequence
from stockflow.app.db.models.core_types import DocumentKind
from stockflow.services.common import insert_if_missing


NUMBER_FORMATS: dict[DocumentKind, tuple[str, int]] = {
    DocumentKind.purchase_order: ("PO", 5),
    DocumentKind.transfer_order: ("TO", 5),
    DocumentKind.receive_order: ("RO", 5),
    DocumentKind.batch: ("B", 3),
}


def next_value(db: Session, kind: DocumentKind) -> int:
    insert_if_missing(db, DocumentSequence, name=kind.value, last_value=0)
    seq = (
        db.execute(
            select(DocumentSequence)
            .where(DocumentSequence.name == kind.value)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        .scalar_one()
    )

    seq.last_value += 1
    db.flush()
    return seq.last_value


def next_document_number(db: Session, kind: DocumentKind) -> str:
    prefix, width = NUMBER_FORMATS[kind]
    return f"{prefix}{next_value(db, kind):0{width}d}"
