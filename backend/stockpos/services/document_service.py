# Overview: Per-warehouse document numbering for sales transactions.

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import DocumentSequence


def _claim_next(warehouse_id: int, document_type: str) -> int | None:
    """Bump an existing sequence row; returns the claimed number, or None when no row exists yet."""
    stmt = (
        update(DocumentSequence)
        .where(
            DocumentSequence.warehouse_id == warehouse_id,
            DocumentSequence.document_type == document_type,
        )
        .values(next_number=DocumentSequence.next_number + 1)
        .execution_options(synchronize_session=False)
    )

    result = db.session.execute(stmt)
    if not result.rowcount:
        return None
    current = (
        db.session.query(DocumentSequence.next_number)
        .filter_by(warehouse_id=warehouse_id, document_type=document_type)
        .scalar()
    )
    return current - 1


def next_document_number(
    *,
    warehouse_id: int,
    document_type: str,
    prefix: str,
    pad: int = 6,
) -> str:
    """
    Allocate the next document number for a warehouse/type.

    Must run inside the caller's write transaction: the UPDATE takes the row
    lock, so concurrent callers are serialized on the sequence row. The first
    number of a new warehouse inserts the row under a savepoint; if another
    writer inserted it first, only the savepoint is undone and the UPDATE is
    run again against their row.
    """
    next_num = _claim_next(warehouse_id, document_type)
    if next_num is None:
        try:
            with db.session.begin_nested():
                db.session.add(
                    DocumentSequence(warehouse_id=warehouse_id, document_type=document_type, next_number=2)
                )
            next_num = 1
        except IntegrityError:
            next_num = _claim_next(warehouse_id, document_type)
            if next_num is None:
                raise

    return f"{prefix}-{str(next_num).zfill(pad)}"
