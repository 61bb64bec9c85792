# Overview: Service-layer operations for document ids; encapsulates sequence allocation.

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..errors import ValidationError
from ..extensions import db
from ..models import DocumentSequence
from .concurrency import collection_lock, run_in_unit, run_read


# Sequence names (one counter per collection)
SEQ_CUSTOMER = "customer"
SEQ_QUOTE = "quote"
SEQ_PAYMENT = "payment"
SEQ_PAYMENT_NUMBER = "payment_number"
SEQ_ITEM_REQUEST = "item_request"
SEQ_ITEM = "item"

ALL_SEQUENCES = (
    SEQ_CUSTOMER,
    SEQ_QUOTE,
    SEQ_PAYMENT,
    SEQ_PAYMENT_NUMBER,
    SEQ_ITEM_REQUEST,
    SEQ_ITEM,
)

# Payment numbers continue the PAY-1001 series
SEQUENCE_STARTS = {
    SEQ_PAYMENT_NUMBER: 1001,
}


def _sequence_lock_name(document_type: str) -> str:
    return f"sequence:{document_type}"


def _current_next_number(document_type: str) -> int | None:
    return (
        db.session.query(DocumentSequence.next_number)
        .filter_by(document_type=document_type)
        .scalar()
    )


def next_id(document_type: str, *, start: int | None = None) -> int:
    """
    Allocate the next number for a document type.

    Must run inside the caller's unit of work: the increment is flushed, not
    committed, so the counter and the document that consumes it commit
    together. The read-increment-write is serialized per sequence by an
    in-process lock and made atomic in SQL by a single
    UPDATE ... SET next_number = next_number + 1.
    """
    if not document_type:
        raise ValidationError("document_type is required")
    if start is None:
        start = SEQUENCE_STARTS.get(document_type, 1)

    stmt = (
        update(DocumentSequence)
        .where(DocumentSequence.document_type == document_type)
        .values(next_number=DocumentSequence.next_number + 1)
    )

    with collection_lock(_sequence_lock_name(document_type)):
        result = db.session.execute(stmt)
        if result.rowcount:
            db.session.flush()
            return _current_next_number(document_type) - 1

        # First allocation for this type. The savepoint keeps a losing
        # concurrent insert from rolling back the caller's unit.
        try:
            with db.session.begin_nested():
                db.session.add(DocumentSequence(document_type=document_type, next_number=start + 1))
            return start
        except IntegrityError:
            result = db.session.execute(stmt)
            if not result.rowcount:
                raise
            db.session.flush()
            return _current_next_number(document_type) - 1


def allocate_id(document_type: str) -> int:
    """Allocate and commit one number in its own unit of work."""
    return run_in_unit(lambda: next_id(document_type), _sequence_lock_name(document_type))


def ensure_sequences(document_types=None) -> int:
    """Create any missing sequence rows. Returns how many were created."""
    wanted = list(document_types or ALL_SEQUENCES)

    def _op():
        existing = {
            row.document_type
            for row in db.session.query(DocumentSequence.document_type).all()
        }
        created = 0
        for document_type in wanted:
            if document_type in existing:
                continue
            db.session.add(DocumentSequence(
                document_type=document_type,
                next_number=SEQUENCE_STARTS.get(document_type, 1),
            ))
            created += 1
        return created

    return run_in_unit(_op, *(_sequence_lock_name(t) for t in wanted))


def read_sequence(document_type: str) -> int:
    """Next number that would be handed out (the collection "nextId")."""
    def _op():
        current = _current_next_number(document_type)
        return current if current is not None else SEQUENCE_STARTS.get(document_type, 1)
    return run_read(_op)


def format_document_number(prefix: str, number: int, pad: int = 6) -> str:
    """e.g. format_document_number("QT", 42) -> "QT-000042"."""
    return f"{prefix}-{number:0{pad}d}"
