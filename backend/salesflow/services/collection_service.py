# Overview: Read-only record-store snapshots, one per collection.

"""
Collection snapshots in the record-store shape:

    {"records": [...ordered records...], "nextId": <next allocated number>}

Used by the CLI for inspection and exports. Writes never go through here;
every mutation belongs to a lifecycle service.
"""

from __future__ import annotations

from ..errors import NotFoundError
from ..extensions import db
from ..models import Customer, Invoice, Item, ItemRequest, PaymentReceived, Quote
from .concurrency import run_read
from .document_service import (
    SEQ_CUSTOMER,
    SEQ_ITEM,
    SEQ_ITEM_REQUEST,
    SEQ_PAYMENT_NUMBER,
    SEQ_QUOTE,
    read_sequence,
)


# collection name -> (model, sequence backing its nextId)
COLLECTIONS = {
    "customers": (Customer, SEQ_CUSTOMER),
    "quotes": (Quote, SEQ_QUOTE),
    "invoices": (Invoice, None),
    "paymentsReceived": (PaymentReceived, SEQ_PAYMENT_NUMBER),
    "itemRequests": (ItemRequest, SEQ_ITEM_REQUEST),
    "items": (Item, SEQ_ITEM),
}


def read_collection(name: str) -> dict:
    if name not in COLLECTIONS:
        raise NotFoundError(
            f"Unknown collection '{name}'. Must be one of: {', '.join(sorted(COLLECTIONS))}"
        )
    model, sequence = COLLECTIONS[name]

    records = run_read(lambda: db.session.query(model).order_by(model.id).all())
    if sequence is not None:
        next_number = read_sequence(sequence)
    else:
        # Invoices are numbered by billing; report the next row id
        next_number = (max((r.id for r in records), default=0)) + 1

    return {
        "records": [r.to_dict() for r in records],
        "nextId": next_number,
    }
