# Overview: Service-layer operations for invoices and receipts visible to customers.

from __future__ import annotations

from ..errors import ForbiddenError, IncompleteProfileError, NotFoundError
from ..extensions import db
from ..models import Invoice, InvoiceActivity, PaymentReceived
from ..time_utils import utcnow
from .concurrency import run_read
from .identity_service import Principal, resolve_customer_ids


def list_customer_invoices(principal: Principal | None) -> list[Invoice]:
    """Invoices for any of the principal's profiles; [] without a profile."""
    customer_ids = resolve_customer_ids(principal)
    if not customer_ids:
        return []
    return run_read(lambda: (
        db.session.query(Invoice)
        .filter(Invoice.customer_id.in_(customer_ids))
        .order_by(Invoice.id)
        .all()
    ))


def get_customer_invoice(principal: Principal | None, invoice_id: int) -> Invoice:
    """
    Single invoice, if it belongs to one of the principal's profiles.

    Raises:
        IncompleteProfileError: principal has no profile
        NotFoundError: no such invoice
        ForbiddenError: invoice belongs to another customer
    """
    customer_ids = resolve_customer_ids(principal)
    if not customer_ids:
        raise IncompleteProfileError()

    invoice = run_read(lambda: db.session.get(Invoice, invoice_id))
    if invoice is None:
        raise NotFoundError(f"Invoice {invoice_id} not found")
    if invoice.customer_id not in customer_ids:
        raise ForbiddenError("Unauthorized: This invoice belongs to another customer")
    return invoice


def list_customer_receipts(principal: Principal | None) -> list[PaymentReceived]:
    customer_ids = resolve_customer_ids(principal)
    if not customer_ids:
        return []
    return run_read(lambda: (
        db.session.query(PaymentReceived)
        .filter(PaymentReceived.customer_id.in_(customer_ids))
        .order_by(PaymentReceived.id)
        .all()
    ))


def append_activity(invoice: Invoice, *, action: str, description: str, actor: str) -> InvoiceActivity:
    """
    Append one audit entry to the invoice.

    Caller must hold the invoices collection in its unit of work; the entry
    is flushed, not committed.
    """
    last_position = (
        db.session.query(db.func.max(InvoiceActivity.position))
        .filter(InvoiceActivity.invoice_id == invoice.id)
        .scalar()
    ) or 0
    activity = InvoiceActivity(
        invoice_id=invoice.id,
        position=last_position + 1,
        occurred_at=utcnow(),
        action=action,
        description=description,
        actor=actor,
    )
    db.session.add(activity)
    db.session.flush()
    return activity
