# Overview: Service-layer operations for payment recording; encapsulates business logic and database work.

"""
Payment Recording Service

WHY: Customers report payments against an invoice; the back office verifies
them later. The portal never touches invoice totals.

FLOW (one unit of work over payments_received + invoices):
1. Load the invoice (NotFound if absent)
2. Resolve the amount: the supplied amount if it is a positive finite
   number, else the invoice's positive balance due, else the invoice total
3. Create a PaymentReceived in "Pending Verification"
4. Append a "payment_recorded" activity to the invoice

ANONYMOUS CALLERS: recording is reachable without a verified session. The
activity actor then reads "Customer".
"""

from __future__ import annotations

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Invoice, PaymentApplication, PaymentReceived
from ..models.documents import PAYMENT_STATUS_PENDING
from ..time_utils import format_cents, utcnow
from ..validation import coerce_positive_cents, parse_optional_cents
from .concurrency import lock_for_update, run_in_unit
from .document_service import SEQ_PAYMENT, SEQ_PAYMENT_NUMBER, next_id
from .identity_service import Principal
from .invoice_service import append_activity


ANONYMOUS_ACTOR = "Customer"
ACTION_PAYMENT_RECORDED = "payment_recorded"


def resolve_payment_amount(invoice: Invoice, amount=None) -> int:
    """
    Effective amount in cents for a payment against invoice.

    Raises ValidationError when the supplied amount is positive but cannot
    be stored, or when neither it nor the invoice offers a positive amount.
    """
    supplied = parse_optional_cents(amount)
    if supplied is not None:
        return supplied
    for candidate in (invoice.balance_due_cents, invoice.total_cents):
        cents = coerce_positive_cents(candidate)
        if cents is not None:
            return cents
    raise ValidationError("Invalid payment amount")


def actor_label(principal: Principal | None) -> str:
    if principal is None:
        return ANONYMOUS_ACTOR
    return principal.display or ANONYMOUS_ACTOR


def record_payment(invoice_id: int, amount=None, actor: Principal | None = None) -> PaymentReceived:
    """
    Record a customer payment pending verification.

    Returns the new PaymentReceived. Raises NotFoundError or ValidationError;
    nothing is written in either case.
    """
    def _op():
        invoice = lock_for_update(db.session.query(Invoice).filter_by(id=invoice_id)).first()
        if invoice is None:
            raise NotFoundError(f"Invoice {invoice_id} not found")

        amount_cents = resolve_payment_amount(invoice, amount)
        now = utcnow()

        payment_number = next_id(SEQ_PAYMENT_NUMBER)
        payment = PaymentReceived(
            id=next_id(SEQ_PAYMENT),
            payment_number=f"PAY-{payment_number}",
            reference_number=f"INV-PAY-{invoice.invoice_number}",
            customer_id=invoice.customer_id,
            customer_name=invoice.customer_name or "",
            customer_email=invoice.customer_email or "",
            amount_cents=amount_cents,
            unused_amount_cents=0,
            place_of_supply=invoice.place_of_supply or "",
            notes=f"Online payment recorded by customer for invoice {invoice.invoice_number}",
            status=PAYMENT_STATUS_PENDING,
            date=now,
            created_at=now,
        )
        payment.applications = [
            PaymentApplication(
                invoice_id=invoice.id,
                invoice_number=invoice.invoice_number,
                amount_applied_cents=amount_cents,
            )
        ]
        db.session.add(payment)
        db.session.flush()

        append_activity(
            invoice,
            action=ACTION_PAYMENT_RECORDED,
            description=f"Payment of {format_cents(amount_cents)} recorded and awaiting verification",
            actor=actor_label(actor),
        )
        return payment

    return run_in_unit(_op, "payments_received", "invoices")
