# Overview: Service-layer operations for quotes; encapsulates lifecycle rules and database work.

"""
Quote Lifecycle Service

STATE MACHINE:
    Draft -> Approved    (customer approves)
    Draft -> Scrapped    (customer rejects, or admin scraps)

    Approved and Scrapped are terminal.

TRANSITION CHECKING:
- Default (STRICT_QUOTE_TRANSITIONS off): customer approve/reject write the
  target status without looking at the current one, so re-approving an
  Approved quote silently succeeds.
- Strict mode: anything outside TRANSITIONS raises InvalidTransitionError.
- admin_scrap_quote always forces Scrapped, in either mode.

OWNERSHIP: a customer may only move quotes whose customer_id is their own.
A missing quote is NotFound; someone else's quote is Forbidden.
"""

from __future__ import annotations

from flask import current_app

from ..errors import ForbiddenError, InvalidTransitionError, NotFoundError
from ..extensions import db
from ..models import Customer, Quote, QuoteLine
from ..models.documents import QUOTE_STATUS_APPROVED, QUOTE_STATUS_DRAFT, QUOTE_STATUS_SCRAPPED
from ..time_utils import utcnow
from ..validation import parse_line_items
from .concurrency import lock_for_update, run_in_unit, run_read
from .document_service import SEQ_QUOTE, format_document_number, next_id
from .identity_service import Principal, require_customer, resolve_customer_ids


VALID_STATUSES = {QUOTE_STATUS_DRAFT, QUOTE_STATUS_APPROVED, QUOTE_STATUS_SCRAPPED}

TRANSITIONS = {
    QUOTE_STATUS_DRAFT: {QUOTE_STATUS_APPROVED, QUOTE_STATUS_SCRAPPED},
    QUOTE_STATUS_APPROVED: set(),
    QUOTE_STATUS_SCRAPPED: set(),
}

QUOTE_NUMBER_PREFIX = "QT"


def can_transition(from_status: str, to_status: str) -> bool:
    return to_status in TRANSITIONS.get(from_status, set())


def is_terminal(status: str) -> bool:
    return not TRANSITIONS.get(status)


def _strict_transitions() -> bool:
    return bool(current_app.config.get("STRICT_QUOTE_TRANSITIONS", False))


def _address_snapshot(customer: Customer, attr: str) -> dict:
    value = getattr(customer, attr) or customer.billing_address
    if value:
        return dict(value)
    return {"street": customer.address or "", "city": "", "state": "", "country": "", "pincode": ""}


def create_quote(principal: Principal | None, items) -> Quote:
    """
    Create a Draft quote for the principal's primary customer profile.

    Customer name and addresses are copied onto the quote; later profile
    edits do not change it.

    Raises:
        IncompleteProfileError: principal has no customer profile
        ValidationError: items empty or malformed
    """
    customer = require_customer(principal)
    lines = parse_line_items(items)
    total_cents = sum(line["amount_cents"] for line in lines)

    def _op():
        # Re-read by id inside the unit; the store has no referential checks
        owner = db.session.get(Customer, customer.id)
        if owner is None:
            raise NotFoundError(f"Customer {customer.id} not found")

        quote_id = next_id(SEQ_QUOTE)
        now = utcnow()
        quote = Quote(
            id=quote_id,
            quote_number=format_document_number(QUOTE_NUMBER_PREFIX, quote_id),
            customer_id=owner.id,
            customer_name=owner.label,
            billing_address=_address_snapshot(owner, "billing_address"),
            shipping_address=_address_snapshot(owner, "shipping_address"),
            status=QUOTE_STATUS_DRAFT,
            sub_total_cents=total_cents,
            total_cents=total_cents,
            date=now,
            created_at=now,
        )
        quote.lines = [QuoteLine(**line) for line in lines]
        db.session.add(quote)
        db.session.flush()
        return quote

    return run_in_unit(_op, "customers", "quotes")


def get_quote(quote_id: int) -> Quote:
    quote = run_read(lambda: db.session.get(Quote, quote_id))
    if quote is None:
        raise NotFoundError(f"Quote {quote_id} not found")
    return quote


def list_customer_quotes(principal: Principal | None) -> list[Quote]:
    """Quotes owned by any of the principal's profiles; [] without a profile."""
    customer_ids = resolve_customer_ids(principal)
    if not customer_ids:
        return []
    return run_read(lambda: (
        db.session.query(Quote)
        .filter(Quote.customer_id.in_(customer_ids))
        .order_by(Quote.id)
        .all()
    ))


def _load_for_update(quote_id: int) -> Quote:
    quote = lock_for_update(db.session.query(Quote).filter_by(id=quote_id)).first()
    if quote is None:
        raise NotFoundError(f"Quote {quote_id} not found")
    return quote


def _transition_owned(quote_id: int, customer: Customer, to_status: str) -> Quote:
    def _op():
        quote = _load_for_update(quote_id)
        if quote.customer_id != customer.id:
            raise ForbiddenError("Unauthorized: This quote belongs to another customer")
        if _strict_transitions() and not can_transition(quote.status, to_status):
            raise InvalidTransitionError(
                f"Cannot move quote {quote.quote_number} from '{quote.status}' to '{to_status}'",
                details={"current_status": quote.status, "requested_status": to_status},
            )
        quote.status = to_status
        quote.updated_at = utcnow()
        return quote

    return run_in_unit(_op, "quotes")


def approve_quote(quote_id: int, customer: Customer) -> Quote:
    """Customer accepts their quote (-> Approved)."""
    return _transition_owned(quote_id, customer, QUOTE_STATUS_APPROVED)


def reject_quote(quote_id: int, customer: Customer) -> Quote:
    """Customer declines their quote (-> Scrapped)."""
    return _transition_owned(quote_id, customer, QUOTE_STATUS_SCRAPPED)


def admin_scrap_quote(quote_id: int) -> Quote:
    """Privileged: force Scrapped regardless of owner or current status."""
    def _op():
        quote = _load_for_update(quote_id)
        quote.status = QUOTE_STATUS_SCRAPPED
        quote.updated_at = utcnow()
        return quote

    return run_in_unit(_op, "quotes")
