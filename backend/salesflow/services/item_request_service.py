# Overview: Service-layer operations for item requests; encapsulates lifecycle and catalog side effects.

"""
Item-Request Lifecycle Service

STATE MACHINE:
    Pending -> Approved   (admin; creates one catalog Item)
    Pending -> Rejected   (admin; rejection reason stored verbatim)

SIDE EFFECT: approval creates the catalog Item in the same unit of work as
the status write, so both are visible or neither is. Items are keyed by
source_request_id: approving the same request again finds the existing item
instead of creating a duplicate.

STATUS VALUES: admins are trusted; any non-blank status is written as-is
unless STRICT_ITEM_REQUEST_STATUS restricts it to the lifecycle states.
"""

from __future__ import annotations

from flask import current_app

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Customer, Item, ItemRequest
from ..models.catalog import ITEM_REQUEST_APPROVED, ITEM_REQUEST_PENDING, ITEM_REQUEST_REJECTED
from ..time_utils import utcnow
from ..validation import clean_str, parse_quantity
from .concurrency import lock_for_update, run_in_unit, run_read
from .document_service import SEQ_ITEM, SEQ_ITEM_REQUEST, next_id
from .identity_service import Principal, require_customer, resolve_customer_ids


VALID_STATUSES = {ITEM_REQUEST_PENDING, ITEM_REQUEST_APPROVED, ITEM_REQUEST_REJECTED}

# Defaults for catalog items born from a request
ITEM_DEFAULTS = {
    "type": "goods",
    "usage_unit": "pcs",
    "rate_cents": 0,
    "purchase_rate_cents": 0,
    "tax_preference": "taxable",
    "intra_state_tax": "GST18",
    "inter_state_tax": "IGST18",
    "is_active": True,
}


def create_item_request(
    principal: Principal | None,
    item_name,
    description=None,
    quantity=None,
) -> ItemRequest:
    """
    Submit a new catalog item request for the principal's primary profile.

    Raises:
        IncompleteProfileError: principal has no customer profile
        ValidationError: missing item name or bad quantity
    """
    customer = require_customer(principal)

    name = clean_str(item_name)
    if not name:
        raise ValidationError("item_name is required")
    qty = parse_quantity(quantity, default=1)

    def _op():
        owner = db.session.get(Customer, customer.id)
        if owner is None:
            raise NotFoundError(f"Customer {customer.id} not found")

        request = ItemRequest(
            id=next_id(SEQ_ITEM_REQUEST),
            customer_id=owner.id,
            customer_name=owner.name or "",
            customer_email=(principal.email if principal else None) or owner.email or "",
            company_name=owner.company_name or "",
            contact_number=owner.phone or "",
            item_name=name,
            description=clean_str(description),
            quantity=qty,
            status=ITEM_REQUEST_PENDING,
            rejection_reason="",
        )
        db.session.add(request)
        db.session.flush()
        return request

    return run_in_unit(_op, "customers", "item_requests")


def get_item_request(request_id: int) -> ItemRequest:
    request = run_read(lambda: db.session.get(ItemRequest, request_id))
    if request is None:
        raise NotFoundError(f"Request {request_id} not found")
    return request


def list_item_requests(status: str | None = None) -> list[ItemRequest]:
    """Admin queue. status filter is case-insensitive; "all" disables it."""
    def _op():
        q = db.session.query(ItemRequest)
        if status and status.lower() != "all":
            q = q.filter(db.func.lower(ItemRequest.status) == status.lower())
        return q.order_by(ItemRequest.id).all()
    return run_read(_op)


def list_customer_item_requests(principal: Principal | None) -> list[ItemRequest]:
    """
    Requests belonging to the principal: owned by any matching profile, or
    carrying the principal's email in the submission snapshot. With no
    profile, a request whose customer id equals the login id also counts.
    """
    if principal is None:
        return []
    customer_ids = resolve_customer_ids(principal)
    email = principal.normalized_email

    def _op():
        clauses = []
        if customer_ids:
            clauses.append(ItemRequest.customer_id.in_(customer_ids))
        elif principal.id is not None:
            clauses.append(db.cast(ItemRequest.customer_id, db.String) == str(principal.id))
        if email:
            clauses.append(db.func.lower(ItemRequest.customer_email) == email)
        if not clauses:
            return []
        return (
            db.session.query(ItemRequest)
            .filter(db.or_(*clauses))
            .order_by(ItemRequest.id)
            .all()
        )
    return run_read(_op)


def _ensure_catalog_item(request: ItemRequest) -> tuple[Item, bool]:
    existing = db.session.query(Item).filter_by(source_request_id=request.id).first()
    if existing is not None:
        return existing, False

    now = utcnow()
    item = Item(
        id=next_id(SEQ_ITEM),
        name=request.item_name,
        description=request.description or "",
        source_request_id=request.id,
        created_at=now,
        updated_at=now,
        **ITEM_DEFAULTS,
    )
    db.session.add(item)
    db.session.flush()
    return item, True


def update_item_request_status(
    request_id: int,
    new_status,
    rejection_reason=None,
) -> tuple[ItemRequest, Item | None]:
    """
    Admin triage of an item request.

    Returns (request, item). item is the catalog entry tied to the request
    when the new status is Approved, else None.
    """
    status = clean_str(new_status)
    if not status:
        raise ValidationError("status is required")
    if current_app.config.get("STRICT_ITEM_REQUEST_STATUS") and status not in VALID_STATUSES:
        raise ValidationError(
            f"Invalid status '{status}'. Must be one of: {', '.join(sorted(VALID_STATUSES))}"
        )

    def _op():
        request = lock_for_update(db.session.query(ItemRequest).filter_by(id=request_id)).first()
        if request is None:
            raise NotFoundError(f"Request {request_id} not found")

        item = None
        if status == ITEM_REQUEST_APPROVED:
            item, _ = _ensure_catalog_item(request)

        request.status = status
        if status == ITEM_REQUEST_REJECTED:
            request.rejection_reason = "" if rejection_reason is None else str(rejection_reason)
        request.updated_at = utcnow()
        return request, item

    return run_in_unit(_op, "item_requests", "items")
