# Overview: Service-layer operations for customer identity; resolves principals to profiles.

"""
Identity Resolver

Maps an authenticated principal to the customer profiles it owns.

MATCH RULES (any one is enough):
- customer.user_id == principal.id
- lower(customer.email) == lower(principal.email)
- legacy profiles with no user_id: str(customer.id) == str(principal.id)

Several profiles may match one principal. They are returned in collection
order (ascending id) and never merged. Actions that need a single profile use
the first match; with duplicate profiles this tie-break is insertion order,
which is stable but carries no business meaning.

An empty result is not an error. Callers that need a profile raise
IncompleteProfileError so the client is sent to onboarding.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import String, and_, cast, func, or_

from ..errors import IncompleteProfileError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Customer
from ..validation import clean_str
from .concurrency import run_in_unit, run_read
from .document_service import SEQ_CUSTOMER, next_id


DEFAULT_COUNTRY = "India"
ADDRESS_FIELDS = ("street", "city", "state", "country", "pincode")


@dataclass(frozen=True)
class Principal:
    """
    Authenticated caller as supplied by the authentication layer.

    id is the stable login id; email is the login email (or username when
    the account has no email).
    """
    id: int | str
    email: str | None = None
    name: str | None = None
    role: str | None = None

    @property
    def normalized_email(self) -> str:
        return (self.email or "").strip().lower()

    @property
    def display(self) -> str | None:
        return self.name or self.email


def _match_clause(principal: Principal):
    principal_id = str(principal.id)
    clauses = [
        cast(Customer.user_id, String) == principal_id,
        and_(Customer.user_id.is_(None), cast(Customer.id, String) == principal_id),
    ]
    if principal.normalized_email:
        clauses.append(func.lower(Customer.email) == principal.normalized_email)
    return or_(*clauses)


def resolve_customers(principal: Principal | None) -> list[Customer]:
    """All customer profiles matching the principal, oldest first."""
    if principal is None or principal.id is None:
        return []

    def _op():
        return (
            db.session.query(Customer)
            .filter(_match_clause(principal))
            .order_by(Customer.id)
            .all()
        )

    return run_read(_op)


def resolve_customer_ids(principal: Principal | None) -> list[int]:
    return [c.id for c in resolve_customers(principal)]


def resolve_primary_customer(principal: Principal | None) -> Customer | None:
    """First matching profile by insertion order, or None."""
    customers = resolve_customers(principal)
    return customers[0] if customers else None


def require_customer(principal: Principal | None) -> Customer:
    customer = resolve_primary_customer(principal)
    if customer is None:
        raise IncompleteProfileError()
    return customer


def get_profile(principal: Principal | None) -> Customer:
    customer = resolve_primary_customer(principal)
    if customer is None:
        raise NotFoundError("Profile not found")
    return customer


def _clean_address(value: Any) -> dict | None:
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ValidationError("address must be an object")
    return {field: clean_str(value.get(field)) for field in ADDRESS_FIELDS}


def _linked_user_id(principal: Principal) -> int | None:
    try:
        return int(principal.id)
    except (TypeError, ValueError):
        return None


def _fallback_address(street: str) -> dict:
    return {"street": street, "city": "", "state": "", "country": DEFAULT_COUNTRY, "pincode": ""}


def upsert_profile(principal: Principal | None, payload: dict) -> tuple[Customer, bool]:
    """
    Create the principal's profile, or update the primary match in place.

    email and user_id always come from the principal, never from the payload.
    Returns (customer, created).
    """
    if principal is None:
        raise ValidationError("Authentication required to save a profile")
    payload = payload or {}

    billing = _clean_address(payload.get("billing_address"))
    shipping = _clean_address(payload.get("shipping_address"))
    address = clean_str(payload.get("address"))
    if not address and billing and billing.get("street"):
        address = ", ".join(p for p in (billing["street"], billing.get("city")) if p)

    fields = {
        "name": clean_str(payload.get("name")) or principal.name or "Unknown",
        "display_name": clean_str(payload.get("display_name")) or None,
        "email": principal.email,
        "phone": clean_str(payload.get("phone")),
        "address": address,
        "company_name": clean_str(payload.get("company_name")),
        "billing_address": billing or _fallback_address(address),
        "shipping_address": shipping or billing or _fallback_address(address),
        "gstin": clean_str(payload.get("gstin")),
        "place_of_supply": clean_str(payload.get("place_of_supply")),
        "customer_type": clean_str(payload.get("customer_type")) or "business",
        "user_id": _linked_user_id(principal),
    }

    def _op():
        customer = (
            db.session.query(Customer)
            .filter(_match_clause(principal))
            .order_by(Customer.id)
            .first()
        )
        created = customer is None
        if created:
            customer = Customer(id=next_id(SEQ_CUSTOMER))
            db.session.add(customer)
        for key, value in fields.items():
            setattr(customer, key, value)
        db.session.flush()
        return customer, created

    return run_in_unit(_op, "customers")
