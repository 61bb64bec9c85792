from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


ITEM_REQUEST_PENDING = "Pending"
ITEM_REQUEST_APPROVED = "Approved"
ITEM_REQUEST_REJECTED = "Rejected"


class ItemRequest(db.Model):
    """
    Customer request to add a new item to the catalog.

    LIFECYCLE:
        Pending -> Approved   (admin; creates a catalog Item)
        Pending -> Rejected   (admin; rejection_reason stored verbatim)

    Contact fields are a snapshot of the customer at submission time.
    """
    __tablename__ = "item_requests"
    __table_args__ = (
        db.Index("ix_item_requests_status_created", "status", "created_at"),
    )

    id = db.Column(db.Integer, primary_key=True, autoincrement=False)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    customer_name = db.Column(db.String(255), nullable=False, default="")
    customer_email = db.Column(db.String(255), nullable=False, default="", index=True)
    company_name = db.Column(db.String(255), nullable=False, default="")
    contact_number = db.Column(db.String(64), nullable=False, default="")

    item_name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=False, default="")
    quantity = db.Column(db.Integer, nullable=False, default=1)

    status = db.Column(db.String(32), nullable=False, default=ITEM_REQUEST_PENDING, index=True)
    rejection_reason = db.Column(db.Text, nullable=False, default="")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "customer_name": self.customer_name,
            "customer_email": self.customer_email,
            "company_name": self.company_name,
            "contact_number": self.contact_number,
            "item_name": self.item_name,
            "description": self.description,
            "quantity": self.quantity,
            "status": self.status,
            "rejection_reason": self.rejection_reason,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Item(db.Model):
    """
    Catalog entry.

    Items reached through the portal are created only when an ItemRequest is
    approved. source_request_id is unique, so one request yields at most one
    item no matter how often it is approved.
    """
    __tablename__ = "items"
    __table_args__ = (
        db.UniqueConstraint("source_request_id", name="uq_items_source_request"),
    )

    id = db.Column(db.Integer, primary_key=True, autoincrement=False)

    name = db.Column(db.String(255), nullable=False, index=True)
    description = db.Column(db.Text, nullable=False, default="")
    type = db.Column(db.String(16), nullable=False, default="goods")
    usage_unit = db.Column(db.String(16), nullable=False, default="pcs")

    rate_cents = db.Column(db.Integer, nullable=False, default=0)
    purchase_rate_cents = db.Column(db.Integer, nullable=False, default=0)

    tax_preference = db.Column(db.String(32), nullable=False, default="taxable")
    intra_state_tax = db.Column(db.String(32), nullable=False, default="GST18")
    inter_state_tax = db.Column(db.String(32), nullable=False, default="IGST18")

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    source_request_id = db.Column(db.Integer, db.ForeignKey("item_requests.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "type": self.type,
            "usage_unit": self.usage_unit,
            "rate_cents": self.rate_cents,
            "purchase_rate_cents": self.purchase_rate_cents,
            "tax_preference": self.tax_preference,
            "intra_state_tax": self.intra_state_tax,
            "inter_state_tax": self.inter_state_tax,
            "is_active": self.is_active,
            "source_request_id": self.source_request_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
