from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


QUOTE_STATUS_DRAFT = "Draft"
QUOTE_STATUS_APPROVED = "Approved"
QUOTE_STATUS_SCRAPPED = "Scrapped"

PAYMENT_STATUS_PENDING = "Pending Verification"
PAYMENT_STATUS_VERIFIED = "Verified"
PAYMENT_STATUS_REJECTED = "Rejected"


class DocumentSequence(db.Model):
    """
    Atomic per-type document counters (the collection "nextId").

    WHY: Prevent race conditions when generating document ids and
    reference numbers (quotes, payments, item requests, ...).
    """
    __tablename__ = "document_sequences"
    __table_args__ = (
        db.UniqueConstraint("document_type", name="uq_doc_sequences_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    document_type = db.Column(db.String(32), nullable=False, index=True)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "document_type": self.document_type,
            "next_number": self.next_number,
            "updated_at": to_utc_z(self.updated_at),
        }


class Quote(db.Model):
    """
    Customer quote request.

    LIFECYCLE:
        Draft -> Approved   (customer accepts)
        Draft -> Scrapped   (customer rejects, or admin scraps)

    Customer name and addresses are snapshots taken at creation time.
    Lines are immutable once the quote exists; only status changes.
    """
    __tablename__ = "quotes"
    __table_args__ = (
        db.UniqueConstraint("quote_number", name="uq_quotes_quote_number"),
        db.Index("ix_quotes_customer_status", "customer_id", "status"),
    )

    id = db.Column(db.Integer, primary_key=True, autoincrement=False)

    # Human-readable document number (e.g., "QT-000042")
    quote_number = db.Column(db.String(32), nullable=False)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    customer_name = db.Column(db.String(255), nullable=False)
    billing_address = db.Column(db.JSON, nullable=True)
    shipping_address = db.Column(db.JSON, nullable=True)

    status = db.Column(db.String(16), nullable=False, default=QUOTE_STATUS_DRAFT, index=True)

    sub_total_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False, default=0)

    date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    lines = db.relationship(
        "QuoteLine",
        backref="quote",
        lazy=True,
        order_by="QuoteLine.position",
        cascade="all, delete-orphan",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "quote_number": self.quote_number,
            "customer_id": self.customer_id,
            "customer_name": self.customer_name,
            "billing_address": self.billing_address,
            "shipping_address": self.shipping_address,
            "status": self.status,
            "items": [line.to_dict() for line in self.lines],
            "sub_total_cents": self.sub_total_cents,
            "total_cents": self.total_cents,
            "date": to_utc_z(self.date),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class QuoteLine(db.Model):
    __tablename__ = "quote_lines"
    __table_args__ = (
        db.UniqueConstraint("quote_id", "position", name="uq_quote_lines_quote_position"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    quote_id = db.Column(db.Integer, db.ForeignKey("quotes.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False)

    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=False, default="")
    quantity = db.Column(db.Integer, nullable=False)
    rate_cents = db.Column(db.Integer, nullable=False, default=0)
    # quantity * rate_cents, computed server-side
    amount_cents = db.Column(db.Integer, nullable=False, default=0)
    unit = db.Column(db.String(16), nullable=False, default="pcs")

    def to_dict(self) -> dict:
        return {
            "id": self.position,
            "name": self.name,
            "description": self.description,
            "quantity": self.quantity,
            "rate_cents": self.rate_cents,
            "amount_cents": self.amount_cents,
            "unit": self.unit,
        }


class Invoice(db.Model):
    """
    Invoice issued by the billing side.

    Totals are owned by billing; the portal only appends InvoiceActivity rows.
    """
    __tablename__ = "invoices"
    __table_args__ = (
        db.UniqueConstraint("invoice_number", name="uq_invoices_invoice_number"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    invoice_number = db.Column(db.String(32), nullable=False)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    customer_name = db.Column(db.String(255), nullable=False, default="")
    customer_email = db.Column(db.String(255), nullable=False, default="")

    total_cents = db.Column(db.Integer, nullable=False, default=0)
    # NULL when billing never computed an outstanding balance
    balance_due_cents = db.Column(db.Integer, nullable=True)
    status = db.Column(db.String(32), nullable=False, default="Sent", index=True)
    place_of_supply = db.Column(db.String(64), nullable=False, default="")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    activities = db.relationship(
        "InvoiceActivity",
        backref="invoice",
        lazy=True,
        order_by="InvoiceActivity.position",
        cascade="all, delete-orphan",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_number": self.invoice_number,
            "customer_id": self.customer_id,
            "customer_name": self.customer_name,
            "customer_email": self.customer_email,
            "total_cents": self.total_cents,
            "balance_due_cents": self.balance_due_cents,
            "status": self.status,
            "place_of_supply": self.place_of_supply,
            "activity_logs": [a.to_dict() for a in self.activities],
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class InvoiceActivity(db.Model):
    """
    Append-only audit trail entry on an invoice.

    IMMUTABLE: Records are never updated or deleted.
    """
    __tablename__ = "invoice_activities"
    __table_args__ = (
        db.UniqueConstraint("invoice_id", "position", name="uq_invoice_activities_invoice_position"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    invoice_id = db.Column(db.Integer, db.ForeignKey("invoices.id"), nullable=False, index=True)
    # 1-based order within the invoice
    position = db.Column(db.Integer, nullable=False)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    action = db.Column(db.String(64), nullable=False)
    description = db.Column(db.Text, nullable=False, default="")
    actor = db.Column(db.String(255), nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.position,
            "timestamp": to_utc_z(self.occurred_at),
            "action": self.action,
            "description": self.description,
            "user": self.actor,
        }


class PaymentReceived(db.Model):
    """
    Customer-reported payment awaiting verification.

    LIFECYCLE:
        Pending Verification -> Verified | Rejected
    The portal only ever creates Pending Verification records; verification
    happens in the back office.
    """
    __tablename__ = "payments_received"
    __table_args__ = (
        db.UniqueConstraint("payment_number", name="uq_payments_received_number"),
    )

    id = db.Column(db.Integer, primary_key=True, autoincrement=False)
    payment_number = db.Column(db.String(32), nullable=False)
    reference_number = db.Column(db.String(64), nullable=False, default="")

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    customer_name = db.Column(db.String(255), nullable=False, default="")
    customer_email = db.Column(db.String(255), nullable=False, default="")

    amount_cents = db.Column(db.Integer, nullable=False)
    unused_amount_cents = db.Column(db.Integer, nullable=False, default=0)

    mode = db.Column(db.String(32), nullable=False, default="Online")
    deposit_to = db.Column(db.String(64), nullable=False, default="Undeposited Funds")
    payment_type = db.Column(db.String(32), nullable=False, default="Customer Payment")
    place_of_supply = db.Column(db.String(64), nullable=False, default="")
    notes = db.Column(db.Text, nullable=False, default="")

    status = db.Column(db.String(32), nullable=False, default=PAYMENT_STATUS_PENDING, index=True)

    date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    applications = db.relationship(
        "PaymentApplication",
        backref="payment",
        lazy=True,
        order_by="PaymentApplication.id",
        cascade="all, delete-orphan",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "payment_number": self.payment_number,
            "reference_number": self.reference_number,
            "customer_id": self.customer_id,
            "customer_name": self.customer_name,
            "customer_email": self.customer_email,
            "invoices": [a.to_dict() for a in self.applications],
            "amount_cents": self.amount_cents,
            "unused_amount_cents": self.unused_amount_cents,
            "mode": self.mode,
            "deposit_to": self.deposit_to,
            "payment_type": self.payment_type,
            "place_of_supply": self.place_of_supply,
            "notes": self.notes,
            "status": self.status,
            "date": to_utc_z(self.date),
            "created_at": to_utc_z(self.created_at),
        }


class PaymentApplication(db.Model):
    """Amount of a received payment applied to one invoice."""
    __tablename__ = "payment_applications"
    __table_args__ = (
        db.UniqueConstraint("payment_id", "invoice_id", name="uq_payment_applications_payment_invoice"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    payment_id = db.Column(db.Integer, db.ForeignKey("payments_received.id"), nullable=False, index=True)
    invoice_id = db.Column(db.Integer, db.ForeignKey("invoices.id"), nullable=False, index=True)
    invoice_number = db.Column(db.String(32), nullable=False)
    amount_applied_cents = db.Column(db.Integer, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.invoice_id,
            "invoice_number": self.invoice_number,
            "amount_applied_cents": self.amount_applied_cents,
        }
