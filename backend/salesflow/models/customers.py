from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Customer(db.Model):
    """
    Customer profile: the business-facing identity behind a login.

    IDENTITY: A profile is reachable by its linked user_id OR by email
    (case-insensitive). Several profiles may match one principal; they are
    tolerated, never merged.

    IDs are allocated from the "customer" document sequence.
    """
    __tablename__ = "customers"

    id = db.Column(db.Integer, primary_key=True, autoincrement=False)
    user_id = db.Column(db.Integer, nullable=True, index=True)

    email = db.Column(db.String(255), nullable=True, index=True)
    name = db.Column(db.String(255), nullable=False, default="Unknown")
    display_name = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(64), nullable=False, default="")
    address = db.Column(db.Text, nullable=False, default="")
    company_name = db.Column(db.String(255), nullable=False, default="")

    # {"street", "city", "state", "country", "pincode"}
    billing_address = db.Column(db.JSON, nullable=True)
    shipping_address = db.Column(db.JSON, nullable=True)

    gstin = db.Column(db.String(32), nullable=False, default="")
    place_of_supply = db.Column(db.String(64), nullable=False, default="")
    customer_type = db.Column(db.String(32), nullable=False, default="business")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    @property
    def label(self) -> str:
        return self.display_name or self.name or "Unknown"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "email": self.email,
            "name": self.name,
            "display_name": self.display_name,
            "phone": self.phone,
            "address": self.address,
            "company_name": self.company_name,
            "billing_address": self.billing_address,
            "shipping_address": self.shipping_address,
            "gstin": self.gstin,
            "place_of_supply": self.place_of_supply,
            "customer_type": self.customer_type,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
