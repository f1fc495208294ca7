from __future__ import annotations

from ..extensions import db
from ..money import money_json
from storefront.time_utils import to_utc_z

SOURCE_WEB = "web"
SOURCE_POS = "pos"

ROLE_CUSTOMER = "customer"
ROLE_ADMIN = "admin"

WALK_IN_NAME = "Walk-in Customer"


class Customer(db.Model):
    """
    One customer identity, web-registered or created at the POS register.

    source="web" rows carry a bcrypt password hash and an email; source="pos"
    rows are identified by phone only and usually have no password.
    Phone is unique; email is unique when present.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.UniqueConstraint("phone", name="uq_customers_phone"),
        db.UniqueConstraint("email", name="uq_customers_email"),
        db.Index("ix_customers_source", "source"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=False)

    password_hash = db.Column(db.String(255), nullable=True)
    role = db.Column(db.String(16), nullable=False, default=ROLE_CUSTOMER)
    source = db.Column(db.String(8), nullable=False, default=SOURCE_WEB)

    # Denormalized aggregates (updated when POS sales are completed)
    total_orders = db.Column(db.Integer, nullable=False, default=0)
    total_spent = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    is_new = db.Column(db.Boolean, nullable=False, default=True)

    reset_token_hash = db.Column(db.String(64), nullable=True, index=True)
    reset_token_expires_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "role": self.role,
            "type": self.source,
            "totalOrders": self.total_orders,
            "totalSpent": money_json(self.total_spent),
            "isNew": self.is_new,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
            "lastLogin": to_utc_z(self.last_login_at),
        }


class CustomerAddress(db.Model):
    """Saved shipping address. Exactly one per customer is the default."""
    __tablename__ = "customer_addresses"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)

    full_name = db.Column(db.String(128), nullable=False)
    phone = db.Column(db.String(32), nullable=True)
    address = db.Column(db.String(512), nullable=False)
    city = db.Column(db.String(128), nullable=False)
    state = db.Column(db.String(128), nullable=False)
    pincode = db.Column(db.String(16), nullable=False)
    country = db.Column(db.String(64), nullable=False, default="India")
    is_default = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    customer = db.relationship("Customer", backref=db.backref("addresses", lazy=True, order_by="CustomerAddress.id"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "fullName": self.full_name,
            "phone": self.phone,
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "pincode": self.pincode,
            "country": self.country,
            "isDefault": self.is_default,
            "createdAt": to_utc_z(self.created_at),
        }
