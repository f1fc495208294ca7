from __future__ import annotations

from ..extensions import db
from ..money import money_json
from storefront.time_utils import to_utc_z

ORDER_TYPE_ONLINE = "online"
ORDER_TYPE_POS = "pos"

STATUS_PENDING = "pending"
STATUS_PROCESSING = "processing"
STATUS_SHIPPED = "shipped"
STATUS_DELIVERED = "delivered"
STATUS_CANCELLED = "cancelled"
STATUS_COMPLETED = "completed"

PAYMENT_PENDING = "pending"
PAYMENT_COMPLETED = "completed"
PAYMENT_FAILED = "failed"

GUEST_USER_ID = "guest"


class Order(db.Model):
    """
    Order ledger entry, online checkout or POS sale.

    Orders are created once and updated in place; they are never deleted
    except by the failed-order cleanup command.

    user_id is a string: the owning customer's id, or the literal "guest"
    for an unauthenticated checkout.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.UniqueConstraint("order_number", name="uq_orders_order_number"),
        db.UniqueConstraint("razorpay_order_id", name="uq_orders_razorpay_order_id"),
        # Guest-order linking looks orders up by contact email and owner
        db.Index("ix_orders_shipping_email_user", "shipping_email", "user_id"),
        db.Index("ix_orders_type_created", "type", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(64), nullable=False)
    type = db.Column(db.String(8), nullable=False, default=ORDER_TYPE_ONLINE)

    # Ownership
    user_id = db.Column(db.String(64), nullable=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    customer_name = db.Column(db.String(128), nullable=True)
    customer_email = db.Column(db.String(255), nullable=True)
    customer_phone = db.Column(db.String(32), nullable=True)

    # Amounts (rupees)
    subtotal = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    discount_percentage = db.Column(db.Numeric(5, 2), nullable=False, default=0)
    cash_discount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total = db.Column(db.Numeric(12, 2), nullable=False)

    shipping_address = db.Column(db.JSON, nullable=True)
    shipping_email = db.Column(db.String(255), nullable=True)
    pos_customer = db.Column(db.JSON, nullable=True)
    payment_mode = db.Column(db.String(16), nullable=True)

    status = db.Column(db.String(16), nullable=False, default=STATUS_PENDING, index=True)
    payment_status = db.Column(db.String(16), nullable=False, default=PAYMENT_PENDING, index=True)
    is_guest_order = db.Column(db.Boolean, nullable=False, default=False)
    guest_details = db.Column(db.JSON, nullable=True)

    # Gateway tracking
    razorpay_order_id = db.Column(db.String(64), nullable=True)
    razorpay_payment_id = db.Column(db.String(64), nullable=True)
    razorpay_signature = db.Column(db.String(128), nullable=True)
    payment_error = db.Column(db.String(255), nullable=True)
    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    customer = db.relationship("Customer", backref=db.backref("orders", lazy=True))
    items = db.relationship(
        "OrderItem",
        backref="order",
        lazy=True,
        order_by="OrderItem.id",
        cascade="all, delete-orphan",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "orderId": self.order_number,
            "type": self.type,
            "userId": self.user_id,
            "customerId": self.customer_id,
            "customerName": self.customer_name,
            "customerEmail": self.customer_email,
            "customerPhone": self.customer_phone,
            "items": [item.to_dict() for item in self.items],
            "subtotal": money_json(self.subtotal),
            "discountPercentage": money_json(self.discount_percentage),
            "cashDiscount": money_json(self.cash_discount),
            "total": money_json(self.total),
            "status": self.status,
            "paymentStatus": self.payment_status,
            "isGuestOrder": self.is_guest_order,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
        if self.type == ORDER_TYPE_POS:
            data["customer"] = self.pos_customer
            data["paymentMode"] = self.payment_mode
        else:
            data["shippingAddress"] = self.shipping_address
            data["guestDetails"] = self.guest_details
            data["razorpayOrderId"] = self.razorpay_order_id
            data["razorpayPaymentId"] = self.razorpay_payment_id
            data["paymentError"] = self.payment_error
            data["paidAt"] = to_utc_z(self.paid_at)
        return data


class OrderItem(db.Model):
    """Line item snapshot; product fields are copied at checkout time."""
    __tablename__ = "order_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)

    product_id = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(255), nullable=True)
    price = db.Column(db.Numeric(12, 2), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    image = db.Column(db.String(512), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.product_id,
            "name": self.name,
            "price": money_json(self.price),
            "quantity": self.quantity,
            "image": self.image,
        }
