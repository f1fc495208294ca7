# Overview: Service-layer operations for the order ledger; online checkout and admin updates.

"""
Order Ledger Service

Online order lifecycle:

    pending --(payment verified)--> processing --> shipped --> delivered
       \\                               \\            \\
        +------------------------------+------------+--> cancelled

Payment status: pending -> completed (payment verification only)
                pending -> failed    (client-reported failure or admin)

POS orders are written completed/completed by pos_service and never move.
"""

import re
import secrets
from datetime import timedelta

from flask import current_app
from sqlalchemy import or_

from ..extensions import db
from ..models import Customer, Order, OrderItem
from ..models.orders import (
    ORDER_TYPE_ONLINE,
    STATUS_PENDING, STATUS_PROCESSING, STATUS_SHIPPED, STATUS_DELIVERED,
    STATUS_CANCELLED, STATUS_COMPLETED,
    PAYMENT_PENDING, PAYMENT_COMPLETED, PAYMENT_FAILED,
    GUEST_USER_ID,
)
from ..money import to_money, to_paise
from ..validation import ValidationError, ConflictError, NotFoundError, normalize_email, MAX_PRICE
from . import payment_gateway
from .concurrency import lock_for_update, run_with_retry
from .reconciliation_service import attach_order
from storefront.time_utils import utcnow, epoch_millis


ORDER_NUMBER_PATTERN = re.compile(r"[A-Za-z0-9_-]{1,64}")

SHIPPING_ADDRESS_FIELDS = (
    ("fullName", "Full name"),
    ("email", "Email"),
    ("phone", "Phone number"),
    ("address", "Address"),
    ("city", "City"),
    ("state", "State"),
    ("country", "Country"),
    ("pincode", "Pincode"),
)

ALLOWED_TRANSITIONS = {
    STATUS_PENDING: {STATUS_CANCELLED},
    STATUS_PROCESSING: {STATUS_SHIPPED, STATUS_CANCELLED},
    STATUS_SHIPPED: {STATUS_DELIVERED, STATUS_CANCELLED},
    STATUS_DELIVERED: set(),
    STATUS_CANCELLED: set(),
    STATUS_COMPLETED: set(),
}

ORDER_UPDATE_FIELDS = {"status", "paymentStatus", "shippingAddress"}


def generate_order_number() -> str:
    return f"order_{epoch_millis()}_{secrets.token_hex(4)}"


# =============================================================================
# VALIDATION
# =============================================================================

def validate_items(items) -> tuple[list[dict], list[str]]:
    """
    Check cart lines and normalize prices.

    Returns (clean_items, errors).
    """
    errors = []
    clean = []
    if not isinstance(items, list) or not items:
        return [], ["At least one item is required"]

    for index, item in enumerate(items, start=1):
        if not isinstance(item, dict):
            errors.append(f"Item {index}: Invalid item")
            continue
        if not item.get("id"):
            errors.append(f"Item {index}: Product ID is required")

        quantity = item.get("quantity")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            errors.append(f"Item {index}: Valid quantity is required")

        try:
            price = to_money(item.get("price"), "price")
        except ValidationError:
            price = None
        if price is None or price <= 0:
            errors.append(f"Item {index}: Price is required")
        elif price > MAX_PRICE:
            errors.append(f"Item {index}: Price cannot exceed {MAX_PRICE}")

        clean.append({
            "product_id": str(item.get("id") or ""),
            "name": item.get("name"),
            "price": price,
            "quantity": quantity,
            "image": item.get("image"),
        })
    return clean, errors


def validate_shipping_address(address) -> tuple[dict, list[str]]:
    if not isinstance(address, dict):
        return {}, ["Shipping address is required"]

    errors = [f"{label} is required" for key, label in SHIPPING_ADDRESS_FIELDS
              if not str(address.get(key) or "").strip()]
    clean = {key: str(address.get(key) or "").strip() for key, _ in SHIPPING_ADDRESS_FIELDS}

    if clean["email"]:
        try:
            clean["email"] = normalize_email(clean["email"])
        except ValidationError as e:
            errors.append(str(e))
    return clean, errors


def subtotal_of(items: list[dict]):
    return sum((item["price"] * item["quantity"] for item in items), to_money(0))


def build_items(items: list[dict]) -> list[OrderItem]:
    return [
        OrderItem(
            product_id=item["product_id"],
            name=item["name"],
            price=item["price"],
            quantity=item["quantity"],
            image=item["image"],
        )
        for item in items
    ]


# =============================================================================
# ONLINE CHECKOUT
# =============================================================================

def create_online_order(payload: dict, customer: Customer | None = None) -> tuple[Order, bool]:
    """
    Create a pending online order and its Razorpay counterpart.

    The caller-supplied orderId is the idempotency key: repeating it for an
    order that is still awaiting payment returns that order instead of
    minting a second gateway order.

    Returns:
        (order, created)

    Raises:
        ValidationError: bad items/address/orderId
        ConflictError: orderId already used by a settled order
        GatewayError: Razorpay refused or was unreachable (nothing written)
    """
    payload = payload or {}

    order_number = payload.get("orderId") or generate_order_number()
    if not isinstance(order_number, str) or not ORDER_NUMBER_PATTERN.fullmatch(order_number):
        raise ValidationError("orderId is invalid")

    items, item_errors = validate_items(payload.get("items"))
    address, address_errors = validate_shipping_address(payload.get("shippingAddress"))
    errors = address_errors + item_errors
    if errors:
        raise ValidationError(", ".join(errors))

    existing = db.session.query(Order).filter_by(order_number=order_number).first()
    if existing:
        if (existing.type == ORDER_TYPE_ONLINE
                and existing.payment_status == PAYMENT_PENDING
                and existing.razorpay_order_id):
            return existing, False
        raise ConflictError("Order already exists")

    subtotal = subtotal_of(items)

    gateway_order = payment_gateway.create_gateway_order(
        to_paise(subtotal),
        receipt=order_number,
        notes={"orderId": order_number},
    )

    now = utcnow()
    order = Order(
        order_number=order_number,
        type=ORDER_TYPE_ONLINE,
        subtotal=subtotal,
        total=subtotal,
        shipping_address=address,
        shipping_email=address["email"],
        status=STATUS_PENDING,
        payment_status=PAYMENT_PENDING,
        razorpay_order_id=gateway_order["id"],
        created_at=now,
        updated_at=now,
    )
    order.items = build_items(items)

    if customer is not None:
        attach_order(order, customer)
        order.is_guest_order = False
    else:
        order.user_id = GUEST_USER_ID
        order.is_guest_order = True
        guest = payload.get("guestDetails")
        if not isinstance(guest, dict):
            guest = {}
        order.guest_details = {
            "email": address["email"],
            "phone": guest.get("phone") or address["phone"],
            "name": guest.get("name") or address["fullName"],
        }

    db.session.add(order)
    db.session.commit()

    current_app.logger.info(
        "Created %s order %s (gateway %s, total %s)",
        "guest" if order.is_guest_order else "customer",
        order.order_number, order.razorpay_order_id, order.total,
    )
    return order, True


# =============================================================================
# QUERIES
# =============================================================================

def get_order(order_number: str) -> Order:
    order = db.session.query(Order).filter_by(order_number=order_number).first()
    if not order:
        raise NotFoundError("Order not found")
    return order


def get_order_by_gateway_id(razorpay_order_id: str) -> Order:
    order = db.session.query(Order).filter_by(razorpay_order_id=razorpay_order_id).first()
    if not order:
        raise NotFoundError("Order not found")
    return order


def list_orders(order_type: str | None = None, status: str | None = None,
                payment_status: str | None = None) -> list[Order]:
    query = db.session.query(Order)
    if order_type:
        query = query.filter(Order.type == order_type)
    if status:
        query = query.filter(Order.status == status)
    if payment_status:
        query = query.filter(Order.payment_status == payment_status)
    return query.order_by(Order.created_at.desc(), Order.id.desc()).all()


def list_customer_orders(customer: Customer) -> list[Order]:
    """Orders owned by the customer or carrying their contact email/phone, newest first."""
    conditions = [
        Order.customer_id == customer.id,
        Order.user_id == str(customer.id),
        Order.customer_phone == customer.phone,
    ]
    if customer.email:
        conditions.append(Order.shipping_email == customer.email)

    return (
        db.session.query(Order)
        .filter(or_(*conditions))
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )


# =============================================================================
# UPDATES
# =============================================================================

def _apply_status(order: Order, status) -> None:
    if status not in ALLOWED_TRANSITIONS:
        raise ValidationError(f"Invalid status: {status}")
    if status == order.status:
        return
    if status not in ALLOWED_TRANSITIONS[order.status]:
        raise ValidationError(f"Cannot change order status from {order.status} to {status}")
    order.status = status


def _apply_payment_status(order: Order, payment_status) -> None:
    if payment_status == order.payment_status:
        return
    if payment_status == PAYMENT_COMPLETED:
        raise ValidationError("Payment can only be completed by payment verification")
    if payment_status != PAYMENT_FAILED:
        raise ValidationError(f"Invalid payment status: {payment_status}")
    if order.payment_status != PAYMENT_PENDING:
        raise ValidationError(f"Cannot mark a {order.payment_status} payment as failed")
    order.payment_status = PAYMENT_FAILED


def update_order(order_number: str, payload: dict) -> Order:
    """Admin update of status, payment status (failed only) and shipping address."""
    payload = payload or {}
    unknown = sorted(set(payload) - ORDER_UPDATE_FIELDS)
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(unknown)}")

    def _op():
        order = lock_for_update(db.session.query(Order).filter_by(order_number=order_number)).first()
        if not order:
            raise NotFoundError("Order not found")

        try:
            if "shippingAddress" in payload:
                if order.type != ORDER_TYPE_ONLINE:
                    raise ValidationError("POS orders have no shipping address")
                address, errors = validate_shipping_address(payload["shippingAddress"])
                if errors:
                    raise ValidationError(", ".join(errors))
                order.shipping_address = address
                order.shipping_email = address["email"]
            if "paymentStatus" in payload:
                _apply_payment_status(order, payload["paymentStatus"])
            if "status" in payload:
                _apply_status(order, payload["status"])
        except ValidationError:
            # Partial patches are never kept
            db.session.rollback()
            raise

        order.updated_at = utcnow()
        db.session.commit()
        return order

    order = run_with_retry(_op)
    current_app.logger.info("Order %s updated: %s", order.order_number, sorted(payload))
    return order


def mark_payment_failed(razorpay_order_id: str, error: str | None = None) -> Order:
    """
    Record a failed or cancelled checkout attempt reported by the client.

    Only pending payments move to failed; a verified payment is never undone.
    """
    def _op():
        order = lock_for_update(
            db.session.query(Order).filter_by(razorpay_order_id=razorpay_order_id)
        ).first()
        if not order:
            raise NotFoundError("Order not found")
        if order.payment_status == PAYMENT_COMPLETED:
            raise ValidationError("Payment already completed")

        order.payment_status = PAYMENT_FAILED
        order.payment_error = (error or "Payment failed")[:255]
        order.updated_at = utcnow()
        db.session.commit()
        return order

    order = run_with_retry(_op)
    current_app.logger.warning("Payment failed for order %s: %s", order.order_number, order.payment_error)
    return order


def cleanup_failed_orders(older_than_hours: int = 24) -> int:
    """Delete failed online orders older than the window. Returns count deleted."""
    cutoff = utcnow() - timedelta(hours=older_than_hours)
    orders = db.session.query(Order).filter(
        Order.type == ORDER_TYPE_ONLINE,
        Order.payment_status == PAYMENT_FAILED,
        Order.created_at < cutoff,
    ).all()

    for order in orders:
        db.session.delete(order)
    db.session.commit()
    return len(orders)
