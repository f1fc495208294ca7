# Overview: Attaches guest orders to customer accounts.

"""
Guest Order Reconciler

An order placed without a session is owned by nobody: user_id is NULL or
the literal placeholder "guest". When a customer registers, every such
order whose shipping email equals the new account's email is attached to
the account.

Eligibility is exactly:
    shipping_email == customer.email AND (user_id IS NULL OR user_id == "guest")

Linking is forward-only and idempotent: a linked order has a real user_id
and no longer matches.
"""

from flask import current_app
from sqlalchemy import or_

from ..extensions import db
from ..models import Customer, Order
from ..models.orders import GUEST_USER_ID


def _unowned():
    return or_(Order.user_id.is_(None), Order.user_id == GUEST_USER_ID)


def attach_order(order: Order, customer: Customer) -> None:
    """Stamp customer ownership onto an order (no commit)."""
    order.user_id = str(customer.id)
    order.customer_id = customer.id
    order.customer_name = customer.name
    order.customer_email = customer.email
    order.customer_phone = customer.phone


def find_linkable_orders(email: str) -> list[Order]:
    return (
        db.session.query(Order)
        .filter(Order.shipping_email == email, _unowned())
        .order_by(Order.id.asc())
        .all()
    )


def link_guest_orders(customer: Customer) -> int:
    """
    Attach every eligible guest order to customer.

    Runs inside the caller's transaction; the caller commits.
    Returns the number of orders linked.
    """
    if not customer.email:
        return 0

    orders = find_linkable_orders(customer.email)
    for order in orders:
        attach_order(order, customer)

    if orders:
        db.session.flush()
        current_app.logger.info(
            "Linked %d guest order(s) to customer %s: %s",
            len(orders), customer.id, [o.order_number for o in orders],
        )
    return len(orders)


def link_paid_guest_order(order: Order) -> Customer | None:
    """
    After a guest order is paid, attach it to an existing customer whose
    email or phone matches the order's contact details.

    Returns the customer linked, or None.
    """
    if not order.is_guest_order or not order.shipping_address:
        return None
    if order.user_id not in (None, GUEST_USER_ID):
        return None

    email = order.shipping_email
    phone = order.shipping_address.get("phone")

    customer = None
    if email:
        customer = db.session.query(Customer).filter_by(email=email).first()
    if customer is None and phone:
        customer = db.session.query(Customer).filter_by(phone=phone).first()
    if customer is None:
        return None

    attach_order(order, customer)
    order.is_guest_order = False
    current_app.logger.info(
        "Linked paid guest order %s to existing customer %s", order.order_number, customer.id
    )
    return customer
