# Overview: In-store register checkout; discounts, customer resolution and aggregates.

"""
POS Register Service

WHY: A sale at the counter is paid on the spot, so a POS order is written
already completed and never enters the online payment lifecycle.

TOTAL:
    total = subtotal - subtotal * discountPercentage / 100 - cashDiscount
    discountPercentage in [0, 20], cashDiscount in [0, 500] rupees

CUSTOMER:
- customer.id: an existing customer (404 if unknown)
- customer.phone: existing customer for that phone, or a new POS customer
- neither: the anonymous "Walk-in Customer"; no customer record is touched

The order row and the customer's aggregate update (total_orders,
total_spent, is_new) commit together.
"""

import secrets
from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..models import Customer, Order
from ..models.customers import WALK_IN_NAME
from ..models.orders import ORDER_TYPE_POS, STATUS_COMPLETED, PAYMENT_COMPLETED
from ..money import to_money
from ..validation import ValidationError, NotFoundError
from .concurrency import lock_for_update, run_with_retry
from .customer_service import find_or_create_pos_customer
from .order_service import validate_items, subtotal_of, build_items
from .reconciliation_service import attach_order
from storefront.time_utils import utcnow, epoch_millis


PAYMENT_MODES = ("cash", "card", "upi")

MAX_DISCOUNT_PERCENTAGE = Decimal("20")
MAX_CASH_DISCOUNT = Decimal("500")


def generate_pos_order_number() -> str:
    return f"POS{epoch_millis()}{secrets.randbelow(1000):03d}"


def _has_customer(customer) -> bool:
    if not isinstance(customer, dict):
        return False
    return bool(customer.get("id") or customer.get("phone") or customer.get("name"))


def check_register_state(payload: dict) -> dict:
    """
    Evaluate the checkout gate. Every flag is computed independently.

    Returns {"customer": bool, "cart": bool, "paymentMode": bool}; True means
    the requirement is missing.
    """
    items = payload.get("items")
    return {
        "customer": not _has_customer(payload.get("customer")),
        "cart": not isinstance(items, list) or not items,
        "paymentMode": payload.get("paymentMode") not in PAYMENT_MODES,
    }


def _discounts(payload: dict) -> tuple[Decimal, Decimal]:
    percentage = to_money(payload.get("discountPercentage") or 0, "discountPercentage")
    cash = to_money(payload.get("cashDiscount") or 0, "cashDiscount")

    if percentage < 0 or percentage > MAX_DISCOUNT_PERCENTAGE:
        raise ValidationError("Discount percentage must be between 0 and 20")
    if cash < 0 or cash > MAX_CASH_DISCOUNT:
        raise ValidationError("Cash discount must be between 0 and 500")
    return percentage, cash


def compute_total(subtotal: Decimal, percentage: Decimal, cash: Decimal) -> Decimal:
    return to_money(subtotal - subtotal * percentage / Decimal(100) - cash)


def _resolve_customer(customer_data: dict) -> Customer | None:
    if customer_data.get("id"):
        try:
            customer_id = int(customer_data["id"])
        except (TypeError, ValueError):
            raise ValidationError("Invalid customer id")
        customer = lock_for_update(db.session.query(Customer).filter_by(id=customer_id)).first()
        if not customer:
            raise NotFoundError("Customer not found")
        return customer

    if customer_data.get("phone"):
        return find_or_create_pos_customer(customer_data["phone"], customer_data.get("name"))

    return None


def checkout(payload: dict) -> Order:
    """
    Complete a register sale.

    Raises:
        ValidationError: gate failure (errors = flag dict), bad items,
            discount out of range, negative total
        NotFoundError: customer id unknown
    """
    payload = payload or {}

    flags = check_register_state(payload)
    if any(flags.values()):
        raise ValidationError("Cannot complete sale", errors=flags)

    items, errors = validate_items(payload["items"])
    if errors:
        raise ValidationError(", ".join(errors))

    percentage, cash = _discounts(payload)
    subtotal = subtotal_of(items)
    total = compute_total(subtotal, percentage, cash)
    if total < 0:
        raise ValidationError("Discounts exceed the order subtotal")

    customer_data = payload["customer"]

    def _op():
        customer = _resolve_customer(customer_data)
        now = utcnow()

        order = Order(
            order_number=generate_pos_order_number(),
            type=ORDER_TYPE_POS,
            subtotal=subtotal,
            discount_percentage=percentage,
            cash_discount=cash,
            total=total,
            payment_mode=payload["paymentMode"],
            status=STATUS_COMPLETED,
            payment_status=PAYMENT_COMPLETED,
            is_guest_order=False,
            paid_at=now,
            created_at=now,
            updated_at=now,
        )
        order.items = build_items(items)

        if customer is not None:
            was_new = customer.is_new
            attach_order(order, customer)
            order.pos_customer = {
                "id": customer.id,
                "phone": customer.phone,
                "name": customer.name,
                "isNew": was_new,
            }
            customer.total_orders = (customer.total_orders or 0) + 1
            customer.total_spent = to_money(customer.total_spent or 0) + total
            customer.is_new = False
        else:
            order.pos_customer = {
                "phone": None,
                "name": (customer_data.get("name") or WALK_IN_NAME).strip(),
                "isNew": False,
            }
            order.customer_name = order.pos_customer["name"]

        db.session.add(order)
        db.session.commit()
        return order

    order = run_with_retry(_op)
    current_app.logger.info(
        "POS sale %s completed: %s %s (customer %s)",
        order.order_number, order.payment_mode, order.total, order.customer_id,
    )
    return order
