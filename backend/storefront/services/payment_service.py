# Overview: Checkout payment verification; settles a Razorpay payment onto its order.

"""
Payment Verification Service

WHY: The browser reports a completed Razorpay checkout, but only the
signature proves the gateway actually captured it. Nothing about the
order changes until the signature checks out.

FLOW:
1. Require razorpay_order_id, razorpay_payment_id, razorpay_signature
2. Find the order by gateway order id (404 if unknown)
3. Verify HMAC-SHA256(order_id|payment_id) against the key secret
4. Already completed: report it, do not mail twice
5. Mark completed/processing, record payment id + signature + paid_at
6. Attach a paid guest order to an existing matching customer
7. Commit, then send confirmation mail (best-effort)

A failed mail never reverses a verified payment; the outcome is returned
to the caller as emailStatus.
"""

from flask import current_app

from ..extensions import db
from ..models import Order
from ..models.orders import STATUS_PENDING, STATUS_PROCESSING, STATUS_CANCELLED, PAYMENT_COMPLETED
from ..validation import ValidationError, NotFoundError
from . import payment_gateway, mail_service
from .concurrency import lock_for_update, run_with_retry
from .reconciliation_service import link_paid_guest_order
from storefront.time_utils import utcnow


VERIFY_FIELDS = ("razorpay_order_id", "razorpay_payment_id", "razorpay_signature")


class SignatureError(Exception):
    """Raised when a checkout signature does not match."""
    def __init__(self, message: str = "Payment verification failed"):
        super().__init__(message)


def _require_fields(payload: dict) -> tuple[str, str, str]:
    missing = {
        field: f"{field} is required"
        for field in VERIFY_FIELDS
        if not isinstance(payload.get(field), str) or not payload.get(field).strip()
    }
    if missing:
        raise ValidationError("Missing required payment details", errors=missing)
    return tuple(payload[field].strip() for field in VERIFY_FIELDS)


def send_confirmation(order: Order) -> dict:
    """Best-effort order mail. Returns an emailStatus dict, never raises MailError."""
    try:
        return mail_service.send_order_emails(order)
    except mail_service.MailError as e:
        current_app.logger.error("Order confirmation mail failed for %s: %s", order.order_number, e)
        return {"success": False, "error": str(e)}


def verify_payment(payload: dict) -> tuple[Order, dict | None, bool]:
    """
    Verify a checkout signature and settle the order.

    Returns:
        (order, email_status, already_verified)
        email_status is None when the order was already verified.

    Raises:
        ValidationError: missing fields (errors maps field -> message)
        NotFoundError: no order for the gateway order id
        SignatureError: signature mismatch; the order is not modified
    """
    razorpay_order_id, razorpay_payment_id, razorpay_signature = _require_fields(payload or {})

    def _op():
        order = lock_for_update(
            db.session.query(Order).filter_by(razorpay_order_id=razorpay_order_id)
        ).first()
        if not order:
            raise NotFoundError("Order not found")

        if not payment_gateway.verify_signature(razorpay_order_id, razorpay_payment_id, razorpay_signature):
            db.session.rollback()
            raise SignatureError()

        if order.payment_status == PAYMENT_COMPLETED:
            db.session.rollback()
            return order, True

        order.payment_status = PAYMENT_COMPLETED
        order.payment_error = None
        if order.status == STATUS_PENDING:
            order.status = STATUS_PROCESSING
        elif order.status == STATUS_CANCELLED:
            # Staff refund from the order list; the status stays cancelled
            order.payment_error = "Payment received for cancelled order; refund required"
            current_app.logger.warning(
                "Payment %s captured for cancelled order %s; refund required",
                razorpay_payment_id, order.order_number,
            )
        order.razorpay_payment_id = razorpay_payment_id
        order.razorpay_signature = razorpay_signature
        order.paid_at = utcnow()
        order.updated_at = utcnow()

        link_paid_guest_order(order)

        db.session.commit()
        return order, False

    try:
        order, already_verified = run_with_retry(_op)
    except SignatureError:
        current_app.logger.warning("Signature mismatch for gateway order %s", razorpay_order_id)
        raise

    if already_verified:
        current_app.logger.info("Payment for order %s already verified", order.order_number)
        return order, None, True

    current_app.logger.info(
        "Payment %s verified for order %s", razorpay_payment_id, order.order_number
    )
    return order, send_confirmation(order), False
