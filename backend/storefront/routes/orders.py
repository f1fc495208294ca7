# Overview: Flask API routes for the order ledger; checkout, payment verification, POS and admin updates.

# backend/storefront/routes/orders.py
"""
Order API Routes

CHECKOUT (online):
1. POST /orders          -> pending order + Razorpay order id for the widget
2. widget collects payment in the browser
3. POST /orders/verify   -> signature check, order paid, confirmation mail
   POST /orders/payment-failed when the widget reports failure/cancel

POS:
- POST /orders/pos       -> completed register sale (admin)

ADMIN:
- GET /orders, PUT /orders/<orderId>, PATCH /orders/<orderId>/status

SECURITY:
- Checkout and verification are public; a bearer token, when sent,
  attaches the order to the customer.
- The order is only marked paid after the gateway signature verifies.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..money import to_paise
from ..services import order_service, payment_service, pos_service
from ..services.payment_gateway import GatewayError
from ..services.payment_service import SignatureError
from ..validation import ValidationError, ConflictError, NotFoundError
from ..decorators import require_auth, require_admin, optional_auth


orders_bp = Blueprint("orders", __name__, url_prefix="/orders")


# =============================================================================
# ONLINE CHECKOUT
# =============================================================================

@orders_bp.post("")
@optional_auth
def create_order_route():
    """
    Create a pending online order.

    Request body:
    {
        "orderId": "order_1718000000000_ab12cd34",   (optional)
        "items": [{"id": "12", "name": "Kanjivaram", "price": 4999, "quantity": 1, "image": "..."}],
        "shippingAddress": {
            "fullName": "...", "email": "...", "phone": "...", "address": "...",
            "city": "...", "state": "...", "pincode": "...", "country": "India"
        },
        "guestDetails": {"name": "...", "phone": "..."}   (optional)
    }

    Returns:
        201: {id, orderId, razorpayOrderId, amount (paise), currency, key}
        200: same body when orderId names an order still awaiting payment
        400: invalid input or gateway failure (nothing stored)
    """
    try:
        data = request.get_json(silent=True) or {}

        order, created = order_service.create_online_order(data, customer=g.current_customer)

        return jsonify({
            "id": order.id,
            "orderId": order.order_number,
            "razorpayOrderId": order.razorpay_order_id,
            "amount": to_paise(order.total),
            "currency": current_app.config["PAYMENT_CURRENCY"],
            "key": current_app.config["RAZORPAY_KEY_ID"],
            "order": order.to_dict(),
        }), 201 if created else 200

    except ValidationError as e:
        return jsonify({"message": str(e)}), 400
    except ConflictError as e:
        return jsonify({"message": str(e)}), 409
    except GatewayError as e:
        return jsonify({"message": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create order")
        return jsonify({"message": "Internal server error"}), 500


@orders_bp.post("/verify")
def verify_payment_route():
    """
    Verify a Razorpay checkout and mark the order paid.

    Request body:
    {
        "razorpay_order_id": "order_Nx...",
        "razorpay_payment_id": "pay_Nx...",
        "razorpay_signature": "hex hmac"
    }

    Returns:
        200: {message, order, emailStatus}
        200: {message: "Payment already verified", order}
        400: missing fields (details per field) or signature mismatch
        404: unknown gateway order
    """
    try:
        data = request.get_json(silent=True) or {}

        order, email_status, already_verified = payment_service.verify_payment(data)

        if already_verified:
            return jsonify({"message": "Payment already verified", "order": order.to_dict()})

        return jsonify({
            "message": "Payment verified successfully",
            "order": order.to_dict(),
            "emailStatus": email_status,
        })

    except ValidationError as e:
        return jsonify({"message": str(e), "details": e.errors}), 400
    except SignatureError as e:
        return jsonify({"message": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"message": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to verify payment")
        return jsonify({"message": "Internal server error"}), 500


@orders_bp.post("/payment-failed")
def payment_failed_route():
    """
    Record a failed or cancelled checkout attempt.

    Request body: {"razorpay_order_id": "...", "error": "Payment cancelled by user"}
    """
    try:
        data = request.get_json(silent=True) or {}
        razorpay_order_id = data.get("razorpay_order_id")
        if not razorpay_order_id:
            return jsonify({"message": "razorpay_order_id is required"}), 400

        order = order_service.mark_payment_failed(razorpay_order_id, data.get("error"))
        return jsonify({"message": "Payment failure recorded", "order": order.to_dict()})

    except ValidationError as e:
        return jsonify({"message": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"message": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to record payment failure")
        return jsonify({"message": "Internal server error"}), 500


# =============================================================================
# POS
# =============================================================================

@orders_bp.post("/pos")
@require_auth
@require_admin
def create_pos_order_route():
    """
    Complete a register sale.

    Request body:
    {
        "items": [{"id": "12", "name": "...", "price": 4999, "quantity": 1}],
        "customer": {"phone": "9000000001", "name": "..."},   (or {"id": 7}, or {"name": "Walk-in Customer"})
        "paymentMode": "cash" | "card" | "upi",
        "discountPercentage": 10,
        "cashDiscount": 100
    }

    Returns:
        201: order
        400: {message, errors: {customer, cart, paymentMode}} when the gate fails,
             or a discount/total problem
        404: customer id unknown
    """
    try:
        data = request.get_json(silent=True) or {}
        order = pos_service.checkout(data)
        return jsonify(order.to_dict()), 201

    except ValidationError as e:
        body = {"message": str(e)}
        if e.errors:
            body["errors"] = e.errors
        return jsonify(body), 400
    except NotFoundError as e:
        return jsonify({"message": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to create POS order")
        return jsonify({"message": "Internal server error"}), 500


# =============================================================================
# QUERIES & ADMIN
# =============================================================================

@orders_bp.get("")
@require_auth
@require_admin
def list_orders_route():
    """
    List orders, newest first.

    Query params:
    - type: online | pos
    - status
    - paymentStatus
    """
    orders = order_service.list_orders(
        order_type=request.args.get("type"),
        status=request.args.get("status"),
        payment_status=request.args.get("paymentStatus"),
    )
    return jsonify([order.to_dict() for order in orders])


@orders_bp.get("/<order_id>")
def get_order_route(order_id: str):
    """Public lookup by order number (order confirmation page)."""
    try:
        order = order_service.get_order(order_id)
        return jsonify(order.to_dict())
    except NotFoundError as e:
        return jsonify({"message": str(e)}), 404


@orders_bp.put("/<order_id>")
@require_auth
@require_admin
def update_order_route(order_id: str):
    """
    Update status, payment status or shipping address.

    Status moves forward only (pending -> cancelled; processing -> shipped;
    shipped -> delivered; any open order -> cancelled). paymentStatus may
    only become "failed"; completion is reserved to payment verification.
    """
    try:
        data = request.get_json(silent=True) or {}
        order = order_service.update_order(order_id, data)
        return jsonify(order.to_dict())

    except ValidationError as e:
        return jsonify({"message": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"message": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to update order")
        return jsonify({"message": "Internal server error"}), 500


@orders_bp.patch("/<order_id>/status")
@require_auth
@require_admin
def update_order_status_route(order_id: str):
    try:
        data = request.get_json(silent=True) or {}
        if "status" not in data:
            return jsonify({"message": "status is required"}), 400

        order = order_service.update_order(order_id, {"status": data["status"]})
        return jsonify(order.to_dict())

    except ValidationError as e:
        return jsonify({"message": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"message": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to update order status")
        return jsonify({"message": "Internal server error"}), 500
