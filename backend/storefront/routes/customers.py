# Overview: Flask API routes for customer accounts; parses input and returns JSON responses.

# backend/storefront/routes/customers.py
"""
Customer Account API Routes

PUBLIC:
- register, login
- password reset request / reset
- phone lookup (POS register; creates a walk-in record when unknown)

AUTHENTICATED (bearer token):
- profile, change password
- order history
- saved addresses

Registration reports email and phone collisions as 400 with a message
naming the field; login never says whether the identity or the password
was wrong.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import auth_service, session_service, customer_service, address_service, order_service, mail_service
from ..services.auth_service import AuthenticationError, PasswordValidationError
from ..validation import ValidationError, ConflictError, NotFoundError
from ..decorators import require_auth


customers_bp = Blueprint("customers", __name__, url_prefix="/customers")


# =============================================================================
# REGISTRATION & LOGIN
# =============================================================================

@customers_bp.post("/register")
def register_route():
    """
    Register a web customer.

    Request body:
    {
        "name": "Asha",
        "email": "asha@example.com",
        "phone": "9000000001",
        "password": "secret123"
    }

    Guest orders previously placed with the same shipping email are
    attached to the new account.

    Returns:
        201: {message, customer, linkedOrders}
        400: malformed phone/email, short password, email or phone taken
    """
    try:
        data = request.get_json(silent=True) or {}

        customer, linked = customer_service.register_customer(
            name=data.get("name"),
            email=data.get("email"),
            phone=data.get("phone"),
            password=data.get("password"),
        )

        return jsonify({
            "message": "Registration successful",
            "customer": customer.to_dict(),
            "linkedOrders": linked,
        }), 201

    except (ValidationError, ConflictError, PasswordValidationError) as e:
        return jsonify({"message": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to register customer")
        return jsonify({"message": "Invalid customer data"}), 400


@customers_bp.post("/login")
def login_route():
    """
    Log in by email or phone plus password.

    Email searches web customers only. Phone searches web customers, then
    POS customers (identity tagged type "pos").

    Returns:
        200: {token, customer}
        400: "Email or phone is required" | "Invalid credentials"
    """
    try:
        data = request.get_json(silent=True) or {}

        customer, identity_type = auth_service.authenticate(
            email=data.get("email"),
            phone=data.get("phone"),
            password=data.get("password"),
        )
        token = session_service.issue_token(customer, identity_type)

        payload = customer.to_dict()
        payload["type"] = identity_type
        return jsonify({"token": token, "customer": payload})

    except ValidationError as e:
        return jsonify({"message": str(e)}), 400
    except AuthenticationError as e:
        return jsonify({"message": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to log in customer")
        return jsonify({"message": "Internal server error"}), 500


# =============================================================================
# PROFILE
# =============================================================================

@customers_bp.get("/profile")
@require_auth
def get_profile_route():
    return jsonify(g.current_customer.to_dict())


@customers_bp.patch("/profile")
@require_auth
def update_profile_route():
    """Update name, email or phone. Password changes go through /change-password."""
    try:
        data = request.get_json(silent=True) or {}
        customer = customer_service.update_profile(g.current_customer, data)
        return jsonify(customer.to_dict())

    except (ValidationError, ConflictError) as e:
        return jsonify({"message": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update profile")
        return jsonify({"message": "Internal server error"}), 500


@customers_bp.post("/change-password")
@require_auth
def change_password_route():
    try:
        data = request.get_json(silent=True) or {}
        customer_service.change_password(
            g.current_customer,
            data.get("currentPassword"),
            data.get("newPassword"),
        )
        return jsonify({"message": "Password updated successfully"})

    except (AuthenticationError, PasswordValidationError) as e:
        return jsonify({"message": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to change password")
        return jsonify({"message": "Internal server error"}), 500


# =============================================================================
# PASSWORD RESET
# =============================================================================

@customers_bp.post("/password-reset-request")
def password_reset_request_route():
    """
    Start a password reset for an email or phone.

    The token is mailed when SMTP is configured; it is never returned in
    the response.
    """
    try:
        data = request.get_json(silent=True) or {}
        customer, token = customer_service.request_password_reset(data.get("emailOrPhone"))

        if customer.email:
            try:
                mail_service.send_password_reset_email(customer.email, token)
            except mail_service.MailError as e:
                current_app.logger.warning("Password reset mail not sent for customer %s: %s", customer.id, e)

        return jsonify({"message": "Password reset instructions sent"})

    except NotFoundError as e:
        return jsonify({"message": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to request password reset")
        return jsonify({"message": "Internal server error"}), 500


@customers_bp.post("/password-reset")
def password_reset_route():
    try:
        data = request.get_json(silent=True) or {}
        customer_service.reset_password(data.get("token"), data.get("newPassword"))
        return jsonify({"message": "Password reset successful"})

    except (ValidationError, PasswordValidationError) as e:
        return jsonify({"message": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to reset password")
        return jsonify({"message": "Internal server error"}), 500


# =============================================================================
# ORDERS
# =============================================================================

@customers_bp.get("/orders")
@require_auth
def list_my_orders_route():
    """Orders owned by the customer or matching their email/phone, newest first."""
    orders = order_service.list_customer_orders(g.current_customer)
    return jsonify([order.to_dict() for order in orders])


# =============================================================================
# ADDRESSES
# =============================================================================

@customers_bp.get("/addresses")
@require_auth
def list_addresses_route():
    addresses = address_service.list_addresses(g.current_customer)
    return jsonify([address.to_dict() for address in addresses])


@customers_bp.post("/addresses")
@require_auth
def add_address_route():
    try:
        address = address_service.add_address(g.current_customer, request.get_json(silent=True))
        return jsonify(address.to_dict()), 201

    except ValidationError as e:
        return jsonify({"message": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to add address")
        return jsonify({"message": "Internal server error"}), 500


@customers_bp.put("/addresses/<int:address_id>")
@require_auth
def update_address_route(address_id: int):
    try:
        address = address_service.update_address(g.current_customer, address_id, request.get_json(silent=True))
        return jsonify(address.to_dict())

    except ValidationError as e:
        return jsonify({"message": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"message": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to update address")
        return jsonify({"message": "Internal server error"}), 500


@customers_bp.delete("/addresses/<int:address_id>")
@require_auth
def delete_address_route(address_id: int):
    try:
        address_service.delete_address(g.current_customer, address_id)
        return jsonify({"message": "Address deleted"})

    except NotFoundError as e:
        return jsonify({"message": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to delete address")
        return jsonify({"message": "Internal server error"}), 500


@customers_bp.patch("/addresses/<int:address_id>/default")
@require_auth
def set_default_address_route(address_id: int):
    try:
        address = address_service.set_default_address(g.current_customer, address_id)
        return jsonify(address.to_dict())

    except NotFoundError as e:
        return jsonify({"message": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to set default address")
        return jsonify({"message": "Internal server error"}), 500


# =============================================================================
# POS LOOKUP
# =============================================================================

@customers_bp.get("/phone/<phone>")
def lookup_by_phone_route(phone: str):
    """
    Register lookup by phone.

    Unknown phones get a new POS "Walk-in Customer" record. The response
    carries the customer's POS order count and whether they are new.
    Unauthenticated, so only register-facing fields are returned.
    """
    try:
        customer = customer_service.lookup_by_phone(phone)
        return jsonify({
            "id": customer.id,
            "phone": customer.phone,
            "name": customer.name,
            "totalOrders": max(customer.total_orders or 0, customer_service.count_pos_orders(customer)),
            "isNew": customer.is_new,
        })

    except ValidationError as e:
        return jsonify({"message": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to look up customer by phone")
        return jsonify({"message": "Internal server error"}), 500
