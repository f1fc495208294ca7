# Overview: Flask API routes for the POS customer directory (admin only).

from flask import Blueprint, request, jsonify, current_app

from ..services import customer_service
from ..models.customers import SOURCE_POS
from ..validation import ValidationError, ConflictError, NotFoundError
from ..decorators import require_auth, require_admin


pos_customers_bp = Blueprint("pos_customers", __name__, url_prefix="/pos-customers")


@pos_customers_bp.get("")
@require_auth
@require_admin
def list_pos_customers_route():
    """
    List customers, newest first.

    Query params:
    - source: web | pos (default pos; "all" lists both)
    """
    source = request.args.get("source", SOURCE_POS)
    try:
        customers = customer_service.list_customers(None if source == "all" else source)
    except ValidationError as e:
        return jsonify({"message": str(e)}), 400
    return jsonify([customer.to_dict() for customer in customers])


@pos_customers_bp.get("/phone/<phone>")
@require_auth
@require_admin
def get_pos_customer_by_phone_route(phone: str):
    """Look up, or create, the customer behind a phone number."""
    try:
        customer = customer_service.lookup_by_phone(phone)
        return jsonify(customer.to_dict())

    except ValidationError as e:
        return jsonify({"message": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to look up POS customer")
        return jsonify({"message": "Internal server error"}), 500


@pos_customers_bp.post("")
@require_auth
@require_admin
def create_pos_customer_route():
    try:
        data = request.get_json(silent=True) or {}
        customer = customer_service.create_pos_customer(data.get("phone"), data.get("name"))
        return jsonify(customer.to_dict()), 201

    except (ValidationError, ConflictError) as e:
        return jsonify({"message": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create POS customer")
        return jsonify({"message": "Internal server error"}), 500


@pos_customers_bp.put("/<int:customer_id>")
@require_auth
@require_admin
def update_pos_customer_route(customer_id: int):
    try:
        data = request.get_json(silent=True) or {}
        customer = customer_service.update_pos_customer(customer_id, data)
        return jsonify(customer.to_dict())

    except (ValidationError, ConflictError) as e:
        return jsonify({"message": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"message": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to update POS customer")
        return jsonify({"message": "Internal server error"}), 500
