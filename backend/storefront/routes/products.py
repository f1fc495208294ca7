# Overview: Flask API routes for catalog products; parses input and returns JSON responses.

# backend/storefront/routes/products.py
"""
Product catalog routes.

Reads are public and list active products only; an admin may pass
includeInactive=true. Writes require an admin session.
"""
from flask import Blueprint, request, g
from ..services import catalog_service
from ..models import Product
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    ValidationError,
    NotFoundError,
)
from ..decorators import require_auth, require_admin, optional_auth

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name": "name",
        "description": "description",
        "price": "price",
        "originalPrice": "original_price",
        "categoryId": "category_id",
        "stock": "stock",
        "images": "images",
        "isActive": "is_active",
    },
    required_on_create={"name", "price"},
)

products_bp = Blueprint("products", __name__, url_prefix="/products")


def _admin_view() -> bool:
    customer = g.get("current_customer")
    return bool(customer and customer.is_admin and request.args.get("includeInactive", "false").lower() == "true")


@products_bp.get("")
@optional_auth
def list_products():
    """
    List products, newest first.

    Query params:
    - categoryId: int (optional)
    - includeInactive: true (admin only)
    """
    category_id = request.args.get("categoryId", type=int)
    products = catalog_service.list_products(category_id=category_id, include_inactive=_admin_view())
    return {"items": [p.to_dict() for p in products], "count": len(products)}


@products_bp.get("/<int:product_id>")
@optional_auth
def get_product(product_id: int):
    try:
        product = catalog_service.get_product(product_id, include_inactive=_admin_view())
    except NotFoundError as e:
        return {"message": str(e)}, 404
    return product.to_dict()


@products_bp.post("")
@require_auth
@require_admin
def create_product_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
        created = catalog_service.create_product(patch)
    except ValidationError as e:
        return {"message": str(e)}, 400

    return created.to_dict(), 201


@products_bp.put("/<int:product_id>")
@require_auth
@require_admin
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
        updated = catalog_service.update_product(product_id, patch)
    except ValidationError as e:
        return {"message": str(e)}, 400
    except NotFoundError as e:
        return {"message": str(e)}, 404

    return updated.to_dict(), 200


@products_bp.delete("/<int:product_id>")
@require_auth
@require_admin
def delete_product_route(product_id: int):
    try:
        catalog_service.delete_product(product_id)
    except NotFoundError as e:
        return {"message": str(e)}, 404

    return {"ok": True}, 200
