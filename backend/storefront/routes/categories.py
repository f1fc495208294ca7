# Overview: Flask API routes for catalog categories; parses input and returns JSON responses.

from flask import Blueprint, request
from ..services import catalog_service
from ..models import Category
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    ValidationError,
    ConflictError,
    NotFoundError,
)
from ..decorators import require_auth, require_admin

CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields={"name": "name", "description": "description", "image": "image"},
    required_on_create={"name"},
)

categories_bp = Blueprint("categories", __name__, url_prefix="/categories")


@categories_bp.get("")
def list_categories():
    categories = catalog_service.list_categories()
    return {"items": [c.to_dict() for c in categories], "count": len(categories)}


@categories_bp.get("/<int:category_id>")
def get_category(category_id: int):
    try:
        return catalog_service.get_category(category_id).to_dict()
    except NotFoundError as e:
        return {"message": str(e)}, 404


@categories_bp.post("")
@require_auth
@require_admin
def create_category_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=False)
        created = catalog_service.create_category(patch)
    except ValidationError as e:
        return {"message": str(e)}, 400
    except ConflictError as e:
        return {"message": str(e)}, 409

    return created.to_dict(), 201


@categories_bp.put("/<int:category_id>")
@require_auth
@require_admin
def update_category_route(category_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=True)
        updated = catalog_service.update_category(category_id, patch)
    except ValidationError as e:
        return {"message": str(e)}, 400
    except ConflictError as e:
        return {"message": str(e)}, 409
    except NotFoundError as e:
        return {"message": str(e)}, 404

    return updated.to_dict(), 200


@categories_bp.delete("/<int:category_id>")
@require_auth
@require_admin
def delete_category_route(category_id: int):
    """Delete a category. 409 while any product still references it."""
    try:
        catalog_service.delete_category(category_id)
    except NotFoundError as e:
        return {"message": str(e)}, 404
    except ConflictError as e:
        return {"message": str(e)}, 409

    return {"ok": True}, 200
