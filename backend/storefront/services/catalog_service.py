# backend/storefront/services/catalog_service.py
"""
Catalog Service

Products and categories for the storefront. Payloads arrive already
validated (routes run validate_payload against the column metadata);
this module applies patches and enforces cross-row rules:
- category names are unique
- a product's category must exist
- a category cannot be deleted while products reference it
"""
from __future__ import annotations
from ..extensions import db
from ..models import Product, Category
from ..validation import ConflictError, NotFoundError, ValidationError
from storefront.time_utils import utcnow

PRODUCT_MUTABLE_FIELDS = {"name", "description", "price", "original_price", "category_id", "stock", "images", "is_active"}
CATEGORY_MUTABLE_FIELDS = {"name", "description", "image"}


def _apply_patch(obj, patch: dict, allowed: set[str]) -> None:
    for k, v in patch.items():
        if k not in allowed:
            continue
        setattr(obj, k, v)


def _require_category(category_id: int | None) -> None:
    if category_id is not None and db.session.get(Category, category_id) is None:
        raise ValidationError("Category not found")


# =============================================================================
# PRODUCTS
# =============================================================================

def list_products(category_id: int | None = None, include_inactive: bool = False) -> list[Product]:
    query = db.session.query(Product)
    if not include_inactive:
        query = query.filter(Product.is_active.is_(True))
    if category_id is not None:
        query = query.filter(Product.category_id == category_id)
    return query.order_by(Product.created_at.desc(), Product.id.desc()).all()


def get_product(product_id: int, include_inactive: bool = False) -> Product:
    product = db.session.get(Product, product_id)
    if product is None or (not product.is_active and not include_inactive):
        raise NotFoundError("Product not found")
    return product


def create_product(patch: dict) -> Product:
    _require_category(patch.get("category_id"))

    now = utcnow()
    product = Product(created_at=now, updated_at=now)
    _apply_patch(product, patch, PRODUCT_MUTABLE_FIELDS)
    if product.images is None:
        product.images = []
    db.session.add(product)
    db.session.commit()
    return product


def update_product(product_id: int, patch: dict) -> Product:
    product = get_product(product_id, include_inactive=True)
    if "category_id" in patch:
        _require_category(patch["category_id"])

    _apply_patch(product, patch, PRODUCT_MUTABLE_FIELDS)
    product.updated_at = utcnow()
    db.session.commit()
    return product


def delete_product(product_id: int) -> None:
    product = get_product(product_id, include_inactive=True)
    db.session.delete(product)
    db.session.commit()


# =============================================================================
# CATEGORIES
# =============================================================================

def list_categories() -> list[Category]:
    return db.session.query(Category).order_by(Category.name.asc()).all()


def get_category(category_id: int) -> Category:
    category = db.session.get(Category, category_id)
    if category is None:
        raise NotFoundError("Category not found")
    return category


def _ensure_unique_name(name: str | None, exclude_id: int | None = None) -> None:
    if not name:
        return
    query = db.session.query(Category).filter(db.func.lower(Category.name) == name.lower())
    if exclude_id is not None:
        query = query.filter(Category.id != exclude_id)
    if query.first():
        raise ConflictError("Category already exists")


def create_category(patch: dict) -> Category:
    _ensure_unique_name(patch.get("name"))

    now = utcnow()
    category = Category(created_at=now, updated_at=now)
    _apply_patch(category, patch, CATEGORY_MUTABLE_FIELDS)
    db.session.add(category)
    db.session.commit()
    return category


def update_category(category_id: int, patch: dict) -> Category:
    category = get_category(category_id)
    if "name" in patch:
        _ensure_unique_name(patch["name"], exclude_id=category.id)

    _apply_patch(category, patch, CATEGORY_MUTABLE_FIELDS)
    category.updated_at = utcnow()
    db.session.commit()
    return category


def delete_category(category_id: int) -> None:
    category = get_category(category_id)
    in_use = db.session.query(Product).filter_by(category_id=category.id).count()
    if in_use:
        raise ConflictError(f"Category is used by {in_use} product(s)")
    db.session.delete(category)
    db.session.commit()
