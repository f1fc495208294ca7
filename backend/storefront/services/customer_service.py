# Overview: Service-layer operations for customers; registration, profile, password reset, POS directory.

"""
Customer Service

One customers table holds both directories:
- web customers (source="web"): registered with email + phone + password
- POS customers (source="pos"): created by phone at the register

Phone is unique across both directories and email is unique when present,
so registration rejects a phone already known to the POS register.
"""

import hashlib
import secrets
from datetime import timedelta

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Customer, Order
from ..models.customers import SOURCE_WEB, SOURCE_POS, ROLE_ADMIN, ROLE_CUSTOMER, WALK_IN_NAME
from ..models.orders import ORDER_TYPE_POS
from ..validation import ValidationError, ConflictError, NotFoundError, validate_phone, normalize_email
from .auth_service import hash_password, verify_password, AuthenticationError
from .reconciliation_service import link_guest_orders
from storefront.time_utils import utcnow


PROFILE_FIELDS = {"name", "email", "phone"}


def _clean_name(name) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("Name is required")
    return name.strip()


def hash_reset_token(token: str) -> str:
    """Reset tokens are high-entropy; SHA-256 is enough for storage."""
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def _ensure_unique(email: str | None, phone: str | None, exclude_id: int | None = None) -> None:
    """
    Reject an email or phone already held by any customer, web or POS.

    The error says which field collided.
    """
    if email:
        query = db.session.query(Customer).filter(Customer.email == email)
        if exclude_id is not None:
            query = query.filter(Customer.id != exclude_id)
        if query.first():
            raise ConflictError("Email already registered")
    if phone:
        query = db.session.query(Customer).filter(Customer.phone == phone)
        if exclude_id is not None:
            query = query.filter(Customer.id != exclude_id)
        if query.first():
            raise ConflictError("Phone number already registered")


def register_customer(name, email, phone, password, role: str = ROLE_CUSTOMER) -> tuple[Customer, int]:
    """
    Register a web customer and attach their earlier guest orders.

    Phone is validated first; nothing is written for a malformed phone.
    Customer creation and order linking commit together.

    Returns:
        (customer, number of guest orders linked)

    Raises:
        ValidationError: malformed phone/email, missing name
        PasswordValidationError: password too short
        ConflictError: email or phone already registered
    """
    phone = validate_phone(phone)
    name = _clean_name(name)
    email = normalize_email(email)

    _ensure_unique(email, phone)

    customer = Customer(
        name=name,
        email=email,
        phone=phone,
        password_hash=hash_password(password),
        role=role,
        source=SOURCE_WEB,
        is_new=True,
        created_at=utcnow(),
        last_login_at=utcnow(),
    )
    db.session.add(customer)

    try:
        db.session.flush()  # Assigns customer.id for order linking
        linked = link_guest_orders(customer)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Email or phone number already registered")

    current_app.logger.info("Registered customer %s (%d guest orders linked)", customer.id, linked)
    return customer, linked


def create_admin(name, email, phone, password) -> Customer:
    customer, _ = register_customer(name, email, phone, password, role=ROLE_ADMIN)
    return customer


def get_customer(customer_id: int) -> Customer:
    customer = db.session.get(Customer, customer_id)
    if not customer:
        raise NotFoundError("Customer not found")
    return customer


def update_profile(customer: Customer, payload: dict) -> Customer:
    """
    Apply name/email/phone changes. Other keys (password included) are ignored.
    """
    updates = {k: v for k, v in (payload or {}).items() if k in PROFILE_FIELDS}

    if "name" in updates:
        customer.name = _clean_name(updates["name"])

    email = normalize_email(updates["email"]) if "email" in updates else None
    phone = validate_phone(updates["phone"]) if "phone" in updates else None
    _ensure_unique(email, phone, exclude_id=customer.id)

    if email:
        customer.email = email
    if phone:
        customer.phone = phone

    db.session.commit()
    return customer


def change_password(customer: Customer, current_password, new_password) -> None:
    if not verify_password(current_password, customer.password_hash):
        raise AuthenticationError("Current password is incorrect")

    customer.password_hash = hash_password(new_password)
    db.session.commit()


def find_by_email_or_phone(identifier) -> Customer | None:
    if not isinstance(identifier, str) or not identifier.strip():
        return None
    identifier = identifier.strip()
    customer = db.session.query(Customer).filter_by(email=identifier.lower()).first()
    if customer is None:
        customer = db.session.query(Customer).filter_by(phone=identifier).first()
    return customer


def request_password_reset(identifier) -> tuple[Customer, str]:
    """
    Issue a one-hour password reset token.

    Only the SHA-256 of the token is stored. Returns (customer, plaintext_token).

    Raises NotFoundError if no customer matches the email or phone.
    """
    customer = find_by_email_or_phone(identifier)
    if not customer:
        raise NotFoundError("Customer not found")

    token = secrets.token_hex(32)
    ttl = current_app.config["PASSWORD_RESET_TTL_SECONDS"]

    customer.reset_token_hash = hash_reset_token(token)
    customer.reset_token_expires_at = utcnow() + timedelta(seconds=ttl)
    db.session.commit()
    return customer, token


def reset_password(token, new_password) -> Customer:
    if not isinstance(token, str) or not token:
        raise ValidationError("Invalid or expired reset token")

    customer = db.session.query(Customer).filter_by(reset_token_hash=hash_reset_token(token)).first()
    if not customer or not customer.reset_token_expires_at or customer.reset_token_expires_at <= utcnow():
        raise ValidationError("Invalid or expired reset token")

    customer.password_hash = hash_password(new_password)
    customer.reset_token_hash = None
    customer.reset_token_expires_at = None
    db.session.commit()
    return customer


# =============================================================================
# POS DIRECTORY
# =============================================================================

def find_or_create_pos_customer(phone, name: str | None = None) -> Customer:
    """
    Get the customer for a phone number, creating a POS customer if unknown.

    Runs inside the caller's transaction (flush only).
    """
    phone = validate_phone(phone)
    customer = db.session.query(Customer).filter_by(phone=phone).first()
    if customer:
        return customer

    customer = Customer(
        phone=phone,
        name=(name or "").strip() or WALK_IN_NAME,
        source=SOURCE_POS,
        total_orders=0,
        total_spent=0,
        is_new=True,
        created_at=utcnow(),
    )
    db.session.add(customer)
    db.session.flush()
    current_app.logger.info("Created POS customer %s for phone ending %s", customer.id, phone[-4:])
    return customer


def count_pos_orders(customer: Customer) -> int:
    return db.session.query(Order).filter_by(customer_id=customer.id, type=ORDER_TYPE_POS).count()


def lookup_by_phone(phone) -> Customer:
    """Register lookup: existing customer for the phone, or a new walk-in record."""
    customer = find_or_create_pos_customer(phone)
    db.session.commit()
    return customer


def list_customers(source: str | None = None) -> list[Customer]:
    query = db.session.query(Customer)
    if source:
        if source not in (SOURCE_WEB, SOURCE_POS):
            raise ValidationError("source must be 'web' or 'pos'")
        query = query.filter(Customer.source == source)
    return query.order_by(Customer.created_at.desc(), Customer.id.desc()).all()


def create_pos_customer(phone, name: str | None = None) -> Customer:
    phone = validate_phone(phone)
    _ensure_unique(None, phone)
    customer = find_or_create_pos_customer(phone, name)
    db.session.commit()
    return customer


def update_pos_customer(customer_id: int, payload: dict) -> Customer:
    customer = get_customer(customer_id)
    payload = payload or {}

    if "name" in payload:
        customer.name = _clean_name(payload["name"])
    if "phone" in payload:
        phone = validate_phone(payload["phone"])
        _ensure_unique(None, phone, exclude_id=customer.id)
        customer.phone = phone

    db.session.commit()
    return customer
