# Overview: Service-layer operations for customer auth; password hashing and login resolution.

"""
Customer Authentication Service

Passwords are hashed with bcrypt (cost from BCRYPT_ROUNDS, 12 in production).

Login resolution:
- email: web customers only
- phone: web customers first, then POS customers; a POS match is tagged "pos"

POS customers created at the register have no password hash. Verifying
against a missing hash fails closed instead of raising.
"""

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import Customer
from ..models.customers import SOURCE_WEB, SOURCE_POS
from ..validation import normalize_email, ValidationError
from storefront.time_utils import utcnow


MIN_PASSWORD_LENGTH = 6


class PasswordValidationError(Exception):
    """Raised when password doesn't meet requirements."""
    pass


class AuthenticationError(Exception):
    """Raised on unknown identity or wrong password. Message never says which."""
    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message)


def validate_password_strength(password) -> None:
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )


def hash_password(password: str) -> str:
    """Validate and hash a password with bcrypt."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=current_app.config["BCRYPT_ROUNDS"])
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password, password_hash: str | None) -> bool:
    """
    Verify password against bcrypt hash.

    Returns False for a missing hash (POS-only identities) or malformed input.
    """
    if not password_hash or not isinstance(password, str):
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def resolve_login_identity(email: str | None, phone: str | None) -> tuple[Customer | None, str]:
    """
    Find the customer a login attempt refers to.

    Returns (customer or None, identity type "web"|"pos").
    Raises ValidationError if neither email nor phone is supplied.
    """
    if email:
        email = normalize_email(email)
        customer = db.session.query(Customer).filter_by(email=email, source=SOURCE_WEB).first()
        return customer, SOURCE_WEB

    if phone:
        customer = db.session.query(Customer).filter_by(phone=phone, source=SOURCE_WEB).first()
        if customer:
            return customer, SOURCE_WEB
        pos_customer = db.session.query(Customer).filter_by(phone=phone, source=SOURCE_POS).first()
        return pos_customer, SOURCE_POS

    raise ValidationError("Email or phone is required")


def authenticate(email: str | None, phone: str | None, password: str) -> tuple[Customer, str]:
    """
    Authenticate by email or phone plus password.

    Updates last_login_at on success.

    Raises:
        ValidationError: neither email nor phone supplied
        AuthenticationError: no match or wrong password
    """
    try:
        customer, identity_type = resolve_login_identity(email, phone)
    except ValidationError as e:
        # A malformed email cannot belong to anyone
        if email:
            raise AuthenticationError() from e
        raise

    if customer is None or not verify_password(password, customer.password_hash):
        raise AuthenticationError()

    customer.last_login_at = utcnow()
    db.session.commit()
    return customer, identity_type
