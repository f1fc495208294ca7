# Overview: Signed customer session tokens.

"""
Session Token Service

Tokens are signed (not stored) with the app SECRET_KEY and carry the
customer's identity claims. They expire SESSION_MAX_AGE_SECONDS after
issue (24 hours by default).

Claims: customerId, role, email, phone, name, type ("web"|"pos").
"""

from flask import current_app
from itsdangerous import URLSafeTimedSerializer, BadSignature, SignatureExpired

from ..models import Customer


TOKEN_SALT = "customer-session"


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt=TOKEN_SALT)


def build_claims(customer: Customer, identity_type: str) -> dict:
    return {
        "customerId": customer.id,
        "role": customer.role or "customer",
        "email": customer.email,
        "phone": customer.phone,
        "name": customer.name,
        "type": identity_type,
    }


def issue_token(customer: Customer, identity_type: str) -> str:
    """Sign a session token for an authenticated customer."""
    return _serializer().dumps(build_claims(customer, identity_type))


def decode_token(token: str) -> dict | None:
    """
    Validate a session token and return its claims.

    Returns None if the token is forged, malformed or expired.
    """
    try:
        claims = _serializer().loads(token, max_age=current_app.config["SESSION_MAX_AGE_SECONDS"])
    except SignatureExpired:
        current_app.logger.info("Rejected expired session token")
        return None
    except BadSignature:
        return None

    if not isinstance(claims, dict) or "customerId" not in claims:
        return None
    return claims
