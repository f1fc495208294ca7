# Overview: Request authentication decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .extensions import db
from .models import Customer
from .services import session_service


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def _load_customer(token: str) -> Customer | None:
    claims = session_service.decode_token(token)
    if not claims:
        return None
    customer = db.session.get(Customer, claims["customerId"])
    if customer is None:
        return None
    g.current_customer = customer
    g.token_claims = claims
    return customer


def _is_authenticated() -> bool:
    return getattr(g, "current_customer", None) is not None


def require_auth(f):
    """
    Require a customer session token.

    Sets the following Flask g attributes:
    - g.current_customer: The authenticated Customer
    - g.token_claims: The decoded token claims (customerId, role, type, ...)

    Returns 401 if no bearer token is sent, 403 if the token is forged,
    expired, or names a customer that no longer exists.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if not token:
            return jsonify({"message": "Authentication required"}), 401

        if _load_customer(token) is None:
            return jsonify({"message": "Invalid token"}), 403

        return f(*args, **kwargs)

    return decorated_function


def optional_auth(f):
    """
    Attach the customer when a valid token is sent; otherwise continue as guest.

    A bad token is treated as no token so guest checkout is never blocked.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        g.current_customer = None
        g.token_claims = None
        token = _bearer_token()
        if token:
            _load_customer(token)
        return f(*args, **kwargs)

    return decorated_function


def require_admin(f):
    """Require an admin customer. Must be stacked under @require_auth."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not _is_authenticated():
            return jsonify({"message": "Authentication required"}), 401

        if not g.current_customer.is_admin:
            return jsonify({"message": "Admin access required"}), 403

        return f(*args, **kwargs)

    return decorated_function
