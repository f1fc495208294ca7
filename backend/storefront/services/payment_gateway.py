# Overview: Razorpay client; order minting over REST and checkout signature checks.

"""
Razorpay Gateway Client

The checkout widget charges against a gateway order id minted here.
After payment the widget hands the browser a
(razorpay_order_id, razorpay_payment_id, razorpay_signature) triple;
the signature is HMAC-SHA256 of "order_id|payment_id" keyed with the
account's key secret, so only the gateway can produce it.

Gateway calls are not retried. Failures raise GatewayError.
"""

import hashlib
import hmac

import httpx
from flask import current_app


class GatewayError(Exception):
    """Raised when the payment gateway is unreachable or rejects a request."""
    pass


def _credentials() -> tuple[str, str]:
    key_id = current_app.config.get("RAZORPAY_KEY_ID")
    key_secret = current_app.config.get("RAZORPAY_KEY_SECRET")
    if not key_id or not key_secret:
        raise GatewayError("Payment gateway is not configured")
    return key_id, key_secret


def create_gateway_order(amount_paise: int, receipt: str, notes: dict | None = None) -> dict:
    """
    Mint a Razorpay order for amount_paise.

    Returns the gateway's order JSON (id, amount, currency, status, ...).
    """
    key_id, key_secret = _credentials()
    payload = {
        "amount": amount_paise,
        "currency": current_app.config["PAYMENT_CURRENCY"],
        "receipt": receipt[:40],
        "notes": notes or {},
    }

    try:
        response = httpx.post(
            f"{current_app.config['RAZORPAY_API_BASE']}/orders",
            json=payload,
            auth=(key_id, key_secret),
            timeout=current_app.config["RAZORPAY_TIMEOUT_SECONDS"],
        )
    except httpx.HTTPError as e:
        current_app.logger.error("Razorpay order request failed: %s", e)
        raise GatewayError("Payment gateway unreachable") from e

    if response.status_code >= 400:
        try:
            description = response.json().get("error", {}).get("description")
        except ValueError:
            description = None
        current_app.logger.error(
            "Razorpay rejected order %s: HTTP %s %s", receipt, response.status_code, description
        )
        raise GatewayError(description or "Payment gateway rejected the order")

    data = response.json()
    if not data.get("id"):
        raise GatewayError("Payment gateway returned no order id")
    return data


def compute_signature(gateway_order_id: str, payment_id: str, key_secret: str | None = None) -> str:
    if key_secret is None:
        _, key_secret = _credentials()
    message = f"{gateway_order_id}|{payment_id}".encode("utf-8")
    return hmac.new(key_secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def verify_signature(gateway_order_id: str, payment_id: str, signature: str) -> bool:
    """Constant-time check of a checkout signature."""
    expected = compute_signature(gateway_order_id, payment_id)
    return hmac.compare_digest(expected.encode("utf-8"), str(signature).encode("utf-8"))
