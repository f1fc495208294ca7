# Overview: Order confirmation and password reset mail over SMTP.

"""
Mail Service

Sends the store a packing slip and the customer a confirmation for each
paid order. Delivery is best-effort: callers report failures, they never
undo the business operation that triggered the mail.
"""

import smtplib
from email.message import EmailMessage
from email.utils import formataddr

from flask import current_app

from ..models import Order


class MailError(Exception):
    """Raised when mail is not configured or the SMTP server refuses it."""
    pass


def _settings() -> dict:
    cfg = current_app.config
    settings = {
        "host": cfg.get("SMTP_HOST"),
        "port": cfg.get("SMTP_PORT"),
        "user": cfg.get("SMTP_USER"),
        "password": cfg.get("SMTP_PASSWORD"),
        "from_email": cfg.get("MAIL_FROM_EMAIL"),
        "from_name": cfg.get("MAIL_FROM_NAME"),
    }
    missing = [k for k, v in settings.items() if not v]
    if missing:
        raise MailError(f"Email settings not configured: {', '.join(missing)}")
    settings["store_email"] = cfg.get("STORE_NOTIFICATION_EMAIL") or settings["user"]
    return settings


def _send(settings: dict, messages: list[EmailMessage]) -> None:
    try:
        with smtplib.SMTP_SSL(settings["host"], settings["port"], timeout=30) as smtp:
            smtp.login(settings["user"], settings["password"])
            for message in messages:
                smtp.send_message(message)
    except (smtplib.SMTPException, OSError) as e:
        raise MailError(str(e)) from e


def _message(settings: dict, to: str, subject: str, body: str) -> EmailMessage:
    message = EmailMessage()
    message["From"] = formataddr((settings["from_name"], settings["from_email"]))
    message["To"] = to
    message["Subject"] = subject
    message.set_content(body)
    return message


def _item_lines(order: Order) -> list[str]:
    return [
        f"  {item.quantity} x {item.name or item.product_id} @ Rs. {item.price}"
        for item in order.items
    ]


def render_packing_slip(order: Order) -> str:
    address = order.shipping_address or {}
    lines = [
        f"Order {order.order_number}",
        f"Payment: {order.payment_status} ({order.razorpay_payment_id or '-'})",
        "",
        "Ship to:",
        f"  {address.get('fullName', '')}",
        f"  {address.get('address', '')}",
        f"  {address.get('city', '')}, {address.get('state', '')} {address.get('pincode', '')}",
        f"  {address.get('country', '')}",
        f"  Phone: {address.get('phone', '')}",
        "",
        "Items:",
        *_item_lines(order),
        "",
        f"Total: Rs. {order.total}",
    ]
    return "\n".join(lines)


def render_confirmation(order: Order) -> str:
    name = (order.shipping_address or {}).get("fullName") or "Customer"
    lines = [
        f"Dear {name},",
        "",
        f"Thank you for your order {order.order_number}. We have received your payment",
        "and will let you know when your sarees are on their way.",
        "",
        *_item_lines(order),
        "",
        f"Total paid: Rs. {order.total}",
    ]
    return "\n".join(lines)


def send_order_emails(order: Order) -> dict:
    """
    Send the store packing slip and, when the order has a contact email,
    the customer confirmation.

    Raises MailError on configuration or delivery failure.
    """
    settings = _settings()
    messages = [
        _message(settings, settings["store_email"], f"New Order Received - {order.order_number}",
                 render_packing_slip(order)),
    ]
    if order.shipping_email:
        messages.append(
            _message(settings, order.shipping_email, f"Order Confirmation - {order.order_number}",
                     render_confirmation(order))
        )

    _send(settings, messages)
    return {
        "success": True,
        "storeEmail": settings["store_email"],
        "customerEmail": order.shipping_email,
    }


def send_password_reset_email(email: str, token: str) -> None:
    settings = _settings()
    body = "\n".join([
        "We received a request to reset your password.",
        "",
        f"Reset code: {token}",
        "",
        "The code expires in one hour. Ignore this mail if you did not ask for it.",
    ])
    _send(settings, [_message(settings, email, "Password reset", body)])
