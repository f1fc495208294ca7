from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

PAISE = Decimal("0.01")


def to_money(value, field: str = "amount") -> Decimal:
    """Parse a rupee amount into a Decimal rounded to paise."""
    from .validation import ValidationError

    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be a number")
    try:
        amount = Decimal(str(value))
        if not amount.is_finite():
            raise ValidationError(f"{field} must be a number")
        # Raises InvalidOperation when the result exceeds context precision
        return amount.quantize(PAISE, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")


def to_paise(amount: Decimal) -> int:
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def money_json(amount: Decimal | None) -> float | None:
    if amount is None:
        return None
    return float(Decimal(amount).quantize(PAISE, rounding=ROUND_HALF_UP))
