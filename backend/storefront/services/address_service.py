# Overview: Saved shipping addresses for a customer.

from ..extensions import db
from ..models import Customer, CustomerAddress
from ..validation import ValidationError, NotFoundError


# JSON name -> column
ADDRESS_FIELDS = {
    "fullName": "full_name",
    "phone": "phone",
    "address": "address",
    "city": "city",
    "state": "state",
    "pincode": "pincode",
    "country": "country",
}
REQUIRED_ADDRESS_FIELDS = ("fullName", "address", "city", "state", "pincode")


def _clean(payload: dict, partial: bool) -> dict:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid address data")

    if not partial:
        missing = [f for f in REQUIRED_ADDRESS_FIELDS if not str(payload.get(f) or "").strip()]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    patch = {}
    for key, column in ADDRESS_FIELDS.items():
        if key not in payload:
            continue
        value = str(payload[key] or "").strip()
        if not value and key in REQUIRED_ADDRESS_FIELDS:
            raise ValidationError(f"{key} cannot be blank")
        patch[column] = value or None
    return patch


def list_addresses(customer: Customer) -> list[CustomerAddress]:
    return (
        db.session.query(CustomerAddress)
        .filter_by(customer_id=customer.id)
        .order_by(CustomerAddress.id.asc())
        .all()
    )


def _get_address(customer: Customer, address_id: int) -> CustomerAddress:
    address = db.session.query(CustomerAddress).filter_by(id=address_id, customer_id=customer.id).first()
    if not address:
        raise NotFoundError("Address not found")
    return address


def add_address(customer: Customer, payload: dict) -> CustomerAddress:
    """Add an address; the customer's first address becomes the default."""
    patch = _clean(payload, partial=False)
    is_first = not list_addresses(customer)

    address = CustomerAddress(customer_id=customer.id, is_default=is_first, **patch)
    if not address.country:
        address.country = "India"
    db.session.add(address)
    db.session.commit()
    return address


def update_address(customer: Customer, address_id: int, payload: dict) -> CustomerAddress:
    address = _get_address(customer, address_id)
    for column, value in _clean(payload, partial=True).items():
        setattr(address, column, value)
    db.session.commit()
    return address


def delete_address(customer: Customer, address_id: int) -> None:
    """Delete an address. Deleting the default promotes the oldest remaining one."""
    address = _get_address(customer, address_id)
    was_default = address.is_default
    db.session.delete(address)
    db.session.flush()

    if was_default:
        remaining = list_addresses(customer)
        if remaining:
            remaining[0].is_default = True

    db.session.commit()


def set_default_address(customer: Customer, address_id: int) -> CustomerAddress:
    target = _get_address(customer, address_id)
    for address in list_addresses(customer):
        address.is_default = address.id == target.id
    db.session.commit()
    return target
