"""
POS register tests.

Verifies:
- The checkout gate flags customer, cart and payment mode independently
- Discount ranges and the total formula
- Customer resolution by id, by phone (creating a POS customer) and walk-in
- The customer aggregate moves with the order
"""

from decimal import Decimal

import pytest

from storefront.models import Customer, Order
from storefront.services.pos_service import compute_total, check_register_state
from conftest import cart


def sale(client, headers, **overrides):
    body = {
        "items": cart(1000, 500),
        "customer": {"phone": "9444444444", "name": "Lakshmi"},
        "paymentMode": "cash",
        "discountPercentage": 0,
        "cashDiscount": 0,
    }
    body.update(overrides)
    return client.post("/orders/pos", json=body, headers=headers)


class TestRegisterGate:

    def test_empty_cart_flags_cart_only(self, client, db_session, admin_headers):
        resp = sale(client, admin_headers, items=[])
        assert resp.status_code == 400
        assert resp.json["errors"] == {"customer": False, "cart": True, "paymentMode": False}
        assert db_session.query(Order).count() == 0

    def test_all_flags_independent(self, client, db_session, admin_headers):
        resp = sale(client, admin_headers, items=[], customer=None, paymentMode="cheque")
        assert resp.status_code == 400
        assert resp.json["errors"] == {"customer": True, "cart": True, "paymentMode": True}
        assert db_session.query(Order).count() == 0

    @pytest.mark.parametrize("mode", ["cash", "card", "upi"])
    def test_accepts_payment_modes(self, mode):
        flags = check_register_state({"items": cart(10), "customer": {"name": "Walk-in Customer"}, "paymentMode": mode})
        assert not any(flags.values())

    def test_requires_admin(self, client, customer_headers):
        assert sale(client, customer_headers).status_code == 403


class TestDiscounts:

    @pytest.mark.parametrize(
        "subtotal,pct,cash,expected",
        [
            ("1500", "0", "0", "1500.00"),
            ("1500", "10", "0", "1350.00"),
            ("1500", "20", "500", "700.00"),
            ("999.99", "12.5", "100", "774.99"),
        ],
    )
    def test_total_formula(self, subtotal, pct, cash, expected):
        assert compute_total(Decimal(subtotal), Decimal(pct), Decimal(cash)) == Decimal(expected)

    def test_total_stored_on_order(self, client, db_session, admin_headers):
        resp = sale(client, admin_headers, discountPercentage=10, cashDiscount=50)
        assert resp.status_code == 201
        assert resp.json["subtotal"] == 1500.0
        assert resp.json["discountPercentage"] == 10.0
        assert resp.json["cashDiscount"] == 50.0
        assert resp.json["total"] == 1300.0

    @pytest.mark.parametrize(
        "field,value",
        [
            ("discountPercentage", 20.01),
            ("discountPercentage", -1),
            ("cashDiscount", 500.5),
            ("cashDiscount", -10),
            ("discountPercentage", "ten"),
            ("discountPercentage", "1e40"),
            ("cashDiscount", "1e30"),
        ],
    )
    def test_out_of_range_rejected(self, client, db_session, admin_headers, field, value):
        resp = sale(client, admin_headers, **{field: value})
        assert resp.status_code == 400
        assert db_session.query(Order).count() == 0

    def test_negative_total_rejected(self, client, db_session, admin_headers):
        resp = sale(client, admin_headers, items=cart(300), discountPercentage=20, cashDiscount=500)
        assert resp.status_code == 400
        assert db_session.query(Order).count() == 0


class TestCustomerResolution:

    def test_new_phone_creates_pos_customer(self, client, db_session, admin_headers):
        resp = sale(client, admin_headers)
        assert resp.status_code == 201
        assert resp.json["type"] == "pos"
        assert resp.json["status"] == "completed"
        assert resp.json["paymentStatus"] == "completed"
        assert resp.json["paymentMode"] == "cash"
        assert resp.json["orderId"].startswith("POS")

        created = db_session.query(Customer).filter_by(phone="9444444444").one()
        assert created.source == "pos"
        assert created.name == "Lakshmi"
        assert created.total_orders == 1
        assert created.total_spent == Decimal("1500.00")
        assert created.is_new is False
        assert resp.json["customer"]["isNew"] is True
        assert resp.json["customerId"] == created.id

    def test_existing_customer_by_id(self, client, db_session, admin_headers, pos_customer):
        sale(client, admin_headers, customer={"id": pos_customer.id})
        sale(client, admin_headers, customer={"id": pos_customer.id}, items=cart(250))

        db_session.refresh(pos_customer)
        assert pos_customer.total_orders == 2
        assert pos_customer.total_spent == Decimal("1750.00")
        assert pos_customer.is_new is False

    def test_phone_of_web_customer_reuses_account(self, client, db_session, admin_headers, customer):
        resp = sale(client, admin_headers, customer={"phone": customer.phone})
        assert resp.json["customerId"] == customer.id
        assert db_session.query(Customer).filter_by(phone=customer.phone).count() == 1

    def test_unknown_customer_id(self, client, db_session, admin_headers):
        resp = sale(client, admin_headers, customer={"id": 4242})
        assert resp.status_code == 404
        assert db_session.query(Order).count() == 0

    def test_walk_in_creates_no_customer(self, client, db_session, admin_headers, admin):
        resp = sale(client, admin_headers, customer={"name": "Walk-in Customer"})
        assert resp.status_code == 201
        assert resp.json["customerId"] is None
        assert resp.json["customer"]["name"] == "Walk-in Customer"
        assert db_session.query(Customer).count() == 1  # the admin

    def test_pos_orders_show_in_phone_lookup(self, client, db_session, admin_headers):
        sale(client, admin_headers)
        resp = client.get("/customers/phone/9444444444")
        assert resp.json["totalOrders"] == 1
        assert resp.json["isNew"] is False


class TestPosCustomerAdmin:

    def test_create_and_list(self, client, db_session, admin_headers):
        created = client.post("/pos-customers", json={"phone": "9555555555", "name": "Devi"}, headers=admin_headers)
        assert created.status_code == 201

        listed = client.get("/pos-customers", headers=admin_headers)
        assert [c["phone"] for c in listed.json] == ["9555555555"]

    def test_create_duplicate_phone(self, client, db_session, admin_headers, pos_customer):
        resp = client.post("/pos-customers", json={"phone": pos_customer.phone}, headers=admin_headers)
        assert resp.status_code == 400

    def test_update(self, client, db_session, admin_headers, pos_customer):
        resp = client.put(f"/pos-customers/{pos_customer.id}", json={"name": "Meena K"}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["name"] == "Meena K"

    def test_lookup_by_phone(self, client, db_session, admin_headers, pos_customer):
        resp = client.get(f"/pos-customers/phone/{pos_customer.phone}", headers=admin_headers)
        assert resp.json["id"] == pos_customer.id

    def test_requires_admin(self, client, customer_headers):
        assert client.get("/pos-customers", headers=customer_headers).status_code == 403
