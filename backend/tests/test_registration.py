"""
Registration and guest-order linking tests.

Verifies:
- Phone must be exactly 10 digits; nothing is written otherwise
- Email and phone collisions name the colliding field (web or POS)
- Guest orders with the same shipping email are attached on registration
- Linking is idempotent and never steals owned orders
"""

import pytest

from storefront.extensions import db
from storefront.models import Customer, Order
from storefront.services.reconciliation_service import link_guest_orders
from conftest import make_guest_order, auth_headers


def register(client, **overrides):
    body = {"name": "A", "email": "a@x.com", "phone": "9000000001", "password": "secret123"}
    body.update(overrides)
    return client.post("/customers/register", json=body)


# =============================================================================
# INPUT VALIDATION
# =============================================================================


class TestRegistrationValidation:

    @pytest.mark.parametrize(
        "phone",
        ["900000000", "90000000011", "90000-0000", "+919000000001", "abcdefghij", "", None, 9000000001,
         "9000000001\n", "\u0969" * 10],
    )
    def test_rejects_malformed_phone(self, client, db_session, phone):
        resp = register(client, phone=phone)
        assert resp.status_code == 400
        assert resp.json["message"] == "Phone number must be 10 digits"
        assert db_session.query(Customer).count() == 0

    def test_rejects_short_password(self, client, db_session):
        resp = register(client, password="abc")
        assert resp.status_code == 400
        assert "at least 6" in resp.json["message"]
        assert db_session.query(Customer).count() == 0

    def test_rejects_invalid_email(self, client, db_session):
        resp = register(client, email="not-an-email")
        assert resp.status_code == 400
        assert db_session.query(Customer).count() == 0

    def test_requires_name(self, client, db_session):
        resp = register(client, name="  ")
        assert resp.status_code == 400
        assert resp.json["message"] == "Name is required"


class TestRegistrationCollisions:

    def test_duplicate_email(self, client, db_session):
        assert register(client).status_code == 201
        resp = register(client, phone="9000000002", email="A@X.com")
        assert resp.status_code == 400
        assert resp.json["message"] == "Email already registered"

    def test_duplicate_phone(self, client, db_session):
        assert register(client).status_code == 201
        resp = register(client, email="other@x.com")
        assert resp.status_code == 400
        assert resp.json["message"] == "Phone number already registered"

    def test_phone_known_to_pos_register(self, client, db_session, pos_customer):
        resp = register(client, phone=pos_customer.phone)
        assert resp.status_code == 400
        assert resp.json["message"] == "Phone number already registered"


# =============================================================================
# SUCCESS + LINKING
# =============================================================================


class TestRegistrationSuccess:

    def test_creates_web_customer(self, client, db_session):
        resp = register(client)
        assert resp.status_code == 201
        assert resp.json["linkedOrders"] == 0

        body = resp.json["customer"]
        assert body["email"] == "a@x.com"
        assert body["type"] == "web"
        assert body["role"] == "customer"
        assert "password_hash" not in body
        assert "passwordHash" not in body

        stored = db_session.query(Customer).filter_by(email="a@x.com").one()
        assert stored.password_hash and stored.password_hash != "secret123"

    def test_links_guest_order_and_lists_it(self, client, db_session):
        guest_order = make_guest_order(db_session, email="a@x.com")

        resp = register(client)
        assert resp.status_code == 201
        assert resp.json["linkedOrders"] == 1

        login = client.post("/customers/login", json={"email": "a@x.com", "password": "secret123"})
        orders = client.get("/customers/orders", headers=auth_headers(login.json["token"]))
        assert orders.status_code == 200
        assert [o["orderId"] for o in orders.json] == [guest_order.order_number]

        customer_id = resp.json["customer"]["id"]
        order = db_session.query(Order).filter_by(order_number=guest_order.order_number).one()
        assert order.user_id == str(customer_id)
        assert order.customer_id == customer_id
        assert order.customer_name == "A"
        assert order.customer_email == "a@x.com"
        assert order.customer_phone == "9000000001"

    def test_links_orders_without_owner(self, client, db_session):
        make_guest_order(db_session, email="a@x.com", order_number="order_null_owner", user_id=None)
        resp = register(client)
        assert resp.json["linkedOrders"] == 1

    def test_does_not_link_owned_or_other_email_orders(self, client, db_session):
        make_guest_order(db_session, email="a@x.com", order_number="order_owned", user_id="42")
        make_guest_order(db_session, email="b@x.com", order_number="order_other")

        resp = register(client)
        assert resp.json["linkedOrders"] == 0
        assert db_session.query(Order).filter_by(order_number="order_owned").one().user_id == "42"
        assert db_session.query(Order).filter_by(order_number="order_other").one().user_id == "guest"

    def test_linking_again_is_a_noop(self, client, db_session):
        make_guest_order(db_session, email="a@x.com")
        register(client)

        customer = db_session.query(Customer).filter_by(email="a@x.com").one()
        assert link_guest_orders(customer) == 0
        db.session.commit()

    def test_failed_registration_links_nothing(self, client, db_session):
        make_guest_order(db_session, email="a@x.com")
        resp = register(client, phone="12345")
        assert resp.status_code == 400
        order = db_session.query(Order).one()
        assert order.user_id == "guest"
        assert order.customer_id is None
