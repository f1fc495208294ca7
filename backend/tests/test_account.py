"""
Customer account tests: profile, password, addresses, password reset, phone lookup.
"""

import pytest

from storefront.models import Customer
from storefront.services import mail_service
from storefront.services.customer_service import hash_reset_token


# =============================================================================
# PROFILE & PASSWORD
# =============================================================================


class TestProfile:

    def test_get_profile(self, client, customer_headers):
        resp = client.get("/customers/profile", headers=customer_headers)
        assert resp.status_code == 200
        assert resp.json["email"] == "asha@example.com"
        assert "password_hash" not in resp.json

    def test_update_name_and_email(self, client, customer_headers):
        resp = client.patch(
            "/customers/profile",
            json={"name": "Asha R", "email": "Asha.R@Example.com"},
            headers=customer_headers,
        )
        assert resp.status_code == 200
        assert resp.json["name"] == "Asha R"
        assert resp.json["email"] == "asha.r@example.com"

    def test_update_rejects_malformed_phone(self, client, customer_headers):
        resp = client.patch("/customers/profile", json={"phone": "12345"}, headers=customer_headers)
        assert resp.status_code == 400
        assert resp.json["message"] == "Phone number must be 10 digits"

    def test_update_rejects_taken_phone(self, client, customer_headers, pos_customer):
        resp = client.patch("/customers/profile", json={"phone": pos_customer.phone}, headers=customer_headers)
        assert resp.status_code == 400
        assert resp.json["message"] == "Phone number already registered"

    def test_profile_update_ignores_password(self, client, customer_headers):
        client.patch("/customers/profile", json={"password": "hijacked"}, headers=customer_headers)
        resp = client.post("/customers/login", json={"email": "asha@example.com", "password": "secret123"})
        assert resp.status_code == 200


class TestChangePassword:

    def test_change_password(self, client, customer_headers):
        resp = client.post(
            "/customers/change-password",
            json={"currentPassword": "secret123", "newPassword": "newsecret"},
            headers=customer_headers,
        )
        assert resp.status_code == 200

        login = client.post("/customers/login", json={"email": "asha@example.com", "password": "newsecret"})
        assert login.status_code == 200

    def test_wrong_current_password(self, client, customer_headers):
        resp = client.post(
            "/customers/change-password",
            json={"currentPassword": "nope", "newPassword": "newsecret"},
            headers=customer_headers,
        )
        assert resp.status_code == 400
        assert resp.json["message"] == "Current password is incorrect"


# =============================================================================
# ADDRESSES
# =============================================================================


ADDRESS = {
    "fullName": "Asha",
    "phone": "9000000001",
    "address": "4 Lake Road",
    "city": "Madurai",
    "state": "Tamil Nadu",
    "pincode": "625001",
}


class TestAddresses:

    def test_first_address_is_default(self, client, customer_headers):
        first = client.post("/customers/addresses", json=ADDRESS, headers=customer_headers)
        second = client.post("/customers/addresses", json={**ADDRESS, "city": "Salem"}, headers=customer_headers)

        assert first.status_code == 201
        assert first.json["isDefault"] is True
        assert first.json["country"] == "India"
        assert second.json["isDefault"] is False

    def test_missing_fields(self, client, customer_headers):
        resp = client.post("/customers/addresses", json={"fullName": "Asha"}, headers=customer_headers)
        assert resp.status_code == 400
        assert "address" in resp.json["message"]

    def test_set_default_clears_others(self, client, customer_headers):
        first = client.post("/customers/addresses", json=ADDRESS, headers=customer_headers).json
        second = client.post("/customers/addresses", json=ADDRESS, headers=customer_headers).json

        resp = client.patch(f"/customers/addresses/{second['id']}/default", headers=customer_headers)
        assert resp.status_code == 200

        listed = {a["id"]: a["isDefault"] for a in client.get("/customers/addresses", headers=customer_headers).json}
        assert listed == {first["id"]: False, second["id"]: True}

    def test_deleting_default_promotes_oldest(self, client, customer_headers):
        first = client.post("/customers/addresses", json=ADDRESS, headers=customer_headers).json
        second = client.post("/customers/addresses", json=ADDRESS, headers=customer_headers).json
        third = client.post("/customers/addresses", json=ADDRESS, headers=customer_headers).json

        assert client.delete(f"/customers/addresses/{first['id']}", headers=customer_headers).status_code == 200

        listed = {a["id"]: a["isDefault"] for a in client.get("/customers/addresses", headers=customer_headers).json}
        assert listed == {second["id"]: True, third["id"]: False}

    def test_update_address(self, client, customer_headers):
        created = client.post("/customers/addresses", json=ADDRESS, headers=customer_headers).json
        resp = client.put(f"/customers/addresses/{created['id']}", json={"city": "Trichy"}, headers=customer_headers)
        assert resp.status_code == 200
        assert resp.json["city"] == "Trichy"

    def test_other_customers_address_not_found(self, client, db_session, customer_headers, admin_headers):
        created = client.post("/customers/addresses", json=ADDRESS, headers=admin_headers).json
        resp = client.put(f"/customers/addresses/{created['id']}", json={"city": "X"}, headers=customer_headers)
        assert resp.status_code == 404


# =============================================================================
# PASSWORD RESET
# =============================================================================


class TestPasswordReset:

    @pytest.fixture
    def reset_mails(self, monkeypatch):
        sent = []
        monkeypatch.setattr(mail_service, "send_password_reset_email", lambda email, token: sent.append((email, token)))
        return sent

    def test_reset_flow(self, client, db_session, customer, reset_mails):
        resp = client.post("/customers/password-reset-request", json={"emailOrPhone": "asha@example.com"})
        assert resp.status_code == 200
        assert "token" not in resp.json

        (email, token), = reset_mails
        assert email == "asha@example.com"
        stored = db_session.get(Customer, customer.id)
        assert stored.reset_token_hash == hash_reset_token(token)

        resp = client.post("/customers/password-reset", json={"token": token, "newPassword": "brandnew"})
        assert resp.status_code == 200
        assert db_session.get(Customer, customer.id).reset_token_hash is None

        login = client.post("/customers/login", json={"email": "asha@example.com", "password": "brandnew"})
        assert login.status_code == 200

    def test_reset_token_single_use(self, client, customer, reset_mails):
        client.post("/customers/password-reset-request", json={"emailOrPhone": "9000000001"})
        (_, token), = reset_mails
        assert client.post("/customers/password-reset", json={"token": token, "newPassword": "brandnew"}).status_code == 200

        resp = client.post("/customers/password-reset", json={"token": token, "newPassword": "again123"})
        assert resp.status_code == 400
        assert resp.json["message"] == "Invalid or expired reset token"

    def test_unknown_identifier(self, client, db_session, reset_mails):
        resp = client.post("/customers/password-reset-request", json={"emailOrPhone": "ghost@example.com"})
        assert resp.status_code == 404
        assert reset_mails == []

    def test_request_succeeds_without_smtp(self, client, customer):
        resp = client.post("/customers/password-reset-request", json={"emailOrPhone": "asha@example.com"})
        assert resp.status_code == 200


# =============================================================================
# POS PHONE LOOKUP
# =============================================================================


class TestPhoneLookup:

    def test_unknown_phone_creates_walk_in(self, client, db_session):
        resp = client.get("/customers/phone/9333333333")
        assert resp.status_code == 200
        assert resp.json["name"] == "Walk-in Customer"
        assert resp.json["isNew"] is True
        assert resp.json["totalOrders"] == 0
        assert db_session.query(Customer).filter_by(phone="9333333333").count() == 1

    def test_known_phone_returns_existing(self, client, db_session, customer):
        resp = client.get("/customers/phone/9000000001")
        assert resp.json["id"] == customer.id
        assert db_session.query(Customer).count() == 1

    def test_web_account_details_not_exposed(self, client, db_session, customer):
        resp = client.get("/customers/phone/9000000001")
        assert resp.status_code == 200
        assert set(resp.json) == {"id", "phone", "name", "totalOrders", "isNew"}
        assert "asha@example.com" not in resp.get_data(as_text=True)

    def test_malformed_phone(self, client, db_session):
        resp = client.get("/customers/phone/123")
        assert resp.status_code == 400
