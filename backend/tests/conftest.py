"""
Pytest fixtures for storefront backend tests.

Provides test database setup, customer/admin accounts, a stubbed Razorpay
order call, and the test client.
"""

import pytest
from storefront import create_app
from storefront.extensions import db
from storefront.models import Customer, Order, OrderItem
from storefront.models.customers import SOURCE_POS
from storefront.models.orders import GUEST_USER_ID
from storefront.services import customer_service, payment_gateway, mail_service
from storefront.services.payment_gateway import compute_signature
from storefront.time_utils import utcnow

TEST_KEY_ID = "rzp_test_key"
TEST_KEY_SECRET = "rzp_test_secret"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'RAZORPAY_KEY_ID': TEST_KEY_ID,
        'RAZORPAY_KEY_SECRET': TEST_KEY_SECRET,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def gateway(monkeypatch):
    """
    Stub the Razorpay order call.

    Records each call and returns a predictable gateway order id.
    Set gateway.fail = "message" to make the next calls raise GatewayError.
    """
    class FakeGateway:
        def __init__(self):
            self.calls = []
            self.fail = None

        def create_order(self, amount_paise, receipt, notes=None):
            if self.fail:
                raise payment_gateway.GatewayError(self.fail)
            self.calls.append({"amount": amount_paise, "receipt": receipt, "notes": notes})
            return {
                "id": f"order_rzp_{len(self.calls)}_{receipt[-8:]}",
                "amount": amount_paise,
                "currency": "INR",
                "status": "created",
            }

    fake = FakeGateway()
    monkeypatch.setattr(payment_gateway, "create_gateway_order", fake.create_order)
    return fake


@pytest.fixture(scope='function')
def mailer(monkeypatch):
    """Capture order confirmation mails instead of talking to SMTP."""
    sent = []

    def send_order_emails(order):
        sent.append(order.order_number)
        return {"success": True, "storeEmail": "store@test.local", "customerEmail": order.shipping_email}

    monkeypatch.setattr(mail_service, "send_order_emails", send_order_emails)
    return sent


@pytest.fixture(scope='function')
def customer(db_session):
    """Registered web customer (password: secret123)."""
    created, _ = customer_service.register_customer(
        name="Asha", email="asha@example.com", phone="9000000001", password="secret123"
    )
    return created


@pytest.fixture(scope='function')
def admin(db_session):
    """Admin account (password: adminpass)."""
    return customer_service.create_admin(
        name="Store Admin", email="admin@store.local", phone="9000000099", password="adminpass"
    )


@pytest.fixture(scope='function')
def pos_customer(db_session):
    """POS-only customer with no password."""
    created = Customer(phone="9111111111", name="Meena", source=SOURCE_POS, total_orders=0, total_spent=0, is_new=True)
    db_session.add(created)
    db_session.commit()
    return created


@pytest.fixture(scope='function')
def customer_headers(client, customer):
    return auth_headers(get_auth_token(client, email="asha@example.com", password="secret123"))


@pytest.fixture(scope='function')
def admin_headers(client, admin):
    return auth_headers(get_auth_token(client, email="admin@store.local", password="adminpass"))


def get_auth_token(client, password: str, email: str | None = None, phone: str | None = None) -> str:
    """Helper to get auth token for a customer."""
    body = {'password': password}
    if email:
        body['email'] = email
    if phone:
        body['phone'] = phone
    response = client.post('/customers/login', json=body)
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


def sign(razorpay_order_id: str, razorpay_payment_id: str) -> str:
    """Checkout signature as the gateway would produce it."""
    return compute_signature(razorpay_order_id, razorpay_payment_id, key_secret=TEST_KEY_SECRET)


def shipping_address(email="guest@example.com", phone="9222222222", **overrides) -> dict:
    address = {
        "fullName": "Guest Buyer",
        "email": email,
        "phone": phone,
        "address": "12 Temple Street",
        "city": "Chennai",
        "state": "Tamil Nadu",
        "pincode": "600001",
        "country": "India",
    }
    address.update(overrides)
    return address


def cart(*prices, quantity=1) -> list:
    return [
        {"id": f"p{i}", "name": f"Saree {i}", "price": price, "quantity": quantity, "image": f"/img/{i}.jpg"}
        for i, price in enumerate(prices or (1000,), start=1)
    ]


def make_guest_order(db_session, email="a@x.com", order_number="order_1_guest", user_id=GUEST_USER_ID, **fields) -> Order:
    """Insert an online guest order directly (bypasses the gateway)."""
    now = utcnow()
    order = Order(
        order_number=order_number,
        type="online",
        user_id=user_id,
        subtotal=1000,
        total=1000,
        shipping_address=shipping_address(email=email),
        shipping_email=email,
        status=fields.pop("status", "pending"),
        payment_status=fields.pop("payment_status", "pending"),
        is_guest_order=True,
        razorpay_order_id=fields.pop("razorpay_order_id", f"rzp_{order_number}"),
        created_at=fields.pop("created_at", now),
        updated_at=now,
        **fields,
    )
    order.items = [OrderItem(product_id="p1", name="Saree", price=1000, quantity=1)]
    db_session.add(order)
    db_session.commit()
    return order
