from decimal import Decimal

import pytest
from flask_jwt_extended import create_access_token
from werkzeug.security import generate_password_hash

from crafthub import create_app
from crafthub.config import TestConfig
from crafthub.errors import PaymentGatewayUnavailableError
from crafthub.extensions import db
from crafthub.model import CartItem, Coupon, Purchase, Template, User
from crafthub.services.paypal import GatewayCapture, GatewayOrder
from crafthub.utils.dates import utcnow


class FakeGateway:
    """Stands in for PayPal: records calls, returns scripted statuses."""

    def __init__(self, configured=True):
        self.configured = configured
        self.capture_status = "COMPLETED"
        self.capture_error = None
        self.on_capture = None
        self.lookup_status = "COMPLETED"
        self.created = []
        self.captured = []
        self.looked_up = []
        self._seq = 0

    def create_order(self, line_items, total, reference_id):
        self._seq += 1
        self.created.append({"line_items": line_items, "total": total, "reference_id": reference_id})
        return GatewayOrder(order_id=f"PAYPAL-{self._seq}", status="CREATED")

    def capture_order(self, order_id):
        self.captured.append(order_id)
        if self.on_capture:
            self.on_capture(order_id)
        if isinstance(self.capture_error, Exception):
            raise self.capture_error
        if self.capture_error:
            raise PaymentGatewayUnavailableError(self.capture_error)
        return GatewayCapture(order_id=order_id, status=self.capture_status,
                              payer_email="buyer@example.com", amount_captured="30.00")

    def get_order(self, order_id):
        self.looked_up.append(order_id)
        return GatewayCapture(order_id=order_id, status=self.lookup_status,
                              payer_email="buyer@example.com", amount_captured="30.00")


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def app(gateway):
    app = create_app(TestConfig)
    app.extensions["payment_gateway"] = gateway
    yield app


@pytest.fixture
def ctx(app):
    with app.app_context():
        yield
        db.session.remove()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def file_app(tmp_path, gateway):
    """App on a SQLite file, for tests that need several connections."""
    class FileConfig(TestConfig):
        @staticmethod
        def init_app(app):
            app.config["SQLALCHEMY_DATABASE_URI"] = f"sqlite:///{tmp_path / 'crafthub.db'}"

    app = create_app(FileConfig)
    app.extensions["payment_gateway"] = gateway
    yield app
    with app.app_context():
        db.engine.dispose()


def make_user(username="alice", role="user", verified=True, password="secret123"):
    u = User(
        username=username,
        email=f"{username}@example.com",
        password_hash=generate_password_hash(password),
        role=role,
        is_verified=verified,
    )
    db.session.add(u)
    db.session.commit()
    return u


def add_cart(user, *items):
    for template_id, price in items:
        user.cart_items.append(CartItem(template_id=template_id, title=f"Template {template_id}",
                                        price=Decimal(str(price))))
    db.session.commit()


def add_purchase(user, template_id, price="10.00"):
    db.session.add(Purchase(user_id=user.id, template_id=template_id, title=f"Template {template_id}",
                            price=Decimal(price), purchase_date=utcnow()))
    db.session.commit()


def make_coupon(code="SAVE10", percent=10, max_uses=None, expires_at=None, active=True, uses=0):
    c = Coupon(code=code, discount_percent=percent, max_uses=max_uses, current_uses=uses,
               expires_at=expires_at, is_active=active)
    db.session.add(c)
    db.session.commit()
    return c


def make_template(template_id, title, price="0", category=None, description=None):
    t = Template(id=template_id, title=title, price=Decimal(price), category=category, description=description)
    db.session.add(t)
    db.session.commit()
    return t


def auth_header(user):
    token = create_access_token(identity=str(user.id))
    return {"Authorization": f"Bearer {token}"}
