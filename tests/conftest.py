"""Shared test fixtures for the storefront service."""
import json
import os

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["OTEL_EXPORT_ENABLED"] = "false"
os.environ["PROFILING_ENABLED"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SEED_SAMPLE_DATA"] = "false"
os.environ["TELEGRAM_BOT_TOKEN"] = ""
os.environ["TELEGRAM_CHAT_ID"] = ""

from decimal import Decimal  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from storefront.auth import SessionStore, get_session_store, hash_password  # noqa: E402
from storefront.currency import CurrencyService  # noqa: E402
from storefront.database import get_db  # noqa: E402
from storefront.dependencies import get_currency_service, get_external_service  # noqa: E402
from storefront.main import app  # noqa: E402
from storefront.models import Base, Order, Product, StockStatus, User  # noqa: E402
from storefront.services.external_service import ExternalServiceClient  # noqa: E402


class FakeRedis:
    """The slice of the Redis client API used by the session store."""

    def __init__(self):
        self.data = {}

    def get(self, key):
        return self.data.get(key)

    def setex(self, key, ttl, value):
        self.data[key] = value

    def delete(self, key):
        self.data.pop(key, None)


class FakeExternalApis:
    """
    Serves the Telegram and Nova Poshta endpoints through httpx.MockTransport.

    Tests tweak ``telegram_status``, ``cities``, ``warehouses`` or
    ``address_success`` and inspect ``messages`` and ``address_calls``.
    """

    def __init__(self):
        self.telegram_status = 200
        self.address_success = True
        self.messages = []
        self.address_calls = []
        self.cities = [
            {"Description": "Львів"},
            {"Description": "Луцьк"},
            {"Description": "Київ"},
        ]
        self.warehouses = [
            {"Description": "Відділення №1: вул. Городоцька, 1"},
            {"Description": "Поштомат №100: вул. Зелена, 5"},
            {"Description": "Відділення №2: вул. Личаківська, 20"},
        ]

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content or b"{}")

        if request.url.path.endswith("/sendMessage"):
            self.messages.append(body)
            return httpx.Response(self.telegram_status, json={"ok": self.telegram_status < 400})

        self.address_calls.append(body)
        if not self.address_success:
            return httpx.Response(200, json={"success": False, "data": [], "errors": ["API key expired"]})
        data = self.cities if body["calledMethod"] == "getCities" else self.warehouses
        return httpx.Response(200, json={"success": True, "data": data})


@pytest.fixture
def db_session():
    """In-memory database with all tables, one connection for all threads."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def sessions(fake_redis):
    return SessionStore(fake_redis, ttl_seconds=60)


@pytest.fixture
def currency_service(tmp_path):
    return CurrencyService(tmp_path / "exchange.ini", "1.00")


@pytest.fixture
def external_apis():
    return FakeExternalApis()


@pytest.fixture
def external_service(external_apis):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(external_apis.handler))
    return ExternalServiceClient(
        http_client,
        bot_token="test-bot-token",
        chat_id="42",
        address_api_key="test-api-key"
    )


@pytest.fixture
def client(db_session, sessions, currency_service, external_service):
    """Test client with the database, sessions and outside services replaced."""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_store] = lambda: sessions
    app.dependency_overrides[get_currency_service] = lambda: currency_service
    app.dependency_overrides[get_external_service] = lambda: external_service
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def make_product(db, **fields) -> Product:
    """Insert a product; unspecified fields get plain defaults."""
    values = dict(
        brand_original="Denkmit",
        brand_translation="Денкміт",
        type="kitchen",
        title_original="Spülmittel",
        title_translation="Засіб для посуду",
        pictures=[],
        price=Decimal("10.00"),
        price_factor=Decimal("20"),
        amount=5,
        stock_status=StockStatus.IN_STOCK,
        visibility=True,
    )
    values.update(fields)
    product = Product(**values)
    db.add(product)
    db.commit()
    return product


def make_user(db, email: str, admin: bool = False, password: str = "secret123") -> User:
    user = User(
        first_name="Olena",
        last_name="Koval",
        email=email,
        password=hash_password(password),
        admin=admin
    )
    db.add(user)
    db.commit()
    return user


def make_order(db, products, **fields) -> Order:
    values = dict(
        first_name="Ivan",
        last_name="Petrenko",
        phone_number="380671234567",
        region="Львів",
        address="Відділення №1",
        status=0,
    )
    values.update(fields)
    order = Order(products=products, **values)
    db.add(order)
    db.commit()
    return order


@pytest.fixture
def product(db_session):
    """Visible in-stock product priced 10.00 with a 20% markup (12,00)."""
    return make_product(db_session)


@pytest.fixture
def customer(db_session):
    return make_user(db_session, "customer@example.com")


@pytest.fixture
def admin(db_session):
    return make_user(db_session, "admin@example.com", admin=True)


@pytest.fixture
def customer_headers(customer, sessions):
    return {"Authorization": f"Bearer {sessions.create(customer.id)}"}


@pytest.fixture
def admin_headers(admin, sessions):
    return {"Authorization": f"Bearer {sessions.create(admin.id)}"}
