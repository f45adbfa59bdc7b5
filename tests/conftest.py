import pytest
from fastapi.testclient import TestClient

from app.config import Settings
from app.schemas.checkout_schemas import GatewayOrderIntent
from app.services.api_client import ApiError
from app.services.kv_store import MemoryKeyValueStore
from app.services.payment_gateway import GatewayLoadError
from app.services.session_service import SessionRegistry, StorefrontSession
from app.services.store_adapter import StoreAdapter


PROFILE = {
    "_id": "u1",
    "name": "Asha Rao",
    "email": "asha@example.com",
    "role": "user",
    "phone": "98765 43210",
    "address": {
        "street": "12 MG Road",
        "city": "Pune",
        "state": "Maharashtra",
        "zipCode": "411001",
        "country": "India",
    },
}

BRAKE_PADS = {"id": "p1", "name": "Brake Pads", "image": "/img/p1.jpg", "price": 450}
OIL_FILTER = {"id": "p2", "name": "Oil Filter", "image": "/img/p2.jpg", "price": 250}

VALID_ADDRESS = {
    "fullName": "Asha Rao",
    "phone": "98765-43210",
    "email": "asha@example.com",
    "street": "12 MG Road",
    "city": "Pune",
    "state": "Maharashtra",
    "zipCode": "411001",
    "country": "India",
}


class FakeApi:
    """Stands in for StorefrontApiClient and records every backend call."""

    def __init__(self):
        self.calls = []
        self.cod_error = None
        self.cod_order = {"_id": "ord_cod_1", "orderStatus": "pending"}
        self.intent = GatewayOrderIntent(id="order_gw_1", amount=120000, currency="INR")
        self.intent_error = None
        self.verify_error = None
        self.verified_order = {"_id": "ord_online_1", "orderStatus": "paid"}
        self.login_payload = {**PROFILE, "token": "tok-123"}
        self.products = {}
        self.wishlist = []
        self.wishlist_remove_error = None
        self.orders = []

    def _call(self, name, *args):
        self.calls.append((name, args))

    def names(self):
        return [name for name, _ in self.calls]

    def create_cod_order(self, payload, token):
        self._call("create_cod_order", payload, token)
        if self.cod_error:
            raise self.cod_error
        return self.cod_order

    def create_payment_order(self, amount, currency, token):
        self._call("create_payment_order", amount, currency, token)
        if self.intent_error:
            raise self.intent_error
        return self.intent

    def verify_payment(self, callback, order_data, token):
        self._call("verify_payment", callback, order_data, token)
        if self.verify_error:
            raise self.verify_error
        return self.verified_order

    def login(self, email, password):
        self._call("login", email, password)
        return dict(self.login_payload)

    def register(self, data):
        self._call("register", data)
        return dict(self.login_payload)

    def update_profile(self, data, token):
        self._call("update_profile", data, token)
        return {**PROFILE, **data}

    def get_product(self, product_id):
        self._call("get_product", product_id)
        if product_id not in self.products:
            raise ApiError(404, "Product not found")
        return self.products[product_id]

    def list_my_orders(self, token):
        self._call("list_my_orders", token)
        return self.orders

    def get_order(self, order_id, token):
        self._call("get_order", order_id, token)
        for order in self.orders:
            if order["_id"] == order_id:
                return order
        raise ApiError(404, "Order not found")

    def get_wishlist(self, token):
        self._call("get_wishlist", token)
        return self.wishlist

    def remove_from_wishlist(self, product_id, token):
        self._call("remove_from_wishlist", product_id, token)
        if self.wishlist_remove_error:
            raise self.wishlist_remove_error
        self.wishlist = [
            e for e in self.wishlist if e["product"]["_id"] != product_id
        ]

    def clear_wishlist(self, token):
        self._call("clear_wishlist", token)
        self.wishlist = []


class FakeLoader:
    def __init__(self, fail=False):
        self.fail = fail
        self.loads = 0

    async def load(self):
        self.loads += 1
        if self.fail:
            raise GatewayLoadError("Payment service is unavailable")


class FakeGateway(FakeLoader):
    def __init__(self, outcome, fail=False):
        super().__init__(fail=fail)
        self.outcome = outcome
        self.opened_with = None

    async def open(self, options):
        self.opened_with = options
        return self.outcome


@pytest.fixture
def test_settings():
    return Settings(
        _env_file=None,
        RAZORPAY_KEY_ID="rzp_test_key",
        support_email="help@autoparts.example",
        gateway_probe_enabled=False,
    )


@pytest.fixture
def api():
    return FakeApi()


@pytest.fixture
def store():
    return MemoryKeyValueStore()


@pytest.fixture
def make_session(store, api, test_settings):
    def _make(kv=None):
        return StorefrontSession(StoreAdapter(kv or store), api, test_settings)
    return _make


@pytest.fixture
def session(make_session):
    return make_session()


@pytest.fixture
def logged_in(session):
    session.login("asha@example.com", "secret")
    return session


@pytest.fixture
def stores():
    return {}


@pytest.fixture
def client(api, stores, test_settings):
    from app.main import app

    def store_factory(session_id):
        return stores.setdefault(session_id, MemoryKeyValueStore())

    previous = (app.state.sessions, app.state.gateway)
    app.state.sessions = SessionRegistry(store_factory, api, test_settings)
    app.state.gateway = FakeLoader()

    yield TestClient(app)

    app.state.sessions, app.state.gateway = previous
