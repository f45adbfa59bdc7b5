import asyncio

import pytest

from app.constants.checkout_status import CheckoutState
from app.schemas.checkout_schemas import CheckoutErrorKind, ShippingAddress
from app.services.api_client import ApiError
from app.services.checkout_service import validate_shipping_address
from app.services.payment_gateway import GatewayCancelled, GatewayFailure, GatewaySuccess

from tests.conftest import BRAKE_PADS, OIL_FILTER, VALID_ADDRESS, FakeGateway, FakeLoader


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def address():
    return ShippingAddress.model_validate(VALID_ADDRESS)


@pytest.fixture
def shopper(logged_in):
    logged_in.add_item(BRAKE_PADS, 2)
    logged_in.add_item(OIL_FILTER)
    return logged_in


SUCCESS = GatewaySuccess(
    razorpay_order_id="order_gw_1",
    razorpay_payment_id="pay_1",
    razorpay_signature="sig",
)


# -------------------------
# VALIDATION
# -------------------------

def test_valid_address_has_no_errors(address):
    assert validate_shipping_address(address) == {}


def test_every_required_field_is_reported():
    errors = validate_shipping_address(ShippingAddress())

    assert set(errors) == {"full_name", "phone", "email", "street", "city", "state", "zip_code"}
    assert errors["zip_code"] == "ZIP code is required"


@pytest.mark.parametrize("phone", ["12345", "98765432101", "phone"])
def test_bad_phone(address, phone):
    errors = validate_shipping_address(address.model_copy(update={"phone": phone}))

    assert errors == {"phone": "Please enter a valid 10-digit phone number"}


def test_formatted_phone_is_accepted(address):
    assert validate_shipping_address(address.model_copy(update={"phone": "+(98) 765-432-10"})) == {}


@pytest.mark.parametrize("email", ["asha", "asha@example", "@.", "asha@ example.com"])
def test_bad_email(address, email):
    errors = validate_shipping_address(address.model_copy(update={"email": email}))

    assert errors == {"email": "Please enter a valid email address"}


def test_whitespace_only_fields_are_missing(address):
    errors = validate_shipping_address(address.model_copy(update={"city": "   "}))

    assert errors == {"city": "City is required"}


# -------------------------
# CASH ON DELIVERY
# -------------------------

def test_invalid_phone_blocks_submission_without_network(shopper, address, api):
    calls_before = len(api.calls)

    result = shopper.checkout.submit_cod(address.model_copy(update={"phone": "12345"}))

    assert result.error.kind == CheckoutErrorKind.VALIDATION
    assert "phone" in result.field_errors
    assert result.state == CheckoutState.IDLE
    assert len(api.calls) == calls_before


def test_cod_success_clears_cart_and_storage(shopper, address, api, store):
    result = shopper.checkout.submit_cod(address)

    assert result.ok
    assert result.state == CheckoutState.CONFIRMED
    assert result.order_id == "ord_cod_1"
    assert result.redirect_to == "/order-confirmation/ord_cod_1"
    assert result.notification["variant"] == "success"
    assert shopper.cart.is_empty
    assert store.get("cartItems") is None
    assert shopper.last_order == api.cod_order
    assert api.names().count("create_cod_order") == 1


def test_cod_payload_matches_backend_contract(shopper, address, api):
    shopper.checkout.submit_cod(address)

    (payload, token) = api.calls[-1][1]
    assert token == "tok-123"
    assert payload["paymentMethod"] == "COD"
    assert payload["itemsPrice"] == 1150
    assert payload["shippingPrice"] == 0
    assert payload["totalPrice"] == 1150
    assert payload["shippingAddress"]["fullName"] == "Asha Rao"
    assert payload["shippingAddress"]["zipCode"] == "411001"
    assert payload["shippingAddress"]["phone"] == "9876543210"
    assert payload["items"][0] == {
        "product": "p1",
        "name": "Brake Pads",
        "image": "/img/p1.jpg",
        "quantity": 2,
        "price": 450,
    }


def test_cod_failure_preserves_cart(shopper, address, api, store):
    api.cod_error = ApiError(500, "Internal error")
    stored_before = store.get("cartItems")

    result = shopper.checkout.submit_cod(address)

    assert result.state == CheckoutState.IDLE
    assert result.error.kind == CheckoutErrorKind.ORDER_FAILED
    assert result.error.retry_allowed
    assert result.notification["variant"] == "destructive"
    assert [(i.id, i.quantity) for i in shopper.cart.items] == [("p1", 2), ("p2", 1)]
    assert store.get("cartItems") == stored_before
    assert api.names().count("create_cod_order") == 1


def test_user_can_retry_after_failure(shopper, address, api):
    api.cod_error = ApiError(None, "Could not reach the store server")
    shopper.checkout.submit_cod(address)

    api.cod_error = None
    result = shopper.checkout.submit_cod(address)

    assert result.state == CheckoutState.CONFIRMED
    assert api.names().count("create_cod_order") == 2


def test_empty_cart_redirects_to_storefront(logged_in, address, api):
    result = logged_in.checkout.submit_cod(address)

    assert result.redirect_to == "/"
    assert result.error is None
    assert "create_cod_order" not in api.names()


def test_second_submit_while_in_flight_is_refused(shopper, address, api):
    shopper.checkout.state = CheckoutState.SUBMITTING

    result = shopper.checkout.submit_cod(address)

    assert result.error.kind == CheckoutErrorKind.IN_PROGRESS
    assert "create_cod_order" not in api.names()


def test_new_checkout_after_confirmation(shopper, address, api):
    shopper.checkout.submit_cod(address)
    shopper.add_item(BRAKE_PADS)

    result = shopper.checkout.submit_cod(address)

    assert result.state == CheckoutState.CONFIRMED


# -------------------------
# ONLINE PAYMENT
# -------------------------

def test_begin_online_opens_gateway(shopper, address, api):
    loader = FakeLoader()

    result = run(shopper.checkout.begin_online(address, loader))

    assert result.state == CheckoutState.GATEWAY_OPEN
    assert loader.loads == 1
    assert api.calls[-1] == ("create_payment_order", (1150, "INR", "tok-123"))
    options = result.gateway_options
    assert options.key == "rzp_test_key"
    assert options.order_id == "order_gw_1"
    assert options.prefill.contact == "9876543210"


def test_gateway_load_failure_creates_no_intent(shopper, address, api):
    result = run(shopper.checkout.begin_online(address, FakeLoader(fail=True)))

    assert result.state == CheckoutState.IDLE
    assert result.error.kind == CheckoutErrorKind.GATEWAY_UNAVAILABLE
    assert "create_payment_order" not in api.names()
    assert shopper.cart.item_count == 3


def test_intent_failure_returns_to_idle(shopper, address, api):
    api.intent_error = ApiError(503, "Payment provider down")

    result = run(shopper.checkout.begin_online(address, FakeLoader()))

    assert result.state == CheckoutState.IDLE
    assert result.error.kind == CheckoutErrorKind.ORDER_FAILED
    assert shopper.checkout.pending_order is None


def test_verified_payment_confirms_order(shopper, address, api, store):
    run(shopper.checkout.begin_online(address, FakeLoader()))

    result = run(shopper.checkout.complete_online(SUCCESS))

    assert result.state == CheckoutState.CONFIRMED
    assert result.order_id == "ord_online_1"
    assert shopper.cart.is_empty
    assert store.get("cartItems") is None

    name, (callback, order_data, token) = api.calls[-1]
    assert name == "verify_payment"
    assert callback == SUCCESS.as_callback()
    assert order_data["paymentMethod"] == "ONLINE"
    assert order_data["totalPrice"] == 1150


def test_verification_failure_points_to_support(shopper, address, api, store):
    api.verify_error = ApiError(400, "Payment verification failed")
    run(shopper.checkout.begin_online(address, FakeLoader()))

    result = run(shopper.checkout.complete_online(SUCCESS))

    assert result.state == CheckoutState.IDLE
    assert result.error.kind == CheckoutErrorKind.PAYMENT_VERIFICATION
    assert not result.error.retry_allowed
    assert result.error.reference == "pay_1"
    assert "help@autoparts.example" in result.error.message
    assert shopper.cart.item_count == 3
    assert shopper.adapter.read("unverifiedPayments") == [{
        "razorpay_order_id": "order_gw_1",
        "razorpay_payment_id": "pay_1",
        "detail": "Payment verification failed",
    }]


def test_closing_gateway_returns_to_idle_without_order(shopper, address, api):
    run(shopper.checkout.begin_online(address, FakeLoader()))

    result = run(shopper.checkout.complete_online(GatewayCancelled()))

    assert result.state == CheckoutState.IDLE
    assert result.error is None
    assert result.notification["variant"] == "info"
    assert "verify_payment" not in api.names()
    assert shopper.checkout.pending_order is None
    assert shopper.cart.item_count == 3


def test_gateway_failure_returns_to_idle(shopper, address, api):
    run(shopper.checkout.begin_online(address, FakeLoader()))

    result = run(shopper.checkout.complete_online(
        GatewayFailure(code="BAD_REQUEST_ERROR", description="Card declined", razorpay_payment_id="pay_9")
    ))

    assert result.error.kind == CheckoutErrorKind.PAYMENT_FAILED
    assert "Card declined" in result.error.message
    assert "verify_payment" not in api.names()
    assert shopper.cart.item_count == 3


def test_failure_without_open_gateway_is_rejected(shopper, api):
    result = run(shopper.checkout.complete_online(GatewayFailure(code="BAD_REQUEST_ERROR")))

    assert result.error.kind == CheckoutErrorKind.NO_PAYMENT_IN_PROGRESS
    assert "verify_payment" not in api.names()


def test_success_without_open_gateway_points_to_support(shopper, api):
    result = run(shopper.checkout.complete_online(SUCCESS))

    assert result.error.kind == CheckoutErrorKind.PAYMENT_VERIFICATION
    assert not result.error.retry_allowed
    assert result.error.reference == "pay_1"
    assert "help@autoparts.example" in result.error.message
    assert "verify_payment" not in api.names()
    assert shopper.adapter.read("unverifiedPayments")[0]["razorpay_payment_id"] == "pay_1"
    assert shopper.cart.item_count == 3


def test_duplicate_success_while_verifying_is_refused(shopper, address, api):
    run(shopper.checkout.begin_online(address, FakeLoader()))
    shopper.checkout.state = CheckoutState.VERIFYING

    result = run(shopper.checkout.complete_online(SUCCESS))

    assert result.error.kind == CheckoutErrorKind.IN_PROGRESS
    assert shopper.adapter.read("unverifiedPayments") is None


def test_open_gateway_is_kept_in_storage(shopper, address, store):
    run(shopper.checkout.begin_online(address, FakeLoader()))

    pending = shopper.adapter.read("pendingCheckout")
    assert pending["gatewayOrderId"] == "order_gw_1"
    assert pending["order"]["totalPrice"] == 1150

    run(shopper.checkout.complete_online(GatewayCancelled()))

    assert store.get("pendingCheckout") is None


def test_payment_is_verified_after_session_reload(shopper, address, api, make_session, store):
    run(shopper.checkout.begin_online(address, FakeLoader()))

    reloaded = make_session()
    assert reloaded.checkout.state == CheckoutState.GATEWAY_OPEN

    result = run(reloaded.checkout.complete_online(SUCCESS))

    assert result.state == CheckoutState.CONFIRMED
    name, (callback, order_data, token) = api.calls[-1]
    assert name == "verify_payment"
    assert order_data["totalPrice"] == 1150
    assert order_data["shippingAddress"]["phone"] == "9876543210"
    assert reloaded.cart.is_empty
    assert store.get("pendingCheckout") is None


def test_malformed_pending_checkout_is_discarded(make_session, store):
    store.set("pendingCheckout", '{"gatewayOrderId": "order_gw_1", "order": {"items": "nope"}}')

    session = make_session()

    assert session.checkout.state == CheckoutState.IDLE
    assert store.get("pendingCheckout") is None


def test_missing_country_uses_configured_default(shopper, address, api):
    shopper.settings.default_country = "Sri Lanka"

    shopper.checkout.submit_cod(address.model_copy(update={"country": ""}))

    (payload, _) = api.calls[-1][1]
    assert payload["shippingAddress"]["country"] == "Sri Lanka"


def test_address_without_country_field():
    assert ShippingAddress.model_validate({"fullName": "Asha Rao"}).country == ""


def test_cod_is_refused_while_gateway_is_open(shopper, address, api):
    run(shopper.checkout.begin_online(address, FakeLoader()))

    result = shopper.checkout.submit_cod(address)

    assert result.error.kind == CheckoutErrorKind.IN_PROGRESS
    assert "create_cod_order" not in api.names()


def test_awaited_gateway_flow(shopper, address):
    gateway = FakeGateway(SUCCESS)

    result = run(shopper.checkout.checkout_online(address, gateway))

    assert result.state == CheckoutState.CONFIRMED
    assert gateway.opened_with.order_id == "order_gw_1"
    assert shopper.cart.is_empty


def test_awaited_gateway_abandoned(shopper, address):
    result = run(shopper.checkout.checkout_online(address, FakeGateway(GatewayCancelled())))

    assert result.state == CheckoutState.IDLE
    assert shopper.cart.item_count == 3


def test_awaited_gateway_that_never_loads(shopper, address):
    gateway = FakeGateway(SUCCESS, fail=True)

    result = run(shopper.checkout.checkout_online(address, gateway))

    assert result.error.kind == CheckoutErrorKind.GATEWAY_UNAVAILABLE
    assert gateway.opened_with is None
