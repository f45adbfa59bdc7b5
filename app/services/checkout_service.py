"""
Checkout state machine for one visitor.

    IDLE --cod--> SUBMITTING --> CONFIRMED | IDLE
    IDLE --online--> AWAITING_GATEWAY --> GATEWAY_OPEN --> VERIFYING --> CONFIRMED | IDLE
                     AWAITING_GATEWAY --> IDLE (script or intent failed)
                                          GATEWAY_OPEN --> IDLE (failed / closed)

Exactly one backend call is in flight per attempt and none is ever retried
automatically; a retry is always the user's decision. The cart is cleared
only once an order is confirmed. An open gateway is kept in visitor storage
so a payment callback can still be verified after the session is reloaded.
"""
import logging
import re
import threading
from typing import Any, Dict, Optional

from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError

from app.constants.checkout_status import (
    ALLOWED_TRANSITIONS,
    IN_FLIGHT_STATES,
    CheckoutState,
    PaymentMethod,
)
from app.notifications import CheckoutEvent, dispatch_checkout_event
from app.schemas.checkout_schemas import (
    CheckoutError,
    CheckoutErrorKind,
    CheckoutResult,
    GatewayCheckoutOptions,
    GatewayPrefill,
    OrderItemPayload,
    OrderPayload,
    ShippingAddress,
)
from app.services.api_client import ApiError
from app.services.payment_gateway import (
    GatewayCancelled,
    GatewayFailure,
    GatewayLoader,
    GatewayLoadError,
    GatewayOutcome,
    GatewaySuccess,
    PaymentGateway,
)
from app.services.store_adapter import PENDING_CHECKOUT_KEY, UNVERIFIED_PAYMENTS_KEY

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"\S+@\S+\.\S+")

REQUIRED_FIELDS = {
    "full_name": "Full name is required",
    "phone": "Phone number is required",
    "email": "Email is required",
    "street": "Street address is required",
    "city": "City is required",
    "state": "State is required",
    "zip_code": "ZIP code is required",
}


class InvalidCheckoutTransition(RuntimeError):
    pass


def normalize_phone(phone: str) -> str:
    return re.sub(r"\D", "", phone or "")


def validate_shipping_address(address: ShippingAddress) -> Dict[str, str]:
    errors: Dict[str, str] = {}

    for field, message in REQUIRED_FIELDS.items():
        if not (getattr(address, field) or "").strip():
            errors[field] = message

    if address.phone.strip() and len(normalize_phone(address.phone)) != 10:
        errors["phone"] = "Please enter a valid 10-digit phone number"

    if address.email.strip() and not EMAIL_PATTERN.search(address.email):
        errors["email"] = "Please enter a valid email address"

    return errors


def _order_id(order: Dict[str, Any]) -> Optional[str]:
    value = order.get("_id") or order.get("id")
    return str(value) if value is not None else None


class CheckoutOrchestrator:
    """
    Drives order placement for a session.

    `session` is the visitor's StorefrontSession: it supplies the cart, the
    auth token, the API client and the storage adapter, and owns clearing the
    cart once an order is confirmed.
    """

    def __init__(self, session):
        self.session = session
        self.state = CheckoutState.IDLE
        self.pending_order: Optional[OrderPayload] = None
        self.gateway_order_id: Optional[str] = None
        self._lock = threading.Lock()
        self._restore_pending()

    @property
    def api(self):
        return self.session.api

    @property
    def settings(self):
        return self.session.settings

    # -------------------------
    # STATE
    # -------------------------
    def _transition(self, new_state: CheckoutState) -> None:
        if new_state not in ALLOWED_TRANSITIONS[self.state]:
            raise InvalidCheckoutTransition(f"{self.state.value} -> {new_state.value}")
        logger.debug(f"Checkout {self.state.value} -> {new_state.value}")
        self.state = new_state

    def _result(self, **kwargs) -> CheckoutResult:
        return CheckoutResult(state=self.state, **kwargs)

    def _failure(
        self,
        kind: CheckoutErrorKind,
        message: str,
        event: Optional[CheckoutEvent] = None,
        reference: Optional[str] = None,
        retry_allowed: bool = True,
    ) -> CheckoutResult:
        notification = None
        if event:
            notification = dispatch_checkout_event(
                event=event,
                extra={"popup_title": "Checkout failed", "popup_message": message},
            )
        return self._result(
            error=CheckoutError(
                kind=kind,
                message=message,
                retry_allowed=retry_allowed,
                reference=reference,
            ),
            notification=notification,
        )

    def _start(self, next_state: CheckoutState, address: ShippingAddress) -> Optional[CheckoutResult]:
        """Guard shared by both payment paths. Returns a result when the attempt must not start."""
        if self.session.cart.is_empty:
            return self._result(redirect_to="/")

        field_errors = validate_shipping_address(address)
        if field_errors:
            return self._result(
                error=CheckoutError(
                    kind=CheckoutErrorKind.VALIDATION,
                    message="Please fix the highlighted fields",
                ),
                field_errors=field_errors,
            )

        with self._lock:
            if self.state in IN_FLIGHT_STATES:
                return self._result(
                    error=CheckoutError(
                        kind=CheckoutErrorKind.IN_PROGRESS,
                        message="Your order is already being placed",
                    )
                )
            if self.state == CheckoutState.CONFIRMED:
                self._transition(CheckoutState.IDLE)
            self._transition(next_state)
        return None

    def status(self) -> CheckoutResult:
        return self._result(order_id=self.gateway_order_id)

    # -------------------------
    # PAYLOAD
    # -------------------------
    def build_order(self, address: ShippingAddress, method: PaymentMethod) -> OrderPayload:
        cart = self.session.cart
        totals = cart.totals()
        address = address.model_copy(update={
            "phone": normalize_phone(address.phone),
            "country": address.country.strip() or self.settings.default_country,
        })

        return OrderPayload(
            items=[
                OrderItemPayload(
                    product=item.id,
                    name=item.name,
                    image=item.image,
                    quantity=item.quantity,
                    price=item.price,
                )
                for item in cart.items
            ],
            shipping_address=address,
            payment_method=method,
            items_price=totals.subtotal,
            shipping_price=totals.shipping_fee,
            total_price=totals.total,
        )

    def _confirm(self, order: Dict[str, Any]) -> CheckoutResult:
        self._transition(CheckoutState.CONFIRMED)
        self._abandon()

        self.session.clear_cart()
        self.session.last_order = order

        order_id = _order_id(order)
        notification = dispatch_checkout_event(
            event=CheckoutEvent.ORDER_CONFIRMED,
            extra={
                "popup_title": "Order placed",
                "popup_message": "Thank you for your order!",
                "log_message": f"order {order_id} confirmed",
            },
        )
        return self._result(
            order=order,
            order_id=order_id,
            redirect_to=f"/order-confirmation/{order_id}",
            notification=notification,
        )

    # -------------------------
    # CASH ON DELIVERY
    # -------------------------
    def submit_cod(self, address: ShippingAddress) -> CheckoutResult:
        blocked = self._start(CheckoutState.SUBMITTING, address)
        if blocked:
            return blocked

        payload = self.build_order(address, PaymentMethod.COD)

        try:
            order = self.api.create_cod_order(payload.to_wire(), self.session.token)
        except ApiError as e:
            self._transition(CheckoutState.IDLE)
            return self._failure(
                CheckoutErrorKind.ORDER_FAILED,
                f"We could not place your order: {e.detail}. Your cart has been kept, please try again.",
                CheckoutEvent.ORDER_FAILED,
            )

        return self._confirm(order)

    # -------------------------
    # ONLINE PAYMENT
    # -------------------------
    async def begin_online(self, address: ShippingAddress, loader: GatewayLoader) -> CheckoutResult:
        blocked = self._start(CheckoutState.AWAITING_GATEWAY, address)
        if blocked:
            return blocked

        # script first: a failed load must not leave an order intent behind
        try:
            await loader.load()
        except GatewayLoadError as e:
            self._transition(CheckoutState.IDLE)
            return self._failure(
                CheckoutErrorKind.GATEWAY_UNAVAILABLE,
                f"{e}. Please try again later or choose Cash on Delivery.",
                CheckoutEvent.GATEWAY_UNAVAILABLE,
            )

        payload = self.build_order(address, PaymentMethod.ONLINE)

        try:
            intent = await run_in_threadpool(
                self.api.create_payment_order,
                payload.total_price,
                self.settings.currency,
                self.session.token,
            )
        except ApiError as e:
            self._transition(CheckoutState.IDLE)
            return self._failure(
                CheckoutErrorKind.ORDER_FAILED,
                f"We could not start the payment: {e.detail}",
                CheckoutEvent.ORDER_FAILED,
            )

        self.pending_order = payload
        self.gateway_order_id = intent.id
        self._transition(CheckoutState.GATEWAY_OPEN)
        self._save_pending()

        return self._result(
            order_id=intent.id,
            gateway_options=GatewayCheckoutOptions(
                key=self.settings.RAZORPAY_KEY_ID,
                order_id=intent.id,
                amount=intent.amount,
                currency=intent.currency,
                name=self.settings.store_name,
                description=f"Order of {self.session.cart.item_count} item(s)",
                prefill=GatewayPrefill(
                    name=address.full_name,
                    email=address.email,
                    contact=normalize_phone(address.phone),
                ),
            ),
        )

    async def complete_online(self, outcome: GatewayOutcome) -> CheckoutResult:
        with self._lock:
            if self.state == CheckoutState.VERIFYING:
                return self._result(
                    error=CheckoutError(
                        kind=CheckoutErrorKind.IN_PROGRESS,
                        message="Your payment is already being verified",
                    )
                )
            if self.state != CheckoutState.GATEWAY_OPEN:
                if isinstance(outcome, GatewaySuccess):
                    # money may have been captured with no order to verify against
                    return self._unverified(outcome, "No open payment for this session")
                return self._result(
                    error=CheckoutError(
                        kind=CheckoutErrorKind.NO_PAYMENT_IN_PROGRESS,
                        message="There is no payment waiting for completion",
                    )
                )
            if isinstance(outcome, GatewaySuccess):
                self._transition(CheckoutState.VERIFYING)
            else:
                self._transition(CheckoutState.IDLE)

        if isinstance(outcome, GatewayCancelled):
            self._abandon()
            notification = dispatch_checkout_event(
                event=CheckoutEvent.PAYMENT_CANCELLED,
                extra={
                    "popup_title": "Payment cancelled",
                    "popup_message": "No order was placed. Your cart is still here.",
                },
            )
            return self._result(notification=notification)

        if isinstance(outcome, GatewayFailure):
            self._abandon()
            return self._failure(
                CheckoutErrorKind.PAYMENT_FAILED,
                f"Payment failed: {outcome.description or outcome.code}. You can try again.",
                CheckoutEvent.PAYMENT_FAILED,
                reference=outcome.razorpay_payment_id,
            )

        return await self._verify(outcome)

    async def _verify(self, outcome: GatewaySuccess) -> CheckoutResult:
        if outcome.razorpay_order_id != self.gateway_order_id:
            logger.warning(
                f"Gateway order mismatch: expected {self.gateway_order_id}, got {outcome.razorpay_order_id}"
            )

        try:
            order = await run_in_threadpool(
                self.api.verify_payment,
                outcome.as_callback(),
                self.pending_order.to_wire(),
                self.session.token,
            )
        except ApiError as e:
            self._transition(CheckoutState.IDLE)
            self._abandon()
            return self._unverified(outcome, e.detail)

        return self._confirm(order)

    def _unverified(self, outcome: GatewaySuccess, detail: str) -> CheckoutResult:
        self._record_unverified(outcome, detail)
        # funds may already be captured, so no retry invitation here
        return self._failure(
            CheckoutErrorKind.PAYMENT_VERIFICATION,
            "We could not confirm your payment. If money was deducted, please contact "
            f"{self.settings.support_email} with payment reference {outcome.razorpay_payment_id} "
            "before trying again.",
            CheckoutEvent.PAYMENT_VERIFICATION_FAILED,
            reference=outcome.razorpay_payment_id,
            retry_allowed=False,
        )

    async def checkout_online(self, address: ShippingAddress, gateway: PaymentGateway) -> CheckoutResult:
        """Whole online flow against a gateway whose UI can be awaited."""
        started = await self.begin_online(address, gateway)
        if self.state != CheckoutState.GATEWAY_OPEN:
            return started

        outcome = await gateway.open(started.gateway_options)
        return await self.complete_online(outcome)

    # -------------------------
    # OPEN GATEWAY (persisted)
    # -------------------------
    def _save_pending(self) -> None:
        self.session.adapter.write(PENDING_CHECKOUT_KEY, {
            "gatewayOrderId": self.gateway_order_id,
            "order": self.pending_order.to_wire(),
        })

    def _restore_pending(self) -> None:
        stored = self.session.adapter.read(PENDING_CHECKOUT_KEY)
        if stored is None:
            return

        try:
            gateway_order_id = stored["gatewayOrderId"]
            order = OrderPayload.model_validate(stored["order"])
        except (KeyError, TypeError, ValidationError) as e:
            logger.warning(f"Ignoring malformed pending checkout: {e}")
            self.session.adapter.remove(PENDING_CHECKOUT_KEY)
            return

        if not isinstance(gateway_order_id, str) or not gateway_order_id:
            self.session.adapter.remove(PENDING_CHECKOUT_KEY)
            return

        self.pending_order = order
        self.gateway_order_id = gateway_order_id
        self.state = CheckoutState.GATEWAY_OPEN
        logger.info(f"Restored open payment {gateway_order_id}")

    def _abandon(self) -> None:
        self.pending_order = None
        self.gateway_order_id = None
        self.session.adapter.remove(PENDING_CHECKOUT_KEY)

    def _record_unverified(self, outcome: GatewaySuccess, detail: str) -> None:
        records = self.session.adapter.read(UNVERIFIED_PAYMENTS_KEY)
        if not isinstance(records, list):
            records = []
        records.append({
            "razorpay_order_id": outcome.razorpay_order_id,
            "razorpay_payment_id": outcome.razorpay_payment_id,
            "detail": detail,
        })
        self.session.adapter.write(UNVERIFIED_PAYMENTS_KEY, records)
