from enum import Enum


class CheckoutState(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    AWAITING_GATEWAY = "awaiting_gateway"
    GATEWAY_OPEN = "gateway_open"
    VERIFYING = "verifying"
    CONFIRMED = "confirmed"


class PaymentMethod(str, Enum):
    COD = "COD"
    ONLINE = "ONLINE"


ALLOWED_TRANSITIONS = {
    CheckoutState.IDLE: [CheckoutState.SUBMITTING, CheckoutState.AWAITING_GATEWAY],
    CheckoutState.SUBMITTING: [CheckoutState.CONFIRMED, CheckoutState.IDLE],
    CheckoutState.AWAITING_GATEWAY: [CheckoutState.GATEWAY_OPEN, CheckoutState.IDLE],
    CheckoutState.GATEWAY_OPEN: [CheckoutState.VERIFYING, CheckoutState.IDLE],
    CheckoutState.VERIFYING: [CheckoutState.CONFIRMED, CheckoutState.IDLE],
    CheckoutState.CONFIRMED: [CheckoutState.IDLE],
}

# submit is disabled while a request or the gateway UI is in flight
IN_FLIGHT_STATES = {
    CheckoutState.SUBMITTING,
    CheckoutState.AWAITING_GATEWAY,
    CheckoutState.GATEWAY_OPEN,
    CheckoutState.VERIFYING,
}
