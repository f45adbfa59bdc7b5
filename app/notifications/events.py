from enum import Enum


class CheckoutEvent(str, Enum):
    CART_ITEM_ADDED = "cart_item_added"
    ORDER_CONFIRMED = "order_confirmed"
    ORDER_FAILED = "order_failed"
    GATEWAY_UNAVAILABLE = "gateway_unavailable"
    PAYMENT_FAILED = "payment_failed"
    PAYMENT_CANCELLED = "payment_cancelled"
    PAYMENT_VERIFICATION_FAILED = "payment_verification_failed"
