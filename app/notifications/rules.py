import logging

from app.notifications.events import CheckoutEvent
from app.notifications.channels import Channel, PopupVariant


NOTIFICATION_RULES = {

    CheckoutEvent.CART_ITEM_ADDED: {
        Channel.POPUP_USER: PopupVariant.SUCCESS,
    },

    CheckoutEvent.ORDER_CONFIRMED: {
        Channel.POPUP_USER: PopupVariant.SUCCESS,
        Channel.LOG: logging.INFO,
    },

    CheckoutEvent.ORDER_FAILED: {
        Channel.POPUP_USER: PopupVariant.DESTRUCTIVE,
        Channel.LOG: logging.WARNING,
    },

    CheckoutEvent.GATEWAY_UNAVAILABLE: {
        Channel.POPUP_USER: PopupVariant.DESTRUCTIVE,
        Channel.LOG: logging.ERROR,
    },

    CheckoutEvent.PAYMENT_FAILED: {
        Channel.POPUP_USER: PopupVariant.DESTRUCTIVE,
        Channel.LOG: logging.WARNING,
    },

    # user closed the payment window, nothing to alarm about
    CheckoutEvent.PAYMENT_CANCELLED: {
        Channel.POPUP_USER: PopupVariant.INFO,
        Channel.LOG: logging.INFO,
    },

    CheckoutEvent.PAYMENT_VERIFICATION_FAILED: {
        Channel.POPUP_USER: PopupVariant.DESTRUCTIVE,
        Channel.LOG: logging.ERROR,
    },
}
