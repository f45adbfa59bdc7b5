import logging

from app.notifications.rules import NOTIFICATION_RULES
from app.notifications.channels import Channel
from app.notifications.events import CheckoutEvent

logger = logging.getLogger(__name__)


def popup(title: str, message: str, variant) -> dict:
    return {
        "title": title,
        "message": message,
        "variant": variant.value,
    }


def dispatch_checkout_event(
    *,
    event: CheckoutEvent,
    extra: dict | None = None,
    notify_user: bool = True,
):
    """
    Central notification dispatcher.

    Handles:
    - user popup (toast) payloads returned to the UI
    - log lines for support and monitoring
    """

    rules = NOTIFICATION_RULES.get(event, {})
    extra = extra or {}

    response_popup = None

    # -------------------------
    # USER POPUP
    # -------------------------
    variant = rules.get(Channel.POPUP_USER)
    if notify_user and variant:
        response_popup = popup(
            extra.get("popup_title", "Checkout"),
            extra.get("popup_message", ""),
            variant,
        )

    # -------------------------
    # LOG
    # -------------------------
    level = rules.get(Channel.LOG)
    if level:
        logger.log(
            level,
            f"{event.value}: {extra.get('log_message') or extra.get('popup_message', '')}",
        )

    return response_popup
