import json
import logging
from typing import Any

from app.services.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

CART_KEY = "cartItems"
TOKEN_KEY = "token"
USER_KEY = "user"
RECENTLY_VIEWED_KEY = "recentlyViewed"
UNVERIFIED_PAYMENTS_KEY = "unverifiedPayments"
PENDING_CHECKOUT_KEY = "pendingCheckout"
REDIRECT_KEY = "redirectAfterLogin"


class StoreAdapter:
    """JSON values over a raw string store. Never raises on bad stored data."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    def read(self, key: str) -> Any:
        raw = self.store.get(key)
        if raw is None:
            return None

        try:
            return json.loads(raw)
        except ValueError:
            # corrupted value is the same as no value for every caller
            logger.warning(f"Dropping unparseable value under '{key}'")
            self.store.delete(key)
            return None

    def write(self, key: str, value: Any) -> None:
        if isinstance(value, (list, tuple, dict)) and not value:
            self.store.delete(key)
            return

        self.store.set(key, json.dumps(value, ensure_ascii=False))

    def remove(self, key: str) -> None:
        self.store.delete(key)
