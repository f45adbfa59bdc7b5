import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError

from app.config import Settings, settings as default_settings
from app.schemas.cart_schemas import CartLineItem, CartTotals
from app.schemas.checkout_schemas import ShippingAddress
from app.schemas.user_schemas import AuthUser
from app.services.api_client import StorefrontApiClient
from app.services.cart_service import Cart
from app.services.checkout_service import CheckoutOrchestrator
from app.services.kv_store import KeyValueStore
from app.services.store_adapter import (
    CART_KEY,
    REDIRECT_KEY,
    TOKEN_KEY,
    USER_KEY,
    StoreAdapter,
)
from app.utils.token import is_token_expired

logger = logging.getLogger(__name__)

CHECKOUT_PATH = "/checkout"
LOGIN_PATH = "/login"
STOREFRONT_PATH = "/"


class AuthRequiredError(Exception):
    pass


@dataclass
class CheckoutGate:
    allowed: bool
    redirect_to: Optional[str] = None
    shipping_address: Optional[ShippingAddress] = None


class StorefrontSession:
    """
    Everything one visitor carries between page loads: the cart, the login,
    and where to send them after logging in.
    """

    def __init__(
        self,
        adapter: StoreAdapter,
        api: StorefrontApiClient,
        settings: Settings = default_settings,
    ):
        self.adapter = adapter
        self.api = api
        self.settings = settings
        self.cart = self._new_cart()
        self.user: Optional[AuthUser] = None
        self.token: Optional[str] = None
        self.last_order: Optional[Dict[str, Any]] = None
        self._checkout = None
        self.hydrate()

    def _new_cart(self, snapshot=None) -> Cart:
        kwargs = {
            "free_shipping_threshold": self.settings.free_shipping_threshold,
            "shipping_fee": self.settings.shipping_fee,
        }
        if snapshot is None:
            return Cart(**kwargs)
        return Cart.from_snapshot(snapshot, **kwargs)

    # -------------------------
    # LOAD
    # -------------------------
    def hydrate(self) -> None:
        # checkout state, including an open gateway, is rebuilt from storage on next use
        self._checkout = None

        stored = self.adapter.read(CART_KEY)
        if stored is None:
            self.cart = self._new_cart()
        else:
            try:
                self.cart = self._new_cart(stored)
            except ValueError as e:
                logger.warning(f"Ignoring malformed stored cart: {e}")
                self.adapter.remove(CART_KEY)
                self.cart = self._new_cart()

        self._restore_auth()

    def _restore_auth(self) -> None:
        token = self.adapter.read(TOKEN_KEY)
        user = self.adapter.read(USER_KEY)

        if not isinstance(token, str) or not isinstance(user, dict):
            self.token, self.user = None, None
            return

        if is_token_expired(token):
            logger.info("Stored login expired, continuing as guest")
            self._drop_auth()
            return

        try:
            self.user = AuthUser.model_validate(user)
            self.token = token
        except ValidationError:
            logger.warning("Ignoring malformed stored user")
            self._drop_auth()

    # -------------------------
    # CART (write-through)
    # -------------------------
    def persist_cart(self) -> None:
        self.adapter.write(CART_KEY, self.cart.to_snapshot())

    def add_item(self, product: Any, quantity: int = 1) -> CartLineItem:
        item = self.cart.add_item(product, quantity)
        self.persist_cart()
        return item

    def set_quantity(self, item_id: str, quantity: int) -> None:
        self.cart.set_quantity(item_id, quantity)
        self.persist_cart()

    def remove_item(self, item_id: str) -> None:
        self.cart.remove_item(item_id)
        self.persist_cart()

    def clear_cart(self) -> None:
        self.cart.clear()
        self.persist_cart()

    def totals(self) -> CartTotals:
        return self.cart.totals()

    # -------------------------
    # AUTH
    # -------------------------
    @property
    def is_authenticated(self) -> bool:
        return self.user is not None and bool(self.token)

    def require_user(self) -> AuthUser:
        if not self.is_authenticated:
            raise AuthRequiredError("Login required")
        return self.user

    def _store_auth(self, payload: Dict[str, Any]) -> AuthUser:
        token = payload.get("token") if isinstance(payload, dict) else None
        if not token:
            raise ValueError("Login response did not include a token")

        user_data = {k: v for k, v in payload.items() if k != "token"}
        user = AuthUser.model_validate(user_data)

        self.token = token
        self.user = user
        self.adapter.write(TOKEN_KEY, token)
        self.adapter.write(USER_KEY, user_data)
        return user

    def _drop_auth(self) -> None:
        self.token, self.user = None, None
        self.adapter.remove(TOKEN_KEY)
        self.adapter.remove(USER_KEY)

    @property
    def intended_destination(self) -> Optional[str]:
        destination = self.adapter.read(REDIRECT_KEY)
        return destination if isinstance(destination, str) else None

    def _take_destination(self) -> str:
        destination = self.intended_destination or STOREFRONT_PATH
        self.adapter.remove(REDIRECT_KEY)
        return destination

    def login(self, email: str, password: str) -> str:
        """
        Log in and return where the visitor should go next.

        The guest cart is carried over untouched; there is no server cart to
        merge it with.
        """
        self._store_auth(self.api.login(email, password))
        logger.info(f"User {self.user.id} logged in with {self.cart.item_count} cart item(s)")
        return self._take_destination()

    def register(self, data: Dict[str, Any]) -> str:
        self._store_auth(self.api.register(data))
        return self._take_destination()

    def logout(self) -> None:
        self._drop_auth()

    def update_profile(self, data: Dict[str, Any]) -> AuthUser:
        self.require_user()
        updated = self.api.update_profile(data, self.token)
        user_data = {k: v for k, v in (updated or {}).items() if k != "token"}
        self.user = AuthUser.model_validate(user_data)
        self.adapter.write(USER_KEY, user_data)
        return self.user

    # -------------------------
    # CHECKOUT ENTRY
    # -------------------------
    def shipping_defaults(self) -> ShippingAddress:
        address = ShippingAddress(country=self.settings.default_country)
        if not self.user:
            return address

        saved = self.user.address
        return ShippingAddress(
            full_name=self.user.name or "",
            phone=self.user.phone or "",
            email=self.user.email or "",
            street=(saved.street if saved else None) or "",
            city=(saved.city if saved else None) or "",
            state=(saved.state if saved else None) or "",
            zip_code=(saved.zip_code if saved else None) or "",
            country=(saved.country if saved else None) or self.settings.default_country,
        )

    def request_checkout(self) -> CheckoutGate:
        if not self.is_authenticated:
            self.adapter.write(REDIRECT_KEY, CHECKOUT_PATH)
            return CheckoutGate(
                allowed=False,
                redirect_to=f"{LOGIN_PATH}?next={CHECKOUT_PATH}",
            )

        if self.cart.is_empty:
            return CheckoutGate(allowed=False, redirect_to=STOREFRONT_PATH)

        return CheckoutGate(allowed=True, shipping_address=self.shipping_defaults())

    @property
    def checkout(self):
        if self._checkout is None:
            self._checkout = CheckoutOrchestrator(self)
        return self._checkout


class SessionRegistry:
    """Live visitor sessions keyed by cookie id, least recently used evicted first."""

    def __init__(
        self,
        store_factory: Callable[[str], KeyValueStore],
        api: StorefrontApiClient,
        settings: Settings = default_settings,
        max_sessions: Optional[int] = None,
    ):
        self.store_factory = store_factory
        self.api = api
        self.settings = settings
        self.max_sessions = max_sessions or settings.max_sessions
        self._sessions: "OrderedDict[str, StorefrontSession]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, session_id: str) -> StorefrontSession:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is not None:
                self._sessions.move_to_end(session_id)
                return session

            session = StorefrontSession(
                StoreAdapter(self.store_factory(session_id)),
                self.api,
                self.settings,
            )
            self._sessions[session_id] = session

            while len(self._sessions) > self.max_sessions:
                evicted, _ = self._sessions.popitem(last=False)
                logger.debug(f"Evicted session {evicted}")

            return session

    def __len__(self) -> int:
        return len(self._sessions)
