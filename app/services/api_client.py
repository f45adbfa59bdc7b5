import logging
from typing import Any, Dict, List, Optional

import requests

from app.schemas.checkout_schemas import GatewayOrderIntent

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Backend call failed. status_code is None when no response came back."""

    def __init__(self, status_code: Optional[int], detail: str):
        super().__init__(detail)
        self.status_code = status_code
        self.detail = detail


def _unwrap(body: Any) -> Any:
    # backend wraps most payloads as {success, message, data}
    if isinstance(body, dict) and "data" in body and "success" in body:
        return body["data"]
    return body


class StorefrontApiClient:
    """
    Thin client for the external store backend.

    Order creation and payment verification are sent exactly once with no
    client-side timeout; a failure is only reported when the network layer
    reports one.
    """

    def __init__(
        self,
        base_url: str,
        timeout: Optional[float] = 15,
        http: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.http = http or requests.Session()

    def _request(
        self,
        method: str,
        path: str,
        *,
        token: Optional[str] = None,
        json: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        url = f"{self.base_url}{path}"
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            response = self.http.request(
                method,
                url,
                json=json,
                headers=headers,
                timeout=timeout,
            )
        except requests.RequestException as e:
            logger.error(f"{method} {path} failed: {e}")
            raise ApiError(None, "Could not reach the store server") from e

        if response.status_code >= 400:
            detail = self._error_detail(response)
            logger.warning(f"{method} {path} returned {response.status_code}: {detail}")
            raise ApiError(response.status_code, detail)

        if response.status_code == 204 or not response.content:
            return None

        try:
            return response.json()
        except ValueError as e:
            logger.error(f"{method} {path} returned non-JSON body")
            raise ApiError(response.status_code, "Invalid response from the store server") from e

    @staticmethod
    def _error_detail(response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or f"HTTP {response.status_code}"

        if isinstance(body, dict):
            return str(body.get("message") or body.get("detail") or body)
        return str(body)

    # -------------------------
    # ORDERS / PAYMENT
    # -------------------------
    def create_cod_order(self, payload: Dict[str, Any], token: Optional[str]) -> Dict[str, Any]:
        body = _unwrap(self._request("POST", "/orders/cod", token=token, json=payload))
        order = body.get("order") if isinstance(body, dict) else None
        if not order:
            raise ApiError(None, "Order response did not include an order")
        return order

    def create_payment_order(
        self, amount: float, currency: str, token: Optional[str]
    ) -> GatewayOrderIntent:
        body = _unwrap(
            self._request(
                "POST",
                "/payment/create-order",
                token=token,
                json={"amount": amount, "currency": currency},
            )
        )
        try:
            return GatewayOrderIntent.model_validate(body)
        except ValueError as e:
            raise ApiError(None, "Payment order response was malformed") from e

    def verify_payment(
        self,
        callback: Dict[str, Any],
        order_data: Dict[str, Any],
        token: Optional[str],
    ) -> Dict[str, Any]:
        body = _unwrap(
            self._request(
                "POST",
                "/payment/verify",
                token=token,
                json={**callback, "orderData": order_data},
            )
        )
        if not isinstance(body, dict) or not body.get("success") or not body.get("order"):
            raise ApiError(None, "Payment could not be verified")
        return body["order"]

    def list_my_orders(self, token: str) -> List[Dict[str, Any]]:
        return _unwrap(self._request("GET", "/orders/my-orders", token=token, timeout=self.timeout)) or []

    def get_order(self, order_id: str, token: str) -> Dict[str, Any]:
        return _unwrap(self._request("GET", f"/orders/{order_id}", token=token, timeout=self.timeout))

    # -------------------------
    # AUTH
    # -------------------------
    def login(self, email: str, password: str) -> Dict[str, Any]:
        return _unwrap(
            self._request(
                "POST",
                "/auth/login",
                json={"email": email, "password": password},
                timeout=self.timeout,
            )
        )

    def register(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return _unwrap(self._request("POST", "/auth/register", json=data, timeout=self.timeout))

    def update_profile(self, data: Dict[str, Any], token: str) -> Dict[str, Any]:
        return _unwrap(
            self._request("PUT", "/auth/profile", token=token, json=data, timeout=self.timeout)
        )

    # -------------------------
    # CATALOG / WISHLIST
    # -------------------------
    def get_product(self, product_id: str) -> Dict[str, Any]:
        return _unwrap(self._request("GET", f"/products/{product_id}", timeout=self.timeout))

    def get_wishlist(self, token: str) -> List[Dict[str, Any]]:
        return _unwrap(self._request("GET", "/wishlist", token=token, timeout=self.timeout)) or []

    def remove_from_wishlist(self, product_id: str, token: str) -> None:
        self._request("DELETE", f"/wishlist/{product_id}", token=token, timeout=self.timeout)

    def clear_wishlist(self, token: str) -> None:
        self._request("DELETE", "/wishlist", token=token, timeout=self.timeout)
