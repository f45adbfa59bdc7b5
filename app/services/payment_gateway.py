"""
Boundary to the third-party payment UI.

The hosted checkout runs outside this process. Whatever drives it reports back
exactly one outcome: a signed success, a failure, or the user closing it.
"""
import logging
from dataclasses import dataclass
from typing import Optional, Protocol, Union

import requests
from fastapi.concurrency import run_in_threadpool

from app.schemas.checkout_schemas import GatewayCheckoutOptions

logger = logging.getLogger(__name__)


class GatewayLoadError(Exception):
    pass


@dataclass(frozen=True)
class GatewaySuccess:
    razorpay_order_id: str
    razorpay_payment_id: str
    razorpay_signature: str

    def as_callback(self) -> dict:
        return {
            "razorpay_order_id": self.razorpay_order_id,
            "razorpay_payment_id": self.razorpay_payment_id,
            "razorpay_signature": self.razorpay_signature,
        }


@dataclass(frozen=True)
class GatewayFailure:
    code: str
    description: str = ""
    razorpay_payment_id: Optional[str] = None


@dataclass(frozen=True)
class GatewayCancelled:
    reason: str = "dismissed"


GatewayOutcome = Union[GatewaySuccess, GatewayFailure, GatewayCancelled]


class GatewayLoader(Protocol):
    async def load(self) -> None:
        """Raise GatewayLoadError when the payment UI cannot be started."""


class PaymentGateway(GatewayLoader, Protocol):
    async def open(self, options: GatewayCheckoutOptions) -> GatewayOutcome: ...


class HostedCheckoutGateway:
    """
    Loader for the browser-hosted checkout script.

    The browser opens the payment UI itself and posts the outcome back to the
    checkout routes, so only the availability probe runs here.
    """

    def __init__(
        self,
        script_url: str,
        enabled: bool = True,
        timeout: float = 5,
        http: Optional[requests.Session] = None,
    ):
        self.script_url = script_url
        self.enabled = enabled
        self.timeout = timeout
        self.http = http or requests.Session()

    def _probe(self) -> None:
        try:
            response = self.http.head(self.script_url, timeout=self.timeout, allow_redirects=True)
        except requests.RequestException as e:
            logger.error(f"Payment script unreachable: {e}")
            raise GatewayLoadError("Payment service is unavailable") from e

        if response.status_code >= 400:
            logger.error(f"Payment script returned {response.status_code}")
            raise GatewayLoadError("Payment service is unavailable")

    async def load(self) -> None:
        if not self.enabled:
            return
        await run_in_threadpool(self._probe)
