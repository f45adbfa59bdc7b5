# app/schemas/checkout_schemas.py
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional

from app.constants.checkout_status import CheckoutState, PaymentMethod


class ShippingAddress(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    full_name: str = Field(default="", alias="fullName")
    phone: str = ""
    email: str = ""
    street: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = Field(default="", alias="zipCode")
    country: str = ""


class CheckoutRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    shipping_address: ShippingAddress = Field(alias="shippingAddress")


class OrderItemPayload(BaseModel):
    product: str
    name: str
    image: str = ""
    quantity: int
    price: float


class OrderPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    items: List[OrderItemPayload]
    shipping_address: ShippingAddress = Field(alias="shippingAddress")
    payment_method: PaymentMethod = Field(alias="paymentMethod")
    items_price: float = Field(alias="itemsPrice")
    shipping_price: float = Field(alias="shippingPrice")
    total_price: float = Field(alias="totalPrice")

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class GatewayOrderIntent(BaseModel):
    id: str
    amount: float
    currency: str


class GatewayPrefill(BaseModel):
    name: str = ""
    email: str = ""
    contact: str = ""


class GatewayCheckoutOptions(BaseModel):
    """What the hosted payment UI needs to open for one order intent."""
    key: str
    order_id: str
    amount: float
    currency: str
    name: str
    description: str = ""
    prefill: GatewayPrefill = GatewayPrefill()


class GatewayCallback(BaseModel):
    razorpay_order_id: str
    razorpay_payment_id: str
    razorpay_signature: str


class GatewayFailureReport(BaseModel):
    code: str = "PAYMENT_FAILED"
    description: str = ""
    razorpay_payment_id: Optional[str] = None


class CheckoutErrorKind(str, Enum):
    VALIDATION = "validation"
    IN_PROGRESS = "in_progress"
    NO_PAYMENT_IN_PROGRESS = "no_payment_in_progress"
    ORDER_FAILED = "order_failed"
    GATEWAY_UNAVAILABLE = "gateway_unavailable"
    PAYMENT_FAILED = "payment_failed"
    PAYMENT_VERIFICATION = "payment_verification"


class CheckoutError(BaseModel):
    kind: CheckoutErrorKind
    message: str
    retry_allowed: bool = True
    reference: Optional[str] = None


class CheckoutResult(BaseModel):
    state: CheckoutState
    order: Optional[Dict[str, Any]] = None
    order_id: Optional[str] = None
    redirect_to: Optional[str] = None
    gateway_options: Optional[GatewayCheckoutOptions] = None
    error: Optional[CheckoutError] = None
    field_errors: Dict[str, str] = {}
    notification: Optional[Dict[str, Any]] = None

    @property
    def ok(self) -> bool:
        return self.error is None and not self.field_errors
