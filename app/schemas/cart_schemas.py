from pydantic import BaseModel, Field, field_validator, model_validator
from typing import List, Optional


class CartLineItem(BaseModel):
    id: str = Field(..., min_length=1)
    name: str
    image: str = ""
    price: float = Field(..., ge=0)     # unit price snapshot at add-time
    quantity: int = Field(default=1, ge=1)

    @field_validator("price", mode="before")
    @classmethod
    def price_must_be_number(cls, v):
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise ValueError("price must be a number")
        return v

    @field_validator("quantity", mode="before")
    @classmethod
    def quantity_must_be_integer(cls, v):
        if isinstance(v, bool) or not isinstance(v, int):
            raise ValueError("quantity must be an integer")
        return v


class CartTotals(BaseModel):
    subtotal: float
    shipping_fee: float
    total: float


class CartResponse(BaseModel):
    items: List[CartLineItem]
    item_count: int
    summary: CartTotals


class CartAddRequest(BaseModel):
    product_id: Optional[str] = None
    product: Optional[CartLineItem] = None
    quantity: int = Field(default=1, ge=1)

    @model_validator(mode="after")
    def product_or_id(self):
        if not self.product_id and not self.product:
            raise ValueError("product_id or product is required")
        return self


class CartUpdateRequest(BaseModel):
    quantity: int
