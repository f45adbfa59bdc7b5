from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ValidationError

from app.schemas.cart_schemas import CartLineItem, CartTotals

FREE_SHIPPING_THRESHOLD = 999
SHIPPING_FEE = 99


def _product_image(product: Mapping[str, Any]) -> str:
    if product.get("image"):
        return str(product["image"])

    images = product.get("images") or []
    if images:
        first = images[0]
        if isinstance(first, Mapping):
            return str(first.get("url") or "")
        return str(first)
    return ""


def line_item_from_product(product: Any, quantity: int) -> CartLineItem:
    """Snapshot a catalog product (model or backend dict) into a cart line."""
    if isinstance(product, CartLineItem):
        return product.model_copy(update={"quantity": quantity})

    if isinstance(product, BaseModel):
        product = product.model_dump()

    product_id = product.get("id") or product.get("_id")
    if not product_id:
        raise ValueError("Product has no id")

    return CartLineItem(
        id=str(product_id),
        name=str(product.get("name", "")),
        image=_product_image(product),
        price=product.get("price"),
        quantity=quantity,
    )


class Cart:
    """
    In-memory ordered cart for one visitor.

    Holds no storage reference; the owning session persists after each mutation.
    """

    def __init__(
        self,
        items: Optional[List[CartLineItem]] = None,
        free_shipping_threshold: float = FREE_SHIPPING_THRESHOLD,
        shipping_fee: float = SHIPPING_FEE,
    ):
        self._items: List[CartLineItem] = []
        self.free_shipping_threshold = free_shipping_threshold
        self.shipping_fee = shipping_fee
        for item in items or []:
            self.add_item(item, item.quantity)

    @classmethod
    def from_snapshot(cls, data: Any, **kwargs) -> "Cart":
        if not isinstance(data, list):
            raise ValueError("Cart snapshot must be a list")

        items = []
        for entry in data:
            if not isinstance(entry, dict):
                raise ValueError("Cart entry must be an object")
            try:
                items.append(CartLineItem.model_validate(entry))
            except ValidationError as e:
                raise ValueError(f"Invalid cart entry: {e}") from e

        return cls(items, **kwargs)

    def to_snapshot(self) -> List[Dict[str, Any]]:
        return [item.model_dump() for item in self._items]

    @property
    def items(self) -> List[CartLineItem]:
        return [item.model_copy() for item in self._items]

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self._items)

    @property
    def is_empty(self) -> bool:
        return not self._items

    def _find(self, item_id: str) -> Optional[CartLineItem]:
        for item in self._items:
            if item.id == item_id:
                return item
        return None

    def get(self, item_id: str) -> Optional[CartLineItem]:
        item = self._find(str(item_id))
        return item.model_copy() if item else None

    def add_item(self, product: Any, quantity: int = 1) -> CartLineItem:
        if quantity <= 0:
            raise ValueError("Quantity to add must be at least 1")

        line = line_item_from_product(product, quantity)
        existing = self._find(line.id)

        if existing:
            existing.quantity += quantity
            return existing.model_copy()

        self._items.append(line)
        return line.model_copy()

    def set_quantity(self, item_id: str, quantity: int) -> None:
        if quantity <= 0:
            self.remove_item(item_id)
            return

        item = self._find(str(item_id))
        if item:
            item.quantity = quantity

    def remove_item(self, item_id: str) -> None:
        self._items = [item for item in self._items if item.id != str(item_id)]

    def clear(self) -> None:
        self._items = []

    def totals(self) -> CartTotals:
        subtotal = round(sum(item.price * item.quantity for item in self._items), 2)

        # SHIPPING RULE
        shipping_fee = 0 if subtotal > self.free_shipping_threshold else self.shipping_fee

        return CartTotals(
            subtotal=subtotal,
            shipping_fee=shipping_fee,
            total=round(subtotal + shipping_fee, 2),
        )
