import time
from typing import Any, Dict, List

from app.services.store_adapter import RECENTLY_VIEWED_KEY, StoreAdapter


class RecentlyViewed:
    """Most recently viewed products first, one entry per product."""

    def __init__(self, adapter: StoreAdapter, limit: int = 10):
        self.adapter = adapter
        self.limit = limit

    def _load(self) -> List[Dict[str, Any]]:
        stored = self.adapter.read(RECENTLY_VIEWED_KEY)
        if not isinstance(stored, list):
            return []
        return [p for p in stored if isinstance(p, dict) and p.get("_id")]

    def list(self) -> List[Dict[str, Any]]:
        products = sorted(self._load(), key=lambda p: p.get("viewedAt", 0), reverse=True)
        return products[: self.limit]

    def record(self, product: Dict[str, Any]) -> List[Dict[str, Any]]:
        product_id = str(product.get("_id") or product.get("id") or "")
        if not product_id:
            return self.list()

        products = [p for p in self.list() if p["_id"] != product_id]
        products.insert(0, {
            **product,
            "_id": product_id,
            "viewedAt": int(time.time() * 1000),
        })
        products = products[: self.limit]

        self.adapter.write(RECENTLY_VIEWED_KEY, products)
        return products

    def remove(self, product_id: str) -> List[Dict[str, Any]]:
        products = [p for p in self.list() if p["_id"] != str(product_id)]
        self.adapter.write(RECENTLY_VIEWED_KEY, products)
        return products

    def clear(self) -> None:
        self.adapter.remove(RECENTLY_VIEWED_KEY)
