import logging
from typing import Any, Dict, Optional

from app.schemas.cart_schemas import CartLineItem
from app.services.api_client import ApiError

logger = logging.getLogger(__name__)


def _wishlist_product(entry: Dict[str, Any]) -> Dict[str, Any]:
    # entries come back either as {product: {...}} or as bare products
    product = entry.get("product")
    return product if isinstance(product, dict) else entry


def find_wishlist_product(wishlist, product_id: str) -> Optional[Dict[str, Any]]:
    for entry in wishlist or []:
        if not isinstance(entry, dict):
            continue
        product = _wishlist_product(entry)
        if str(product.get("_id") or product.get("id") or "") == str(product_id):
            return product
    return None


def move_to_cart(session, product_id: str) -> Optional[CartLineItem]:
    """
    Add a wishlist product to the cart, then drop it from the wishlist.

    Returns None when the product is not on the visitor's wishlist.
    """
    user = session.require_user()

    wishlist = session.api.get_wishlist(session.token)
    product = find_wishlist_product(wishlist, product_id)
    if product is None:
        return None

    item = session.add_item(product, 1)

    # cart already holds the item; a failed removal only leaves a stale wishlist entry
    try:
        session.api.remove_from_wishlist(product_id, session.token)
    except ApiError as e:
        logger.warning(f"Moved {product_id} to cart but could not drop it from the wishlist: {e.detail}")

    logger.info(f"User {user.id} moved {product_id} from wishlist to cart")
    return item
