from fastapi import APIRouter, Depends, HTTPException

from app.dependencies.session import require_user
from app.routes.cart import cart_response
from app.services.api_client import ApiError
from app.services.session_service import StorefrontSession
from app.services.wishlist_service import move_to_cart
from app.utils.api_errors import to_http_exception

router = APIRouter()


@router.get("/")
def get_wishlist(session: StorefrontSession = Depends(require_user)):
    try:
        return {"items": session.api.get_wishlist(session.token)}
    except ApiError as e:
        raise to_http_exception(e)


@router.post("/{product_id}/move-to-cart")
def move_wishlist_item_to_cart(
    product_id: str,
    session: StorefrontSession = Depends(require_user),
):
    try:
        item = move_to_cart(session, product_id)
    except ApiError as e:
        raise to_http_exception(e)
    except ValueError as e:
        raise HTTPException(422, str(e))

    if item is None:
        raise HTTPException(404, "Wishlist item not found")

    return {"message": "Moved to cart", "item": item, "cart": cart_response(session)}


@router.delete("/remove/{product_id}")
def remove_from_wishlist(
    product_id: str,
    session: StorefrontSession = Depends(require_user),
):
    try:
        session.api.remove_from_wishlist(product_id, session.token)
    except ApiError as e:
        raise to_http_exception(e)

    return {"message": "Removed from wishlist"}


@router.delete("/clear")
def clear_wishlist(session: StorefrontSession = Depends(require_user)):
    try:
        session.api.clear_wishlist(session.token)
    except ApiError as e:
        raise to_http_exception(e)

    return {"message": "Wishlist cleared"}
