from fastapi import APIRouter, Depends, HTTPException

from app.dependencies.session import get_storefront_session
from app.notifications import CheckoutEvent, dispatch_checkout_event
from app.schemas.cart_schemas import CartAddRequest, CartResponse, CartUpdateRequest
from app.services.api_client import ApiError
from app.services.session_service import StorefrontSession
from app.utils.api_errors import to_http_exception

router = APIRouter()


def cart_response(session: StorefrontSession) -> CartResponse:
    return CartResponse(
        items=session.cart.items,
        item_count=session.cart.item_count,
        summary=session.totals(),
    )


# View Cart

@router.get("/", response_model=CartResponse)
def get_cart(session: StorefrontSession = Depends(get_storefront_session)):
    return cart_response(session)


# Add to Cart

@router.post("/add")
def add_to_cart(
    data: CartAddRequest,
    session: StorefrontSession = Depends(get_storefront_session),
):
    product = data.product
    if product is None:
        # snapshot name/price/image from the catalog at add-time
        try:
            product = session.api.get_product(data.product_id)
        except ApiError as e:
            if e.status_code == 404:
                raise HTTPException(status_code=404, detail="Product not found")
            raise to_http_exception(e)

    try:
        item = session.add_item(product, data.quantity)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    popup = dispatch_checkout_event(
        event=CheckoutEvent.CART_ITEM_ADDED,
        extra={
            "popup_title": "Added to Cart",
            "popup_message": f"{item.name} has been added to your cart",
        },
    )

    return {
        "message": "Added to cart",
        "item": item,
        "popup": popup,
        "cart": cart_response(session),
    }


# Update Cart

@router.put("/update/{item_id}", response_model=CartResponse)
def update_cart_item(
    item_id: str,
    data: CartUpdateRequest,
    session: StorefrontSession = Depends(get_storefront_session),
):
    session.set_quantity(item_id, data.quantity)
    return cart_response(session)


# Remove Cart

@router.delete("/remove/{item_id}", response_model=CartResponse)
def remove_item(
    item_id: str,
    session: StorefrontSession = Depends(get_storefront_session),
):
    session.remove_item(item_id)
    return cart_response(session)


# Clear Cart

@router.delete("/clear", response_model=CartResponse)
def clear_cart_endpoint(session: StorefrontSession = Depends(get_storefront_session)):
    session.clear_cart()
    return cart_response(session)
