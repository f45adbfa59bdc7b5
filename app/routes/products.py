from fastapi import APIRouter, Depends, HTTPException

from app.dependencies.session import get_storefront_session
from app.services.api_client import ApiError
from app.services.recently_viewed import RecentlyViewed
from app.services.session_service import StorefrontSession
from app.utils.api_errors import to_http_exception

router = APIRouter()


def recently_viewed_for(session: StorefrontSession) -> RecentlyViewed:
    return RecentlyViewed(session.adapter, session.settings.recently_viewed_limit)


@router.get("/products/{product_id}")
def product_detail(
    product_id: str,
    session: StorefrontSession = Depends(get_storefront_session),
):
    try:
        product = session.api.get_product(product_id)
    except ApiError as e:
        if e.status_code == 404:
            raise HTTPException(404, "Product not found")
        raise to_http_exception(e)

    if isinstance(product, dict):
        recently_viewed_for(session).record(product)

    return product


@router.get("/recently-viewed")
def list_recently_viewed(session: StorefrontSession = Depends(get_storefront_session)):
    return {"items": recently_viewed_for(session).list()}


@router.delete("/recently-viewed/{product_id}")
def remove_recently_viewed(
    product_id: str,
    session: StorefrontSession = Depends(get_storefront_session),
):
    return {"items": recently_viewed_for(session).remove(product_id)}


@router.delete("/recently-viewed")
def clear_recently_viewed(session: StorefrontSession = Depends(get_storefront_session)):
    recently_viewed_for(session).clear()
    return {"items": []}
