from fastapi import APIRouter, Depends, HTTPException

from app.dependencies.session import require_user
from app.services.api_client import ApiError
from app.services.session_service import StorefrontSession
from app.utils.api_errors import to_http_exception

router = APIRouter()


@router.get("/my-orders")
def my_orders(session: StorefrontSession = Depends(require_user)):
    try:
        orders = session.api.list_my_orders(session.token)
    except ApiError as e:
        raise to_http_exception(e)

    return {"orders": orders, "count": len(orders)}


@router.get("/confirmation/{order_id}")
def order_confirmation(
    order_id: str,
    session: StorefrontSession = Depends(require_user),
):
    # snapshot from the checkout that just finished, otherwise ask the backend
    last = session.last_order or {}
    if str(last.get("_id") or last.get("id") or "") == order_id:
        return {"order": last}

    try:
        order = session.api.get_order(order_id, session.token)
    except ApiError as e:
        if e.status_code == 404:
            raise HTTPException(404, "Order not found")
        raise to_http_exception(e)

    return {"order": order}
