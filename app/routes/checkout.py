from fastapi import APIRouter, Depends, Request, Response

from app.dependencies.session import get_storefront_session
from app.schemas.checkout_schemas import (
    CheckoutErrorKind,
    CheckoutRequest,
    CheckoutResult,
    GatewayCallback,
    GatewayFailureReport,
)
from app.services.payment_gateway import GatewayCancelled, GatewayFailure, GatewaySuccess
from app.services.session_service import StorefrontSession

router = APIRouter()

ERROR_STATUS = {
    CheckoutErrorKind.VALIDATION: 422,
    CheckoutErrorKind.IN_PROGRESS: 409,
    CheckoutErrorKind.NO_PAYMENT_IN_PROGRESS: 409,
    CheckoutErrorKind.ORDER_FAILED: 502,
    CheckoutErrorKind.GATEWAY_UNAVAILABLE: 503,
    CheckoutErrorKind.PAYMENT_FAILED: 402,
    CheckoutErrorKind.PAYMENT_VERIFICATION: 402,
}


# Status codes go on the injected Response so the session cookie set by the
# dependency survives on every outcome.

def checkout_response(result: CheckoutResult, response: Response) -> dict:
    if result.error:
        response.status_code = ERROR_STATUS[result.error.kind]
    return result.model_dump(mode="json", exclude_none=True)


# Checkout page: address defaults + summary

@router.get("/")
def checkout_page(
    response: Response,
    session: StorefrontSession = Depends(get_storefront_session),
):
    gate = session.request_checkout()
    if not gate.allowed:
        response.status_code = 303
        response.headers["Location"] = gate.redirect_to
        return {"redirect_to": gate.redirect_to}

    return {
        "shipping_address": gate.shipping_address.model_dump(by_alias=True),
        "items": session.cart.items,
        "summary": session.totals(),
        "state": session.checkout.state,
    }


def _login_required(session: StorefrontSession, response: Response):
    # an empty cart is left to the orchestrator, which redirects to the storefront
    if session.is_authenticated:
        return None
    gate = session.request_checkout()
    response.status_code = 401
    return {"detail": "Login required", "redirect_to": gate.redirect_to}


@router.post("/cod")
def place_cod_order(
    data: CheckoutRequest,
    response: Response,
    session: StorefrontSession = Depends(get_storefront_session),
):
    blocked = _login_required(session, response)
    if blocked:
        return blocked

    return checkout_response(session.checkout.submit_cod(data.shipping_address), response)


@router.post("/online")
async def start_online_payment(
    data: CheckoutRequest,
    request: Request,
    response: Response,
    session: StorefrontSession = Depends(get_storefront_session),
):
    blocked = _login_required(session, response)
    if blocked:
        return blocked

    result = await session.checkout.begin_online(
        data.shipping_address,
        request.app.state.gateway,
    )
    return checkout_response(result, response)


@router.post("/online/verify")
async def verify_online_payment(
    payload: GatewayCallback,
    response: Response,
    session: StorefrontSession = Depends(get_storefront_session),
):
    outcome = GatewaySuccess(
        razorpay_order_id=payload.razorpay_order_id,
        razorpay_payment_id=payload.razorpay_payment_id,
        razorpay_signature=payload.razorpay_signature,
    )
    return checkout_response(await session.checkout.complete_online(outcome), response)


@router.post("/online/failed")
async def report_failed_payment(
    payload: GatewayFailureReport,
    response: Response,
    session: StorefrontSession = Depends(get_storefront_session),
):
    outcome = GatewayFailure(
        code=payload.code,
        description=payload.description,
        razorpay_payment_id=payload.razorpay_payment_id,
    )
    return checkout_response(await session.checkout.complete_online(outcome), response)


@router.post("/online/dismiss")
async def dismiss_online_payment(
    response: Response,
    session: StorefrontSession = Depends(get_storefront_session),
):
    return checkout_response(await session.checkout.complete_online(GatewayCancelled()), response)


@router.get("/status")
def checkout_status(
    response: Response,
    session: StorefrontSession = Depends(get_storefront_session),
):
    return checkout_response(session.checkout.status(), response)
