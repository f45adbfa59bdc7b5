from fastapi import APIRouter, Depends, HTTPException

from app.dependencies.session import get_storefront_session, require_user
from app.schemas.user_schemas import ProfileUpdate, UserLogin, UserRegister
from app.services.api_client import ApiError
from app.services.session_service import StorefrontSession
from app.utils.api_errors import to_http_exception

router = APIRouter()


def _auth_response(session: StorefrontSession, redirect_to: str) -> dict:
    return {
        "user": session.user.model_dump(by_alias=True),
        "redirect_to": redirect_to,
        "cart_items": session.cart.item_count,
    }


# -------- AUTH ROUTES --------

@router.post("/login")
def login(payload: UserLogin, session: StorefrontSession = Depends(get_storefront_session)):
    try:
        redirect_to = session.login(payload.email, payload.password)
    except ApiError as e:
        raise to_http_exception(e)
    except ValueError:
        raise HTTPException(502, "Invalid login response from the store server")

    return _auth_response(session, redirect_to)


@router.post("/register")
def register(payload: UserRegister, session: StorefrontSession = Depends(get_storefront_session)):
    try:
        redirect_to = session.register(payload.model_dump(exclude_none=True))
    except ApiError as e:
        raise to_http_exception(e)
    except ValueError:
        raise HTTPException(502, "Invalid registration response from the store server")

    return _auth_response(session, redirect_to)


@router.post("/logout")
def logout(session: StorefrontSession = Depends(get_storefront_session)):
    session.logout()
    return {"message": "Logged out"}


@router.get("/me")
def me(session: StorefrontSession = Depends(require_user)):
    return session.user.model_dump(by_alias=True)


@router.put("/profile")
def update_profile(
    payload: ProfileUpdate,
    session: StorefrontSession = Depends(require_user),
):
    try:
        user = session.update_profile(payload.model_dump(by_alias=True, exclude_none=True))
    except ApiError as e:
        raise to_http_exception(e)

    return user.model_dump(by_alias=True)
