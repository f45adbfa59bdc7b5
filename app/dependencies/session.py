from uuid import uuid4

from fastapi import Depends, HTTPException, Request, Response, status

from app.services.session_service import StorefrontSession


def get_storefront_session(request: Request, response: Response) -> StorefrontSession:
    """Visitor session for the request cookie, issuing a cookie on first visit."""
    registry = request.app.state.sessions
    cookie_name = registry.settings.session_cookie_name

    session_id = request.cookies.get(cookie_name)
    if not session_id:
        session_id = uuid4().hex
        response.set_cookie(
            cookie_name,
            session_id,
            httponly=True,
            samesite="lax",
            max_age=60 * 60 * 24 * 30,
        )

    return registry.get(session_id)


def require_user(session: StorefrontSession = Depends(get_storefront_session)) -> StorefrontSession:
    if not session.is_authenticated:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Login required",
        )
    return session
