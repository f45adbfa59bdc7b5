from jose import jwt
from jose.exceptions import JWTError
from datetime import datetime, timezone
from typing import Optional


def read_token_claims(token: str) -> Optional[dict]:
    """
    Claims of a backend-issued JWT without checking the signature.

    The backend owns the signing key; this side only needs the expiry to
    decide whether a stored login is still worth presenting.
    """
    try:
        return jwt.get_unverified_claims(token)
    except JWTError:
        return None


def is_token_expired(token: str, now: Optional[datetime] = None) -> bool:
    claims = read_token_claims(token)

    # opaque or unreadable token: let the backend decide
    if not claims or "exp" not in claims:
        return False

    now = now or datetime.now(timezone.utc)
    try:
        return now.timestamp() >= float(claims["exp"])
    except (TypeError, ValueError):
        return False
