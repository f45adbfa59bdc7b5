from fastapi import HTTPException

from app.services.api_client import ApiError


def to_http_exception(error: ApiError) -> HTTPException:
    # backend client errors pass through; anything else is a bad gateway
    if error.status_code and 400 <= error.status_code < 500:
        return HTTPException(status_code=error.status_code, detail=error.detail)
    return HTTPException(status_code=502, detail=error.detail)
