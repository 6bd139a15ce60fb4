from fastapi import Depends, Header, HTTPException
from jose import JWTError, jwt

from storeapi.config import Settings, get_settings


def require_admin(
    authorization: str = Header(None),
    settings: Settings = Depends(get_settings),
):
    """Gate administrative actions behind an HS256 bearer token with role=admin."""
    try:
        scheme, token = (authorization or "").split()
        if scheme.lower() != "bearer" or not settings.jwt_secret:
            raise ValueError("unsupported authorization")
        claims = jwt.decode(token, settings.jwt_secret, algorithms=["HS256"])
    except (ValueError, JWTError):
        raise HTTPException(status_code=401, detail="Invalid or missing token")

    if claims.get("role") != "admin":
        raise HTTPException(status_code=403, detail="Admin access required")
    return claims
