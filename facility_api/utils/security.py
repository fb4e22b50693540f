"""
Bearer-token handling.

The facility dashboard signs in against the identity provider; this service
only checks the signature and reads who is calling (`sub`) and as what
(`role`). `issue_token` exists for local development and the test suite.
"""
from datetime import datetime, timedelta, timezone

from jose import JWTError, ExpiredSignatureError, jwt

from facility_api.config import settings
from facility_api.utils.exceptions import TokenExpiredException, UnauthorizedException

TOKEN_TYPE = "access"


def create_access_token(user_id: int, role: str, expires_minutes: int | None = None) -> str:
    lifetime = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES if expires_minutes is None
                         else expires_minutes)
    claims = {
        "sub":  str(user_id),
        "role": role,
        "type": TOKEN_TYPE,
        "exp":  datetime.now(timezone.utc) + lifetime,
    }
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def verify_access_token(token: str) -> dict:
    """Decoded claims, or 401 (TOKEN_EXPIRED when only the expiry is wrong)."""
    try:
        claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except ExpiredSignatureError:
        raise TokenExpiredException()
    except JWTError:
        raise UnauthorizedException("Invalid or malformed token")

    if claims.get("type") != TOKEN_TYPE:
        raise UnauthorizedException("Invalid token type")
    return claims
