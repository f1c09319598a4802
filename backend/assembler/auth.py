from datetime import datetime, timezone

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from assembler.config import settings
from assembler.errors import AuthError

security = HTTPBearer(auto_error=False)


def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> str:
    """identify the caller from a bearer token issued by the auth service"""
    if credentials is None:
        raise AuthError("Authorization required")
    if not settings.jwt_secret_key:
        raise AuthError("Token verification is not configured")

    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except jwt.ExpiredSignatureError:
        raise AuthError("Token expired")
    except jwt.PyJWTError:
        raise AuthError("Unauthorized")

    user_id = payload.get("sub") or payload.get("user_id")
    if not user_id:
        raise AuthError("Unauthorized")
    return str(user_id)


def issue_token(user_id: str, expires_at: datetime | None = None) -> str:
    claims = {"sub": user_id, "iat": datetime.now(timezone.utc)}
    if expires_at is not None:
        claims["exp"] = expires_at
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)
