"""
Bearer token authentication for the FastAPI API.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
import structlog
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel

from library.errors import Forbidden, Unauthorized, ValidationError
from utilities.config import LibraryConfig

logger = structlog.get_logger(__name__)

# Missing and malformed headers get their own errors in get_current_user.
security = HTTPBearer(auto_error=False)


class Caller(BaseModel):
    """Identity attached to a request after token verification."""
    id: str
    email: Optional[str] = None
    role: Optional[str] = None


def create_access_token(user: Dict[str, Any], config: LibraryConfig) -> str:
    """
    Issue a signed token for a stored user.

    Args:
        user: User document with ``_id``, ``email`` and ``role``
        config: Application configuration

    Returns:
        Encoded JWT
    """
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user["_id"]),
        "email": user.get("email"),
        "role": user.get("role"),
        "iat": now,
        "exp": now + timedelta(days=config.access_token_expire_days),
    }
    return jwt.encode(payload, config.jwt_secret, algorithm=config.jwt_algorithm)


def decode_access_token(token: str, config: LibraryConfig) -> Caller:
    """
    Verify a token and return the caller it identifies.

    Raises:
        Unauthorized: If the token has expired
        Forbidden: If the signature or payload is invalid
    """
    try:
        payload = jwt.decode(token, config.jwt_secret, algorithms=[config.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise Unauthorized("Token expired")
    except jwt.InvalidTokenError:
        logger.warning("Invalid token presented")
        raise Forbidden("Invalid token")

    subject = payload.get("sub")
    if not subject:
        raise Forbidden("Invalid token payload")
    return Caller(id=subject, email=payload.get("email"), role=payload.get("role"))


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Caller:
    """
    Authenticate the request from its ``Authorization: Bearer <token>`` header.

    Raises:
        Unauthorized: If the header is missing or the token expired
        ValidationError: If the header is not in Bearer format
        Forbidden: If the token is invalid
    """
    if credentials is not None:
        return decode_access_token(credentials.credentials, request.app.state.config)

    # HTTPBearer yields None for both a missing header and a non-Bearer one.
    if not request.headers.get("Authorization"):
        raise Unauthorized("Unauthorized: No token provided")
    raise ValidationError("Invalid Authorization header format")
