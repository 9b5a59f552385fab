"""
Bearer token handling.

Tokens are HS256 JWTs issued by the auth service. The subject claim is the
user's UUID. Validation is purely local (shared secret), so it never
blocks on the network.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from jose import JWTError, jwt
from jose.exceptions import ExpiredSignatureError

from src.core.errors import UnauthenticatedError, UnauthorizedError
from src.core.media.models import Video

logger = logging.getLogger(__name__)

DEFAULT_ALGORITHM = "HS256"
DEFAULT_ISSUER = "tubely-access"


def get_bearer_token(authorization: Optional[str]) -> str:
    """
    Extract the token from an ``Authorization: Bearer <token>`` header.

    Raises:
        UnauthenticatedError: header missing or not a bearer credential
    """
    if not authorization:
        raise UnauthenticatedError("Couldn't find JWT")

    scheme, _, token = authorization.strip().partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token or " " in token:
        raise UnauthenticatedError("Couldn't find JWT")

    return token


def make_jwt(
    user_id: UUID,
    secret: str,
    expires_in: timedelta,
    algorithm: str = DEFAULT_ALGORITHM,
    issuer: str = DEFAULT_ISSUER,
) -> str:
    """Issue an access token for user_id."""
    now = datetime.now(timezone.utc)
    claims = {
        "iss": issuer,
        "sub": str(user_id),
        "iat": now,
        "exp": now + expires_in,
    }
    return jwt.encode(claims, secret, algorithm=algorithm)


def validate_jwt(
    token: str,
    secret: str,
    algorithm: str = DEFAULT_ALGORITHM,
    issuer: str = DEFAULT_ISSUER,
) -> UUID:
    """
    Validate a token and return the user id it was issued for.

    Raises:
        UnauthenticatedError: bad signature, expired, wrong issuer,
            or a subject that isn't a UUID, and always when no secret
            is configured
    """
    # an empty HMAC key would accept tokens anyone can mint
    if not secret:
        logger.error("Rejected token: JWT secret is not configured")
        raise UnauthenticatedError("Couldn't validate JWT")

    try:
        claims = jwt.decode(
            token,
            secret,
            algorithms=[algorithm],
            issuer=issuer,
        )
    except ExpiredSignatureError:
        logger.info("Rejected expired token")
        raise UnauthenticatedError("Couldn't validate JWT")
    except JWTError as e:
        logger.info("Rejected invalid token", extra={"error": str(e)})
        raise UnauthenticatedError("Couldn't validate JWT")

    try:
        return UUID(str(claims.get("sub", "")))
    except ValueError:
        logger.info("Rejected token with malformed subject")
        raise UnauthenticatedError("Couldn't validate JWT")


def ensure_owner(user_id: UUID, video: Video) -> None:
    """Raise UnauthorizedError unless user_id owns video."""
    if video.user_id != user_id:
        logger.warning(
            "User attempted to modify a video they don't own",
            extra={"user_id": str(user_id), "video_id": str(video.id)}
        )
        raise UnauthorizedError()
