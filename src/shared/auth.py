"""Bearer-token authentication.

Tokens are HS256 JWTs carrying the principal's id in the ``id`` claim. Routes
depend on ``current_owner_id`` to learn who is calling.
"""

from datetime import UTC, datetime, timedelta

import jwt
import structlog
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

logger = structlog.get_logger(__name__)

ALGORITHM = "HS256"

_bearer = HTTPBearer(auto_error=False)


def issue_token(owner_id: str, secret: str, expires_in: timedelta = timedelta(days=7)) -> str:
    now = datetime.now(UTC)
    claims = {"id": str(owner_id), "iat": now, "exp": now + expires_in}
    return jwt.encode(claims, secret, algorithm=ALGORITHM)


def decode_token(token: str, secret: str) -> str:
    """Return the principal id from a token, raising ``jwt.InvalidTokenError`` if unusable."""
    claims = jwt.decode(token, secret, algorithms=[ALGORITHM], options={"require": ["id", "exp"]})
    owner_id = claims["id"]
    if not isinstance(owner_id, str) or not owner_id:
        raise jwt.InvalidTokenError("Token has no usable id claim")
    return owner_id


def current_owner_id(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> str:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=401, detail="Not authorized, no token")

    secret = request.app.state.settings.jwt_secret.get_secret_value()
    try:
        return decode_token(credentials.credentials, secret)
    except jwt.InvalidTokenError as exc:
        logger.info("Rejected bearer token", reason=str(exc))
        raise HTTPException(status_code=401, detail="Not authorized, token failed") from None
