import logging
from fastapi import HTTPException, Depends
from uuid import UUID
from datetime import datetime, timedelta, timezone
from jose import jwt, JWTError
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Optional

from journal_insights.core.config import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES

logger = logging.getLogger(__name__)
bearer = HTTPBearer()


def create_token(user_id: UUID, expires_delta: Optional[timedelta] = None) -> str:
    """
    Issues a signed access token whose subject is the user ID.

    Args:
        user_id (UUID): ID of the user the token identifies.
        expires_delta (Optional[timedelta]): Lifetime override.

    Returns:
        str: Encoded JWT.
    """
    now = datetime.now(timezone.utc)
    if not expires_delta:
        expires_delta = timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {
        "sub": str(user_id),
        "type": "access",
        "iat": int(now.timestamp()),
        "exp": now + expires_delta,
    }
    return jwt.encode(payload, SECRET_KEY, algorithm=ALGORITHM)


def decode_token(token: str) -> dict:
    """
    Decodes and validates a JWT token.

    Args:
        token (str): JWT string.

    Returns:
        dict: Decoded payload.

    Raises:
        HTTPException: If token is invalid or expired.
    """
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM], options={"verify_aud": False})
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid or expired authentication token")


def get_current_user_id(
    creds: HTTPAuthorizationCredentials = Depends(bearer),
) -> UUID:
    """
    Extracts the user ID from the JWT token.

    Args:
        creds (HTTPAuthorizationCredentials): Bearer token.

    Returns:
        UUID: User's UUID.

    Raises:
        HTTPException: If token is invalid or missing required claims.
    """
    payload = decode_token(creds.credentials)
    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Token missing subject field")
    try:
        return UUID(user_id)
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid user ID in token")
