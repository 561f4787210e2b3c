from datetime import datetime, timedelta
from typing import Optional
from jose import JWTError, jwt
from dailyrank.core.config import settings
from dailyrank.core.logging import get_logger

logger = get_logger(__name__)


def create_access_token(user_id: int, expires_delta: Optional[timedelta] = None) -> str:
    """Issue a bearer token for ``user_id``.

    Login lives in the account service; this helper is what it (and the test
    suite) uses so both sides agree on the claims.
    """
    expire = datetime.utcnow() + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    payload = {"sub": str(user_id), "exp": expire, "type": "access"}
    token = jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    if isinstance(token, bytes):
        token = token.decode("utf-8")
    return token


def decode_token(token: str) -> Optional[dict]:
    try:
        return jwt.decode(token.strip(), settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        logger.warning("JWT decode failed", error=str(e))
        return None
