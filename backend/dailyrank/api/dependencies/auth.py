from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from dailyrank.core.logging import get_logger, bind_request_context
from dailyrank.infrastructure.database.session import get_db
from dailyrank.infrastructure.security.jwt import decode_token
from dailyrank.infrastructure.repositories.user_repository import UserRepository
from dailyrank.infrastructure.database.models import UserORM

security = HTTPBearer(auto_error=False)
logger = get_logger(__name__)


def _unauthorized(detail: str) -> HTTPException:
    logger.info("Request rejected", reason=detail)
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> UserORM:
    """Resolve the bearer token issued by the account service to an active user."""
    if credentials is None:
        raise _unauthorized("Authorization header missing. Use: Bearer <your_access_token>")

    payload = decode_token(credentials.credentials)
    if not payload or payload.get("type") != "access":
        raise _unauthorized("Token invalid or expired")

    subject = payload.get("sub")
    if not subject or not str(subject).isdigit():
        raise _unauthorized("Token subject is not a user id")

    user = UserRepository(db).get_by_id(int(subject))
    if not user:
        raise _unauthorized("User not found or account deactivated")

    bind_request_context(user_id=user.id)
    return user
