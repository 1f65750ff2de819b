"""
Authentication dependencies
"""
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from jtbd.core.database import get_db
from jtbd.core.errors import AuthenticationError
from jtbd.core.logging_config import LoggingConfig
from jtbd.core.policies import AccessPolicy
from jtbd.models.user import User
from jtbd.services.auth_service import AuthService

logger = LoggingConfig.get_logger(__name__)

SESSION_COOKIE = "session_token"

# HTTP Bearer security scheme
security = HTTPBearer(auto_error=False)


def extract_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials],
) -> Optional[str]:
    """Token from the Authorization header, falling back to the session cookie"""
    if credentials:
        return credentials.credentials
    return request.cookies.get(SESSION_COOKIE)


async def get_current_user_optional(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """
    Get current user if authenticated, otherwise None

    No database query is made when the request carries no token.
    """
    token = extract_token(request, credentials)
    if not token:
        return None

    user = AuthService(db).validate_session(token)
    if user:
        LoggingConfig.set_context(user_id=str(user.id))
    return user


async def get_current_user(
    user: Optional[User] = Depends(get_current_user_optional),
) -> User:
    """
    Require authentication

    Raises:
        AuthenticationError: If the request has no valid session
    """
    if user is None:
        raise AuthenticationError(detail="missing or invalid session token")
    return user


def get_access_policy() -> AccessPolicy:
    """Policy for the configured mode (overridable in tests)"""
    return AccessPolicy()
