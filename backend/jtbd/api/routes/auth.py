"""
Authentication API routes
"""
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.security import HTTPAuthorizationCredentials
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.orm import Session

from jtbd.core.auth import (SESSION_COOKIE, extract_token, get_current_user,
                            security)
from jtbd.core.config import get_settings
from jtbd.core.database import get_db
from jtbd.core.errors import AuthenticationError
from jtbd.core.logging_config import LoggingConfig
from jtbd.models.user import Session as UserSession
from jtbd.models.user import User
from jtbd.schemas import PrincipalRead
from jtbd.services.auth_service import AuthService

logger = LoggingConfig.get_logger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


class RegisterRequest(BaseModel):
    """User registration request"""
    email: EmailStr
    password: str = Field(..., min_length=8)
    full_name: Optional[str] = Field(None, max_length=255)
    name: Optional[str] = Field(None, max_length=255)


class LoginRequest(BaseModel):
    """User login request"""
    email: str
    password: str


class LoginResponse(BaseModel):
    """Login response model"""
    token: str
    user: PrincipalRead
    expires_at: str


def _session_response(response: Response, user: User, session: UserSession) -> LoginResponse:
    """Set the session cookie and build the login body"""
    response.set_cookie(
        key=SESSION_COOKIE,
        value=session.token,
        httponly=True,
        secure=False,  # Set to True in production with HTTPS
        samesite="lax",
        max_age=get_settings().session_duration_hours * 60 * 60,
    )
    return LoginResponse(
        token=session.token,
        user=PrincipalRead.model_validate(user),
        expires_at=session.expires_at.isoformat(),
    )


@router.post("/register", response_model=PrincipalRead, status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest,
    db: Session = Depends(get_db)
):
    """
    Register a new user

    The profile is not created here; the client creates it on first sign-in
    from the metadata stored with the user.
    """
    user = AuthService(db).register_user(
        email=request.email,
        password=request.password,
        metadata={"full_name": request.full_name, "name": request.name},
    )
    return PrincipalRead.model_validate(user)


@router.post("/login", response_model=LoginResponse)
async def login(
    request: LoginRequest,
    response: Response,
    db: Session = Depends(get_db)
):
    """Login and create a session"""
    auth_service = AuthService(db)

    user = auth_service.authenticate(request.email, request.password)
    if not user:
        raise AuthenticationError("Invalid email or password.", code="invalid_credentials")

    session = auth_service.create_session(user.id)
    return _session_response(response, user, session)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    request: Request,
    response: Response,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
):
    """Logout and invalidate session; succeeds without a session too"""
    token = extract_token(request, credentials)
    if token:
        AuthService(db).logout(token)

    response.delete_cookie(key=SESSION_COOKIE)
    return None


@router.get("/me", response_model=PrincipalRead)
async def get_current_user_info(user: User = Depends(get_current_user)):
    """Get current user information"""
    return PrincipalRead.model_validate(user)


@router.post("/refresh", response_model=LoginResponse)
async def refresh_token(
    request: Request,
    response: Response,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
):
    """Exchange a valid session token for a new one"""
    auth_service = AuthService(db)

    token = extract_token(request, credentials)
    if not token:
        raise AuthenticationError(detail="no session token provided")

    user = auth_service.validate_session(token)
    if not user:
        raise AuthenticationError(detail="invalid or expired session")

    auth_service.logout(token)
    new_session = auth_service.create_session(user.id)
    return _session_response(response, user, new_session)
