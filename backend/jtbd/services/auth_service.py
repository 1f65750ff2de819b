"""
Authentication service for user management and sessions
"""
import secrets
from datetime import timedelta
from typing import Any, Dict, Optional
from uuid import UUID

import bcrypt
from sqlalchemy.orm import Session

from jtbd.core.config import get_settings
from jtbd.core.errors import ConflictError
from jtbd.core.logging_config import LoggingConfig
from jtbd.core.metrics import auth_events_total
from jtbd.models.mixins import utcnow
from jtbd.models.user import Session as UserSession
from jtbd.models.user import User

logger = LoggingConfig.get_logger(__name__)


class AuthService:
    """Service for user authentication and session management"""

    def __init__(self, db: Session):
        self.db = db
        self.session_duration_hours = get_settings().session_duration_hours

    def register_user(
        self,
        email: str,
        password: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> User:
        """
        Register a new user

        Args:
            email: Email address (unique, compared case-insensitively)
            password: Plain text password
            metadata: Sign-up metadata such as ``full_name`` or ``name``

        Returns:
            Created User object

        Raises:
            ConflictError: If the email is already registered
        """
        email = email.strip().lower()
        if self.db.query(User).filter(User.email == email).first():
            auth_events_total.labels(event="register_conflict").inc()
            raise ConflictError(
                "An account with this email already exists.",
                code="email_taken",
            )

        user = User(
            email=email,
            password_hash=self._hash_password(password),
            user_metadata={k: v for k, v in (metadata or {}).items() if v},
            is_active=True,
        )

        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)

        auth_events_total.labels(event="register").inc()
        logger.info(f"Registered new user: {user.id}")
        return user

    def authenticate(self, email: str, password: str) -> Optional[User]:
        """
        Authenticate a user by email and password

        Returns:
            User object if authentication successful, None otherwise
        """
        user = self.db.query(User).filter(User.email == email.strip().lower()).first()

        if not user:
            logger.warning("Authentication failed: unknown email")
            auth_events_total.labels(event="login_failed").inc()
            return None

        if not user.is_active:
            logger.warning(f"Authentication failed: user {user.id} is inactive")
            auth_events_total.labels(event="login_failed").inc()
            return None

        if not self._verify_password(password, user.password_hash):
            logger.warning(f"Authentication failed: invalid password for user {user.id}")
            auth_events_total.labels(event="login_failed").inc()
            return None

        user.last_login = utcnow()
        self.db.commit()

        auth_events_total.labels(event="login").inc()
        logger.info(f"User {user.id} authenticated successfully")
        return user

    def create_session(self, user_id: UUID, duration_hours: Optional[int] = None) -> UserSession:
        """Create a new session token for a user"""
        duration = duration_hours or self.session_duration_hours
        session = UserSession(
            user_id=user_id,
            token=secrets.token_urlsafe(32),
            expires_at=utcnow() + timedelta(hours=duration),
        )

        self.db.add(session)
        self.db.commit()
        self.db.refresh(session)

        logger.info(f"Created session for user {user_id}")
        return session

    def validate_session(self, token: str) -> Optional[User]:
        """
        Validate a session token and return the associated user

        Expired sessions are removed on sight.
        """
        session = self.db.query(UserSession).filter(UserSession.token == token).first()

        if not session:
            return None

        if session.expires_at < utcnow():
            logger.info(f"Session {session.id} expired")
            self.db.delete(session)
            self.db.commit()
            auth_events_total.labels(event="session_expired").inc()
            return None

        session.last_activity = utcnow()
        self.db.commit()

        user = self.db.query(User).filter(User.id == session.user_id).first()
        if not user or not user.is_active:
            return None

        return user

    def logout(self, token: str) -> bool:
        """
        Logout by invalidating a session

        Returns:
            True if session was found and deleted, False otherwise
        """
        session = self.db.query(UserSession).filter(UserSession.token == token).first()

        if session:
            session_id = session.id
            self.db.delete(session)
            self.db.commit()
            auth_events_total.labels(event="logout").inc()
            logger.info(f"Session {session_id} invalidated")
            return True

        return False

    def cleanup_expired_sessions(self) -> int:
        """Remove all expired sessions; returns the number deleted"""
        count = (
            self.db.query(UserSession)
            .filter(UserSession.expires_at < utcnow())
            .delete(synchronize_session=False)
        )
        self.db.commit()
        if count > 0:
            logger.info(f"Cleaned up {count} expired sessions")
        return count

    def _hash_password(self, password: str) -> str:
        """Hash a password using bcrypt"""
        hashed = bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt())
        return hashed.decode('utf-8')

    def _verify_password(self, password: str, password_hash: str) -> bool:
        """Verify a password against a hash"""
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
