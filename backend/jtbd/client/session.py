"""
Session manager: who is signed in, and their profile

The principal and its profile are published together as one immutable
``SessionState``. Every auth change bumps a generation counter; a profile
lookup that finishes after a newer change is dropped, so a view never sees a
signed-in state that has already been superseded.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional

from jtbd.client.domain import DomainClient
from jtbd.client.store import ProjectStore
from jtbd.core.errors import AuthenticationError, ConflictError, JtbdError
from jtbd.core.logging_config import LoggingConfig
from jtbd.core.naming import resolve_display_name
from jtbd.schemas import PrincipalRead, ProfileRead

logger = LoggingConfig.get_logger(__name__)


class AuthEvent(str, Enum):
    INITIAL_SESSION = "INITIAL_SESSION"
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"


@dataclass(frozen=True)
class SessionState:
    principal: Optional[PrincipalRead] = None
    profile: Optional[ProfileRead] = None
    initialized: bool = False

    @property
    def is_authenticated(self) -> bool:
        return self.principal is not None


SIGNED_OUT = SessionState(initialized=True)


class SessionManager:
    """Tracks the current principal and guarantees it has a profile"""

    def __init__(self, client: DomainClient, store: Optional[ProjectStore] = None):
        self.client = client
        self.store = store
        self._state = SessionState()
        self._generation = 0
        self._subscribers: List[Callable[[SessionState], Any]] = []

    @property
    def state(self) -> SessionState:
        return self._state

    def subscribe(self, callback: Callable[[SessionState], Any]) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _publish(self, new_state: SessionState) -> None:
        self._state = new_state
        for callback in list(self._subscribers):
            callback(new_state)

    def _clear(self) -> None:
        self._publish(SIGNED_OUT)
        if self.store is not None:
            self.store.reset()

    async def initialize(self) -> SessionState:
        """Resolve the principal behind the held token, if any"""
        # Any lookup still in flight from before must not publish over this
        self._generation += 1
        if not self.client.backend.token:
            self._publish(SIGNED_OUT)
            return self._state

        try:
            principal = await self.client.current_principal()
        except AuthenticationError:
            logger.info("Stored session is no longer valid")
            self.client.backend.set_token(None)
            self._clear()
            return self._state

        return await self.handle_auth_change(AuthEvent.INITIAL_SESSION, principal)

    async def handle_auth_change(self, event: AuthEvent, principal: Optional[PrincipalRead]) -> SessionState:
        """
        React to an authentication state change

        Sign-out (or a missing principal) clears the session immediately;
        anything else ensures the profile and publishes principal and profile
        together.
        """
        self._generation += 1
        generation = self._generation

        if event == AuthEvent.SIGNED_OUT or principal is None:
            self._clear()
            return self._state

        profile = await self.ensure_profile(principal)
        if generation != self._generation:
            logger.debug(f"Discarding profile for {principal.id}: auth state changed during lookup")
            return self._state

        self._publish(SessionState(principal=principal, profile=profile, initialized=True))
        return self._state

    async def ensure_profile(self, principal: PrincipalRead) -> ProfileRead:
        """
        Fetch the principal's profile, creating it when missing

        The display name comes from the sign-up metadata (``full_name``, then
        ``name``), else the local part of the email.
        """
        profile = await self.client.get_profile(principal.id)
        if profile is not None:
            return profile

        metadata = principal.user_metadata or {}
        full_name = resolve_display_name(metadata.get("full_name"), metadata.get("name"), principal.email)
        try:
            profile = await self.client.create_profile(principal.id, principal.email, full_name)
        except ConflictError:
            # Created concurrently (another tab or an earlier attempt)
            profile = await self.client.get_profile(principal.id)
            if profile is None:
                raise
        logger.info(f"Created missing profile for {principal.id}")
        return profile

    async def sign_in(self, email: str, password: str) -> SessionState:
        _, principal = await self.client.sign_in(email, password)
        return await self.handle_auth_change(AuthEvent.SIGNED_IN, principal)

    async def sign_up(self, email: str, password: str, full_name: Optional[str] = None) -> SessionState:
        await self.client.sign_up(email, password, full_name)
        return await self.sign_in(email, password)

    async def sign_out(self) -> SessionState:
        """
        Sign out

        The signed-out state is published before the server is told, so no
        view can read the old principal once this starts.
        """
        self._generation += 1
        self._clear()
        try:
            await self.client.sign_out()
        except JtbdError as e:
            # The local session is already gone; the server token expires on its own
            logger.warning(f"Server sign-out failed: {e.code}", extra={"detail": e.detail})
        return self._state
