"""
Async client for the JTBD service
"""
from jtbd.client.config import ClientSettings, get_client_settings
from jtbd.client.domain import DomainClient
from jtbd.client.session import AuthEvent, SessionManager, SessionState
from jtbd.client.state import AppState
from jtbd.client.store import ProjectStore
from jtbd.client.transport import BackendClient

__all__ = [
    "AppState",
    "AuthEvent",
    "BackendClient",
    "ClientSettings",
    "DomainClient",
    "ProjectStore",
    "SessionManager",
    "SessionState",
    "get_client_settings",
]
