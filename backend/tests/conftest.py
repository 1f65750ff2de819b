"""
Pytest configuration and fixtures
"""
import os
import sys
from pathlib import Path
from uuid import UUID

import pytest

# Add backend directory to path for imports
backend_dir = Path(__file__).parent.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

# Settings are cached on first use; pin them before any jtbd import
os.environ.setdefault("DATABASE_DSN", "sqlite://")
os.environ.setdefault("LOG_FORMAT", "text")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("ACCESS_POLICY", "team")

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

import jtbd.models  # noqa: F401
from jtbd.core.auth import get_access_policy
from jtbd.core.config import AccessPolicyMode
from jtbd.core.database import Base, build_engine, get_db
from jtbd.core.policies import AccessPolicy

PASSWORD = "correct-horse-battery"


@pytest.fixture(scope="function")
def engine(tmp_path):
    """A fresh SQLite file per test (requests run on worker threads, so no shared in-memory connection)"""
    engine = build_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db(session_factory) -> Session:
    """Create a database session for testing"""
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture(scope="function")
def app(session_factory):
    """Application with the database dependency pointed at the test engine"""
    from main import create_app

    application = create_app()

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    application.dependency_overrides[get_db] = override_get_db
    yield application
    application.dependency_overrides.clear()


@pytest.fixture(scope="function")
def client(app) -> TestClient:
    """Create test client with database dependency override"""
    return TestClient(app)


@pytest.fixture
def owner_policy(app):
    """Switch the running app to per-owner isolation"""
    app.dependency_overrides[get_access_policy] = lambda: AccessPolicy(AccessPolicyMode.OWNER)
    yield
    app.dependency_overrides.pop(get_access_policy, None)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def register(client: TestClient, email: str, full_name: str = None, password: str = PASSWORD) -> dict:
    response = client.post(
        "/api/auth/register",
        json={"email": email, "password": password, "full_name": full_name},
    )
    assert response.status_code == 201, response.text
    return response.json()


def login(client: TestClient, email: str, password: str = PASSWORD) -> str:
    response = client.post("/api/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return response.json()["token"]


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def signed_up(client: TestClient, email: str, full_name: str = "Test Researcher") -> dict:
    """Register, log in and create the profile; returns the principal id and auth headers"""
    principal = register(client, email, full_name)
    headers = bearer(login(client, email))
    response = client.post(
        "/api/profiles",
        json={"id": principal["id"], "email": principal["email"], "full_name": full_name},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return {"id": UUID(principal["id"]), "headers": headers}


@pytest.fixture
def researcher(client) -> dict:
    return signed_up(client, "alice@example.com", "Alice Example")


@pytest.fixture
def other_researcher(client) -> dict:
    return signed_up(client, "bob@example.com", "Bob Example")


class ProjectTree:
    """Builds a project subtree through the API"""

    def __init__(self, client: TestClient, headers: dict):
        self.client = client
        self.headers = headers

    def post(self, collection: str, payload: dict) -> dict:
        response = self.client.post(f"/api/{collection}", json=payload, headers=self.headers)
        assert response.status_code == 201, response.text
        return response.json()

    def project(self, name: str = "EV Study", **fields) -> dict:
        return self.post("projects", {"name": name, **fields})

    def interview(self, project_id: str, participant_name: str = "Dana", **fields) -> dict:
        return self.post("interviews", {"project_id": project_id, "participant_name": participant_name, **fields})

    def story(self, interview_id: str, title: str = "Switching to an EV", **fields) -> dict:
        payload = {
            "interview_id": interview_id,
            "title": title,
            "description": "Bought an electric car after the old one broke down",
            "situation_a": "Driving a twelve year old petrol car",
            "situation_b": "Charging at home every night",
        }
        payload.update(fields)
        return self.post("stories", payload)

    def force(self, story_id: str, type: str, description: str = "Fuel is too expensive", **fields) -> dict:
        return self.post("forces", {"story_id": story_id, "type": type, "description": description, **fields})

    def group(self, project_id: str, name: str, type: str, **fields) -> dict:
        return self.post("force_groups", {"project_id": project_id, "name": name, "type": type, **fields})


@pytest.fixture
def tree(client, researcher) -> ProjectTree:
    return ProjectTree(client, researcher["headers"])
