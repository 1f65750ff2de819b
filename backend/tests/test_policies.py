"""
Unit tests for the row access policy
"""
import uuid

import pytest

from jtbd.core.config import AccessPolicyMode
from jtbd.core.errors import AuthenticationError, AuthorizationError
from jtbd.core.policies import AccessPolicy, Action
from jtbd.models import Project, User


@pytest.fixture
def alice():
    return User(id=uuid.uuid4(), email="alice@example.com", password_hash="x")


@pytest.fixture
def bob():
    return User(id=uuid.uuid4(), email="bob@example.com", password_hash="x")


def test_mode_comes_from_settings_by_default():
    assert AccessPolicy().mode == AccessPolicyMode.TEAM
    assert not AccessPolicy().is_owner_scoped
    assert AccessPolicy(AccessPolicyMode.OWNER).is_owner_scoped


def test_principal_is_required_in_every_mode():
    for mode in AccessPolicyMode:
        with pytest.raises(AuthenticationError):
            AccessPolicy(mode).require_principal(None)


def test_team_mode_allows_writes_under_any_project(alice, bob):
    project = Project(id=uuid.uuid4(), name="Shared", owner_id=bob.id)
    policy = AccessPolicy(AccessPolicyMode.TEAM)
    for action in Action:
        policy.authorize_project(alice, project, action)


def test_owner_mode_rejects_writes_under_foreign_project(alice, bob):
    project = Project(id=uuid.uuid4(), name="Bob's", owner_id=bob.id)
    policy = AccessPolicy(AccessPolicyMode.OWNER)

    policy.authorize_project(bob, project, Action.INSERT)
    with pytest.raises(AuthorizationError):
        policy.authorize_project(alice, project, Action.INSERT)


@pytest.mark.parametrize("mode", list(AccessPolicyMode))
def test_profiles_are_writable_only_by_their_principal(mode, alice, bob):
    policy = AccessPolicy(mode)
    policy.authorize_profile_write(alice, alice.id, Action.INSERT)
    policy.authorize_profile_write(alice, alice.id, Action.UPDATE)

    with pytest.raises(AuthorizationError):
        policy.authorize_profile_write(alice, bob.id, Action.UPDATE)


def test_profiles_are_never_deleted(alice):
    with pytest.raises(AuthorizationError) as exc_info:
        AccessPolicy().authorize_profile_write(alice, alice.id, Action.DELETE)
    assert exc_info.value.message == "Profiles cannot be deleted."
