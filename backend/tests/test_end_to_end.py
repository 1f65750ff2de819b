"""
End-to-end: the client stack against the running application
"""
import httpx
import pytest
import pytest_asyncio

from conftest import PASSWORD
from jtbd.client import (BackendClient, ClientSettings, DomainClient,
                         ProjectStore, SessionManager)
from jtbd.client.analysis import (active_groups, is_story_complete,
                                  overall_progress, story_progress)
from jtbd.core.errors import AuthenticationError, ValidationError


@pytest_asyncio.fixture
async def backend(app):
    client = BackendClient(
        ClientSettings(base_url="http://testserver"),
        transport=httpx.ASGITransport(app=app),
    )
    yield client
    await client.aclose()


@pytest.mark.asyncio
async def test_ev_study_walkthrough(backend):
    domain = DomainClient(backend)
    store = ProjectStore(domain)
    session = SessionManager(domain, store)

    state = await session.sign_up("alex@example.com", PASSWORD, "Alex Example")
    assert state.is_authenticated
    assert state.profile.full_name == "Alex Example"

    project = await store.create_project("EV Study", "Why people switch to electric cars")
    assert project.owner.full_name == "Alex Example"

    interview = await store.create_interview(project.id, "Jane Doe", participant_age=34)
    story = await store.create_story(
        interview.id,
        "Switch to EV",
        "Bought an electric car after the old one broke down",
        "Driving a twelve year old petrol car",
        "Charging at home every night",
    )
    push = await store.create_force(story.id, "push", "high gas prices")
    pull = await store.create_force(story.id, "pull", "tax incentive")
    await store.create_force(story.id, "habit", "Always refuelled on the way to work")
    assert is_story_complete(story.id, store.state.forces)

    groups = await store.initialize_groups(project.id)
    assert len(groups) == 22
    assert await store.initialize_groups(project.id) == []

    push_group = next(g for g in store.state.force_groups if g.name == "Push Group 1")
    await store.assign_force_to_group(push.id, push_group.id)

    assert await store.load_project_data(project.id) is True
    loaded = store.state
    assert loaded.current_project.id == project.id
    assert [s.id for s in loaded.stories] == [story.id]
    assert len(loaded.forces) == 3
    assert [g.position for g in loaded.force_groups] == list(range(22))
    assert loaded.force_groups[10].is_leftover

    matrix_groups = active_groups(loaded.force_groups, loaded.forces)
    assert [g.id for g in matrix_groups] == [push_group.id]

    await store.set_matrix_response(story.id, push_group.id, None)
    assert story_progress(story.id, store.state.matrix_entries, matrix_groups).percentage == 0
    await store.set_matrix_response(story.id, push_group.id, True)
    assert len(store.state.matrix_entries) == 1
    assert overall_progress(store.state.stories, store.state.matrix_entries, matrix_groups).percentage == 100

    await store.delete_force(pull.id)
    await store.delete_force(pull.id)
    assert not is_story_complete(story.id, store.state.forces)

    with pytest.raises(ValidationError):
        await store.create_interview(project.id, "Too old", participant_age=120)

    await store.delete_project(project.id)
    await store.fetch_projects()
    assert store.state.projects == ()
    assert store.state.current_project is None

    token = backend.token
    await session.sign_out()
    assert not session.state.is_authenticated
    with pytest.raises(AuthenticationError):
        await backend.request("GET", "/api/auth/me", token=token)


@pytest.mark.asyncio
async def test_returning_user_gets_missing_profile_on_sign_in(backend):
    domain = DomainClient(backend)
    await domain.sign_up("sam@example.com", PASSWORD)

    state = await SessionManager(domain).sign_in("sam@example.com", PASSWORD)

    assert state.profile.full_name == "sam"
    assert await domain.get_profile(state.principal.id) == state.profile
