"""
Tests for the project store and its state transitions
"""
import asyncio
import uuid
from collections import Counter
from datetime import date, datetime, timedelta

import pytest

from jtbd.client import state as transitions
from jtbd.client.state import AppState, project_scope
from jtbd.client.store import ProjectStore
from jtbd.core.errors import ConflictError, TransientError
from jtbd.schemas import (ForceGroupRead, InterviewRead, MatrixEntryRead,
                          ProfileRead, ProjectRead)

NOW = datetime(2026, 10, 18, 12, 0, 0)


def project(name="EV Study", offset=0, owner_id=None):
    stamp = NOW + timedelta(seconds=offset)
    return ProjectRead(id=uuid.uuid4(), name=name, description="", owner_id=owner_id or uuid.uuid4(),
                       status="active", created_at=stamp, updated_at=stamp)


def force_group(project_id, name, type, position):
    return ForceGroupRead(id=uuid.uuid4(), project_id=project_id, name=name, type=type, color="#3B82F6",
                          is_leftover="Leftovers" in name, position=position, created_at=NOW, updated_at=NOW)


def interview(project_id, name):
    return InterviewRead(id=uuid.uuid4(), project_id=project_id, participant_name=name,
                         interview_date=date(2026, 10, 1), context="", created_at=NOW, updated_at=NOW)


class FakeClient:
    """Stands in for DomainClient; records calls and can hold fetches open"""

    def __init__(self):
        self.calls = []
        self.gate = None
        self.projects = []
        self.project_rows = {}
        self.project_gates = {}
        self.interviews = {}
        self.groups = []
        self.entries = {}

    async def list_projects(self, limit=None):
        self.calls.append("list_projects")
        if self.gate is not None:
            await self.gate.wait()
        return list(self.projects)

    async def create_project(self, name, description=""):
        self.calls.append("create_project")
        return project(name, offset=60)

    async def list_profiles(self, ids):
        self.calls.append(("list_profiles", tuple(ids)))
        return [
            ProfileRead(id=i, email=f"{i}@example.com", full_name="Owner", created_at=NOW, updated_at=NOW)
            for i in ids
        ]

    async def list_force_groups(self, project_id):
        self.calls.append("list_force_groups")
        return list(self.groups)

    async def create_force_group(self, project_id, name, type, **fields):
        group = force_group(project_id, name, type, len(self.groups))
        self.groups.append(group)
        return group

    async def create_matrix_entry(self, story_id, group_id, matches=None):
        self.calls.append("create_matrix_entry")
        if any(e.story_id == story_id and e.group_id == group_id for e in self.entries.values()):
            raise ConflictError("This story already has a response for that group.",
                                code="duplicate_matrix_entry")
        entry = MatrixEntryRead(id=uuid.uuid4(), story_id=story_id, group_id=group_id, matches=matches,
                                created_at=NOW, updated_at=NOW)
        self.entries[entry.id] = entry
        return entry

    async def update_matrix_entry(self, entry_id, matches):
        self.calls.append("update_matrix_entry")
        entry = self.entries[entry_id].model_copy(update={"matches": matches})
        self.entries[entry_id] = entry
        return entry

    async def delete_project(self, project_id):
        self.calls.append("delete_project")

    async def get_project(self, project_id):
        self.calls.append("get_project")
        gate = self.project_gates.get(project_id)
        if gate is not None:
            await gate.wait()
        if project_id not in self.project_rows:
            raise TransientError()
        return self.project_rows[project_id]

    async def list_interviews(self, project_id):
        self.calls.append("list_interviews")
        return list(self.interviews.get(project_id, []))

    async def list_stories(self, project_id=None, interview_id=None):
        self.calls.append("list_stories")
        return []

    async def list_forces(self, project_id=None, story_id=None):
        self.calls.append("list_forces")
        return []

    async def list_matrix_entries(self, project_id=None, story_id=None):
        self.calls.append("list_matrix_entries")
        return [e for e in self.entries.values() if story_id is None or e.story_id == story_id]


def test_transitions_are_pure():
    before = AppState()
    p = project()
    after = transitions.add_record(before, "projects", p)

    assert before.projects == ()
    assert after.projects == (p,)
    assert transitions.remove_record(after, "projects", p.id).projects == ()
    with pytest.raises(KeyError):
        transitions.merge_collection(before, "owners", [], frozenset())


def test_collections_are_sorted_newest_first_and_groups_by_position():
    older, newer = project("Older", 0), project("Newer", 10)
    state = transitions.merge_collection(AppState(), "projects", [older, newer], frozenset())
    assert [p.name for p in state.projects] == ["Newer", "Older"]

    project_id = uuid.uuid4()
    groups = [force_group(project_id, "B", "push", 1), force_group(project_id, "A", "push", 0)]
    state = transitions.merge_collection(state, "force_groups", groups, frozenset())
    assert [g.name for g in state.force_groups] == ["A", "B"]


def test_update_record_keeps_current_project_in_sync():
    p = project()
    state = transitions.set_current_project(transitions.add_record(AppState(), "projects", p), p)
    renamed = p.model_copy(update={"name": "Renamed"})

    state = transitions.update_record(state, "projects", renamed)
    assert state.current_project.name == "Renamed"
    assert state.projects[0].name == "Renamed"


@pytest.mark.asyncio
async def test_concurrent_project_fetches_share_one_request():
    client = FakeClient()
    client.projects = [project()]
    client.gate = asyncio.Event()
    store = ProjectStore(client)
    snapshots = []
    store.subscribe(snapshots.append)

    first = asyncio.create_task(store.fetch_projects())
    await asyncio.sleep(0)
    assert store.state.loading

    assert await store.fetch_projects() is False
    client.gate.set()
    assert await first is True

    assert client.calls == ["list_projects"]
    assert not store.state.loading
    assert len(store.state.projects) == 1
    assert snapshots[-1] is store.state


@pytest.mark.asyncio
async def test_refresh_profiles_attaches_owners():
    owner_id = uuid.uuid4()
    client = FakeClient()
    store = ProjectStore(client, AppState(projects=(project(owner_id=owner_id),)))

    await store.refresh_profiles()

    assert client.calls == [("list_profiles", (owner_id,))]
    assert store.state.projects[0].owner.full_name == "Owner"


@pytest.mark.asyncio
async def test_failed_load_records_error_and_frees_scope():
    store = ProjectStore(FakeClient())
    project_id = uuid.uuid4()

    with pytest.raises(TransientError):
        await store.load_project_data(project_id)

    assert store.state.error == TransientError.default_message
    assert not store.state.is_busy(project_scope(project_id))


@pytest.mark.asyncio
async def test_set_matrix_response_upserts():
    client = FakeClient()
    store = ProjectStore(client)
    story_id, group_id = uuid.uuid4(), uuid.uuid4()

    created = await store.set_matrix_response(story_id, group_id, True)
    updated = await store.set_matrix_response(story_id, group_id, False)

    assert client.calls == ["create_matrix_entry", "update_matrix_entry"]
    assert updated.id == created.id
    assert [e.matches for e in store.state.matrix_entries] == [False]


@pytest.mark.asyncio
async def test_initialize_groups_creates_missing_boards_only():
    client = FakeClient()
    project_id = uuid.uuid4()
    client.groups = [force_group(project_id, "Push Group 1", "push", 0)]
    store = ProjectStore(client)

    created = await store.initialize_groups(project_id)

    assert len(created) == 11
    assert {g.type for g in created} == {"pull"}
    assert store.state.force_groups[-1].name == "Pull Leftovers"


@pytest.mark.asyncio
async def test_deleting_current_project_clears_its_data():
    p = project()
    store = ProjectStore(FakeClient(), AppState(projects=(p,), current_project=p))

    await store.delete_project(p.id)

    assert store.state.projects == ()
    assert store.state.current_project is None


def test_merge_keeps_local_writes_made_during_a_fetch():
    kept, renamed, deleted = project("Kept"), project("Renamed"), project("Deleted")
    held_before = frozenset([kept.id, renamed.id, deleted.id])
    newer = renamed.model_copy(update={"name": "Renamed locally", "updated_at": NOW + timedelta(minutes=1)})
    created = project("Created", offset=30)
    state = AppState(projects=(kept, newer, created))

    state = transitions.merge_collection(state, "projects", [kept, renamed, deleted], held_before)

    assert {p.name for p in state.projects} == {"Kept", "Renamed locally", "Created"}


@pytest.mark.asyncio
async def test_project_created_during_fetch_survives_it():
    client = FakeClient()
    client.projects = [project("Older")]
    client.gate = asyncio.Event()
    store = ProjectStore(client)

    fetch = asyncio.create_task(store.fetch_projects())
    await asyncio.sleep(0)
    created = await store.create_project("EV Study")
    client.gate.set()
    assert await fetch is True

    assert [p.name for p in store.state.projects] == ["EV Study", "Older"]
    assert store.state.projects[0].id == created.id


@pytest.mark.asyncio
async def test_same_project_load_is_fetched_once_and_installed_in_one_snapshot():
    client = FakeClient()
    p = project()
    client.project_rows = {p.id: p}
    client.project_gates = {p.id: asyncio.Event()}
    client.interviews = {p.id: [interview(p.id, "Jane Doe")]}
    store = ProjectStore(client)
    snapshots = []
    store.subscribe(snapshots.append)

    first = asyncio.create_task(store.load_project_data(p.id))
    await asyncio.sleep(0)
    assert store.state.is_busy(project_scope(p.id))

    assert await store.load_project_data(p.id) is False
    client.project_gates[p.id].set()
    assert await first is True

    counts = Counter(client.calls)
    for call in ("get_project", "list_interviews", "list_stories", "list_forces",
                 "list_force_groups", "list_matrix_entries"):
        assert counts[call] == 1, call
    begin, installed, finished = snapshots
    assert begin.current_project is None
    assert installed.current_project == p
    assert [i.participant_name for i in installed.interviews] == ["Jane Doe"]
    assert not finished.loading


@pytest.mark.asyncio
async def test_slow_load_of_earlier_project_does_not_override_later_choice():
    client = FakeClient()
    a, b = project("A"), project("B")
    client.project_rows = {a.id: a, b.id: b}
    client.project_gates = {a.id: asyncio.Event(), b.id: asyncio.Event()}
    client.interviews = {a.id: [interview(a.id, "From A")], b.id: [interview(b.id, "From B")]}
    store = ProjectStore(client)

    load_a = asyncio.create_task(store.load_project_data(a.id))
    await asyncio.sleep(0)
    load_b = asyncio.create_task(store.load_project_data(b.id))
    await asyncio.sleep(0)

    client.project_gates[b.id].set()
    assert await load_b is True
    client.project_gates[a.id].set()
    assert await load_a is False

    assert store.state.current_project == b
    assert [i.participant_name for i in store.state.interviews] == ["From B"]
    assert not store.state.loading


@pytest.mark.asyncio
async def test_load_discarded_after_switching_project():
    client = FakeClient()
    a, b = project("A"), project("B")
    client.project_rows = {a.id: a}
    client.project_gates = {a.id: asyncio.Event()}
    store = ProjectStore(client)

    load_a = asyncio.create_task(store.load_project_data(a.id))
    await asyncio.sleep(0)
    store.set_current_project(b)
    client.project_gates[a.id].set()

    assert await load_a is False
    assert store.state.current_project == b


@pytest.mark.asyncio
async def test_reload_keeps_interview_created_meanwhile():
    client = FakeClient()
    p = project()
    client.project_rows = {p.id: p}
    client.project_gates = {p.id: asyncio.Event()}
    store = ProjectStore(client, AppState(projects=(p,), current_project=p))
    added = interview(p.id, "Added during reload")

    reload = asyncio.create_task(store.load_project_data(p.id))
    await asyncio.sleep(0)
    store.dispatch(transitions.add_record, "interviews", added)
    client.project_gates[p.id].set()
    assert await reload is True

    assert store.state.interviews == (added,)


@pytest.mark.asyncio
async def test_matrix_answer_already_on_server_is_updated():
    client = FakeClient()
    story_id, group_id = uuid.uuid4(), uuid.uuid4()
    teammate = await client.create_matrix_entry(story_id, group_id, False)
    client.calls.clear()
    store = ProjectStore(client)

    entry = await store.set_matrix_response(story_id, group_id, True)

    assert client.calls == ["create_matrix_entry", "list_matrix_entries", "update_matrix_entry"]
    assert entry.id == teammate.id
    assert entry.matches is True
    assert store.state.matrix_entries == (entry,)


@pytest.mark.asyncio
async def test_other_conflicts_reach_the_caller():
    client = FakeClient()
    store = ProjectStore(client)

    async def reject(*args):
        raise ConflictError(code="cross_project")

    client.create_matrix_entry = reject

    with pytest.raises(ConflictError):
        await store.set_matrix_response(uuid.uuid4(), uuid.uuid4(), True)
    assert store.state.matrix_entries == ()
