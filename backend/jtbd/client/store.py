"""
Project store: the single in-process owner of fetched collections
"""
import asyncio
from typing import Any, Awaitable, Callable, List, Optional
from uuid import UUID

from jtbd.client import state as transitions
from jtbd.client.analysis import default_group_names, find_matrix_entry
from jtbd.client.domain import DomainClient
from jtbd.client.state import (PROJECT_DATA_FIELDS, PROJECTS_SCOPE, AppState,
                               project_scope)
from jtbd.core.constants import ForceGroupType
from jtbd.core.errors import ConflictError, JtbdError
from jtbd.core.logging_config import LoggingConfig
from jtbd.schemas import (ForceGroupRead, ForceRead, InterviewRead,
                          MatrixEntryRead, ProjectRead, StoryRead)

logger = LoggingConfig.get_logger(__name__)

Subscriber = Callable[[AppState], Any]


class ProjectStore:
    """
    Holds the current ``AppState`` and applies every change to it

    Views read ``store.state`` and subscribe for new snapshots; they never
    mutate collections themselves. Fetches of the same scope do not overlap:
    a call made while that scope is in flight returns immediately. Loads of
    different projects may overlap; only the most recently started one is
    installed.
    """

    def __init__(self, client: DomainClient, initial: Optional[AppState] = None):
        self.client = client
        self._state = initial or AppState()
        self._subscribers: List[Subscriber] = []
        # Bumped by every project load and every explicit project switch
        self._project_generation = 0

    @property
    def state(self) -> AppState:
        return self._state

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register for new snapshots; returns an unsubscribe function"""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def dispatch(self, transition: Callable[..., AppState], *args: Any) -> AppState:
        """Apply one transition and publish the result"""
        new_state = transition(self._state, *args)
        if new_state is not self._state:
            self._state = new_state
            for callback in list(self._subscribers):
                callback(new_state)
        return new_state

    async def _guarded(self, scope: str, operation: Callable[[], Awaitable[Any]]) -> bool:
        """
        Run ``operation`` unless ``scope`` is already in flight

        Returns:
            False when skipped because the scope was busy, or when
            ``operation`` itself returns False (its result was discarded)
        """
        if self._state.is_busy(scope):
            logger.debug(f"Skipping {scope} fetch: already in flight")
            return False

        self.dispatch(transitions.begin, scope)
        error = None
        try:
            applied = await operation()
        except JtbdError as e:
            error = e.message
            raise
        finally:
            self.dispatch(transitions.finish, scope, error)
        return applied is not False

    async def _install(self, name: str, fetch: Awaitable[List[Any]]) -> None:
        """Await ``fetch`` and merge its rows into collection ``name``"""
        held_before = frozenset(r.id for r in getattr(self._state, name))
        rows = await fetch
        self.dispatch(transitions.merge_collection, name, rows, held_before)

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    async def fetch_projects(self) -> bool:
        """Load the project list (with owners); a no-op while already loading"""
        async def load():
            await self._install("projects", self.client.list_projects())

        return await self._guarded(PROJECTS_SCOPE, load)

    async def refresh_profiles(self) -> bool:
        """Re-attach owner profiles without refetching projects"""
        async def load():
            owner_ids = sorted({p.owner_id for p in self._state.projects}, key=str)
            profiles = await self.client.list_profiles(owner_ids)
            self.dispatch(transitions.with_owner_profiles, profiles)

        return await self._guarded(PROJECTS_SCOPE, load)

    async def create_project(self, name: str, description: str = "") -> ProjectRead:
        project = await self.client.create_project(name, description)
        self.dispatch(transitions.add_record, "projects", project)
        return project

    async def update_project(self, project_id: UUID, **changes: Any) -> ProjectRead:
        project = await self.client.update_project(project_id, **changes)
        self.dispatch(transitions.update_record, "projects", project)
        return project

    async def delete_project(self, project_id: UUID) -> None:
        await self.client.delete_project(project_id)
        self.dispatch(transitions.remove_record, "projects", project_id)
        if self._state.current_project is not None and self._state.current_project.id == project_id:
            self._project_generation += 1
            self.dispatch(transitions.reset_project_data)

    def set_current_project(self, project: Optional[ProjectRead]) -> None:
        self._project_generation += 1
        self.dispatch(transitions.set_current_project, project)

    async def load_project_data(self, project_id: UUID) -> bool:
        """
        Load one project and everything under it as a single snapshot

        A second call for the same project while the first is in flight is a
        no-op. A load overtaken by a later load or project switch is
        discarded when it lands.

        Returns:
            True when the snapshot was installed
        """
        async def load():
            self._project_generation += 1
            generation = self._project_generation
            current = self._state.current_project
            held_before = None
            if current is not None and current.id == project_id:
                held_before = transitions.held_ids(self._state, PROJECT_DATA_FIELDS)

            results = await asyncio.gather(
                self.client.get_project(project_id),
                self.client.list_interviews(project_id),
                self.client.list_stories(project_id=project_id),
                self.client.list_forces(project_id=project_id),
                self.client.list_force_groups(project_id),
                self.client.list_matrix_entries(project_id=project_id),
            )
            if generation != self._project_generation:
                logger.debug(f"Discarding load of project {project_id}: superseded")
                return False
            self.dispatch(transitions.set_project_data, *results, held_before)
            return True

        return await self._guarded(project_scope(project_id), load)

    # ------------------------------------------------------------------
    # Interviews and stories
    # ------------------------------------------------------------------

    async def fetch_interviews(self, project_id: UUID) -> None:
        await self._install("interviews", self.client.list_interviews(project_id))

    async def create_interview(self, project_id: UUID, participant_name: str, **fields: Any) -> InterviewRead:
        interview = await self.client.create_interview(project_id, participant_name, **fields)
        self.dispatch(transitions.add_record, "interviews", interview)
        return interview

    async def fetch_stories(self, project_id: UUID) -> None:
        await self._install("stories", self.client.list_stories(project_id=project_id))

    async def create_story(self, interview_id: UUID, title: str, description: str,
                           situation_a: str, situation_b: str, **fields: Any) -> StoryRead:
        story = await self.client.create_story(
            interview_id, title, description, situation_a, situation_b, **fields
        )
        self.dispatch(transitions.add_record, "stories", story)
        return story

    async def update_story(self, story_id: UUID, **changes: Any) -> StoryRead:
        story = await self.client.update_story(story_id, **changes)
        self.dispatch(transitions.update_record, "stories", story)
        return story

    # ------------------------------------------------------------------
    # Forces
    # ------------------------------------------------------------------

    async def fetch_forces(self, project_id: UUID) -> None:
        await self._install("forces", self.client.list_forces(project_id=project_id))

    async def create_force(self, story_id: UUID, type: str, description: str, **fields: Any) -> ForceRead:
        force = await self.client.create_force(story_id, type, description, **fields)
        self.dispatch(transitions.add_record, "forces", force)
        return force

    async def update_force(self, force_id: UUID, **changes: Any) -> ForceRead:
        force = await self.client.update_force(force_id, **changes)
        self.dispatch(transitions.update_record, "forces", force)
        return force

    async def delete_force(self, force_id: UUID) -> None:
        await self.client.delete_force(force_id)
        self.dispatch(transitions.remove_record, "forces", force_id)

    async def assign_force_to_group(self, force_id: UUID, group_id: Optional[UUID]) -> ForceRead:
        force = await self.client.assign_force_to_group(force_id, group_id)
        self.dispatch(transitions.update_record, "forces", force)
        return force

    # ------------------------------------------------------------------
    # Force groups
    # ------------------------------------------------------------------

    async def fetch_force_groups(self, project_id: UUID) -> None:
        await self._install("force_groups", self.client.list_force_groups(project_id))

    async def create_force_group(self, project_id: UUID, name: str, type: str, **fields: Any) -> ForceGroupRead:
        group = await self.client.create_force_group(project_id, name, type, **fields)
        self.dispatch(transitions.add_record, "force_groups", group)
        return group

    async def update_force_group(self, group_id: UUID, **changes: Any) -> ForceGroupRead:
        group = await self.client.update_force_group(group_id, **changes)
        self.dispatch(transitions.update_record, "force_groups", group)
        return group

    async def initialize_groups(self, project_id: UUID) -> List[ForceGroupRead]:
        """
        Create the default board for every type that has no groups yet

        Groups are created one at a time so positions follow the board order.
        """
        await self.fetch_force_groups(project_id)
        created = []
        for group_type in ForceGroupType:
            if any(g.type == group_type.value for g in self._state.force_groups):
                continue
            for name in default_group_names(group_type.value):
                created.append(await self.create_force_group(project_id, name, group_type.value))
        if created:
            logger.info(f"Initialized {len(created)} force groups for project {project_id}")
        return created

    # ------------------------------------------------------------------
    # Matrix
    # ------------------------------------------------------------------

    async def fetch_matrix_entries(self, project_id: UUID) -> None:
        await self._install("matrix_entries", self.client.list_matrix_entries(project_id=project_id))

    async def set_matrix_response(self, story_id: UUID, group_id: UUID,
                                  matches: Optional[bool]) -> MatrixEntryRead:
        """
        Record an answer: update the pair's entry, or create it the first time

        The pair may already be answered on the server without this store
        holding the entry (not loaded yet, or answered by a teammate). The
        create is then rejected with ``duplicate_matrix_entry`` and the stored
        entry is updated instead.
        """
        existing = find_matrix_entry(self._state.matrix_entries, story_id, group_id)
        if existing is not None:
            entry = await self.client.update_matrix_entry(existing.id, matches)
            self.dispatch(transitions.update_record, "matrix_entries", entry)
            return entry

        try:
            entry = await self.client.create_matrix_entry(story_id, group_id, matches)
        except ConflictError as e:
            if e.code != "duplicate_matrix_entry":
                raise
            stored = find_matrix_entry(await self.client.list_matrix_entries(story_id=story_id), story_id, group_id)
            if stored is None:
                raise
            logger.debug(f"Matrix entry for story {story_id} and group {group_id} already exists; updating it")
            entry = await self.client.update_matrix_entry(stored.id, matches)
        self.dispatch(transitions.add_record, "matrix_entries", entry)
        return entry

    def reset(self) -> None:
        """Forget everything (used on sign-out)"""
        self._project_generation += 1
        self.dispatch(transitions.reset)
