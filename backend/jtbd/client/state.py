"""
Client application state and its transitions

``AppState`` is an immutable snapshot. Every change is a pure function taking
the current state and returning a new one; ``ProjectStore`` is the only place
that applies them.
"""
from dataclasses import dataclass, replace
from typing import Any, Dict, FrozenSet, Iterable, Optional, Tuple
from uuid import UUID

from jtbd.schemas import (ForceGroupRead, ForceRead, InterviewRead,
                          MatrixEntryRead, ProfileRead, ProfileSummary,
                          ProjectRead, StoryRead)

PROJECTS_SCOPE = "projects"

# Collections held in the state
COLLECTION_FIELDS = ("projects", "interviews", "stories", "forces", "force_groups", "matrix_entries")

# Collections loaded under the current project
PROJECT_DATA_FIELDS = COLLECTION_FIELDS[1:]


def project_scope(project_id: UUID) -> str:
    return f"project:{project_id}"


@dataclass(frozen=True)
class AppState:
    """Everything the views render from"""
    current_project: Optional[ProjectRead] = None
    projects: Tuple[ProjectRead, ...] = ()
    interviews: Tuple[InterviewRead, ...] = ()
    stories: Tuple[StoryRead, ...] = ()
    forces: Tuple[ForceRead, ...] = ()
    force_groups: Tuple[ForceGroupRead, ...] = ()
    matrix_entries: Tuple[MatrixEntryRead, ...] = ()
    in_flight: FrozenSet[str] = frozenset()
    error: Optional[str] = None

    @property
    def loading(self) -> bool:
        return bool(self.in_flight)

    def is_busy(self, scope: str) -> bool:
        return scope in self.in_flight


def _check_field(name: str) -> None:
    if name not in COLLECTION_FIELDS:
        raise KeyError(f"AppState has no collection '{name}'")


def _sorted(name: str, rows: Iterable[Any]) -> Tuple[Any, ...]:
    if name == "force_groups":
        return tuple(sorted(rows, key=lambda g: (g.position, g.created_at)))
    return tuple(sorted(rows, key=lambda r: r.created_at, reverse=True))


# ----------------------------------------------------------------------
# Busy scopes
# ----------------------------------------------------------------------

def begin(state: AppState, scope: str) -> AppState:
    return replace(state, in_flight=state.in_flight | {scope}, error=None)


def finish(state: AppState, scope: str, error: Optional[str] = None) -> AppState:
    return replace(state, in_flight=state.in_flight - {scope}, error=error)


# ----------------------------------------------------------------------
# Collections
# ----------------------------------------------------------------------

def _merged_rows(held: Iterable[Any], fetched: Iterable[Any], held_before: FrozenSet[UUID]) -> list:
    """
    Fetched rows reconciled with changes made while the fetch was in flight

    Rows added since the fetch began are kept, rows removed since are not
    brought back, and for rows present in both the later ``updated_at`` wins.
    """
    current = {r.id: r for r in held}
    removed = held_before - current.keys()
    rows = {}
    for row in fetched:
        if row.id in removed:
            continue
        mine = current.get(row.id)
        rows[row.id] = mine if mine is not None and mine.updated_at > row.updated_at else row
    for row_id in current.keys() - held_before - rows.keys():
        rows[row_id] = current[row_id]
    return list(rows.values())


def merge_collection(state: AppState, name: str, rows: Iterable[Any], held_before: FrozenSet[UUID]) -> AppState:
    """
    Install freshly fetched rows without losing local writes

    ``held_before`` is the set of ids the collection held when the fetch
    started.
    """
    _check_field(name)
    return replace(state, **{name: _sorted(name, _merged_rows(getattr(state, name), rows, held_before))})


def add_record(state: AppState, name: str, row: Any) -> AppState:
    """Insert a created row (or replace it if the same id is already held)"""
    _check_field(name)
    others = [r for r in getattr(state, name) if r.id != row.id]
    return replace(state, **{name: _sorted(name, others + [row])})


def update_record(state: AppState, name: str, row: Any) -> AppState:
    """Replace a held row by id; rows not held are left alone"""
    _check_field(name)
    rows = tuple(row if r.id == row.id else r for r in getattr(state, name))
    changes: Dict[str, Any] = {name: _sorted(name, rows)}
    if name == "projects" and state.current_project is not None and state.current_project.id == row.id:
        changes["current_project"] = row
    return replace(state, **changes)


def remove_record(state: AppState, name: str, row_id: UUID) -> AppState:
    _check_field(name)
    return replace(state, **{name: tuple(r for r in getattr(state, name) if r.id != row_id)})


def set_current_project(state: AppState, project: Optional[ProjectRead]) -> AppState:
    return replace(state, current_project=project)


def set_project_data(
    state: AppState,
    project: ProjectRead,
    interviews: Iterable[InterviewRead],
    stories: Iterable[StoryRead],
    forces: Iterable[ForceRead],
    force_groups: Iterable[ForceGroupRead],
    matrix_entries: Iterable[MatrixEntryRead],
    held_before: Optional[Dict[str, FrozenSet[UUID]]] = None,
) -> AppState:
    """
    Install everything under one project as a single snapshot

    With ``held_before`` (ids per collection when a reload of the open
    project started) rows written during the load are merged in instead of
    being replaced.
    """
    fetched = {
        "interviews": interviews,
        "stories": stories,
        "forces": forces,
        "force_groups": force_groups,
        "matrix_entries": matrix_entries,
    }
    if held_before is not None:
        fetched = {
            name: _merged_rows(getattr(state, name), rows, held_before.get(name, frozenset()))
            for name, rows in fetched.items()
        }
    return replace(
        state,
        current_project=project,
        **{name: _sorted(name, rows) for name, rows in fetched.items()},
    )


def held_ids(state: AppState, names: Iterable[str]) -> Dict[str, FrozenSet[UUID]]:
    """Ids currently held per collection, taken when a fetch starts"""
    return {name: frozenset(r.id for r in getattr(state, name)) for name in names}


def with_owner_profiles(state: AppState, profiles: Iterable[ProfileRead]) -> AppState:
    """Re-attach owner profiles to the held projects"""
    by_id = {p.id: ProfileSummary(id=p.id, full_name=p.full_name, email=p.email) for p in profiles}
    projects = tuple(
        p.model_copy(update={"owner": by_id[p.owner_id]}) if p.owner_id in by_id else p
        for p in state.projects
    )
    return replace(state, projects=projects)


def reset(state: AppState) -> AppState:
    """Drop everything (sign-out)"""
    return AppState()


def reset_project_data(state: AppState) -> AppState:
    """Forget the current project and everything loaded under it"""
    return replace(
        state,
        current_project=None,
        interviews=(),
        stories=(),
        forces=(),
        force_groups=(),
        matrix_entries=(),
    )
