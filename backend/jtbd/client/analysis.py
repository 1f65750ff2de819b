"""
Derived research views: story completeness, grouping and matrix progress

Nothing here is stored; every value is recomputed from the current rows.
"""
import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
from uuid import UUID

from jtbd.core.constants import ForceGroupType, ForceType
from jtbd.schemas import ForceGroupRead, ForceRead, MatrixEntryRead, StoryRead

DEFAULT_GROUPS_PER_TYPE = 10
STORY_PROGRESS_GATE = 80
COMPLETION_GATE = 90


@dataclass(frozen=True)
class Progress:
    answered: int
    total: int

    @property
    def percentage(self) -> int:
        """Whole percent, halves rounded up; 0 when there is nothing to answer"""
        if self.total <= 0:
            return 0
        return int(math.floor(self.answered * 100 / self.total + 0.5))


class PhaseStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    AVAILABLE = "available"
    COMPLETED = "completed"


def is_story_complete(story_id: UUID, forces: Iterable[ForceRead]) -> bool:
    """At least one push and one pull force; habit and anxiety do not count"""
    types = {f.type for f in forces if f.story_id == story_id}
    return ForceType.PUSH.value in types and ForceType.PULL.value in types


def default_group_names(group_type: str) -> List[str]:
    """The starting board for one type: numbered groups plus a leftover bucket"""
    label = ForceGroupType(group_type).value.capitalize()
    names = [f"{label} Group {i}" for i in range(1, DEFAULT_GROUPS_PER_TYPE + 1)]
    names.append(f"{label} Leftovers")
    return names


def grouping_stats(forces: Iterable[ForceRead], force_type: str) -> Progress:
    """How many forces of one type have been placed in a group"""
    typed = [f for f in forces if f.type == ForceType(force_type).value]
    return Progress(answered=sum(1 for f in typed if f.group_id is not None), total=len(typed))


def ungrouped_forces(forces: Iterable[ForceRead], force_type: str) -> List[ForceRead]:
    return [f for f in forces if f.type == ForceType(force_type).value and f.group_id is None]


def active_groups(groups: Iterable[ForceGroupRead], forces: Sequence[ForceRead]) -> List[ForceGroupRead]:
    """Groups holding at least one force; only these are asked in the matrix"""
    used = {f.group_id for f in forces if f.group_id is not None}
    return [g for g in groups if g.id in used]


def _answered_pairs(
    entries: Iterable[MatrixEntryRead],
    story_ids: Iterable[UUID],
    group_ids: Iterable[UUID],
) -> int:
    stories = set(story_ids)
    groups = set(group_ids)
    return sum(
        1 for e in entries
        if e.matches is not None and e.story_id in stories and e.group_id in groups
    )


def story_progress(
    story_id: UUID,
    entries: Iterable[MatrixEntryRead],
    groups: Sequence[ForceGroupRead],
) -> Progress:
    """Answered (non-null) responses for one story over the active groups"""
    group_ids = [g.id for g in groups]
    return Progress(answered=_answered_pairs(entries, [story_id], group_ids), total=len(group_ids))


def overall_progress(
    stories: Sequence[StoryRead],
    entries: Iterable[MatrixEntryRead],
    groups: Sequence[ForceGroupRead],
) -> Progress:
    group_ids = [g.id for g in groups]
    return Progress(
        answered=_answered_pairs(entries, [s.id for s in stories], group_ids),
        total=len(stories) * len(group_ids),
    )


def story_gate_errors(progress: Progress) -> List[str]:
    """Reasons a researcher may not move on from the current story"""
    if progress.percentage < STORY_PROGRESS_GATE:
        return [
            f"Please answer at least {STORY_PROGRESS_GATE}% of questions "
            f"(currently {progress.percentage}%)"
        ]
    return []


def can_complete_matrix(progress: Progress) -> bool:
    return progress.percentage >= COMPLETION_GATE


def matrix_responses(
    story_id: UUID,
    entries: Iterable[MatrixEntryRead],
    groups: Sequence[ForceGroupRead],
) -> Dict[UUID, Optional[bool]]:
    """Current answer per active group for one story (None when unanswered)"""
    by_group = {e.group_id: e.matches for e in entries if e.story_id == story_id}
    return {g.id: by_group.get(g.id) for g in groups}


def find_matrix_entry(
    entries: Iterable[MatrixEntryRead],
    story_id: UUID,
    group_id: UUID,
) -> Optional[MatrixEntryRead]:
    for entry in entries:
        if entry.story_id == story_id and entry.group_id == group_id:
            return entry
    return None


def phase_status(
    interviews: Sequence,
    stories: Sequence,
    forces: Sequence,
    groups: Sequence,
) -> Tuple[PhaseStatus, PhaseStatus, PhaseStatus, PhaseStatus]:
    """
    Status of the four research phases shown on the project overview

    1 data collection, 2 force grouping, 3 matrix validation, 4 results
    """
    if stories:
        collection = PhaseStatus.COMPLETED
    elif interviews:
        collection = PhaseStatus.IN_PROGRESS
    else:
        collection = PhaseStatus.PENDING

    if groups:
        grouping = PhaseStatus.COMPLETED
    elif forces:
        grouping = PhaseStatus.AVAILABLE
    else:
        grouping = PhaseStatus.PENDING

    matrix = PhaseStatus.AVAILABLE if groups else PhaseStatus.PENDING
    return collection, grouping, matrix, PhaseStatus.AVAILABLE
