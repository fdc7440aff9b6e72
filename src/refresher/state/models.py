"""Data models for projects, merge requests, notes and todos."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MergeRequestState(str, Enum):
    """Lifecycle state of a merge request."""

    OPENED = "opened"
    MERGED = "merged"
    CLOSED = "closed"


class MergeStatus(str, Enum):
    """Cached mergeability of a merge request."""

    UNCHECKED = "unchecked"
    CAN_BE_MERGED = "can_be_merged"
    CANNOT_BE_MERGED = "cannot_be_merged"


class TodoState(str, Enum):
    """State of a todo."""

    PENDING = "pending"
    DONE = "done"


class TodoKind(str, Enum):
    """What a todo is about."""

    ASSIGNED = "assigned"
    MENTIONED = "mentioned"
    BUILD_FAILED = "build_failed"


# Transitions this engine is allowed to perform.
ALLOWED_TRANSITIONS: dict[MergeRequestState, frozenset[MergeRequestState]] = {
    MergeRequestState.OPENED: frozenset({MergeRequestState.MERGED}),
    MergeRequestState.MERGED: frozenset(),
    MergeRequestState.CLOSED: frozenset(),
}


def try_transition(
    current: MergeRequestState,
    target: MergeRequestState,
) -> MergeRequestState | None:
    """Return the new state, or None if the transition is rejected.

    Args:
        current: State the merge request is in
        target: State requested

    Returns:
        ``target`` when the transition is allowed, otherwise None
    """
    if target in ALLOWED_TRANSITIONS[current]:
        return target
    return None


@dataclass
class Project:
    """A project hosting a git repository, possibly a fork of another project."""

    id: int
    path: str
    repository_path: str = ""
    default_branch: str = "master"
    forked_from_id: int | None = None


@dataclass
class MergeRequest:
    """A proposal to merge a source branch into a target branch.

    ``source_project_id`` is a weak reference: the project it points at
    may have been deleted, in which case a lookup returns None.
    ``source_sha`` is the last source branch tip seen by the engine; it
    survives deletion of the branch so a restore can be measured from it.
    """

    id: int
    source_project_id: int | None
    source_branch: str
    target_project_id: int
    target_branch: str
    title: str = ""
    source_sha: str = ""
    state: MergeRequestState = MergeRequestState.OPENED
    merge_status: MergeStatus = MergeStatus.UNCHECKED
    merge_when_build_succeeds: bool = False
    merge_user_id: int | None = None
    lock_version: int = 0

    @property
    def is_open(self) -> bool:
        return self.state == MergeRequestState.OPENED

    @property
    def is_merged(self) -> bool:
        return self.state == MergeRequestState.MERGED

    def to_dict(self) -> dict:
        """Convert merge request to a dictionary for serialization."""
        return {
            "id": self.id,
            "title": self.title,
            "source_project_id": self.source_project_id,
            "source_branch": self.source_branch,
            "source_sha": self.source_sha,
            "target_project_id": self.target_project_id,
            "target_branch": self.target_branch,
            "state": self.state.value,
            "merge_status": self.merge_status.value,
            "merge_when_build_succeeds": self.merge_when_build_succeeds,
            "merge_user_id": self.merge_user_id,
        }


@dataclass(frozen=True)
class Note:
    """An immutable entry in a merge request's activity timeline."""

    id: int
    merge_request_id: int
    body: str
    author_id: int | None = None
    system: bool = True
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class Todo:
    """A pending notification for a user about a merge request."""

    id: int
    user_id: int
    target_id: int
    kind: TodoKind = TodoKind.BUILD_FAILED
    state: TodoState = TodoState.PENDING
    author_id: int | None = None

    @property
    def is_pending(self) -> bool:
        return self.state == TodoState.PENDING
