"""Pytest fixtures for refresher tests."""

import hashlib
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from refresher.errors import RevisionNotFound
from refresher.git.graph import CommitGraph
from refresher.state.models import MergeRequest, Project, Todo, TodoKind
from refresher.state.store import (
    InMemoryMergeRequestStore,
    InMemoryNoteStore,
    InMemoryProjectStore,
    InMemoryTodoStore,
)
from refresher.sync.service import RefreshService


def make_sha(name: str) -> str:
    return hashlib.sha1(name.encode()).hexdigest()


class FakeCommitGraph(CommitGraph):
    """In-memory commit graph shared by all projects, like a fork network."""

    def __init__(self):
        self.parents: dict[str, str | None] = {}
        self.branches: dict[tuple[int, str], str] = {}

    def commit(self, name: str, parent: str | None = None) -> str:
        sha = make_sha(name)
        self.parents[sha] = parent
        return sha

    def set_branch(self, project: Project, branch_name: str, sha: str) -> None:
        self.branches[(project.id, branch_name)] = sha

    def delete_branch(self, project: Project, branch_name: str) -> None:
        self.branches.pop((project.id, branch_name), None)

    def history(self, sha: str) -> list[str]:
        commits = []
        current: str | None = sha
        while current is not None:
            commits.append(current)
            current = self.parents[current]
        return commits

    def _verify(self, project: Project, sha: str) -> None:
        if sha not in self.parents:
            raise RevisionNotFound(sha, project.path)

    def resolve_branch_tip(self, project, branch_name):
        return self.branches.get((project.id, branch_name))

    def is_ancestor(self, project, candidate, descendant):
        self._verify(project, candidate)
        self._verify(project, descendant)
        return candidate in self.history(descendant)

    def commits_between(self, project, base, head):
        self._verify(project, base)
        self._verify(project, head)
        hidden = set(self.history(base))
        return [sha for sha in self.history(head) if sha not in hidden]

    def merge_base(self, project, first, second):
        self._verify(project, first)
        self._verify(project, second)
        reachable = set(self.history(second))
        for sha in self.history(first):
            if sha in reachable:
                return sha
        return None


class StepClock:
    """Clock returning the same instant until advanced."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float = 1) -> None:
        self.now += timedelta(seconds=seconds)


@dataclass
class World:
    """A project, its fork, two merge requests and two build-failure todos.

    History is linear: c4 <- c3 <- c2 <- c1 <- c0. ``master`` points at c0
    in both the project and the fork, ``feature`` points at c4. Both merge
    requests last saw their source branch at c4.
    """

    projects: InMemoryProjectStore
    merge_requests: InMemoryMergeRequestStore
    notes: InMemoryNoteStore
    todos: InMemoryTodoStore
    graph: FakeCommitGraph
    hooks: MagicMock
    service: RefreshService
    project: Project
    fork_project: Project
    merge_request: MergeRequest
    fork_merge_request: MergeRequest
    build_failed_todo: Todo
    fork_build_failed_todo: Todo
    shas: dict[str, str]
    user_id: int = 7

    @property
    def oldrev(self) -> str:
        return self.shas["c4"]

    @property
    def newrev(self) -> str:
        return self.shas["c0"]

    def mr(self) -> MergeRequest:
        return self.merge_requests.get(self.merge_request.id)

    def fork_mr(self) -> MergeRequest:
        return self.merge_requests.get(self.fork_merge_request.id)

    def todo(self) -> Todo:
        return self.todos.get(self.build_failed_todo.id)

    def fork_todo(self) -> Todo:
        return self.todos.get(self.fork_build_failed_todo.id)

    def note_bodies(self, merge_request: MergeRequest) -> list[str]:
        return [note.body for note in self.notes.for_merge_request(merge_request.id)]


@pytest.fixture
def graph():
    return FakeCommitGraph()


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def world(graph, clock):
    """The project/fork scenario used by the refresh tests."""
    projects = InMemoryProjectStore()
    merge_requests = InMemoryMergeRequestStore()
    notes = InMemoryNoteStore()
    todos = InMemoryTodoStore()
    hooks = MagicMock()

    project = projects.add(Project(id=1, path="group/project"))
    fork_project = projects.add(Project(id=2, path="user/project", forked_from_id=1))

    shas: dict[str, str] = {}
    parent = None
    for name in ("c4", "c3", "c2", "c1", "c0"):
        parent = shas[name] = graph.commit(name, parent)

    for owner in (project, fork_project):
        graph.set_branch(owner, "master", shas["c0"])
        graph.set_branch(owner, "feature", shas["c4"])

    merge_request = merge_requests.add(
        MergeRequest(
            id=1,
            source_project_id=project.id,
            source_branch="master",
            source_sha=shas["c4"],
            target_project_id=project.id,
            target_branch="feature",
            merge_when_build_succeeds=True,
            merge_user_id=7,
        )
    )
    fork_merge_request = merge_requests.add(
        MergeRequest(
            id=2,
            source_project_id=fork_project.id,
            source_branch="master",
            source_sha=shas["c4"],
            target_project_id=project.id,
            target_branch="feature",
        )
    )
    build_failed_todo = todos.add(
        Todo(id=1, user_id=7, target_id=merge_request.id, kind=TodoKind.BUILD_FAILED)
    )
    fork_build_failed_todo = todos.add(
        Todo(id=2, user_id=7, target_id=fork_merge_request.id, kind=TodoKind.BUILD_FAILED)
    )

    service = RefreshService(
        projects=projects,
        merge_requests=merge_requests,
        notes=notes,
        todos=todos,
        graph=graph,
        hooks=hooks,
        clock=clock,
    )

    return World(
        projects=projects,
        merge_requests=merge_requests,
        notes=notes,
        todos=todos,
        graph=graph,
        hooks=hooks,
        service=service,
        project=project,
        fork_project=fork_project,
        merge_request=merge_request,
        fork_merge_request=fork_merge_request,
        build_failed_todo=build_failed_todo,
        fork_build_failed_todo=fork_build_failed_todo,
        shas=shas,
    )
