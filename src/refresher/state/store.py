"""Entity stores used by the refresh engine.

The engine only depends on the abstract interfaces. The in-memory
implementations back the web server and the tests; a database-backed
store must honour the same contract, in particular the conditional
update in ``MergeRequestStore.compare_and_set``.
"""

import itertools
import threading
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime

from refresher.state.models import (
    MergeRequest,
    MergeRequestState,
    Note,
    Project,
    Todo,
    TodoKind,
    TodoState,
)


class ProjectStore(ABC):
    """Lookup of projects by id."""

    @abstractmethod
    def get(self, project_id: int | None) -> Project | None:
        """Return the project, or None if it does not exist (anymore)."""


class MergeRequestStore(ABC):
    """Storage for merge requests with optimistic locking."""

    @abstractmethod
    def get(self, merge_request_id: int) -> MergeRequest | None:
        """Return a snapshot of the merge request, or None."""

    @abstractmethod
    def find_opened(
        self,
        *,
        source_project_id: int | None = None,
        source_branch: str | None = None,
        target_project_id: int | None = None,
        target_branch: str | None = None,
    ) -> list[MergeRequest]:
        """Return opened merge requests matching every given filter, ordered by id."""

    @abstractmethod
    def compare_and_set(
        self,
        expected: MergeRequest,
        updated: MergeRequest,
    ) -> MergeRequest | None:
        """Store ``updated`` if the stored row still matches ``expected``.

        Args:
            expected: Snapshot read before computing the update
            updated: New version of the merge request

        Returns:
            The stored merge request on success, None if another writer won
        """


class NoteStore(ABC):
    """Append-only storage for merge request notes."""

    @abstractmethod
    def append(
        self,
        merge_request_id: int,
        body: str,
        created_at: datetime,
        author_id: int | None = None,
        system: bool = True,
    ) -> Note:
        """Append a note and return it."""

    @abstractmethod
    def for_merge_request(self, merge_request_id: int) -> list[Note]:
        """Return the notes of a merge request ordered by creation time."""

    def last_for(self, merge_request_id: int) -> Note | None:
        notes = self.for_merge_request(merge_request_id)
        return notes[-1] if notes else None


class TodoStore(ABC):
    """Storage for user todos."""

    @abstractmethod
    def get(self, todo_id: int) -> Todo | None:
        """Return a snapshot of the todo, or None."""

    @abstractmethod
    def pending_for(self, target_id: int, kind: TodoKind) -> list[Todo]:
        """Return pending todos of ``kind`` targeting a merge request."""

    @abstractmethod
    def mark_done(self, todo_ids: list[int]) -> int:
        """Move the given todos from pending to done.

        Returns:
            Number of todos that were actually pending
        """


class InMemoryProjectStore(ProjectStore):
    """Thread-safe in-memory project store."""

    def __init__(self):
        self._projects: dict[int, Project] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def next_id(self) -> int:
        with self._lock:
            candidate = next(self._ids)
            while candidate in self._projects:
                candidate = next(self._ids)
            return candidate

    def add(self, project: Project) -> Project:
        with self._lock:
            self._projects[project.id] = replace(project)
        return project

    def get(self, project_id: int | None) -> Project | None:
        if project_id is None:
            return None
        with self._lock:
            project = self._projects.get(project_id)
            return replace(project) if project else None

    def delete(self, project_id: int) -> None:
        """Delete a project. Merge requests keep their dangling reference."""
        with self._lock:
            self._projects.pop(project_id, None)


class InMemoryMergeRequestStore(MergeRequestStore):
    """Thread-safe in-memory merge request store."""

    def __init__(self):
        self._merge_requests: dict[int, MergeRequest] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def next_id(self) -> int:
        with self._lock:
            candidate = next(self._ids)
            while candidate in self._merge_requests:
                candidate = next(self._ids)
            return candidate

    def add(self, merge_request: MergeRequest) -> MergeRequest:
        with self._lock:
            self._merge_requests[merge_request.id] = replace(merge_request)
        return merge_request

    def get(self, merge_request_id: int) -> MergeRequest | None:
        with self._lock:
            merge_request = self._merge_requests.get(merge_request_id)
            return replace(merge_request) if merge_request else None

    def find_opened(
        self,
        *,
        source_project_id: int | None = None,
        source_branch: str | None = None,
        target_project_id: int | None = None,
        target_branch: str | None = None,
    ) -> list[MergeRequest]:
        filters = {
            "source_project_id": source_project_id,
            "source_branch": source_branch,
            "target_project_id": target_project_id,
            "target_branch": target_branch,
        }
        wanted = {name: value for name, value in filters.items() if value is not None}

        with self._lock:
            matches = [
                replace(mr)
                for mr in self._merge_requests.values()
                if mr.state == MergeRequestState.OPENED
                and all(getattr(mr, name) == value for name, value in wanted.items())
            ]
        return sorted(matches, key=lambda mr: mr.id)

    def compare_and_set(
        self,
        expected: MergeRequest,
        updated: MergeRequest,
    ) -> MergeRequest | None:
        with self._lock:
            current = self._merge_requests.get(expected.id)
            if current is None or current.lock_version != expected.lock_version:
                return None
            stored = replace(updated, lock_version=current.lock_version + 1)
            self._merge_requests[expected.id] = stored
            return replace(stored)


class InMemoryNoteStore(NoteStore):
    """Thread-safe in-memory note store."""

    def __init__(self):
        self._notes: dict[int, list[Note]] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def append(
        self,
        merge_request_id: int,
        body: str,
        created_at: datetime,
        author_id: int | None = None,
        system: bool = True,
    ) -> Note:
        with self._lock:
            note = Note(
                id=next(self._ids),
                merge_request_id=merge_request_id,
                body=body,
                author_id=author_id,
                system=system,
                created_at=created_at,
            )
            self._notes.setdefault(merge_request_id, []).append(note)
            return note

    def for_merge_request(self, merge_request_id: int) -> list[Note]:
        with self._lock:
            notes = list(self._notes.get(merge_request_id, []))
        return sorted(notes, key=lambda note: (note.created_at, note.id))


class InMemoryTodoStore(TodoStore):
    """Thread-safe in-memory todo store."""

    def __init__(self):
        self._todos: dict[int, Todo] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def next_id(self) -> int:
        with self._lock:
            candidate = next(self._ids)
            while candidate in self._todos:
                candidate = next(self._ids)
            return candidate

    def add(self, todo: Todo) -> Todo:
        with self._lock:
            self._todos[todo.id] = replace(todo)
        return todo

    def get(self, todo_id: int) -> Todo | None:
        with self._lock:
            todo = self._todos.get(todo_id)
            return replace(todo) if todo else None

    def pending_for(self, target_id: int, kind: TodoKind) -> list[Todo]:
        with self._lock:
            todos = [
                replace(todo)
                for todo in self._todos.values()
                if todo.target_id == target_id
                and todo.kind == kind
                and todo.is_pending
            ]
        return sorted(todos, key=lambda todo: todo.id)

    def mark_done(self, todo_ids: list[int]) -> int:
        resolved = 0
        with self._lock:
            for todo_id in todo_ids:
                todo = self._todos.get(todo_id)
                if todo is not None and todo.is_pending:
                    todo.state = TodoState.DONE
                    resolved += 1
        return resolved
