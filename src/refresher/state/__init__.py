"""Entity models and stores."""

from refresher.state.models import (
    MergeRequest,
    MergeRequestState,
    MergeStatus,
    Note,
    Project,
    Todo,
    TodoKind,
    TodoState,
    try_transition,
)
from refresher.state.store import (
    InMemoryMergeRequestStore,
    InMemoryNoteStore,
    InMemoryProjectStore,
    InMemoryTodoStore,
    MergeRequestStore,
    NoteStore,
    ProjectStore,
    TodoStore,
)

__all__ = [
    "MergeRequest",
    "MergeRequestState",
    "MergeStatus",
    "Note",
    "Project",
    "Todo",
    "TodoKind",
    "TodoState",
    "try_transition",
    "InMemoryMergeRequestStore",
    "InMemoryNoteStore",
    "InMemoryProjectStore",
    "InMemoryTodoStore",
    "MergeRequestStore",
    "NoteStore",
    "ProjectStore",
    "TodoStore",
]
