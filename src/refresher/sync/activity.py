"""System notes describing what a push did to a merge request."""

import threading
from datetime import datetime, timedelta
from typing import Callable

from refresher.state.models import MergeRequest, Note, utcnow
from refresher.state.store import NoteStore


SHORT_SHA_LENGTH = 8


def merged_note() -> str:
    return "Status changed to merged"


def branch_restored_note(branch_name: str) -> str:
    return f"Restored source branch `{branch_name}`."


def branch_deleted_note(branch_name: str) -> str:
    return f"Deleted source branch `{branch_name}`."


def commits_added_note(commits: list[str]) -> str:
    """Summarize newly pushed commits, newest first."""
    lines = [f"Added {len(commits)} commits:", ""]
    lines.extend(f"* {sha[:SHORT_SHA_LENGTH]}" for sha in commits)
    return "\n".join(lines)


class ActivityRecorder:
    """Appends system notes with strictly increasing timestamps per merge request."""

    def __init__(
        self,
        notes: NoteStore,
        clock: Callable[[], datetime] = utcnow,
    ):
        """Initialize the recorder.

        Args:
            notes: Store the notes are appended to
            clock: Source of creation timestamps
        """
        self.notes = notes
        self._clock = clock
        self._lock = threading.Lock()

    def record(
        self,
        merge_request: MergeRequest,
        body: str,
        author_id: int | None = None,
    ) -> Note:
        """Append a note to a merge request's timeline.

        Args:
            merge_request: Merge request the note belongs to
            body: Note text
            author_id: User the change is attributed to

        Returns:
            The stored note
        """
        with self._lock:
            created_at = self._clock()
            last = self.notes.last_for(merge_request.id)
            if last is not None and created_at <= last.created_at:
                created_at = last.created_at + timedelta(microseconds=1)
            return self.notes.append(
                merge_request.id,
                body,
                created_at=created_at,
                author_id=author_id,
            )
