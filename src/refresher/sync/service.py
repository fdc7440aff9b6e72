"""Refresh of merge requests after a push to a branch."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from refresher.errors import AbsentProject, RevisionNotFound
from refresher.git.graph import CommitGraph
from refresher.push.descriptor import PushDescriptor, parse_ref
from refresher.state.models import MergeRequest, Project, TodoKind, utcnow
from refresher.state.store import (
    MergeRequestStore,
    NoteStore,
    ProjectStore,
    TodoStore,
)
from refresher.sync.activity import ActivityRecorder
from refresher.sync.detector import MergeDetector
from refresher.sync.effects import AppendNote, FireHook, RefreshPlan, ResolveTodos, Role
from refresher.sync.hooks import HookNotifier, LoggingHookNotifier
from refresher.sync.locator import MergeRequestLocator
from refresher.sync.source_branch import SourceBranchSynchronizer


logger = logging.getLogger(__name__)


@dataclass
class RefreshResult:
    """Outcome of refreshing merge requests for one push."""

    project_id: int
    branch_name: str
    old_revision: str
    new_revision: str
    commit_count: int = 0
    merged: list[int] = field(default_factory=list)
    updated: list[int] = field(default_factory=list)
    skipped: list[int] = field(default_factory=list)
    conflicts: list[int] = field(default_factory=list)
    errors: dict[int, str] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict:
        """Convert result to dictionary for serialization."""
        return {
            "project_id": self.project_id,
            "branch_name": self.branch_name,
            "old_revision": self.old_revision,
            "new_revision": self.new_revision,
            "commit_count": self.commit_count,
            "merged": self.merged,
            "updated": self.updated,
            "skipped": self.skipped,
            "conflicts": self.conflicts,
            "errors": {str(mr_id): error for mr_id, error in self.errors.items()},
        }


class RefreshService:
    """Keeps open merge requests consistent with a pushed branch.

    Merge requests targeting the branch are checked for an implicit merge
    first, then merge requests whose source is the branch are refreshed.
    A failure on one merge request is logged and recorded in the result;
    the remaining merge requests are still processed.
    """

    def __init__(
        self,
        projects: ProjectStore,
        merge_requests: MergeRequestStore,
        notes: NoteStore,
        todos: TodoStore,
        graph: CommitGraph,
        hooks: HookNotifier | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.projects = projects
        self.merge_requests = merge_requests
        self.todos = todos
        self.graph = graph
        self.hooks = hooks or LoggingHookNotifier()

        self.locator = MergeRequestLocator(merge_requests)
        self.detector = MergeDetector(projects, graph)
        self.synchronizer = SourceBranchSynchronizer(projects, graph)
        self.activity = ActivityRecorder(notes, clock=clock)

    def execute(
        self,
        project_id: int,
        old_revision: str,
        new_revision: str,
        ref: str,
        user_id: int | None = None,
    ) -> RefreshResult:
        """Refresh merge requests affected by a push.

        Args:
            project_id: Project that received the push
            old_revision: Previous branch tip
            new_revision: New branch tip
            ref: Pushed ref, must be a branch ref
            user_id: User who pushed

        Returns:
            RefreshResult describing what happened

        Raises:
            InvalidRefKind: If ``ref`` is not a branch
            AbsentProject: If the pushed project does not exist
        """
        parse_ref(ref)
        project = self.projects.get(project_id)
        if project is None:
            raise AbsentProject(project_id)

        push = self.describe_push(project, old_revision, new_revision, ref)
        result = RefreshResult(
            project_id=project.id,
            branch_name=push.branch_name,
            old_revision=old_revision,
            new_revision=new_revision,
            commit_count=push.commit_count,
        )

        logger.info(
            f"Refreshing merge requests for {project.path}:{push.branch_name} "
            f"({old_revision[:8]}..{new_revision[:8]}, {push.commit_count} new commits)"
        )

        target_matches = self.locator.find_by_role(project.id, push.branch_name, Role.TARGET)
        source_matches = self.locator.find_by_role(project.id, push.branch_name, Role.SOURCE)

        for merge_request in target_matches:
            self._refresh(merge_request, Role.TARGET, push, user_id, result)
        for merge_request in source_matches:
            self._refresh(merge_request, Role.SOURCE, push, user_id, result)

        logger.info(
            f"Refresh of {project.path}:{push.branch_name} done: "
            f"merged={result.merged}, updated={result.updated}, "
            f"skipped={result.skipped}, errors={len(result.errors)}"
        )
        return result

    def describe_push(
        self,
        project: Project,
        old_revision: str,
        new_revision: str,
        ref: str,
    ) -> PushDescriptor:
        try:
            return PushDescriptor.build(project, old_revision, new_revision, ref, self.graph)
        except (RevisionNotFound, AbsentProject) as e:
            logger.warning(f"Could not list pushed commits for {ref} in {project.path}: {e}")
            return PushDescriptor.parse(project.id, old_revision, new_revision, ref)

    def _refresh(
        self,
        merge_request: MergeRequest,
        role: Role,
        push: PushDescriptor,
        user_id: int | None,
        result: RefreshResult,
    ) -> None:
        # Re-read so the plan is computed from the pre-image we compare against.
        current = self.merge_requests.get(merge_request.id)
        if current is None or not current.is_open:
            result.skipped.append(merge_request.id)
            return

        try:
            if role == Role.TARGET:
                plan = self.detector.plan(current, push, user_id)
            else:
                plan = self.synchronizer.plan(current, push, user_id)

            if plan is None:
                return

            if not self.apply(plan, user_id):
                result.conflicts.append(current.id)
            elif plan.merges:
                result.merged.append(current.id)
            elif role == Role.SOURCE:
                result.updated.append(current.id)

        except AbsentProject as e:
            logger.debug(f"Skipping merge request !{current.id}: {e}")
            result.skipped.append(current.id)
        except RevisionNotFound as e:
            logger.warning(f"Skipping merge request !{current.id}: {e}")
            result.errors[current.id] = str(e)
        except Exception as e:
            logger.exception(f"Error refreshing merge request !{current.id}")
            result.errors[current.id] = str(e)

    def apply(self, plan: RefreshPlan, user_id: int | None = None) -> bool:
        """Commit a plan's state change, then run its effects in order.

        Returns:
            False if another writer changed the merge request first
        """
        merge_request = plan.expected
        if plan.changes_state:
            stored = self.merge_requests.compare_and_set(plan.expected, plan.updated)
            if stored is None:
                logger.info(
                    f"Merge request !{plan.expected.id} changed concurrently, "
                    f"leaving it to the other writer"
                )
                return False
            merge_request = stored

        for effect in plan.effects:
            if isinstance(effect, AppendNote):
                self.activity.record(merge_request, effect.body, author_id=user_id)
            elif isinstance(effect, ResolveTodos):
                self.resolve_todos(merge_request, effect.kind)
            elif isinstance(effect, FireHook):
                self.execute_hooks(merge_request, effect.action.value)

        return True

    def resolve_todos(self, merge_request: MergeRequest, kind: TodoKind) -> int:
        pending = self.todos.pending_for(merge_request.id, kind)
        if not pending:
            return 0
        resolved = self.todos.mark_done([todo.id for todo in pending])
        logger.info(f"Resolved {resolved} {kind.value} todo(s) for merge request !{merge_request.id}")
        return resolved

    def execute_hooks(self, merge_request: MergeRequest, action: str) -> None:
        try:
            self.hooks.notify(merge_request, action)
        except Exception as e:
            logger.warning(f"Hook '{action}' failed for merge request !{merge_request.id}: {e}")
