"""Refresh of merge requests whose source branch received a push."""

import logging
from dataclasses import replace

from refresher.errors import RevisionNotFound
from refresher.git.graph import CommitGraph
from refresher.push.descriptor import PushDescriptor, commits_since
from refresher.state.models import MergeRequest, MergeStatus, TodoKind
from refresher.state.store import ProjectStore
from refresher.sync.activity import (
    branch_deleted_note,
    branch_restored_note,
    commits_added_note,
)
from refresher.sync.effects import (
    AppendNote,
    Effect,
    FireHook,
    HookAction,
    RefreshPlan,
    ResolveTodos,
    Role,
)


logger = logging.getLogger(__name__)


class SourceBranchSynchronizer:
    """Invalidates stale signals once new commits reach a source branch."""

    def __init__(self, projects: ProjectStore, graph: CommitGraph):
        self.projects = projects
        self.graph = graph

    def new_commits(self, merge_request: MergeRequest, push: PushDescriptor) -> list[str]:
        """Commits the push added to a merge request's source branch.

        A recreated source branch is measured from the last tip the merge
        request saw, not from the default branch. Without a known tip the
        push's own range is used.
        """
        if not push.is_restore_for(merge_request) or not merge_request.source_sha:
            return push.commits

        project = self.projects.get(push.project_id)
        if project is None:
            return push.commits

        try:
            return commits_since(project, merge_request.source_sha, push.new_revision, self.graph)
        except RevisionNotFound as e:
            logger.warning(
                f"Cannot measure restored branch of merge request "
                f"!{merge_request.id} from {merge_request.source_sha[:8]}: {e}"
            )
            return push.commits

    def plan(
        self,
        merge_request: MergeRequest,
        push: PushDescriptor,
        user_id: int | None = None,
    ) -> RefreshPlan:
        """Plan the effect of a source branch push on one merge request.

        Args:
            merge_request: Opened merge request whose source is the pushed branch
            push: The push
            user_id: User who pushed

        Returns:
            The plan; its effects are ordered as they must be applied
        """
        if merge_request.merge_when_build_succeeds:
            logger.info(
                f"Cancelling merge when build succeeds for merge request "
                f"!{merge_request.id}: source branch moved"
            )

        updated = replace(
            merge_request,
            merge_when_build_succeeds=False,
            merge_status=MergeStatus.UNCHECKED,
        )
        if not push.is_delete:
            updated.source_sha = push.new_revision

        effects: list[Effect] = []
        if push.is_restore_for(merge_request):
            effects.append(AppendNote(branch_restored_note(push.branch_name)))
        elif push.is_delete:
            effects.append(AppendNote(branch_deleted_note(push.branch_name)))

        commits = self.new_commits(merge_request, push)
        if commits:
            effects.append(AppendNote(commits_added_note(commits)))

        effects.append(ResolveTodos(TodoKind.BUILD_FAILED))
        effects.append(FireHook(HookAction.UPDATE))

        return RefreshPlan(
            role=Role.SOURCE,
            expected=merge_request,
            updated=updated,
            effects=effects,
        )
