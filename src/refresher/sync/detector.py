"""Detection of merge requests merged by a push to their target branch."""

import logging
from dataclasses import replace

from refresher.errors import AbsentProject, RevisionNotFound
from refresher.git.graph import CommitGraph
from refresher.push.descriptor import PushDescriptor
from refresher.state.models import (
    MergeRequest,
    MergeRequestState,
    MergeStatus,
    try_transition,
)
from refresher.state.store import ProjectStore
from refresher.sync.activity import merged_note
from refresher.sync.effects import AppendNote, FireHook, HookAction, RefreshPlan, Role


logger = logging.getLogger(__name__)


class MergeDetector:
    """Marks merge requests as merged once their source tip lands on the target."""

    def __init__(self, projects: ProjectStore, graph: CommitGraph):
        self.projects = projects
        self.graph = graph

    def is_merged_by(self, merge_request: MergeRequest, push: PushDescriptor) -> bool:
        """Check whether the pushed target tip contains the source branch tip.

        Raises:
            AbsentProject: If the source or target project no longer exists
            RevisionNotFound: If the pushed revision cannot be resolved
        """
        if push.is_delete:
            return False

        source_project = self.projects.get(merge_request.source_project_id)
        if source_project is None:
            raise AbsentProject(merge_request.source_project_id)
        target_project = self.projects.get(merge_request.target_project_id)
        if target_project is None:
            raise AbsentProject(merge_request.target_project_id)

        source_tip = self.graph.resolve_branch_tip(source_project, merge_request.source_branch)
        if source_tip is None:
            logger.debug(
                f"Source branch {merge_request.source_branch} of merge request "
                f"!{merge_request.id} is gone, not checking ancestry"
            )
            return False

        try:
            return self.graph.is_ancestor(target_project, source_tip, push.new_revision)
        except RevisionNotFound as e:
            if e.revision != source_tip:
                raise
            # A fork tip unknown to the target repository cannot be on the target branch.
            logger.debug(
                f"Source tip {source_tip[:8]} of merge request !{merge_request.id} "
                f"is not in {target_project.path}, not merged"
            )
            return False

    def plan(
        self,
        merge_request: MergeRequest,
        push: PushDescriptor,
        user_id: int | None,
    ) -> RefreshPlan | None:
        """Plan the effect of a target branch push on one merge request.

        Args:
            merge_request: Opened merge request targeting the pushed branch
            push: The push
            user_id: User who pushed

        Returns:
            The plan, or None if the merge request is left as it is
        """
        if not self.is_merged_by(merge_request, push):
            if merge_request.merge_status == MergeStatus.UNCHECKED:
                return None
            # Target moved, mergeability has to be recomputed.
            return RefreshPlan(
                role=Role.TARGET,
                expected=merge_request,
                updated=replace(merge_request, merge_status=MergeStatus.UNCHECKED),
            )

        new_state = try_transition(merge_request.state, MergeRequestState.MERGED)
        if new_state is None:
            return None

        logger.info(
            f"Merge request !{merge_request.id} merged by push to "
            f"{push.branch_name} at {push.new_revision[:8]}"
        )
        return RefreshPlan(
            role=Role.TARGET,
            expected=merge_request,
            updated=replace(merge_request, state=new_state, merge_user_id=user_id),
            effects=[
                AppendNote(merged_note()),
                FireHook(HookAction.MERGE),
            ],
        )
