"""Lookup of open merge requests affected by a push."""

import logging

from refresher.state.models import MergeRequest
from refresher.state.store import MergeRequestStore
from refresher.sync.effects import Role


logger = logging.getLogger(__name__)


class MergeRequestLocator:
    """Finds opened merge requests whose source or target is a pushed branch."""

    def __init__(self, merge_requests: MergeRequestStore):
        self.merge_requests = merge_requests

    def find_by_role(
        self,
        project_id: int,
        branch_name: str,
        role: Role,
    ) -> list[MergeRequest]:
        """Return opened merge requests matching a branch in the given role.

        Target matches include merge requests from any source project, forks
        included. Source matches are limited to the pushed project itself, so
        a push to a fork never touches merge requests sourced from its origin.

        Args:
            project_id: Project that received the push
            branch_name: Pushed branch
            role: Whether to match the source or the target side

        Returns:
            Merge requests ordered by id
        """
        if role == Role.SOURCE:
            found = self.merge_requests.find_opened(
                source_project_id=project_id,
                source_branch=branch_name,
            )
        else:
            found = self.merge_requests.find_opened(
                target_project_id=project_id,
                target_branch=branch_name,
            )

        logger.debug(
            f"{len(found)} open merge request(s) with {role.value} "
            f"branch {branch_name} in project {project_id}"
        )
        return found
