"""Structured description of a ref update."""

from dataclasses import dataclass, field

from refresher.errors import InvalidRefKind
from refresher.git.graph import CommitGraph, is_blank
from refresher.state.models import MergeRequest, Project


BRANCH_REF_PREFIX = "refs/heads/"


def is_branch_ref(ref: str) -> bool:
    return ref.startswith(BRANCH_REF_PREFIX) and len(ref) > len(BRANCH_REF_PREFIX)


def parse_ref(ref: str) -> str:
    """Strip the branch namespace from a ref.

    Args:
        ref: Full ref name, e.g. ``refs/heads/feature/login``

    Returns:
        Branch name, e.g. ``feature/login``

    Raises:
        InvalidRefKind: If the ref is not a branch ref
    """
    if not is_branch_ref(ref):
        raise InvalidRefKind(ref)
    return ref[len(BRANCH_REF_PREFIX):]


@dataclass
class PushDescriptor:
    """A normalized ref update for one project."""

    project_id: int
    old_revision: str
    new_revision: str
    ref: str
    branch_name: str
    commits: list[str] = field(default_factory=list)  # newest first

    @property
    def is_create(self) -> bool:
        return is_blank(self.old_revision)

    @property
    def is_delete(self) -> bool:
        return is_blank(self.new_revision)

    @property
    def commit_count(self) -> int:
        return len(self.commits)

    def is_restore_for(self, merge_request: MergeRequest) -> bool:
        """Check whether this push recreates the source branch of a merge request.

        The branch must have existed when the merge request was opened, so a
        create push onto a branch it references means it was deleted and is
        now back.
        """
        return (
            self.is_create
            and not self.is_delete
            and merge_request.source_project_id == self.project_id
            and merge_request.source_branch == self.branch_name
        )

    @classmethod
    def parse(
        cls,
        project_id: int,
        old_revision: str,
        new_revision: str,
        ref: str,
    ) -> "PushDescriptor":
        """Build a descriptor without a commit range."""
        return cls(
            project_id=project_id,
            old_revision=old_revision,
            new_revision=new_revision,
            ref=ref,
            branch_name=parse_ref(ref),
        )

    @classmethod
    def build(
        cls,
        project: Project,
        old_revision: str,
        new_revision: str,
        ref: str,
        graph: CommitGraph,
    ) -> "PushDescriptor":
        """Build a descriptor including the commits the push introduced.

        Args:
            project: Project that received the push
            old_revision: Previous branch tip (blank when the branch is created)
            new_revision: New branch tip (blank when the branch is deleted)
            ref: Full ref name
            graph: Commit graph of the project

        Returns:
            PushDescriptor with ``commits`` filled in
        """
        descriptor = cls.parse(project.id, old_revision, new_revision, ref)
        descriptor.commits = compute_commit_range(project, descriptor, graph)
        return descriptor


def commits_since(
    project: Project,
    base_revision: str,
    new_revision: str,
    graph: CommitGraph,
) -> list[str]:
    """Commits on ``new_revision`` since its merge base with ``base_revision``, newest first."""
    base = graph.merge_base(project, base_revision, new_revision)
    if base is None:
        return []
    return graph.commits_between(project, base, new_revision)


def compute_commit_range(
    project: Project,
    descriptor: PushDescriptor,
    graph: CommitGraph,
) -> list[str]:
    """Commits reachable from the new tip but not from the old one.

    Counting starts at the merge base of both tips so that a force push
    only reports commits since the common ancestor. A newly created
    branch has no old tip and is measured against the project's default
    branch. Merge requests whose source branch is recreated are measured
    from their own last known tip instead, see ``SourceBranchSynchronizer``.
    """
    if descriptor.is_delete or descriptor.old_revision == descriptor.new_revision:
        return []

    if descriptor.is_create:
        default_tip = graph.resolve_branch_tip(project, project.default_branch)
        if default_tip is None:
            return []
        return commits_since(project, default_tip, descriptor.new_revision, graph)

    return commits_since(project, descriptor.old_revision, descriptor.new_revision, graph)
