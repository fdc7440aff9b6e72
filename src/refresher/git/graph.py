"""Commit graph queries: branch tips, ancestry and commit ranges."""

import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path

from git import Repo as GitRepo
from git.exc import (
    BadName,
    BadObject,
    GitCommandError,
    InvalidGitRepositoryError,
    NoSuchPathError,
)

from refresher.errors import AbsentProject, RevisionNotFound
from refresher.state.models import Project


logger = logging.getLogger(__name__)

# Revision id meaning "no commit": branch creation (old) or deletion (new).
BLANK_SHA = "0" * 40


def is_blank(revision: str | None) -> bool:
    """Check whether a revision is missing or the blank sentinel."""
    return not revision or revision == BLANK_SHA


class CommitGraph(ABC):
    """Read-only access to a project's commit graph."""

    @abstractmethod
    def resolve_branch_tip(self, project: Project, branch_name: str) -> str | None:
        """Return the commit id at the tip of a branch, or None if absent."""

    @abstractmethod
    def is_ancestor(self, project: Project, candidate: str, descendant: str) -> bool:
        """Check whether ``candidate`` is reachable from ``descendant``.

        Raises:
            RevisionNotFound: If either revision is unknown to the repository
        """

    @abstractmethod
    def commits_between(self, project: Project, base: str, head: str) -> list[str]:
        """Return commits reachable from ``head`` but not ``base``, newest first."""

    @abstractmethod
    def merge_base(self, project: Project, first: str, second: str) -> str | None:
        """Return the best common ancestor of two revisions, or None."""


class GitCommitGraph(CommitGraph):
    """Commit graph backed by on-disk repositories through GitPython."""

    def __init__(self, repositories_root: str | Path | None = None):
        """Initialize the graph.

        Args:
            repositories_root: Directory holding ``<project path>.git``
                repositories for projects without an explicit path
        """
        self._root = Path(repositories_root) if repositories_root else None
        self._repos: dict[str, GitRepo] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Repository helpers
    # ------------------------------------------------------------------

    def repository_path(self, project: Project) -> Path:
        if project.repository_path:
            return Path(project.repository_path)
        if self._root is None:
            raise AbsentProject(project.id)
        return self._root / f"{project.path}.git"

    def repo(self, project: Project) -> GitRepo:
        path = str(self.repository_path(project))
        with self._lock:
            repo = self._repos.get(path)
            if repo is None:
                try:
                    repo = GitRepo(path)
                except (NoSuchPathError, InvalidGitRepositoryError) as e:
                    raise AbsentProject(project.id) from e
                self._repos[path] = repo
        return repo

    def _verify(self, repo: GitRepo, project: Project, revision: str) -> str:
        if is_blank(revision):
            raise RevisionNotFound(revision, project.path)
        try:
            return repo.rev_parse(revision).hexsha
        except (BadName, BadObject, ValueError) as e:
            raise RevisionNotFound(revision, project.path) from e

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def resolve_branch_tip(self, project: Project, branch_name: str) -> str | None:
        repo = self.repo(project)
        try:
            return repo.heads[branch_name].commit.hexsha
        except (IndexError, ValueError):
            return None

    def is_ancestor(self, project: Project, candidate: str, descendant: str) -> bool:
        repo = self.repo(project)
        candidate = self._verify(repo, project, candidate)
        descendant = self._verify(repo, project, descendant)
        try:
            return repo.is_ancestor(candidate, descendant)
        except GitCommandError as e:
            raise RevisionNotFound(candidate, project.path) from e

    def commits_between(self, project: Project, base: str, head: str) -> list[str]:
        repo = self.repo(project)
        head = self._verify(repo, project, head)
        base = self._verify(repo, project, base)
        if base == head:
            return []
        try:
            return [commit.hexsha for commit in repo.iter_commits(f"{base}..{head}")]
        except GitCommandError as e:
            raise RevisionNotFound(head, project.path) from e

    def merge_base(self, project: Project, first: str, second: str) -> str | None:
        repo = self.repo(project)
        first = self._verify(repo, project, first)
        second = self._verify(repo, project, second)
        try:
            bases = repo.merge_base(first, second)
        except GitCommandError as e:
            logger.warning(f"merge-base failed in {project.path}: {e}")
            return None
        return bases[0].hexsha if bases else None
