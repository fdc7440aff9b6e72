"""Exceptions raised by the refresh engine."""


class RefresherError(Exception):
    """Base class for refresh engine errors."""


class InvalidRefKind(RefresherError):
    """Raised when a pushed ref does not denote a branch."""

    def __init__(self, ref: str):
        super().__init__(f"Ref '{ref}' is not a branch ref")
        self.ref = ref


class RevisionNotFound(RefresherError):
    """Raised when a revision cannot be resolved in a repository."""

    def __init__(self, revision: str, project_path: str = ""):
        where = f" in {project_path}" if project_path else ""
        super().__init__(f"Revision '{revision}' not found{where}")
        self.revision = revision
        self.project_path = project_path


class AbsentProject(RefresherError):
    """Raised when a merge request references a project that no longer exists."""

    def __init__(self, project_id: int | None):
        super().__init__(f"Project {project_id} does not exist")
        self.project_id = project_id
