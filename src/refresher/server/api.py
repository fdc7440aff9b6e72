"""API endpoints for synchronous refreshes and entity registration."""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, HTTPException, Depends
from pydantic import BaseModel

from refresher.errors import AbsentProject, InvalidRefKind, RefresherError
from refresher.server.runtime import Runtime, get_runtime
from refresher.state.models import MergeRequest, Project, Todo, TodoKind


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["api"])


class RefreshRequest(BaseModel):
    """Request body for a synchronous refresh."""

    project_id: int
    ref: str
    before: str
    after: str
    user_id: Optional[int] = None


class RefreshResponse(BaseModel):
    """Response body for a synchronous refresh."""

    status: str  # "success" or "partial"
    branch_name: str
    commit_count: int = 0
    merged: list[int] = []
    updated: list[int] = []
    skipped: list[int] = []
    conflicts: list[int] = []
    errors: dict[str, str] = {}


class ProjectCreate(BaseModel):
    """Request body for registering a project."""

    path: str
    repository_path: str = ""
    default_branch: str = "master"
    forked_from_id: Optional[int] = None


class ProjectResponse(BaseModel):
    id: int
    path: str
    repository_path: str
    default_branch: str
    forked_from_id: Optional[int] = None


class MergeRequestCreate(BaseModel):
    """Request body for registering a merge request."""

    source_project_id: int
    source_branch: str
    source_sha: str = ""
    target_project_id: int
    target_branch: str
    title: str = ""
    merge_when_build_succeeds: bool = False


class NoteResponse(BaseModel):
    id: int
    body: str
    author_id: Optional[int] = None
    system: bool = True
    created_at: datetime


class MergeRequestResponse(BaseModel):
    id: int
    title: str
    source_project_id: Optional[int] = None
    source_branch: str
    source_sha: str = ""
    target_project_id: int
    target_branch: str
    state: str
    merge_status: str
    merge_when_build_succeeds: bool
    merge_user_id: Optional[int] = None
    notes: list[NoteResponse] = []


class TodoCreate(BaseModel):
    """Request body for registering a todo."""

    user_id: int
    target_id: int
    kind: TodoKind = TodoKind.BUILD_FAILED
    author_id: Optional[int] = None


class TodoResponse(BaseModel):
    id: int
    user_id: int
    target_id: int
    kind: str
    state: str


def _project_response(project: Project) -> ProjectResponse:
    return ProjectResponse(
        id=project.id,
        path=project.path,
        repository_path=project.repository_path,
        default_branch=project.default_branch,
        forked_from_id=project.forked_from_id,
    )


def _merge_request_response(runtime: Runtime, merge_request: MergeRequest) -> MergeRequestResponse:
    notes = [
        NoteResponse(
            id=note.id,
            body=note.body,
            author_id=note.author_id,
            system=note.system,
            created_at=note.created_at,
        )
        for note in runtime.notes.for_merge_request(merge_request.id)
    ]
    return MergeRequestResponse(**merge_request.to_dict(), notes=notes)


def _todo_response(todo: Todo) -> TodoResponse:
    return TodoResponse(
        id=todo.id,
        user_id=todo.user_id,
        target_id=todo.target_id,
        kind=todo.kind.value,
        state=todo.state.value,
    )


def _current_tip(runtime: Runtime, project: Project, branch_name: str) -> str:
    try:
        return runtime.service.graph.resolve_branch_tip(project, branch_name) or ""
    except RefresherError as e:
        logger.warning(f"Cannot resolve {branch_name} in {project.path}: {e}")
        return ""


@router.post("/refresh", response_model=RefreshResponse)
def refresh(
    request: RefreshRequest,
    runtime: Runtime = Depends(get_runtime),
) -> RefreshResponse:
    """Synchronously refresh merge requests for a push."""
    logger.info(f"Sync refresh request for {request.ref} in project {request.project_id}")

    try:
        result = runtime.service.execute(
            request.project_id,
            request.before,
            request.after,
            request.ref,
            request.user_id,
        )
    except InvalidRefKind as e:
        raise HTTPException(status_code=400, detail=str(e))
    except AbsentProject as e:
        raise HTTPException(status_code=404, detail=str(e))

    data = result.to_dict()
    return RefreshResponse(
        status="success" if result.success else "partial",
        branch_name=data["branch_name"],
        commit_count=data["commit_count"],
        merged=data["merged"],
        updated=data["updated"],
        skipped=data["skipped"],
        conflicts=data["conflicts"],
        errors=data["errors"],
    )


@router.post("/projects", response_model=ProjectResponse, status_code=201)
def create_project(
    request: ProjectCreate,
    runtime: Runtime = Depends(get_runtime),
) -> ProjectResponse:
    if request.forked_from_id is not None and runtime.projects.get(request.forked_from_id) is None:
        raise HTTPException(status_code=404, detail="Fork source project not found")

    project = Project(
        id=runtime.projects.next_id(),
        path=request.path,
        repository_path=request.repository_path,
        default_branch=request.default_branch,
        forked_from_id=request.forked_from_id,
    )
    runtime.projects.add(project)
    return _project_response(project)


@router.delete("/projects/{project_id}", status_code=204)
def delete_project(
    project_id: int,
    runtime: Runtime = Depends(get_runtime),
) -> None:
    if runtime.projects.get(project_id) is None:
        raise HTTPException(status_code=404, detail="Project not found")
    runtime.projects.delete(project_id)


@router.post("/merge_requests", response_model=MergeRequestResponse, status_code=201)
def create_merge_request(
    request: MergeRequestCreate,
    runtime: Runtime = Depends(get_runtime),
) -> MergeRequestResponse:
    for project_id in (request.source_project_id, request.target_project_id):
        if runtime.projects.get(project_id) is None:
            raise HTTPException(status_code=404, detail=f"Project {project_id} not found")

    source_sha = request.source_sha or _current_tip(
        runtime, runtime.projects.get(request.source_project_id), request.source_branch
    )

    merge_request = MergeRequest(
        id=runtime.merge_requests.next_id(),
        title=request.title,
        source_project_id=request.source_project_id,
        source_branch=request.source_branch,
        source_sha=source_sha,
        target_project_id=request.target_project_id,
        target_branch=request.target_branch,
        merge_when_build_succeeds=request.merge_when_build_succeeds,
    )
    runtime.merge_requests.add(merge_request)
    return _merge_request_response(runtime, merge_request)


@router.get("/merge_requests/{merge_request_id}", response_model=MergeRequestResponse)
def get_merge_request(
    merge_request_id: int,
    runtime: Runtime = Depends(get_runtime),
) -> MergeRequestResponse:
    merge_request = runtime.merge_requests.get(merge_request_id)
    if merge_request is None:
        raise HTTPException(status_code=404, detail="Merge request not found")
    return _merge_request_response(runtime, merge_request)


@router.post("/todos", response_model=TodoResponse, status_code=201)
def create_todo(
    request: TodoCreate,
    runtime: Runtime = Depends(get_runtime),
) -> TodoResponse:
    if runtime.merge_requests.get(request.target_id) is None:
        raise HTTPException(status_code=404, detail="Merge request not found")

    todo = Todo(
        id=runtime.todos.next_id(),
        user_id=request.user_id,
        target_id=request.target_id,
        kind=request.kind,
        author_id=request.author_id,
    )
    runtime.todos.add(todo)
    return _todo_response(todo)


@router.get("/todos/{todo_id}", response_model=TodoResponse)
def get_todo(
    todo_id: int,
    runtime: Runtime = Depends(get_runtime),
) -> TodoResponse:
    todo = runtime.todos.get(todo_id)
    if todo is None:
        raise HTTPException(status_code=404, detail="Todo not found")
    return _todo_response(todo)
