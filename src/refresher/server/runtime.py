"""Stores and refresh service shared by the server endpoints."""

from dataclasses import dataclass
from functools import lru_cache

from refresher.git.graph import CommitGraph, GitCommitGraph
from refresher.server.config import Settings, get_settings
from refresher.state.store import (
    InMemoryMergeRequestStore,
    InMemoryNoteStore,
    InMemoryProjectStore,
    InMemoryTodoStore,
)
from refresher.sync.hooks import (
    CompositeHookNotifier,
    HookNotifier,
    HttpHookNotifier,
    LoggingHookNotifier,
)
from refresher.sync.service import RefreshService


@dataclass
class Runtime:
    """Everything a request handler needs to run a refresh."""

    projects: InMemoryProjectStore
    merge_requests: InMemoryMergeRequestStore
    notes: InMemoryNoteStore
    todos: InMemoryTodoStore
    service: RefreshService

    def close(self) -> None:
        self.service.hooks.close()


def build_hook_notifier(settings: Settings) -> HookNotifier:
    """Log every hook, and deliver it over HTTP when hook URLs are configured."""
    if not settings.hook_urls:
        return LoggingHookNotifier()
    return CompositeHookNotifier(
        [
            LoggingHookNotifier(),
            HttpHookNotifier(settings.hook_urls, timeout=settings.hook_timeout),
        ]
    )


def build_runtime(
    settings: Settings | None = None,
    graph: CommitGraph | None = None,
    hooks: HookNotifier | None = None,
) -> Runtime:
    """Create stores and wire them into a refresh service.

    Args:
        settings: Server settings (uses default if not provided)
        graph: Commit graph (GitPython over ``repositories_root`` by default)
        hooks: Hook notifier (built from ``hook_urls`` by default)

    Returns:
        Runtime instance
    """
    settings = settings or get_settings()
    projects = InMemoryProjectStore()
    merge_requests = InMemoryMergeRequestStore()
    notes = InMemoryNoteStore()
    todos = InMemoryTodoStore()

    service = RefreshService(
        projects=projects,
        merge_requests=merge_requests,
        notes=notes,
        todos=todos,
        graph=graph or GitCommitGraph(settings.repositories_root or None),
        hooks=hooks or build_hook_notifier(settings),
    )
    return Runtime(
        projects=projects,
        merge_requests=merge_requests,
        notes=notes,
        todos=todos,
        service=service,
    )


@lru_cache
def get_runtime() -> Runtime:
    """Get cached runtime instance."""
    return build_runtime()
