"""Merge request refresh engine."""

from refresher.sync.activity import ActivityRecorder
from refresher.sync.detector import MergeDetector
from refresher.sync.effects import (
    AppendNote,
    FireHook,
    HookAction,
    RefreshPlan,
    ResolveTodos,
    Role,
)
from refresher.sync.hooks import (
    CompositeHookNotifier,
    HookNotifier,
    HttpHookNotifier,
    LoggingHookNotifier,
)
from refresher.sync.locator import MergeRequestLocator
from refresher.sync.service import RefreshResult, RefreshService
from refresher.sync.source_branch import SourceBranchSynchronizer

__all__ = [
    "ActivityRecorder",
    "MergeDetector",
    "AppendNote",
    "FireHook",
    "HookAction",
    "RefreshPlan",
    "ResolveTodos",
    "Role",
    "CompositeHookNotifier",
    "HookNotifier",
    "HttpHookNotifier",
    "LoggingHookNotifier",
    "MergeRequestLocator",
    "RefreshResult",
    "RefreshService",
    "SourceBranchSynchronizer",
]
