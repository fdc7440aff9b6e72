"""Side-effect intents produced while planning a refresh."""

from dataclasses import dataclass, field
from enum import Enum

from refresher.state.models import MergeRequest, TodoKind


class Role(str, Enum):
    """Which side of a merge request a pushed branch matched."""

    SOURCE = "source"
    TARGET = "target"


class HookAction(str, Enum):
    """Lifecycle actions announced to the hook subsystem."""

    UPDATE = "update"
    MERGE = "merge"


@dataclass(frozen=True)
class AppendNote:
    """Append a system note to the merge request."""

    body: str


@dataclass(frozen=True)
class ResolveTodos:
    """Mark pending todos of a kind targeting the merge request as done."""

    kind: TodoKind


@dataclass(frozen=True)
class FireHook:
    """Announce a lifecycle action for the merge request."""

    action: HookAction


Effect = AppendNote | ResolveTodos | FireHook


@dataclass
class RefreshPlan:
    """What a push does to one merge request.

    ``expected`` is the snapshot the plan was computed from; the store only
    accepts ``updated`` while that snapshot is still current. Effects run in
    order once the state change is committed.
    """

    role: Role
    expected: MergeRequest
    updated: MergeRequest
    effects: list[Effect] = field(default_factory=list)

    @property
    def changes_state(self) -> bool:
        return self.updated != self.expected

    @property
    def merges(self) -> bool:
        return self.updated.is_merged and not self.expected.is_merged

    @property
    def notes(self) -> list[str]:
        return [effect.body for effect in self.effects if isinstance(effect, AppendNote)]
