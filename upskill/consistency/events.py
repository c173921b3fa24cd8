"""Change events and the read-models each of them invalidates."""

from dataclasses import dataclass
from enum import Enum


class ModelKey(str, Enum):
    """Derived read-models kept per user."""

    ROLE_DETAIL = "role_detail"
    SKILL_GAP = "skill_gap"
    DASHBOARD = "dashboard"
    LEARNING_PATH = "learning_path"


class ModelState(str, Enum):
    FRESH = "fresh"
    STALE = "stale"
    REFRESHING = "refreshing"


# Upstream models each read-model is computed from
DEPENDENCIES: dict[ModelKey, tuple[ModelKey, ...]] = {
    ModelKey.ROLE_DETAIL: (),
    ModelKey.SKILL_GAP: (ModelKey.ROLE_DETAIL,),
    ModelKey.DASHBOARD: (ModelKey.SKILL_GAP,),
    ModelKey.LEARNING_PATH: (ModelKey.ROLE_DETAIL, ModelKey.SKILL_GAP),
}

RECOMPUTE_ORDER: tuple[ModelKey, ...] = (
    ModelKey.ROLE_DETAIL,
    ModelKey.SKILL_GAP,
    ModelKey.DASHBOARD,
    ModelKey.LEARNING_PATH,
)

_ROLE_DEPENDENT = frozenset(RECOMPUTE_ORDER)
# Same role, different goal: the learning path stays until the role changes
_GOAL_DEPENDENT = frozenset({ModelKey.ROLE_DETAIL, ModelKey.SKILL_GAP, ModelKey.DASHBOARD})


@dataclass(frozen=True)
class TargetRoleChanged:
    new_role_id: int | None


@dataclass(frozen=True)
class SkillLevelChanged:
    skill_id: int


@dataclass(frozen=True)
class ProgressChanged:
    resource_id: int


@dataclass(frozen=True)
class CareerGoalChanged:
    """A goal was created, updated or activated.

    ``target_role_id`` and ``active_goal_id`` describe the active goal after
    the change, ``previous_target_role_id`` and ``previous_goal_id`` the one
    before it.
    """

    goal_id: int
    target_role_id: int | None
    previous_target_role_id: int | None
    active_goal_id: int | None = None
    previous_goal_id: int | None = None

    @property
    def role_changed(self) -> bool:
        return self.target_role_id != self.previous_target_role_id

    @property
    def active_goal_changed(self) -> bool:
        return self.active_goal_id != self.previous_goal_id


@dataclass(frozen=True)
class LearningPathRequested:
    """The user explicitly asked for a new learning path."""


@dataclass(frozen=True)
class LearningPathGenerated:
    """A new learning path was persisted; the dashboard's path totals moved."""

    path_id: int


ChangeEvent = (
    TargetRoleChanged
    | SkillLevelChanged
    | ProgressChanged
    | CareerGoalChanged
    | LearningPathRequested
    | LearningPathGenerated
)


def affected_models(event: ChangeEvent) -> frozenset[ModelKey]:
    """Read-models that ``event`` makes stale."""
    if isinstance(event, TargetRoleChanged):
        return _ROLE_DEPENDENT
    if isinstance(event, CareerGoalChanged):
        if event.role_changed:
            return _ROLE_DEPENDENT
        if event.active_goal_changed:
            return _GOAL_DEPENDENT
        return frozenset({ModelKey.DASHBOARD})
    if isinstance(event, SkillLevelChanged):
        # The learning path is only regenerated on role change or explicit request
        return frozenset({ModelKey.SKILL_GAP, ModelKey.DASHBOARD})
    if isinstance(event, (ProgressChanged, LearningPathGenerated)):
        return frozenset({ModelKey.DASHBOARD})
    if isinstance(event, LearningPathRequested):
        return frozenset({ModelKey.LEARNING_PATH})
    msg = f"Unknown change event: {event!r}"
    raise TypeError(msg)


def role_hint(event: ChangeEvent) -> int | None:
    """Role id a role-changing event points at, if any."""
    if isinstance(event, TargetRoleChanged):
        return event.new_role_id
    if isinstance(event, CareerGoalChanged) and event.role_changed:
        return event.target_role_id
    return None


def changes_role(event: ChangeEvent) -> bool:
    return isinstance(event, TargetRoleChanged) or (isinstance(event, CareerGoalChanged) and event.role_changed)
