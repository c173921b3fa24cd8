from .builders import ReadModelBuilders, RoleResolution
from .events import (
    CareerGoalChanged,
    ChangeEvent,
    LearningPathGenerated,
    LearningPathRequested,
    ModelKey,
    ModelState,
    ProgressChanged,
    SkillLevelChanged,
    TargetRoleChanged,
    affected_models,
)
from .propagator import ConsistencyPropagator, Invalidation, ModelSnapshot, RefreshContext


__all__ = [
    "CareerGoalChanged",
    "ChangeEvent",
    "ConsistencyPropagator",
    "Invalidation",
    "LearningPathGenerated",
    "LearningPathRequested",
    "ModelKey",
    "ModelSnapshot",
    "ModelState",
    "ProgressChanged",
    "ReadModelBuilders",
    "RefreshContext",
    "RoleResolution",
    "SkillLevelChanged",
    "TargetRoleChanged",
    "affected_models",
]
