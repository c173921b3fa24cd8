"""Per-user table of cached read-models and their generations."""

import asyncio
from dataclasses import dataclass, field
from typing import Any

from .events import RECOMPUTE_ORDER, ModelKey, ModelState


@dataclass
class CachedModel:
    """One cached read-model.

    ``required_generation`` is the generation of the last trigger that touched
    the model; a computed value is only accepted if it was started at that
    generation. A model that was never computed is stale with no value.
    """

    key: ModelKey
    state: ModelState = ModelState.STALE
    required_generation: int = 0
    computed_generation: int = -1
    value: Any = None
    has_value: bool = False
    task: asyncio.Task | None = None
    last_error: str | None = None

    @property
    def refreshing(self) -> bool:
        return self.task is not None and not self.task.done()

    @property
    def invalidated(self) -> bool:
        """A trigger touched the model after its last accepted value."""
        return self.required_generation > max(self.computed_generation, 0)



@dataclass(frozen=True)
class RoleHint:
    """Role id carried by the newest role-changing trigger."""

    role_id: int | None
    generation: int


@dataclass
class UserModelTable:
    user_id: int
    generation: int = 0
    role_hint: RoleHint | None = None
    models: dict[ModelKey, CachedModel] = field(
        default_factory=lambda: {key: CachedModel(key) for key in RECOMPUTE_ORDER}
    )

    def states(self) -> dict[ModelKey, ModelState]:
        return {key: model.state for key, model in self.models.items()}

    @property
    def busy(self) -> bool:
        return any(model.refreshing for model in self.models.values())
