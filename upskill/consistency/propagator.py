"""Invalidation and refresh protocol for the per-user read-models.

Triggers are synchronous: they bump the user's generation counter and mark the
affected models stale. Refreshes are lazy and happen on read, one in-flight
task per model; readers and triggers that arrive while it runs share it. A
result computed for an older generation than the model now requires is
discarded on arrival and the refresh runs again.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Protocol

from upskill.exceptions import RepositoryError

from .events import (
    DEPENDENCIES,
    RECOMPUTE_ORDER,
    ChangeEvent,
    ModelKey,
    ModelState,
    affected_models,
    changes_role,
    role_hint,
)
from .table import CachedModel, RoleHint, UserModelTable


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModelSnapshot:
    """A read-model value and the generation it was computed for."""

    key: ModelKey
    value: Any
    generation: int
    stale: bool
    state: ModelState


@dataclass(frozen=True)
class Invalidation:
    user_id: int
    generation: int
    affected: frozenset[ModelKey]


class ModelBuilder(Protocol):
    async def build(self, key: ModelKey, context: "RefreshContext") -> Any: ...


class RefreshContext:
    """What a builder sees while recomputing one model."""

    def __init__(
        self,
        propagator: "ConsistencyPropagator",
        table: UserModelTable,
        key: ModelKey,
        generation: int,
    ) -> None:
        self.user_id = table.user_id
        self.key = key
        self.generation = generation
        self.role_hint = table.role_hint
        self.used_stale_input = False
        self._propagator = propagator

    async def read(self, key: ModelKey) -> Any:
        """Read an upstream model, refreshing it first if needed."""
        if key not in DEPENDENCIES[self.key]:
            msg = f"{self.key.value} does not depend on {key.value}"
            raise ValueError(msg)
        snapshot = await self._propagator.read(self.user_id, key)
        if snapshot.stale:
            self.used_stale_input = True
        return snapshot.value

    def trigger(self, event: ChangeEvent) -> Invalidation:
        return self._propagator.trigger(self.user_id, event)


class ConsistencyPropagator:
    """Keeps each user's read-models consistent with the records they derive from.

    With ``max_users`` set, at most that many user tables are kept; the least
    recently used idle tables are evicted first and rebuilt from the store on
    their next read.
    """

    def __init__(self, builder: ModelBuilder, *, max_users: int | None = None) -> None:
        self._builder = builder
        self._max_users = max_users
        self._tables: dict[int, UserModelTable] = {}
        # Evicted users whose learning path was invalidated but never rebuilt
        self._pending_regeneration: set[int] = set()
        self._background: set[asyncio.Task] = set()

    def table(self, user_id: int) -> UserModelTable:
        # Dict order doubles as recency: the most recently used table is last
        table = self._tables.pop(user_id, None)
        created = table is None
        if table is None:
            table = UserModelTable(user_id=user_id)
            if user_id in self._pending_regeneration:
                self._pending_regeneration.discard(user_id)
                table.generation = 1
                for model in table.models.values():
                    model.required_generation = 1
        self._tables[user_id] = table
        if created:
            self._evict()
        return table

    def cached_users(self) -> list[int]:
        """User ids with a cached table, least recently used first."""
        return list(self._tables)

    def trigger(self, user_id: int, event: ChangeEvent) -> Invalidation:
        """Record a change: bump the generation and mark affected models stale.

        A model that is refreshing keeps running; its result will be discarded
        because its required generation moved.
        """
        table = self.table(user_id)
        table.generation += 1
        affected = affected_models(event)
        for key in affected:
            model = table.models[key]
            model.required_generation = table.generation
            if model.state is ModelState.FRESH:
                model.state = ModelState.STALE
        if changes_role(event):
            table.role_hint = RoleHint(role_id=role_hint(event), generation=table.generation)

        logger.debug(
            "User %s: %s -> generation %s, invalidated %s",
            user_id,
            type(event).__name__,
            table.generation,
            sorted(key.value for key in affected),
        )
        return Invalidation(user_id=user_id, generation=table.generation, affected=affected)

    async def read(self, user_id: int, key: ModelKey) -> ModelSnapshot:
        """Current value of a model, computed for a generation at least as new as this call.

        If the refresh fails with ``RepositoryError`` the last known value is
        returned with ``stale=True``; without one, the error propagates.
        """
        table = self.table(user_id)
        model = table.models[key]
        wanted = model.required_generation

        while True:
            if model.state is ModelState.FRESH and model.computed_generation >= wanted:
                return self._snapshot(model)

            task = self._ensure_refresh(table, model)
            try:
                await asyncio.shield(task)
            except RepositoryError:
                if model.has_value:
                    logger.warning("Serving last known %s for user %s after a record store failure", key.value, user_id)
                    return self._snapshot(model, stale=True)
                raise

            if model.computed_generation >= wanted:
                return self._snapshot(model)
            # Superseded by a newer trigger while refreshing: wait for the rerun

    async def refresh_stale(self, user_id: int, *, include_learning_path: bool = False) -> dict[ModelKey, ModelSnapshot]:
        """Recompute every non-fresh model in dependency order."""
        table = self.table(user_id)
        snapshots: dict[ModelKey, ModelSnapshot] = {}
        for key in RECOMPUTE_ORDER:
            if key is ModelKey.LEARNING_PATH and not include_learning_path:
                continue
            if table.models[key].state is ModelState.FRESH:
                continue
            snapshots[key] = await self.read(user_id, key)
        return snapshots

    def schedule_refresh(self, user_id: int, *, include_learning_path: bool = False) -> asyncio.Task:
        """Run ``refresh_stale`` in the background."""
        task = asyncio.create_task(
            self._background_refresh(user_id, include_learning_path),
            name=f"refresh-user-{user_id}",
        )
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    def state_of(self, user_id: int, key: ModelKey) -> ModelState:
        return self.table(user_id).models[key].state

    def generation_of(self, user_id: int) -> int:
        return self.table(user_id).generation

    def forget(self, user_id: int) -> None:
        """Drop everything cached for ``user_id``; in-flight refreshes finish unobserved."""
        self._tables.pop(user_id, None)
        self._pending_regeneration.discard(user_id)


    async def aclose(self) -> None:
        """Cancel background refreshes (application shutdown)."""
        for task in list(self._background):
            task.cancel()
        await asyncio.gather(*self._background, return_exceptions=True)

    def _evict(self) -> None:
        if self._max_users is None:
            return
        excess = len(self._tables) - self._max_users
        # The newest table is the one being handed out
        for user_id in list(self._tables)[:-1]:
            if excess <= 0:
                break
            table = self._tables[user_id]
            if table.busy:
                continue
            del self._tables[user_id]
            if table.models[ModelKey.LEARNING_PATH].invalidated:
                self._pending_regeneration.add(user_id)
            excess -= 1
            logger.debug("Evicted read-models of user %s", user_id)

    def _ensure_refresh(self, table: UserModelTable, model: CachedModel) -> asyncio.Task:
        if model.refreshing:
            return model.task
        generation = model.required_generation
        model.state = ModelState.REFRESHING
        model.task = asyncio.create_task(
            self._refresh(table, model, generation),
            name=f"refresh-{model.key.value}-{table.user_id}",
        )
        return model.task

    async def _refresh(self, table: UserModelTable, model: CachedModel, generation: int) -> None:
        context = RefreshContext(self, table, model.key, generation)
        try:
            value = await self._builder.build(model.key, context)
        except RepositoryError as e:
            model.state = ModelState.STALE
            model.last_error = str(e)
            logger.warning("Refreshing %s for user %s failed: %s", model.key.value, table.user_id, e)
            raise
        except Exception:
            model.state = ModelState.STALE
            logger.exception("Unexpected error refreshing %s for user %s", model.key.value, table.user_id)
            raise

        if model.required_generation != generation:
            logger.info(
                "Discarding %s for user %s computed at generation %s (now %s)",
                model.key.value,
                table.user_id,
                generation,
                model.required_generation,
            )
            model.state = ModelState.STALE
            return

        model.value = value
        model.has_value = True
        model.computed_generation = generation
        model.last_error = None
        # Built from a stale upstream value: keep it, but retry on the next read
        model.state = ModelState.STALE if context.used_stale_input else ModelState.FRESH

        if model.key is ModelKey.ROLE_DETAIL and table.role_hint and table.role_hint.generation <= generation:
            table.role_hint = None

    async def _background_refresh(self, user_id: int, include_learning_path: bool) -> None:
        try:
            await self.refresh_stale(user_id, include_learning_path=include_learning_path)
        except RepositoryError as e:
            logger.warning("Background refresh for user %s failed: %s", user_id, e)

    @staticmethod
    def _snapshot(model: CachedModel, *, stale: bool | None = None) -> ModelSnapshot:
        if stale is None:
            stale = model.state is not ModelState.FRESH
        return ModelSnapshot(
            key=model.key,
            value=model.value,
            generation=model.computed_generation,
            stale=stale,
            state=model.state,
        )
