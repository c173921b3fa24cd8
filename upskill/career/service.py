"""Career mutations: skill levels, goals and learning progress.

Every operation validates its input before touching the store, so invalid input
never leaves a partial write or a stray invalidation behind. After the write it
fires the matching change event on the propagator.
"""

import logging
from datetime import UTC, datetime

from upskill.config.settings import Settings, get_settings
from upskill.consistency.events import (
    CareerGoalChanged,
    ChangeEvent,
    ModelKey,
    ProgressChanged,
    SkillLevelChanged,
    TargetRoleChanged,
)
from upskill.consistency.propagator import ConsistencyPropagator, Invalidation
from upskill.exceptions import InvalidInputError, ResourceNotFoundError
from upskill.records.repository import SkillRecordStore
from upskill.records.schemas import (
    ActivityType,
    CareerGoal,
    CareerGoalCreate,
    CareerGoalUpdate,
    Role,
    UserProgress,
    UserSkill,
)


logger = logging.getLogger(__name__)


def _check_percent(value: int | None, field: str) -> None:
    if value is not None and not 0 <= value <= 100:
        msg = f"{field} must be between 0 and 100, got {value}"
        raise InvalidInputError(msg, field=field)


class CareerService:
    """Validated writes that keep the read-models in step."""

    def __init__(
        self,
        store: SkillRecordStore,
        propagator: ConsistencyPropagator,
        settings: Settings | None = None,
    ) -> None:
        self._store = store
        self._propagator = propagator
        self._settings = settings or get_settings()

    # --- Skills -------------------------------------------------------------

    async def update_skill_level(
        self,
        user_id: int,
        skill_id: int,
        current_level: int,
        target_level: int | None = None,
    ) -> UserSkill:
        _check_percent(current_level, "current_level")
        _check_percent(target_level, "target_level")
        skill = await self._store.get_skill(skill_id)
        if skill is None:
            msg = f"Unknown skill {skill_id}"
            raise InvalidInputError(msg, field="skill_id")

        user_skill = await self._store.upsert_user_skill(user_id, skill_id, current_level, target_level)
        await self._record_then_trigger(
            user_id,
            SkillLevelChanged(skill_id=skill_id),
            "updated_skill",
            f"Updated {skill.name} to level {current_level}",
            {"skill_id": skill_id, "current_level": current_level},
        )
        return user_skill

    # --- Career goals -------------------------------------------------------

    async def create_career_goal(self, user_id: int, data: CareerGoalCreate) -> CareerGoal:
        await self._check_role(data.target_role_id)
        previous = await self._store.get_active_career_goal(user_id)

        goal = await self._store.create_career_goal(user_id, data)
        await self._goal_changed(user_id, goal, previous, f"Set career goal: {goal.title or 'untitled'}")
        return goal

    async def update_career_goal(self, user_id: int, goal_id: int, data: CareerGoalUpdate) -> CareerGoal:
        await self._owned_goal(user_id, goal_id)
        if "target_role_id" in data.model_fields_set:
            await self._check_role(data.target_role_id)
        if data.timeline_months is None and "timeline_months" in data.model_fields_set:
            msg = "timeline_months cannot be cleared"
            raise InvalidInputError(msg, field="timeline_months")
        previous = await self._store.get_active_career_goal(user_id)

        goal = await self._store.update_career_goal(goal_id, data)
        if goal is None:
            raise ResourceNotFoundError("CareerGoal", goal_id)
        await self._goal_changed(user_id, goal, previous, f"Updated career goal: {goal.title or 'untitled'}")
        return goal

    async def activate_career_goal(self, user_id: int, goal_id: int) -> CareerGoal:
        await self._owned_goal(user_id, goal_id)
        previous = await self._store.get_active_career_goal(user_id)

        goal = await self._store.activate_career_goal(user_id, goal_id)
        if goal is None:
            raise ResourceNotFoundError("CareerGoal", goal_id)
        await self._goal_changed(user_id, goal, previous, f"Switched career goal: {goal.title or 'untitled'}")
        return goal

    async def set_target_role(self, user_id: int, role_id: int) -> CareerGoal:
        """Point the active goal at ``role_id``, creating a goal if the user has none."""
        role = await self._check_role(role_id)
        previous = await self._store.get_active_career_goal(user_id)

        if previous is None:
            goal = await self._store.create_career_goal(
                user_id,
                CareerGoalCreate(
                    target_role_id=role_id,
                    title=role.title,
                    timeline_months=self._settings.DEFAULT_GOAL_TIMELINE_MONTHS,
                    is_active=True,
                ),
            )
        else:
            goal = await self._store.update_career_goal(previous.id, CareerGoalUpdate(target_role_id=role_id))
            if goal is None:
                raise ResourceNotFoundError("CareerGoal", previous.id)

        previous_role_id = previous.target_role_id if previous else None
        if previous_role_id != role_id:
            event: ChangeEvent = TargetRoleChanged(new_role_id=role_id)
        else:
            event = CareerGoalChanged(
                goal_id=goal.id,
                target_role_id=role_id,
                previous_target_role_id=role_id,
                active_goal_id=goal.id,
                previous_goal_id=goal.id,
            )
        await self._record_then_trigger(
            user_id,
            event,
            "set_career_goal",
            f"Set target role: {role.title}",
            {"goal_id": goal.id, "role_id": role_id},
        )
        return goal

    # --- Progress -----------------------------------------------------------

    async def record_progress(
        self,
        user_id: int,
        resource_id: int,
        progress: int,
        *,
        completed: bool = False,
        score: int | None = None,
    ) -> UserProgress:
        """Record progress on a resource; progress never goes backwards."""
        _check_percent(progress, "progress")
        _check_percent(score, "score")
        resource = await self._store.get_learning_resource(resource_id)
        if resource is None:
            msg = f"Unknown learning resource {resource_id}"
            raise InvalidInputError(msg, field="resource_id")

        existing = await self._store.get_progress_entry(user_id, resource_id)
        if existing is not None and progress < existing.progress:
            msg = f"Progress cannot decrease ({existing.progress} -> {progress}); remove progress to reset"
            raise InvalidInputError(msg, field="progress")

        was_completed = existing is not None and existing.completed
        is_completed = was_completed or completed or progress == 100
        completed_at = None
        if is_completed:
            progress = 100
            completed_at = existing.completed_at if was_completed and existing.completed_at else datetime.now(UTC)

        entry = await self._store.upsert_user_progress(
            user_id,
            resource_id,
            progress=progress,
            completed=is_completed,
            score=score,
            completed_at=completed_at,
        )

        if is_completed and not was_completed:
            activity: tuple[ActivityType, str] | None = ("completed_resource", f"Completed {resource.title}")
        elif existing is None:
            activity = ("started_resource", f"Started {resource.title}")
        else:
            activity = None

        event = ProgressChanged(resource_id=resource_id)
        if activity is None:
            self._trigger(user_id, event)
        else:
            await self._record_then_trigger(
                user_id, event, activity[0], activity[1], {"resource_id": resource_id, "progress": progress}
            )
        return entry

    async def remove_progress(self, user_id: int, resource_id: int) -> bool:
        """Reset progress on a resource. Returns ``False`` if there was none."""
        removed = await self._store.delete_user_progress(user_id, resource_id)
        if removed:
            self._trigger(user_id, ProgressChanged(resource_id=resource_id))
        return removed

    # --- Helpers ------------------------------------------------------------

    async def _check_role(self, role_id: int | None) -> Role | None:
        if role_id is None:
            return None
        role = await self._store.get_role(role_id)
        if role is None:
            msg = f"Unknown role {role_id}"
            raise InvalidInputError(msg, field="target_role_id")
        return role

    async def _owned_goal(self, user_id: int, goal_id: int) -> CareerGoal:
        goal = await self._store.get_career_goal(goal_id)
        if goal is None:
            raise ResourceNotFoundError("CareerGoal", goal_id)
        if goal.user_id != user_id:
            msg = f"Career goal {goal_id} does not belong to user {user_id}"
            raise InvalidInputError(msg, field="goal_id")
        return goal

    async def _goal_changed(
        self,
        user_id: int,
        goal: CareerGoal,
        previous: CareerGoal | None,
        description: str,
    ) -> None:
        active = await self._store.get_active_career_goal(user_id)
        event = CareerGoalChanged(
            goal_id=goal.id,
            target_role_id=active.target_role_id if active else None,
            previous_target_role_id=previous.target_role_id if previous else None,
            active_goal_id=active.id if active else None,
            previous_goal_id=previous.id if previous else None,
        )
        await self._record_then_trigger(user_id, event, "set_career_goal", description, {"goal_id": goal.id})

    async def _record_then_trigger(
        self,
        user_id: int,
        event: ChangeEvent,
        activity_type: ActivityType,
        description: str,
        metadata: dict,
    ) -> None:
        # The write already happened: the trigger must fire even if the activity insert fails
        try:
            await self._store.create_user_activity(user_id, activity_type, description, metadata)
        finally:
            self._trigger(user_id, event)

    def _trigger(self, user_id: int, event: ChangeEvent) -> Invalidation:
        invalidation = self._propagator.trigger(user_id, event)
        if self._settings.LEARNING_PATH_AUTO_REFRESH and ModelKey.LEARNING_PATH in invalidation.affected:
            self._propagator.schedule_refresh(user_id, include_learning_path=True)
        return invalidation
