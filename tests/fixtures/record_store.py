"""In-memory ``SkillRecordStore`` for tests.

Mirrors the ordering rules of the SQL store. Individual operations can be made
to fail (``failing``) or to pause once until released (``pause``), which is how
the concurrency tests interleave refreshes with mutations.
"""

import asyncio
import itertools
from collections import Counter
from datetime import UTC, datetime, timedelta
from typing import Any

from upskill.exceptions import RepositoryError
from upskill.records.schemas import (
    CareerGoal,
    CareerGoalCreate,
    CareerGoalUpdate,
    LearningPath,
    LearningPathCreate,
    LearningResource,
    RequiredSkill,
    Role,
    Skill,
    SkillValidation,
    User,
    UserActivity,
    UserProgress,
    UserSkill,
)
from upskill.records.selectors import select_active_goal


BASE_TIME = datetime(2024, 1, 1, tzinfo=UTC)


class InMemoryRecordStore:
    def __init__(self) -> None:
        self.users: dict[int, User] = {}
        self.skills: dict[int, Skill] = {}
        self.user_skills: dict[tuple[int, int], UserSkill] = {}
        self.roles: dict[int, Role] = {}
        self.goals: dict[int, CareerGoal] = {}
        self.resources: dict[int, LearningResource] = {}
        self.progress: dict[tuple[int, int], UserProgress] = {}
        self.paths: list[LearningPath] = []
        self.activities: list[UserActivity] = []
        self.validations: list[SkillValidation] = []

        self.failing: set[str] = set()
        self.calls: Counter[str] = Counter()
        self._pauses: dict[str, tuple[asyncio.Event, asyncio.Event]] = {}
        self._ids = itertools.count(1000)
        self._ticks = itertools.count(1)

    # --- Test controls ------------------------------------------------------

    def pause(self, operation: str) -> tuple[asyncio.Event, asyncio.Event]:
        """Block the next call of ``operation``; returns ``(entered, release)`` events."""
        entered, release = asyncio.Event(), asyncio.Event()
        self._pauses[operation] = (entered, release)
        return entered, release

    async def _call(self, operation: str) -> None:
        self.calls[operation] += 1
        pause = self._pauses.pop(operation, None)
        if pause is not None:
            entered, release = pause
            entered.set()
            await release.wait()
        if operation in self.failing:
            raise RepositoryError(operation, ConnectionError("record store offline"))

    def _now(self) -> datetime:
        return BASE_TIME + timedelta(minutes=next(self._ticks))

    # --- Seeding (not counted as calls) ---------------------------------------

    def add_user(self, user_id: int, name: str) -> User:
        user = User(id=user_id, name=name, email=f"user{user_id}@example.com")
        self.users[user_id] = user
        return user

    def add_skill(self, skill_id: int, name: str, category: str = "technical") -> Skill:
        skill = Skill(id=skill_id, name=name, category=category)
        self.skills[skill_id] = skill
        return skill

    def add_role(self, role_id: int, title: str, required: dict[int, int]) -> Role:
        role = Role(
            id=role_id,
            title=title,
            required_skills=[RequiredSkill(skill_id=sid, min_level=level) for sid, level in required.items()],
        )
        self.roles[role_id] = role
        return role

    def remove_role(self, role_id: int) -> None:
        del self.roles[role_id]

    def add_user_skill(self, user_id: int, skill_id: int, current: int, target: int | None = None) -> UserSkill:
        user_skill = UserSkill(
            id=next(self._ids),
            user_id=user_id,
            skill_id=skill_id,
            current_level=current,
            target_level=target,
        )
        self.user_skills[(user_id, skill_id)] = user_skill
        return user_skill

    def add_goal(
        self,
        user_id: int,
        role_id: int | None,
        *,
        title: str | None = None,
        timeline_months: int = 12,
        is_active: bool = False,
    ) -> CareerGoal:
        goal = CareerGoal(
            id=next(self._ids),
            user_id=user_id,
            target_role_id=role_id,
            title=title,
            timeline_months=timeline_months,
            is_active=is_active,
            created_at=self._now(),
        )
        self.goals[goal.id] = goal
        return goal

    def add_resource(
        self,
        resource_id: int,
        resource_type: str,
        skill_ids: list[int],
        duration: int | None = 60,
        title: str | None = None,
    ) -> LearningResource:
        resource = LearningResource(
            id=resource_id,
            title=title or f"{resource_type.title()} {resource_id}",
            resource_type=resource_type,
            duration=duration,
            skill_ids=skill_ids,
        )
        self.resources[resource_id] = resource
        return resource

    def add_progress(self, user_id: int, resource_id: int, progress: int, *, completed: bool = False) -> UserProgress:
        entry = UserProgress(
            id=next(self._ids),
            user_id=user_id,
            resource_id=resource_id,
            progress=progress,
            completed=completed,
            started_at=self._now(),
            completed_at=self._now() if completed else None,
        )
        self.progress[(user_id, resource_id)] = entry
        return entry

    def add_validation(self, user_id: int, skill_id: int, score: int = 90) -> SkillValidation:
        validation = SkillValidation(
            id=next(self._ids),
            user_id=user_id,
            skill_id=skill_id,
            validation_type="assessment",
            score=score,
            validated_at=self._now(),
        )
        self.validations.append(validation)
        return validation

    # --- SkillRecordStore ---------------------------------------------------

    async def get_user(self, user_id: int) -> User | None:
        await self._call("get_user")
        return self.users.get(user_id)

    async def get_skills(self) -> list[Skill]:
        await self._call("get_skills")
        return [self.skills[sid] for sid in sorted(self.skills)]

    async def get_skill(self, skill_id: int) -> Skill | None:
        await self._call("get_skill")
        return self.skills.get(skill_id)

    async def get_user_skills(self, user_id: int) -> list[UserSkill]:
        await self._call("get_user_skills")
        return sorted(
            (us for (uid, _), us in self.user_skills.items() if uid == user_id),
            key=lambda us: us.skill_id,
        )

    async def get_user_skill(self, user_id: int, skill_id: int) -> UserSkill | None:
        await self._call("get_user_skill")
        return self.user_skills.get((user_id, skill_id))

    async def upsert_user_skill(
        self, user_id: int, skill_id: int, current_level: int, target_level: int | None
    ) -> UserSkill:
        await self._call("upsert_user_skill")
        existing = self.user_skills.get((user_id, skill_id))
        if existing is None:
            return self.add_user_skill(user_id, skill_id, current_level, target_level)
        update: dict[str, Any] = {"current_level": current_level, "last_assessed": self._now()}
        if target_level is not None:
            update["target_level"] = target_level
        updated = existing.model_copy(update=update)
        self.user_skills[(user_id, skill_id)] = updated
        return updated

    async def get_role(self, role_id: int) -> Role | None:
        await self._call("get_role")
        return self.roles.get(role_id)

    async def get_career_goals(self, user_id: int) -> list[CareerGoal]:
        await self._call("get_career_goals")
        return sorted(
            (goal for goal in self.goals.values() if goal.user_id == user_id),
            key=lambda goal: (goal.created_at, goal.id),
        )

    async def get_career_goal(self, goal_id: int) -> CareerGoal | None:
        await self._call("get_career_goal")
        return self.goals.get(goal_id)

    async def get_active_career_goal(self, user_id: int) -> CareerGoal | None:
        return select_active_goal(await self.get_career_goals(user_id))

    async def create_career_goal(self, user_id: int, data: CareerGoalCreate) -> CareerGoal:
        await self._call("create_career_goal")
        if data.is_active:
            self._clear_active_flag(user_id)
        return self.add_goal(
            user_id,
            data.target_role_id,
            title=data.title,
            timeline_months=data.timeline_months,
            is_active=data.is_active,
        )

    async def update_career_goal(self, goal_id: int, data: CareerGoalUpdate) -> CareerGoal | None:
        await self._call("update_career_goal")
        goal = self.goals.get(goal_id)
        if goal is None:
            return None
        updated = goal.model_copy(update=data.model_dump(exclude_unset=True))
        self.goals[goal_id] = updated
        return updated

    async def activate_career_goal(self, user_id: int, goal_id: int) -> CareerGoal | None:
        await self._call("activate_career_goal")
        goal = self.goals.get(goal_id)
        if goal is None or goal.user_id != user_id:
            return None
        self._clear_active_flag(user_id)
        activated = goal.model_copy(update={"is_active": True})
        self.goals[goal_id] = activated
        return activated

    def _clear_active_flag(self, user_id: int) -> None:
        for goal_id, goal in list(self.goals.items()):
            if goal.user_id == user_id and goal.is_active:
                self.goals[goal_id] = goal.model_copy(update={"is_active": False})

    async def get_user_progress(self, user_id: int) -> list[UserProgress]:
        await self._call("get_user_progress")
        return sorted(
            (entry for (uid, _), entry in self.progress.items() if uid == user_id),
            key=lambda entry: entry.resource_id,
        )

    async def get_progress_entry(self, user_id: int, resource_id: int) -> UserProgress | None:
        await self._call("get_progress_entry")
        return self.progress.get((user_id, resource_id))

    async def upsert_user_progress(
        self,
        user_id: int,
        resource_id: int,
        *,
        progress: int,
        completed: bool,
        score: int | None,
        completed_at: datetime | None,
    ) -> UserProgress:
        await self._call("upsert_user_progress")
        existing = self.progress.get((user_id, resource_id))
        if existing is None:
            existing = UserProgress(
                id=next(self._ids),
                user_id=user_id,
                resource_id=resource_id,
                progress=0,
                started_at=self._now(),
            )
        update: dict[str, Any] = {"progress": progress, "completed": completed, "completed_at": completed_at}
        if score is not None:
            update["score"] = score
        entry = existing.model_copy(update=update)
        self.progress[(user_id, resource_id)] = entry
        return entry

    async def delete_user_progress(self, user_id: int, resource_id: int) -> bool:
        await self._call("delete_user_progress")
        return self.progress.pop((user_id, resource_id), None) is not None

    async def get_learning_resources(self) -> list[LearningResource]:
        await self._call("get_learning_resources")
        return [self.resources[rid] for rid in sorted(self.resources)]

    async def get_learning_resource(self, resource_id: int) -> LearningResource | None:
        await self._call("get_learning_resource")
        return self.resources.get(resource_id)

    async def get_active_learning_path(self, user_id: int) -> LearningPath | None:
        await self._call("get_active_learning_path")
        owned = [path for path in self.paths if path.user_id == user_id]
        return max(owned, key=lambda path: (path.created_at, path.id)) if owned else None

    async def create_learning_path(self, user_id: int, data: LearningPathCreate) -> LearningPath:
        await self._call("create_learning_path")
        path = LearningPath(
            id=next(self._ids),
            user_id=user_id,
            title=data.title,
            description=data.description,
            modules=data.modules,
            created_at=self._now(),
        )
        self.paths.append(path)
        return path

    async def get_user_activities(self, user_id: int, limit: int = 10) -> list[UserActivity]:
        await self._call("get_user_activities")
        owned = [activity for activity in self.activities if activity.user_id == user_id]
        owned.sort(key=lambda activity: (activity.created_at, activity.id), reverse=True)
        return owned[:limit]

    async def create_user_activity(
        self,
        user_id: int,
        activity_type: str,
        description: str,
        metadata: dict[str, Any] | None = None,
    ) -> UserActivity:
        await self._call("create_user_activity")
        activity = UserActivity(
            id=next(self._ids),
            user_id=user_id,
            activity_type=activity_type,
            description=description,
            metadata=metadata or {},
            created_at=self._now(),
        )
        self.activities.append(activity)
        return activity

    async def get_skill_validations(self, user_id: int) -> list[SkillValidation]:
        await self._call("get_skill_validations")
        return [validation for validation in self.validations if validation.user_id == user_id]
