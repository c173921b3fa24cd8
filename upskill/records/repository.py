"""Record store contract and its SQLAlchemy implementation.

Every method returns typed records, or ``None`` when the row does not exist.
Only storage/transport failures raise, always as ``RepositoryError``.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Protocol

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from upskill.exceptions import RepositoryError

from .models import (
    CareerGoalRecord,
    LearningPathRecord,
    LearningResourceRecord,
    RoleRecord,
    SkillRecord,
    SkillValidationRecord,
    UserActivityRecord,
    UserProgressRecord,
    UserRecord,
    UserSkillRecord,
)
from .schemas import (
    ActivityType,
    CareerGoal,
    CareerGoalCreate,
    CareerGoalUpdate,
    LearningPath,
    LearningPathCreate,
    LearningResource,
    Role,
    Skill,
    SkillValidation,
    User,
    UserActivity,
    UserProgress,
    UserSkill,
)
from .selectors import select_active_goal


logger = logging.getLogger(__name__)


class SkillRecordStore(Protocol):
    """CRUD contract consumed by the readiness engine."""

    async def get_user(self, user_id: int) -> User | None: ...

    async def get_skills(self) -> list[Skill]: ...

    async def get_skill(self, skill_id: int) -> Skill | None: ...

    async def get_user_skills(self, user_id: int) -> list[UserSkill]: ...

    async def get_user_skill(self, user_id: int, skill_id: int) -> UserSkill | None: ...

    async def upsert_user_skill(
        self, user_id: int, skill_id: int, current_level: int, target_level: int | None
    ) -> UserSkill: ...

    async def get_role(self, role_id: int) -> Role | None: ...

    async def get_career_goals(self, user_id: int) -> list[CareerGoal]: ...

    async def get_career_goal(self, goal_id: int) -> CareerGoal | None: ...

    async def get_active_career_goal(self, user_id: int) -> CareerGoal | None: ...

    async def create_career_goal(self, user_id: int, data: CareerGoalCreate) -> CareerGoal: ...

    async def update_career_goal(self, goal_id: int, data: CareerGoalUpdate) -> CareerGoal | None: ...

    async def activate_career_goal(self, user_id: int, goal_id: int) -> CareerGoal | None: ...

    async def get_user_progress(self, user_id: int) -> list[UserProgress]: ...

    async def get_progress_entry(self, user_id: int, resource_id: int) -> UserProgress | None: ...

    async def upsert_user_progress(
        self,
        user_id: int,
        resource_id: int,
        *,
        progress: int,
        completed: bool,
        score: int | None,
        completed_at: datetime | None,
    ) -> UserProgress: ...

    async def delete_user_progress(self, user_id: int, resource_id: int) -> bool: ...

    async def get_learning_resources(self) -> list[LearningResource]: ...

    async def get_learning_resource(self, resource_id: int) -> LearningResource | None: ...

    async def get_active_learning_path(self, user_id: int) -> LearningPath | None: ...

    async def create_learning_path(self, user_id: int, data: LearningPathCreate) -> LearningPath: ...

    async def get_user_activities(self, user_id: int, limit: int = 10) -> list[UserActivity]: ...

    async def create_user_activity(
        self,
        user_id: int,
        activity_type: ActivityType,
        description: str,
        metadata: dict[str, Any] | None = None,
    ) -> UserActivity: ...

    async def get_skill_validations(self, user_id: int) -> list[SkillValidation]: ...


class SqlSkillRecordStore:
    """``SkillRecordStore`` backed by SQLAlchemy async sessions.

    Each call runs in its own short-lived session so the store can be shared
    by the propagator across requests.
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        self._session_maker = session_maker

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncGenerator[AsyncSession, None]:
        try:
            async with self._session_maker() as session:
                try:
                    yield session
                except SQLAlchemyError:
                    await session.rollback()
                    raise
        except SQLAlchemyError as e:
            logger.exception("Record store failure during %s", operation)
            raise RepositoryError(operation, e) from e

    # --- Users & skills ---------------------------------------------------

    async def get_user(self, user_id: int) -> User | None:
        async with self._session("get_user") as session:
            row = await session.get(UserRecord, user_id)
            return User.model_validate(row) if row else None

    async def get_skills(self) -> list[Skill]:
        async with self._session("get_skills") as session:
            result = await session.execute(select(SkillRecord).order_by(SkillRecord.id))
            return [Skill.model_validate(row) for row in result.scalars()]

    async def get_skill(self, skill_id: int) -> Skill | None:
        async with self._session("get_skill") as session:
            row = await session.get(SkillRecord, skill_id)
            return Skill.model_validate(row) if row else None

    async def get_user_skills(self, user_id: int) -> list[UserSkill]:
        async with self._session("get_user_skills") as session:
            query = select(UserSkillRecord).where(UserSkillRecord.user_id == user_id).order_by(UserSkillRecord.skill_id)
            result = await session.execute(query)
            return [UserSkill.model_validate(row) for row in result.scalars()]

    async def get_user_skill(self, user_id: int, skill_id: int) -> UserSkill | None:
        async with self._session("get_user_skill") as session:
            row = await self._find_user_skill(session, user_id, skill_id)
            return UserSkill.model_validate(row) if row else None

    async def upsert_user_skill(
        self, user_id: int, skill_id: int, current_level: int, target_level: int | None
    ) -> UserSkill:
        async with self._session("upsert_user_skill") as session:
            row = await self._find_user_skill(session, user_id, skill_id)
            if row is None:
                row = UserSkillRecord(user_id=user_id, skill_id=skill_id)
                session.add(row)
            row.current_level = current_level
            if target_level is not None:
                row.target_level = target_level
            await session.commit()
            await session.refresh(row)
            return UserSkill.model_validate(row)

    async def _find_user_skill(self, session: AsyncSession, user_id: int, skill_id: int) -> UserSkillRecord | None:
        query = select(UserSkillRecord).where(
            UserSkillRecord.user_id == user_id,
            UserSkillRecord.skill_id == skill_id,
        )
        result = await session.execute(query)
        return result.scalar_one_or_none()

    # --- Roles & goals ----------------------------------------------------

    async def get_role(self, role_id: int) -> Role | None:
        async with self._session("get_role") as session:
            row = await session.get(RoleRecord, role_id)
            return Role.model_validate(row) if row else None

    async def get_career_goals(self, user_id: int) -> list[CareerGoal]:
        async with self._session("get_career_goals") as session:
            query = (
                select(CareerGoalRecord)
                .where(CareerGoalRecord.user_id == user_id)
                .order_by(CareerGoalRecord.created_at, CareerGoalRecord.id)
            )
            result = await session.execute(query)
            return [CareerGoal.model_validate(row) for row in result.scalars()]

    async def get_career_goal(self, goal_id: int) -> CareerGoal | None:
        async with self._session("get_career_goal") as session:
            row = await session.get(CareerGoalRecord, goal_id)
            return CareerGoal.model_validate(row) if row else None

    async def get_active_career_goal(self, user_id: int) -> CareerGoal | None:
        return select_active_goal(await self.get_career_goals(user_id))

    async def create_career_goal(self, user_id: int, data: CareerGoalCreate) -> CareerGoal:
        async with self._session("create_career_goal") as session:
            if data.is_active:
                await self._clear_active_flag(session, user_id)
            row = CareerGoalRecord(user_id=user_id, **data.model_dump())
            session.add(row)
            await session.commit()
            await session.refresh(row)
            logger.info("Created career goal %s for user %s", row.id, user_id)
            return CareerGoal.model_validate(row)

    async def update_career_goal(self, goal_id: int, data: CareerGoalUpdate) -> CareerGoal | None:
        async with self._session("update_career_goal") as session:
            row = await session.get(CareerGoalRecord, goal_id)
            if row is None:
                return None
            for key, value in data.model_dump(exclude_unset=True).items():
                setattr(row, key, value)
            await session.commit()
            await session.refresh(row)
            return CareerGoal.model_validate(row)

    async def activate_career_goal(self, user_id: int, goal_id: int) -> CareerGoal | None:
        async with self._session("activate_career_goal") as session:
            row = await session.get(CareerGoalRecord, goal_id)
            if row is None or row.user_id != user_id:
                return None
            await self._clear_active_flag(session, user_id)
            row.is_active = True
            await session.commit()
            await session.refresh(row)
            return CareerGoal.model_validate(row)

    async def _clear_active_flag(self, session: AsyncSession, user_id: int) -> None:
        await session.execute(
            update(CareerGoalRecord)
            .where(CareerGoalRecord.user_id == user_id, CareerGoalRecord.is_active.is_(True))
            .values(is_active=False)
        )

    # --- Progress & resources ---------------------------------------------

    async def get_user_progress(self, user_id: int) -> list[UserProgress]:
        async with self._session("get_user_progress") as session:
            query = (
                select(UserProgressRecord)
                .where(UserProgressRecord.user_id == user_id)
                .order_by(UserProgressRecord.resource_id)
            )
            result = await session.execute(query)
            return [UserProgress.model_validate(row) for row in result.scalars()]

    async def get_progress_entry(self, user_id: int, resource_id: int) -> UserProgress | None:
        async with self._session("get_progress_entry") as session:
            row = await self._find_progress(session, user_id, resource_id)
            return UserProgress.model_validate(row) if row else None

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
        async with self._session("upsert_user_progress") as session:
            row = await self._find_progress(session, user_id, resource_id)
            if row is None:
                row = UserProgressRecord(user_id=user_id, resource_id=resource_id)
                session.add(row)
            row.progress = progress
            row.completed = completed
            row.completed_at = completed_at
            if score is not None:
                row.score = score
            await session.commit()
            await session.refresh(row)
            return UserProgress.model_validate(row)

    async def delete_user_progress(self, user_id: int, resource_id: int) -> bool:
        async with self._session("delete_user_progress") as session:
            result = await session.execute(
                delete(UserProgressRecord).where(
                    UserProgressRecord.user_id == user_id,
                    UserProgressRecord.resource_id == resource_id,
                )
            )
            await session.commit()
            return result.rowcount > 0

    async def _find_progress(self, session: AsyncSession, user_id: int, resource_id: int) -> UserProgressRecord | None:
        query = select(UserProgressRecord).where(
            UserProgressRecord.user_id == user_id,
            UserProgressRecord.resource_id == resource_id,
        )
        result = await session.execute(query)
        return result.scalar_one_or_none()

    async def get_learning_resources(self) -> list[LearningResource]:
        async with self._session("get_learning_resources") as session:
            result = await session.execute(select(LearningResourceRecord).order_by(LearningResourceRecord.id))
            return [LearningResource.model_validate(row) for row in result.scalars()]

    async def get_learning_resource(self, resource_id: int) -> LearningResource | None:
        async with self._session("get_learning_resource") as session:
            row = await session.get(LearningResourceRecord, resource_id)
            return LearningResource.model_validate(row) if row else None

    # --- Learning paths ---------------------------------------------------

    async def get_active_learning_path(self, user_id: int) -> LearningPath | None:
        async with self._session("get_active_learning_path") as session:
            query = (
                select(LearningPathRecord)
                .where(LearningPathRecord.user_id == user_id)
                .order_by(LearningPathRecord.created_at.desc(), LearningPathRecord.id.desc())
                .limit(1)
            )
            result = await session.execute(query)
            row = result.scalar_one_or_none()
            return LearningPath.model_validate(row) if row else None

    async def create_learning_path(self, user_id: int, data: LearningPathCreate) -> LearningPath:
        async with self._session("create_learning_path") as session:
            row = LearningPathRecord(
                user_id=user_id,
                title=data.title,
                description=data.description,
                modules=[module.model_dump() for module in data.modules],
            )
            session.add(row)
            await session.commit()
            await session.refresh(row)
            logger.info("Created learning path %s for user %s", row.id, user_id)
            return LearningPath.model_validate(row)

    # --- Activity feed & validations ----------------------------------------

    async def get_user_activities(self, user_id: int, limit: int = 10) -> list[UserActivity]:
        async with self._session("get_user_activities") as session:
            query = (
                select(UserActivityRecord)
                .where(UserActivityRecord.user_id == user_id)
                .order_by(UserActivityRecord.created_at.desc(), UserActivityRecord.id.desc())
                .limit(limit)
            )
            result = await session.execute(query)
            return [UserActivity.model_validate(row) for row in result.scalars()]

    async def create_user_activity(
        self,
        user_id: int,
        activity_type: ActivityType,
        description: str,
        metadata: dict[str, Any] | None = None,
    ) -> UserActivity:
        async with self._session("create_user_activity") as session:
            row = UserActivityRecord(
                user_id=user_id,
                activity_type=activity_type,
                description=description,
                activity_metadata=metadata or {},
            )
            session.add(row)
            await session.commit()
            await session.refresh(row)
            return UserActivity.model_validate(row)

    async def get_skill_validations(self, user_id: int) -> list[SkillValidation]:
        async with self._session("get_skill_validations") as session:
            query = select(SkillValidationRecord).where(SkillValidationRecord.user_id == user_id)
            result = await session.execute(query)
            return [SkillValidation.model_validate(row) for row in result.scalars()]
