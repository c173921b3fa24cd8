"""Builders that recompute each read-model from the record store."""

import logging
from dataclasses import dataclass
from typing import Any

from upskill.config.settings import Settings, get_settings
from upskill.dashboard.aggregator import build_dashboard
from upskill.dashboard.schemas import DashboardView
from upskill.learning_paths.advisor import LearningPathAdvisor
from upskill.learning_paths.schemas import LearningPathSuggestion, SuggestedModule, SuggestedResource
from upskill.readiness.calculator import build_readiness_report
from upskill.readiness.schemas import ReadinessReport
from upskill.records.repository import SkillRecordStore
from upskill.records.schemas import (
    CareerGoal,
    LearningPath,
    LearningPathCreate,
    LearningPathModule,
    Role,
)

from .events import LearningPathGenerated, ModelKey
from .propagator import RefreshContext


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoleResolution:
    """The active goal and the role it targets (``None`` if missing)."""

    goal: CareerGoal | None
    role: Role | None


class ReadModelBuilders:
    """Recomputes read-models for the propagator.

    Upstream models are read through the refresh context so the propagator can
    order and coalesce the work; raw records come straight from the store.
    """

    def __init__(
        self,
        store: SkillRecordStore,
        advisor: LearningPathAdvisor,
        settings: Settings | None = None,
    ) -> None:
        self._store = store
        self._advisor = advisor
        self._settings = settings or get_settings()

    async def build(self, key: ModelKey, context: RefreshContext) -> Any:
        if key is ModelKey.ROLE_DETAIL:
            return await self.role_detail(context)
        if key is ModelKey.SKILL_GAP:
            return await self.skill_gap(context)
        if key is ModelKey.DASHBOARD:
            return await self.dashboard(context)
        if key is ModelKey.LEARNING_PATH:
            return await self.learning_path(context)
        msg = f"No builder for {key!r}"
        raise ValueError(msg)

    async def role_detail(self, context: RefreshContext) -> RoleResolution:
        goal = await self._store.get_active_career_goal(context.user_id)
        hint = context.role_hint
        if goal is not None and hint is not None and goal.target_role_id != hint.role_id:
            logger.warning(
                "Active goal %s targets role %s but the latest role change is %s; using %s",
                goal.id,
                goal.target_role_id,
                hint.role_id,
                hint.role_id,
            )
            goal = goal.model_copy(update={"target_role_id": hint.role_id})

        if goal is None or goal.target_role_id is None:
            return RoleResolution(goal=goal, role=None)

        role = await self._store.get_role(goal.target_role_id)
        if role is None:
            logger.warning("Career goal %s targets role %s, which does not exist", goal.id, goal.target_role_id)
        return RoleResolution(goal=goal, role=role)

    async def skill_gap(self, context: RefreshContext) -> ReadinessReport:
        resolution: RoleResolution = await context.read(ModelKey.ROLE_DETAIL)
        user_skills = await self._store.get_user_skills(context.user_id)
        skills = await self._store.get_skills()
        return build_readiness_report(context.user_id, user_skills, resolution.goal, resolution.role, skills)

    async def dashboard(self, context: RefreshContext) -> DashboardView:
        report: ReadinessReport = await context.read(ModelKey.SKILL_GAP)
        user_id = context.user_id
        user = await self._store.get_user(user_id)
        user_skills = await self._store.get_user_skills(user_id)
        progress = await self._store.get_user_progress(user_id)
        goals = await self._store.get_career_goals(user_id)
        activities = await self._store.get_user_activities(user_id, limit=self._settings.RECENT_ACTIVITY_LIMIT)
        resources = await self._store.get_learning_resources()
        learning_path = await self._store.get_active_learning_path(user_id)
        validations = await self._store.get_skill_validations(user_id)
        skills = await self._store.get_skills()

        return build_dashboard(
            user_id,
            user=user,
            user_skills=user_skills,
            progress=progress,
            goals=goals,
            activities=activities,
            report=report,
            resources=resources,
            learning_path=learning_path,
            validations=validations,
            skills=skills,
            activity_limit=self._settings.RECENT_ACTIVITY_LIMIT,
        )

    async def learning_path(self, context: RefreshContext) -> LearningPathSuggestion | None:
        """Current learning path; regenerated once the model has been invalidated.

        Until the first invalidation the stored path, if any, is served as is.
        Without a resolved target role nothing is generated.
        """
        resolution: RoleResolution = await context.read(ModelKey.ROLE_DETAIL)
        report: ReadinessReport = await context.read(ModelKey.SKILL_GAP)
        if resolution.goal is None:
            return None

        user_id = context.user_id
        stored = None
        if context.generation == 0 or report.role_status != "resolved":
            stored = await self._store.get_active_learning_path(user_id)
        if stored is not None:
            return stored_suggestion(stored)
        if report.role_status != "resolved":
            logger.info("Goal %s has no resolvable target role; not generating a learning path", resolution.goal.id)
            return None

        resources = await self._store.get_learning_resources()
        suggestion = await self._advisor.suggest_path(
            resolution.goal,
            report.gaps,
            resources,
            role_title=report.role_title,
        )

        progress = await self._store.get_user_progress(user_id)
        completed = {entry.resource_id for entry in progress if entry.completed}
        suggestion = mark_completed(suggestion, completed)

        path = await self._store.create_learning_path(
            user_id,
            LearningPathCreate(
                title=suggestion.title,
                description=suggestion.description,
                modules=[LearningPathModule.model_validate(module.model_dump()) for module in suggestion.modules],
            ),
        )
        logger.info("Stored %s learning path %s for user %s", suggestion.source, path.id, user_id)
        context.trigger(LearningPathGenerated(path_id=path.id))
        return suggestion.model_copy(update={"learning_path_id": path.id})


def mark_completed(suggestion: LearningPathSuggestion, completed: set[int]) -> LearningPathSuggestion:
    modules = [
        module.model_copy(
            update={
                "resources": [
                    SuggestedResource(resource_id=resource.resource_id, completed=resource.resource_id in completed)
                    for resource in module.resources
                ]
            }
        )
        for module in suggestion.modules
    ]
    return suggestion.model_copy(update={"modules": modules})


def stored_suggestion(path: LearningPath) -> LearningPathSuggestion:
    return LearningPathSuggestion(
        title=path.title,
        description=path.description,
        modules=[SuggestedModule.model_validate(module.model_dump()) for module in path.modules],
        source="stored",
        learning_path_id=path.id,
    )
