"""Learning path and gap-analysis reads."""

import logging

from upskill.consistency.events import LearningPathRequested, ModelKey
from upskill.consistency.propagator import ConsistencyPropagator
from upskill.exceptions import ResourceNotFoundError
from upskill.readiness.schemas import ReadinessReport

from .advisor import LearningPathAdvisor
from .schemas import GapAnalysis, LearningPathSuggestion, LearningPathView


logger = logging.getLogger(__name__)

CONSISTENT_READ_ATTEMPTS = 3


class LearningPathService:
    def __init__(self, propagator: ConsistencyPropagator, advisor: LearningPathAdvisor) -> None:
        self._propagator = propagator
        self._advisor = advisor

    async def get_learning_path(self, user_id: int) -> LearningPathView:
        snapshot = await self._propagator.read(user_id, ModelKey.LEARNING_PATH)
        suggestion: LearningPathSuggestion | None = snapshot.value
        return LearningPathView(
            user_id=user_id,
            learning_path=suggestion,
            stale=snapshot.stale,
            generation=snapshot.generation,
        )

    async def regenerate_learning_path(self, user_id: int) -> LearningPathView:
        """Explicit user request: invalidate the learning path and build a new one."""
        self._propagator.trigger(user_id, LearningPathRequested())
        return await self.get_learning_path(user_id)

    async def analyze_skill_gaps(self, user_id: int) -> GapAnalysis:
        """Gap analysis for the active goal. Not cached: each call asks the advisor."""
        for _ in range(CONSISTENT_READ_ATTEMPTS):
            report: ReadinessReport = (await self._propagator.read(user_id, ModelKey.SKILL_GAP)).value
            resolution = (await self._propagator.read(user_id, ModelKey.ROLE_DETAIL)).value
            if resolution.goal is None or report.goal_id == resolution.goal.id:
                break
            logger.debug("Goal changed between reads for user %s; reading again", user_id)

        if resolution.goal is None:
            raise ResourceNotFoundError("Active career goal for user", user_id)
        return await self._advisor.analyze_gaps(resolution.goal, report)
