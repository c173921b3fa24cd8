"""Dashboard and skill-gap reads through the propagator."""

from upskill.consistency.events import ModelKey
from upskill.consistency.propagator import ConsistencyPropagator
from upskill.readiness.schemas import ReadinessReport, SkillGapsView

from .schemas import DashboardView


class DashboardService:
    def __init__(self, propagator: ConsistencyPropagator) -> None:
        self._propagator = propagator

    async def get_dashboard(self, user_id: int) -> DashboardView:
        snapshot = await self._propagator.read(user_id, ModelKey.DASHBOARD)
        view: DashboardView = snapshot.value
        return view.model_copy(update={"stale": snapshot.stale, "generation": snapshot.generation})

    async def get_skill_gaps(self, user_id: int) -> SkillGapsView:
        snapshot = await self._propagator.read(user_id, ModelKey.SKILL_GAP)
        report: ReadinessReport = snapshot.value
        return SkillGapsView(
            user_id=user_id,
            role_id=report.role_id,
            role_title=report.role_title,
            role_status=report.role_status,
            overall_readiness=report.overall_readiness,
            skill_gaps=report.gaps,
            stale=snapshot.stale,
            generation=snapshot.generation,
        )
