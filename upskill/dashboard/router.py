"""Dashboard and skill-gap API endpoints."""

from fastapi import APIRouter

from upskill.core.dependencies import PropagatorDep
from upskill.readiness.schemas import SkillGapsView

from .schemas import DashboardView
from .service import DashboardService


router = APIRouter(prefix="/api/v1/users/{user_id}", tags=["dashboard"])


@router.get("/dashboard")
async def get_dashboard(user_id: int, propagator: PropagatorDep) -> DashboardView:
    """Get the user's dashboard snapshot; ``stale`` is set when it could not be refreshed."""
    return await DashboardService(propagator).get_dashboard(user_id)


@router.get("/skill-gaps")
async def get_skill_gaps(user_id: int, propagator: PropagatorDep) -> SkillGapsView:
    """Get per-skill gaps against the active goal's target role."""
    return await DashboardService(propagator).get_skill_gaps(user_id)
