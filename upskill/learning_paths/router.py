"""Learning path and skill-gap analysis API endpoints."""

from fastapi import APIRouter

from upskill.core.dependencies import AdvisorDep, PropagatorDep

from .schemas import GapAnalysis, LearningPathView
from .service import LearningPathService


router = APIRouter(prefix="/api/v1/users/{user_id}", tags=["learning-paths"])


@router.get("/learning-path")
async def get_learning_path(user_id: int, propagator: PropagatorDep, advisor: AdvisorDep) -> LearningPathView:
    """Get the user's current learning path, generating one if it is out of date."""
    return await LearningPathService(propagator, advisor).get_learning_path(user_id)


@router.post("/learning-path")
async def regenerate_learning_path(user_id: int, propagator: PropagatorDep, advisor: AdvisorDep) -> LearningPathView:
    """Generate a new learning path for the active goal."""
    return await LearningPathService(propagator, advisor).regenerate_learning_path(user_id)


@router.post("/skill-gap-analysis")
async def analyze_skill_gaps(user_id: int, propagator: PropagatorDep, advisor: AdvisorDep) -> GapAnalysis:
    """Analyze the user's skill gaps against the active goal."""
    return await LearningPathService(propagator, advisor).analyze_skill_gaps(user_id)
