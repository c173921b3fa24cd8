"""Career mutation API endpoints: skill levels, goals and progress."""

from fastapi import APIRouter, Response, status

from upskill.core.dependencies import CareerServiceDep
from upskill.exceptions import ResourceNotFoundError
from upskill.records.schemas import CareerGoal, CareerGoalCreate, CareerGoalUpdate, UserProgress, UserSkill

from .schemas import ProgressUpdate, SkillLevelUpdate, TargetRoleUpdate


router = APIRouter(prefix="/api/v1/users/{user_id}", tags=["career"])


@router.put("/skills/{skill_id}")
async def update_skill_level(
    user_id: int,
    skill_id: int,
    payload: SkillLevelUpdate,
    service: CareerServiceDep,
) -> UserSkill:
    """Set the user's current (and optionally target) level for a skill."""
    return await service.update_skill_level(user_id, skill_id, payload.current_level, payload.target_level)


@router.post("/career-goals", status_code=status.HTTP_201_CREATED)
async def create_career_goal(user_id: int, payload: CareerGoalCreate, service: CareerServiceDep) -> CareerGoal:
    return await service.create_career_goal(user_id, payload)


@router.patch("/career-goals/{goal_id}")
async def update_career_goal(
    user_id: int,
    goal_id: int,
    payload: CareerGoalUpdate,
    service: CareerServiceDep,
) -> CareerGoal:
    return await service.update_career_goal(user_id, goal_id, payload)


@router.post("/career-goals/{goal_id}/activate")
async def activate_career_goal(user_id: int, goal_id: int, service: CareerServiceDep) -> CareerGoal:
    """Make a goal the active one; other goals are kept as history."""
    return await service.activate_career_goal(user_id, goal_id)


@router.put("/target-role")
async def set_target_role(user_id: int, payload: TargetRoleUpdate, service: CareerServiceDep) -> CareerGoal:
    """Point the active goal at a new role (creates a goal if the user has none)."""
    return await service.set_target_role(user_id, payload.role_id)


@router.put("/progress/{resource_id}")
async def record_progress(
    user_id: int,
    resource_id: int,
    payload: ProgressUpdate,
    service: CareerServiceDep,
) -> UserProgress:
    return await service.record_progress(
        user_id,
        resource_id,
        payload.progress,
        completed=payload.completed,
        score=payload.score,
    )


@router.delete("/progress/{resource_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_progress(user_id: int, resource_id: int, service: CareerServiceDep) -> Response:
    """Reset progress on a resource."""
    if not await service.remove_progress(user_id, resource_id):
        raise ResourceNotFoundError("UserProgress", resource_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
