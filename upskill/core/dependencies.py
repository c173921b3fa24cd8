"""FastAPI dependencies resolving the engine components stored on ``app.state``."""

from typing import Annotated

from fastapi import Depends, Request

from upskill.career.service import CareerService
from upskill.consistency.propagator import ConsistencyPropagator
from upskill.learning_paths.advisor import LearningPathAdvisor
from upskill.records.repository import SkillRecordStore


def get_store(request: Request) -> SkillRecordStore:
    return request.app.state.store


def get_propagator(request: Request) -> ConsistencyPropagator:
    return request.app.state.propagator


def get_advisor(request: Request) -> LearningPathAdvisor:
    return request.app.state.advisor


StoreDep = Annotated[SkillRecordStore, Depends(get_store)]
PropagatorDep = Annotated[ConsistencyPropagator, Depends(get_propagator)]
AdvisorDep = Annotated[LearningPathAdvisor, Depends(get_advisor)]


def get_career_service(store: StoreDep, propagator: PropagatorDep) -> CareerService:
    return CareerService(store, propagator)


CareerServiceDep = Annotated[CareerService, Depends(get_career_service)]
