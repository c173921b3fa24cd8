"""Schemas for the dashboard read-model."""

from datetime import datetime
from typing import Any, Literal

from pydantic import Field

from upskill.core.schemas import ReadModel
from upskill.readiness.schemas import SkillGap


class DashboardUser(ReadModel):
    id: int
    name: str | None = None
    greeting: str = "Hello!"


class DashboardStats(ReadModel):
    """Headline numbers; the string fields are display-ready ("3 / 5", "1.5 hours")."""

    overall_readiness: int = Field(ge=0, le=100)
    skills_validated: str = "0 / 0"
    learning_time: str = "0.0 hours"
    resources_completed: str = "0 / 0"
    resources_completed_count: int = 0
    resources_total: int = 0


class CareerGoalSummary(ReadModel):
    goal_id: int
    title: str | None = None
    target_role_id: int | None = None
    target_role_title: str | None = None
    timeline_months: int
    timeline: str
    readiness: int | Literal["unknown"]


class SkillProgressItem(ReadModel):
    """Share of the catalog resources for one skill that the user has completed."""

    skill_id: int
    skill_name: str | None = None
    completed: int
    total: int
    percent: int


class SkillProgressSummary(ReadModel):
    overall_percent: int = 0
    skills: list[SkillProgressItem] = Field(default_factory=list)


class ActivityItem(ReadModel):
    id: int
    activity_type: str
    description: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime


class DegradationNotice(ReadModel):
    """A field that fell back to its default, and why."""

    field: str
    reason: str


class DashboardView(ReadModel):
    """One consistent snapshot of everything the dashboard shows."""

    user_id: int
    user: DashboardUser
    overall_readiness: int = Field(ge=0, le=100)
    readiness_status: Literal["none", "resolved", "unresolved"] = "none"
    role_id: int | None = None
    stats: DashboardStats
    skill_gaps: list[SkillGap] = Field(default_factory=list)
    career_goal_summary: CareerGoalSummary | None = None
    learning_time_total: float = Field(default=0.0, description="Minutes spent, weighted by progress")
    recent_activities: list[ActivityItem] = Field(default_factory=list)
    skill_progress: SkillProgressSummary = Field(default_factory=SkillProgressSummary)
    learning_path_id: int | None = None
    degradations: list[DegradationNotice] = Field(default_factory=list)
    stale: bool = False
    generation: int = 0
