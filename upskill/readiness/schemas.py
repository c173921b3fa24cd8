"""Schemas for skill-gap and readiness results."""

from typing import Literal

from pydantic import Field

from upskill.core.schemas import ReadModel


RoleStatus = Literal["none", "resolved", "unresolved"]


class SkillGap(ReadModel):
    """How far one skill is from its target, as a 0-100 percentage reached."""

    skill_id: int
    skill_name: str | None = None
    current_level: int = Field(ge=0, le=100)
    target_level: int = Field(ge=0, le=100)
    percentage: int = Field(ge=0, le=100)
    out_of_scope: bool = False


class ReadinessReport(ReadModel):
    """Skill gaps of one user against the active goal's target role.

    ``role_status`` is ``none`` when no target is set (readiness 0) and
    ``unresolved`` when the goal points at a role that no longer exists
    (readiness ``"unknown"``).
    """

    user_id: int
    goal_id: int | None = None
    role_id: int | None = None
    role_title: str | None = None
    role_status: RoleStatus = "none"
    gaps: list[SkillGap] = Field(default_factory=list)
    overall_readiness: int | Literal["unknown"] = 0


class SkillGapsView(ReadModel):
    """The skill-gap list as served by the API."""

    user_id: int
    role_id: int | None = None
    role_title: str | None = None
    role_status: RoleStatus = "none"
    overall_readiness: int | Literal["unknown"] = 0
    skill_gaps: list[SkillGap] = Field(default_factory=list)
    stale: bool = False
    generation: int = 0
