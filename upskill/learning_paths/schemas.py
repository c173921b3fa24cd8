"""Schemas for learning path suggestions and gap analysis."""

from typing import Literal

from pydantic import Field

from upskill.core.schemas import ReadModel
from upskill.readiness.schemas import SkillGap


SuggestionSource = Literal["advisor", "fallback", "stored"]
GapPriority = Literal["high", "medium", "low"]


class SuggestedResource(ReadModel):
    resource_id: int
    completed: bool = False


class SuggestedModule(ReadModel):
    title: str
    description: str | None = None
    estimated_hours: float | None = None
    resources: list[SuggestedResource] = Field(default_factory=list)


class GeneratedPath(ReadModel):
    """Structured output requested from the external advisor."""

    title: str
    description: str | None = None
    modules: list[SuggestedModule] = Field(default_factory=list)


class LearningPathSuggestion(GeneratedPath):
    """A learning path proposal, tagged with where it came from."""

    source: SuggestionSource = "advisor"
    fallback_reason: str | None = None
    learning_path_id: int | None = None


class GapAnalysisItem(ReadModel):
    skill_id: int
    skill_name: str | None = None
    current_level: int = Field(ge=0, le=100)
    required_level: int = Field(ge=0, le=100)
    priority: GapPriority


class GeneratedGapAnalysis(ReadModel):
    """Structured output requested from the external advisor."""

    skill_gaps: list[GapAnalysisItem] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)


class GapAnalysis(GeneratedGapAnalysis):
    career_goal: str | None = None
    overall_readiness: int | Literal["unknown"] = 0
    source: SuggestionSource = "advisor"
    fallback_reason: str | None = None


# --- Requests sent to the external advisor ----------------------------------


class GoalPayload(ReadModel):
    id: int
    title: str | None = None
    target_role_id: int | None = None
    target_role_title: str | None = None
    timeline_months: int


class ResourcePayload(ReadModel):
    id: int
    title: str
    resource_type: str
    duration: int | None = None
    skill_ids: list[int] = Field(default_factory=list)


class LearningPathRequest(ReadModel):
    goal: GoalPayload
    skills: list[SkillGap]
    resources: list[ResourcePayload]


class GapAnalysisRequest(ReadModel):
    goal: GoalPayload
    skills: list[SkillGap]
    overall_readiness: int | Literal["unknown"]


class LearningPathView(ReadModel):
    """The user's current learning path as served by the API."""

    user_id: int
    learning_path: LearningPathSuggestion | None = None
    stale: bool = False
    generation: int = 0
