"""Typed records exchanged with the record store.

These are plain value objects: the repository hands them out and the readiness
engine never mutates them in place.
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


ResourceType = Literal["course", "workshop", "assessment", "video", "article", "book", "project"]
ActivityType = Literal[
    "completed_resource",
    "started_resource",
    "updated_skill",
    "validated_skill",
    "set_career_goal",
]


class RecordModel(BaseModel):
    """Base for records loaded from ORM rows."""

    model_config = ConfigDict(from_attributes=True, frozen=True, alias_generator=to_camel, populate_by_name=True)


class User(RecordModel):
    id: int
    name: str
    email: str | None = None


class Skill(RecordModel):
    id: int
    name: str
    category: str
    description: str | None = None


class UserSkill(RecordModel):
    id: int
    user_id: int
    skill_id: int
    current_level: int = Field(ge=0, le=100)
    target_level: int | None = Field(default=None, ge=0, le=100)
    notes: str | None = None
    last_assessed: datetime | None = None


class RequiredSkill(RecordModel):
    skill_id: int
    min_level: int = Field(ge=0, le=100)


class Role(RecordModel):
    id: int
    title: str
    required_skills: list[RequiredSkill] = Field(default_factory=list)


class CareerGoal(RecordModel):
    id: int
    user_id: int
    target_role_id: int | None = None
    title: str | None = None
    timeline_months: int = Field(ge=1)
    is_active: bool = False
    created_at: datetime


class LearningResource(RecordModel):
    id: int
    title: str
    resource_type: ResourceType
    duration: int | None = Field(default=None, ge=0, description="Duration in minutes")
    skill_ids: list[int] = Field(default_factory=list)
    difficulty: str | None = None


class UserProgress(RecordModel):
    id: int
    user_id: int
    resource_id: int
    progress: int = Field(ge=0, le=100)
    completed: bool = False
    score: int | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None


class LearningPathResource(RecordModel):
    resource_id: int
    completed: bool = False


class LearningPathModule(RecordModel):
    title: str
    description: str | None = None
    estimated_hours: float | None = None
    resources: list[LearningPathResource] = Field(default_factory=list)


class LearningPath(RecordModel):
    id: int
    user_id: int
    title: str
    description: str | None = None
    modules: list[LearningPathModule] = Field(default_factory=list)
    created_at: datetime | None = None

    @property
    def resource_count(self) -> int:
        return sum(len(module.resources) for module in self.modules)


class UserActivity(RecordModel):
    id: int
    user_id: int
    activity_type: ActivityType
    description: str
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("activity_metadata", "metadata"),
    )
    created_at: datetime


class SkillValidation(RecordModel):
    id: int
    user_id: int
    skill_id: int
    validation_type: str
    score: int | None = None
    validated_at: datetime | None = None


# --- Write payloads -------------------------------------------------------


class CareerGoalCreate(BaseModel):
    """Fields accepted when creating a career goal."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    target_role_id: int | None = None
    title: str | None = Field(default=None, max_length=200)
    timeline_months: int = Field(default=12, ge=1, le=120)
    is_active: bool = True


class CareerGoalUpdate(BaseModel):
    """Partial update of a career goal; unset fields are left alone."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    target_role_id: int | None = None
    title: str | None = Field(default=None, max_length=200)
    timeline_months: int | None = Field(default=None, ge=1, le=120)


class LearningPathCreate(BaseModel):
    title: str
    description: str | None = None
    modules: list[LearningPathModule] = Field(default_factory=list)
