"""Database models for skills, roles, goals and learning progress."""

from datetime import UTC, datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint

from upskill.database.base import Base


def _utcnow() -> datetime:
    return datetime.now(UTC)


class UserRecord(Base):
    """Minimal user row; authentication lives elsewhere."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class SkillRecord(Base):
    """Catalog skill."""

    __tablename__ = "skills"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False, unique=True)
    category = Column(String, nullable=False)
    description = Column(Text)


class UserSkillRecord(Base):
    """A user's self-assessed level for one skill."""

    __tablename__ = "user_skills"
    __table_args__ = (UniqueConstraint("user_id", "skill_id", name="uq_user_skill"),)

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    skill_id = Column(Integer, ForeignKey("skills.id"), nullable=False)
    current_level = Column(Integer, nullable=False)  # 0-100
    target_level = Column(Integer)  # 0-100, defaults from the active role when NULL
    notes = Column(Text)
    last_assessed = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class RoleRecord(Base):
    """Target position with the skills it requires."""

    __tablename__ = "roles"

    id = Column(Integer, primary_key=True)
    title = Column(String, nullable=False)
    # [{"skill_id": int, "min_level": int}, ...]
    required_skills = Column(JSON, nullable=False, default=list)


class CareerGoalRecord(Base):
    """Career goal; the active one drives readiness and learning paths."""

    __tablename__ = "career_goals"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    # No FK: a deleted role must leave the goal readable with an unresolved target
    target_role_id = Column(Integer)
    title = Column(String)
    timeline_months = Column(Integer, nullable=False, default=12)
    is_active = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class LearningResourceRecord(Base):
    """Catalog learning resource."""

    __tablename__ = "learning_resources"

    id = Column(Integer, primary_key=True)
    title = Column(String, nullable=False)
    resource_type = Column(String, nullable=False, index=True)
    duration = Column("duration_minutes", Integer)
    skill_ids = Column(JSON, nullable=False, default=list)
    difficulty = Column(String)


class UserProgressRecord(Base):
    """Progress of one user on one resource."""

    __tablename__ = "user_progress"
    __table_args__ = (UniqueConstraint("user_id", "resource_id", name="uq_user_resource"),)

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    # No FK: progress on a deleted resource is kept and reported as degraded
    resource_id = Column(Integer, nullable=False)
    progress = Column(Integer, nullable=False, default=0)
    completed = Column(Boolean, nullable=False, default=False)
    score = Column(Integer)
    started_at = Column(DateTime(timezone=True), default=_utcnow)
    completed_at = Column(DateTime(timezone=True))


class LearningPathRecord(Base):
    """Generated learning path; regenerated as a new row, never patched."""

    __tablename__ = "learning_paths"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(Text)
    modules = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class UserActivityRecord(Base):
    """Activity feed entry."""

    __tablename__ = "user_activities"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    activity_type = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    activity_metadata = Column("metadata", JSON, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class SkillValidationRecord(Base):
    """Evidence that a user's skill was validated."""

    __tablename__ = "skill_validations"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    skill_id = Column(Integer, ForeignKey("skills.id"), nullable=False)
    validation_type = Column(String, nullable=False)
    score = Column(Integer)
    validated_at = Column(DateTime(timezone=True), default=_utcnow)
