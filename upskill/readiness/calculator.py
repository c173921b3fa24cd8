"""Skill-gap and readiness calculation.

Pure functions: identical inputs always give identical output, so results can
be cached by the consistency layer and compared in tests.
"""

import math
from collections.abc import Iterable, Sequence

from upskill.records.schemas import CareerGoal, Role, Skill, UserSkill

from .schemas import ReadinessReport, SkillGap


def round_half_up(value: float) -> int:
    """Round like a percentage display does (2.5 -> 3), not banker's rounding."""
    return math.floor(value + 0.5)


def clamp_percentage(value: int) -> int:
    return max(0, min(100, value))


def level_percentage(current_level: int, target_level: int) -> int:
    """Percentage of ``target_level`` reached; 0 when the target is 0."""
    if target_level <= 0:
        return 0
    return clamp_percentage(round_half_up(current_level / target_level * 100))


def required_percentage(current_level: int, min_level: int) -> int:
    """Percentage of a role requirement reached.

    A requirement with ``min_level`` 0 is always met.
    """
    if current_level >= min_level:
        return 100
    return clamp_percentage(round_half_up(current_level / max(min_level, 1) * 100))


def resolve_target_level(user_skill: UserSkill, role: Role | None) -> int | None:
    """Explicit target if the user set one, else the role's minimum for the skill."""
    if user_skill.target_level is not None:
        return user_skill.target_level
    if role is None:
        return None
    for required in role.required_skills:
        if required.skill_id == user_skill.skill_id:
            return required.min_level
    return None


def compute_gaps(
    user_skills: Sequence[UserSkill],
    role: Role | None,
    skill_names: dict[int, str] | None = None,
) -> list[SkillGap]:
    """Per-skill gaps of ``user_skills`` against ``role``.

    Required skills come first in role order (a missing user skill counts as
    level 0). Skills outside the role follow, ordered by id and flagged
    ``out_of_scope``. No role means no gaps.
    """
    if role is None:
        return []

    names = skill_names or {}
    by_skill = {user_skill.skill_id: user_skill for user_skill in user_skills}
    gaps: list[SkillGap] = []
    required_ids: set[int] = set()

    for required in role.required_skills:
        if required.skill_id in required_ids:
            continue
        required_ids.add(required.skill_id)
        user_skill = by_skill.get(required.skill_id)
        current = user_skill.current_level if user_skill else 0
        gaps.append(
            SkillGap(
                skill_id=required.skill_id,
                skill_name=names.get(required.skill_id),
                current_level=current,
                target_level=required.min_level,
                percentage=required_percentage(current, required.min_level),
            )
        )

    for skill_id in sorted(set(by_skill) - required_ids):
        user_skill = by_skill[skill_id]
        target = resolve_target_level(user_skill, role) or 0
        gaps.append(
            SkillGap(
                skill_id=skill_id,
                skill_name=names.get(skill_id),
                current_level=user_skill.current_level,
                target_level=target,
                percentage=level_percentage(user_skill.current_level, target),
                out_of_scope=True,
            )
        )

    return gaps


def compute_overall_readiness(gaps: Iterable[SkillGap]) -> int:
    """Mean percentage over in-scope gaps, 0 when there are none."""
    percentages = [gap.percentage for gap in gaps if not gap.out_of_scope]
    if not percentages:
        return 0
    return clamp_percentage(round_half_up(sum(percentages) / len(percentages)))


def build_readiness_report(
    user_id: int,
    user_skills: Sequence[UserSkill],
    goal: CareerGoal | None,
    role: Role | None,
    skills: Sequence[Skill] = (),
) -> ReadinessReport:
    """Gaps and readiness for the user's active goal.

    A goal whose ``target_role_id`` no longer resolves yields readiness
    ``"unknown"`` instead of failing.
    """
    target_role_id = goal.target_role_id if goal else None
    if target_role_id is None:
        return ReadinessReport(user_id=user_id, goal_id=goal.id if goal else None)

    if role is None:
        return ReadinessReport(
            user_id=user_id,
            goal_id=goal.id,
            role_id=target_role_id,
            role_status="unresolved",
            overall_readiness="unknown",
        )

    gaps = compute_gaps(user_skills, role, {skill.id: skill.name for skill in skills})
    return ReadinessReport(
        user_id=user_id,
        goal_id=goal.id,
        role_id=role.id,
        role_title=role.title,
        role_status="resolved",
        gaps=gaps,
        overall_readiness=compute_overall_readiness(gaps),
    )
