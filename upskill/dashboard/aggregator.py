"""Dashboard aggregation.

Composes a readiness report with progress, goals and activity records into a
single ``DashboardView``. Each field is computed as an ``Ok``/``Degraded``
outcome; a degraded field falls back to its documented default and is listed
in ``DashboardView.degradations`` instead of aborting the whole build.
"""

import logging
from collections.abc import Sequence

from upskill.core.results import Degraded, Ok, Outcome
from upskill.readiness.calculator import round_half_up
from upskill.readiness.schemas import ReadinessReport
from upskill.records.schemas import (
    CareerGoal,
    LearningPath,
    LearningResource,
    Skill,
    SkillValidation,
    User,
    UserActivity,
    UserProgress,
    UserSkill,
)
from upskill.records.selectors import select_active_goal

from .schemas import (
    ActivityItem,
    CareerGoalSummary,
    DashboardStats,
    DashboardUser,
    DashboardView,
    DegradationNotice,
    SkillProgressItem,
    SkillProgressSummary,
)


logger = logging.getLogger(__name__)


def build_dashboard(
    user_id: int,
    *,
    user: User | None,
    user_skills: Sequence[UserSkill],
    progress: Sequence[UserProgress],
    goals: Sequence[CareerGoal],
    activities: Sequence[UserActivity],
    report: ReadinessReport,
    resources: Sequence[LearningResource],
    learning_path: LearningPath | None = None,
    validations: Sequence[SkillValidation] = (),
    skills: Sequence[Skill] = (),
    activity_limit: int = 10,
) -> DashboardView:
    """Build the dashboard snapshot for ``user_id``.

    ``report`` must be the readiness report for the same goal the dashboard
    shows; the goal summary is taken from ``report.goal_id`` when present so the
    two can never disagree.
    """
    resource_map = {resource.id: resource for resource in resources}
    skill_names = {skill.id: skill.name for skill in skills}
    degradations: list[DegradationNotice] = []

    def take(field: str, outcome: Outcome) -> object:
        if outcome.degraded:
            degradations.append(DegradationNotice(field=field, reason=outcome.reason))
        return outcome.value

    user_block = take("user", summarize_user(user_id, user))
    readiness = take("overallReadiness", overall_readiness(report))
    goal_summary = take("careerGoalSummary", summarize_goal(goals, report))
    learning_minutes = take("learningTimeTotal", total_learning_minutes(progress, resource_map))
    completed, total = take("resourcesCompleted", count_completed_resources(progress, learning_path))
    validated = take("skillsValidated", count_validated_skills(validations, user_skills))
    skill_progress = take("skillProgress", summarize_skill_progress(user_skills, resources, progress, skill_names))
    recent = take("recentActivities", recent_activity_items(activities, activity_limit))

    stats = DashboardStats(
        overall_readiness=readiness,
        skills_validated=validated,
        learning_time=f"{learning_minutes / 60:.1f} hours",
        resources_completed=f"{completed} / {total}",
        resources_completed_count=completed,
        resources_total=total,
    )

    return DashboardView(
        user_id=user_id,
        user=user_block,
        overall_readiness=readiness,
        readiness_status=report.role_status,
        role_id=report.role_id,
        stats=stats,
        skill_gaps=report.gaps,
        career_goal_summary=goal_summary,
        learning_time_total=learning_minutes,
        recent_activities=recent,
        skill_progress=skill_progress,
        learning_path_id=learning_path.id if learning_path else None,
        degradations=degradations,
    )


def summarize_user(user_id: int, user: User | None) -> Outcome[DashboardUser]:
    if user is None:
        logger.warning("User %s not found while building dashboard", user_id)
        return Degraded(DashboardUser(id=user_id), f"user {user_id} not found")
    first_name = user.name.split(" ")[0] if user.name.strip() else ""
    greeting = f"Hello, {first_name}!" if first_name else "Hello!"
    return Ok(DashboardUser(id=user.id, name=user.name, greeting=greeting))


def overall_readiness(report: ReadinessReport) -> Outcome[int]:
    if report.overall_readiness == "unknown":
        return Degraded(0, f"target role {report.role_id} not found; readiness unknown")
    return Ok(report.overall_readiness)


def summarize_goal(goals: Sequence[CareerGoal], report: ReadinessReport) -> Outcome[CareerGoalSummary | None]:
    """Summary of the goal the readiness report was computed for."""
    goal = None
    if report.goal_id is not None:
        goal = next((candidate for candidate in goals if candidate.id == report.goal_id), None)
    if goal is None:
        goal = select_active_goal(goals)
    if goal is None:
        return Ok(None)

    summary = CareerGoalSummary(
        goal_id=goal.id,
        title=goal.title or report.role_title,
        target_role_id=goal.target_role_id,
        target_role_title=report.role_title,
        timeline_months=goal.timeline_months,
        timeline=f"Target timeline: {goal.timeline_months} months",
        readiness=report.overall_readiness,
    )
    if report.role_status == "unresolved":
        logger.warning("Career goal %s references missing role %s", goal.id, goal.target_role_id)
        return Degraded(summary, f"target role {goal.target_role_id} not found")
    return Ok(summary)


def total_learning_minutes(
    progress: Sequence[UserProgress],
    resource_map: dict[int, LearningResource],
) -> Outcome[float]:
    """Minutes learned: each entry's progress share of its resource's duration.

    Entries pointing at deleted resources contribute 0 but stay in the data set.
    """
    total = 0.0
    missing: list[int] = []
    for entry in progress:
        resource = resource_map.get(entry.resource_id)
        if resource is None:
            missing.append(entry.resource_id)
            continue
        total += (entry.progress / 100) * (resource.duration or 0)

    total = round(total, 2)
    if missing:
        logger.warning("Progress references missing resources %s; counted as 0 minutes", missing)
        return Degraded(total, f"resources not found: {', '.join(str(rid) for rid in missing)}")
    return Ok(total)


def count_completed_resources(
    progress: Sequence[UserProgress],
    learning_path: LearningPath | None,
) -> Outcome[tuple[int, int]]:
    """Completed entries over the active path's resource count (0 without a path)."""
    completed = sum(1 for entry in progress if entry.completed)
    total = learning_path.resource_count if learning_path else 0
    return Ok((completed, total))


def count_validated_skills(
    validations: Sequence[SkillValidation],
    user_skills: Sequence[UserSkill],
) -> Outcome[str]:
    tracked = {user_skill.skill_id for user_skill in user_skills}
    validated = {validation.skill_id for validation in validations if validation.skill_id in tracked}
    return Ok(f"{len(validated)} / {len(tracked)}")


def summarize_skill_progress(
    user_skills: Sequence[UserSkill],
    resources: Sequence[LearningResource],
    progress: Sequence[UserProgress],
    skill_names: dict[int, str],
) -> Outcome[SkillProgressSummary]:
    """Per tracked skill, how many of its catalog resources the user completed."""
    completed_ids = {entry.resource_id for entry in progress if entry.completed}
    counts: dict[int, list[int]] = {user_skill.skill_id: [0, 0] for user_skill in user_skills}

    for resource in resources:
        for skill_id in set(resource.skill_ids):
            if skill_id not in counts:
                continue
            counts[skill_id][1] += 1
            if resource.id in completed_ids:
                counts[skill_id][0] += 1

    items = [
        SkillProgressItem(
            skill_id=skill_id,
            skill_name=skill_names.get(skill_id),
            completed=done,
            total=total,
            percent=round_half_up(done / total * 100) if total else 0,
        )
        for skill_id, (done, total) in counts.items()
    ]
    items.sort(key=lambda item: (-item.percent, item.skill_id))

    all_done = sum(item.completed for item in items)
    all_total = sum(item.total for item in items)
    overall = round_half_up(all_done / all_total * 100) if all_total else 0
    return Ok(SkillProgressSummary(overall_percent=overall, skills=items))


def recent_activity_items(activities: Sequence[UserActivity], limit: int) -> Outcome[list[ActivityItem]]:
    ordered = sorted(activities, key=lambda activity: (activity.created_at, activity.id), reverse=True)
    return Ok(
        [
            ActivityItem(
                id=activity.id,
                activity_type=activity.activity_type,
                description=activity.description,
                metadata=activity.metadata,
                created_at=activity.created_at,
            )
            for activity in ordered[:limit]
        ]
    )
