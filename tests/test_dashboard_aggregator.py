"""Dashboard aggregation from records and a readiness report."""

from datetime import UTC, datetime, timedelta

from upskill.dashboard.aggregator import build_dashboard
from upskill.readiness.calculator import build_readiness_report
from upskill.records.schemas import (
    CareerGoal,
    LearningPath,
    LearningPathModule,
    LearningPathResource,
    LearningResource,
    RequiredSkill,
    Role,
    Skill,
    SkillValidation,
    User,
    UserActivity,
    UserProgress,
    UserSkill,
)
from upskill.records.selectors import select_active_goal


T0 = datetime(2024, 3, 1, tzinfo=UTC)

USER = User(id=1, name="Ada Lovelace")
SKILLS = [Skill(id=1, name="Python", category="technical"), Skill(id=2, name="SQL", category="technical")]
ROLE = Role(
    id=10,
    title="Backend Engineer",
    required_skills=[RequiredSkill(skill_id=1, min_level=60), RequiredSkill(skill_id=2, min_level=50)],
)
USER_SKILLS = [
    UserSkill(id=1, user_id=1, skill_id=1, current_level=30, target_level=60),
    UserSkill(id=2, user_id=1, skill_id=2, current_level=50),
]
RESOURCES = [
    LearningResource(id=100, title="Python 101", resource_type="course", duration=120, skill_ids=[1]),
    LearningResource(id=101, title="SQL Basics", resource_type="course", duration=60, skill_ids=[2]),
    LearningResource(id=102, title="Python Lab", resource_type="workshop", duration=90, skill_ids=[1]),
]


def make_goal(goal_id: int, role_id: int | None, minutes: int = 0, *, is_active: bool = False) -> CareerGoal:
    return CareerGoal(
        id=goal_id,
        user_id=1,
        target_role_id=role_id,
        title=f"Goal {goal_id}",
        timeline_months=6,
        is_active=is_active,
        created_at=T0 + timedelta(minutes=minutes),
    )


def make_progress(resource_id: int, progress: int, *, completed: bool = False) -> UserProgress:
    return UserProgress(id=resource_id, user_id=1, resource_id=resource_id, progress=progress, completed=completed)


def make_activity(activity_id: int, minutes: int) -> UserActivity:
    return UserActivity(
        id=activity_id,
        user_id=1,
        activity_type="updated_skill",
        description=f"Activity {activity_id}",
        created_at=T0 + timedelta(minutes=minutes),
    )


def dashboard(**overrides):
    goals = overrides.pop("goals", [make_goal(7, 10, is_active=True)])
    role = overrides.pop("role", ROLE)
    active = select_active_goal(goals)
    report = build_readiness_report(1, USER_SKILLS, active, role, SKILLS)
    kwargs = {
        "user": USER,
        "user_skills": USER_SKILLS,
        "progress": [],
        "goals": goals,
        "activities": [],
        "report": report,
        "resources": RESOURCES,
        "skills": SKILLS,
    }
    kwargs.update(overrides)
    return build_dashboard(1, **kwargs)


def test_dashboard_composes_readiness_and_goal() -> None:
    view = dashboard()

    assert view.overall_readiness == 75
    assert view.readiness_status == "resolved"
    assert [gap.percentage for gap in view.skill_gaps] == [50, 100]
    assert view.career_goal_summary is not None
    assert view.career_goal_summary.goal_id == 7
    assert view.career_goal_summary.target_role_title == "Backend Engineer"
    assert view.career_goal_summary.timeline == "Target timeline: 6 months"
    assert view.career_goal_summary.readiness == 75
    assert view.user.greeting == "Hello, Ada!"
    assert view.degradations == []


def test_dashboard_serializes_camel_case() -> None:
    payload = dashboard().model_dump(by_alias=True)

    for key in ("overallReadiness", "skillGaps", "careerGoalSummary", "learningTimeTotal", "recentActivities"):
        assert key in payload
    assert "currentLevel" in payload["skillGaps"][0]
    assert "targetLevel" in payload["skillGaps"][0]


def test_no_goal_means_no_summary() -> None:
    view = dashboard(goals=[])

    assert view.career_goal_summary is None
    assert view.overall_readiness == 0
    assert view.readiness_status == "none"
    assert view.degradations == []


def test_deleted_role_reports_unknown_readiness() -> None:
    """The goal still points at role 10, which no longer exists."""
    view = dashboard(role=None)

    assert view.career_goal_summary is not None
    assert view.career_goal_summary.readiness == "unknown"
    assert view.readiness_status == "unresolved"
    assert view.overall_readiness == 0
    assert view.skill_gaps == []
    assert {notice.field for notice in view.degradations} == {"overallReadiness", "careerGoalSummary"}


def test_learning_time_weights_duration_by_progress() -> None:
    view = dashboard(progress=[make_progress(100, 50), make_progress(102, 100, completed=True)])

    assert view.learning_time_total == 150.0
    assert view.stats.learning_time == "2.5 hours"


def test_progress_on_deleted_resource_counts_zero_minutes() -> None:
    progress = [make_progress(100, 50), make_progress(999, 100, completed=True)]

    view = dashboard(progress=progress)

    assert view.learning_time_total == 60.0
    assert view.stats.resources_completed_count == 1
    notices = {notice.field: notice.reason for notice in view.degradations}
    assert "999" in notices["learningTimeTotal"]
    # The other fields are unaffected
    assert view.overall_readiness == 75


def test_resources_completed_without_path_is_zero_over_zero() -> None:
    view = dashboard()

    assert view.stats.resources_completed == "0 / 0"
    assert view.learning_path_id is None


def test_resources_completed_uses_active_path_size() -> None:
    path = LearningPath(
        id=55,
        user_id=1,
        title="Path",
        modules=[
            LearningPathModule(
                title="Foundation",
                resources=[LearningPathResource(resource_id=100), LearningPathResource(resource_id=101)],
            ),
            LearningPathModule(title="Advanced", resources=[LearningPathResource(resource_id=102)]),
        ],
    )

    view = dashboard(progress=[make_progress(100, 100, completed=True)], learning_path=path)

    assert view.stats.resources_completed == "1 / 3"
    assert view.stats.resources_total == 3
    assert view.learning_path_id == 55


def test_recent_activities_newest_first_and_capped() -> None:
    activities = [make_activity(i, minutes=i) for i in range(1, 13)]

    view = dashboard(activities=activities, activity_limit=10)

    assert [item.id for item in view.recent_activities] == list(range(12, 2, -1))


def test_missing_user_degrades_greeting_only() -> None:
    view = dashboard(user=None)

    assert view.user.id == 1
    assert view.user.greeting == "Hello!"
    assert [notice.field for notice in view.degradations] == ["user"]
    assert view.overall_readiness == 75


def test_skills_validated_counts_distinct_tracked_skills() -> None:
    validations = [
        SkillValidation(id=1, user_id=1, skill_id=1, validation_type="quiz"),
        SkillValidation(id=2, user_id=1, skill_id=1, validation_type="project"),
        SkillValidation(id=3, user_id=1, skill_id=9, validation_type="quiz"),
    ]

    view = dashboard(validations=validations)

    assert view.stats.skills_validated == "1 / 2"


def test_skill_progress_sorted_by_completion() -> None:
    view = dashboard(progress=[make_progress(101, 100, completed=True)])

    summary = view.skill_progress
    assert [(item.skill_name, item.completed, item.total, item.percent) for item in summary.skills] == [
        ("SQL", 1, 1, 100),
        ("Python", 0, 2, 0),
    ]
    assert summary.overall_percent == 33


def test_active_goal_selection() -> None:
    older_marked = make_goal(1, 10, minutes=0, is_active=True)
    newer = make_goal(2, 20, minutes=5)
    assert select_active_goal([older_marked, newer]) == older_marked

    unmarked = [make_goal(3, 10, minutes=0), make_goal(4, 20, minutes=5)]
    assert select_active_goal(unmarked).id == 4

    same_time = [make_goal(5, 10, minutes=1), make_goal(6, 20, minutes=1)]
    assert select_active_goal(same_time).id == 6
    assert select_active_goal([]) is None
