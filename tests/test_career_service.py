"""Career mutations: validation before writes, and the events they fire."""

from unittest.mock import patch

import pytest

from tests.conftest import BACKEND_ROLE, PLATFORM_ROLE, PYTHON, USER_ID
from tests.fixtures.record_store import InMemoryRecordStore
from upskill.career.service import CareerService
from upskill.config.settings import Settings
from upskill.consistency.events import ModelKey, ModelState
from upskill.consistency.propagator import ConsistencyPropagator
from upskill.exceptions import InvalidInputError, RepositoryError, ResourceNotFoundError
from upskill.records.schemas import CareerGoalCreate, CareerGoalUpdate


WRITES = (
    "upsert_user_skill",
    "create_career_goal",
    "update_career_goal",
    "activate_career_goal",
    "upsert_user_progress",
    "create_user_activity",
)


def assert_untouched(store: InMemoryRecordStore, propagator: ConsistencyPropagator) -> None:
    assert not any(store.calls[operation] for operation in WRITES)
    assert propagator.generation_of(USER_ID) == 0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("current", "target", "field"),
    [(150, None, "current_level"), (-1, None, "current_level"), (50, 101, "target_level")],
)
async def test_out_of_range_level_is_rejected(
    store: InMemoryRecordStore,
    propagator: ConsistencyPropagator,
    career: CareerService,
    current: int,
    target: int | None,
    field: str,
) -> None:
    with pytest.raises(InvalidInputError) as exc_info:
        await career.update_skill_level(USER_ID, PYTHON, current, target)

    assert exc_info.value.field == field
    assert_untouched(store, propagator)


@pytest.mark.asyncio
async def test_unknown_skill_is_rejected(
    store: InMemoryRecordStore, propagator: ConsistencyPropagator, career: CareerService
) -> None:
    with pytest.raises(InvalidInputError) as exc_info:
        await career.update_skill_level(USER_ID, 999, 40)

    assert exc_info.value.field == "skill_id"
    assert_untouched(store, propagator)


@pytest.mark.asyncio
async def test_skill_update_writes_and_invalidates(
    store: InMemoryRecordStore, propagator: ConsistencyPropagator, career: CareerService
) -> None:
    user_skill = await career.update_skill_level(USER_ID, PYTHON, 45)

    assert user_skill.current_level == 45
    assert user_skill.target_level == 60
    assert propagator.generation_of(USER_ID) == 1
    assert propagator.state_of(USER_ID, ModelKey.SKILL_GAP) is ModelState.STALE
    assert store.activities[-1].activity_type == "updated_skill"
    assert store.activities[-1].metadata == {"skill_id": PYTHON, "current_level": 45}


@pytest.mark.asyncio
async def test_trigger_fires_even_if_activity_write_fails(
    store: InMemoryRecordStore, propagator: ConsistencyPropagator, career: CareerService
) -> None:
    store.failing.add("create_user_activity")

    with pytest.raises(RepositoryError):
        await career.update_skill_level(USER_ID, PYTHON, 45)

    assert store.user_skills[(USER_ID, PYTHON)].current_level == 45
    assert propagator.generation_of(USER_ID) == 1


@pytest.mark.asyncio
async def test_set_target_role_creates_goal(
    store: InMemoryRecordStore, propagator: ConsistencyPropagator, career: CareerService
) -> None:
    goal = await career.set_target_role(USER_ID, BACKEND_ROLE)

    assert goal.target_role_id == BACKEND_ROLE
    assert goal.title == "Backend Engineer"
    assert goal.timeline_months == 12
    assert goal.is_active is True
    assert set(propagator.table(USER_ID).states().values()) == {ModelState.STALE}
    assert propagator.table(USER_ID).role_hint.role_id == BACKEND_ROLE


@pytest.mark.asyncio
async def test_set_same_target_role_only_refreshes_dashboard(
    store_with_goal: InMemoryRecordStore, propagator: ConsistencyPropagator, career: CareerService
) -> None:
    for key in ModelKey:
        await propagator.read(USER_ID, key)

    await career.set_target_role(USER_ID, BACKEND_ROLE)

    states = propagator.table(USER_ID).states()
    assert states[ModelKey.DASHBOARD] is ModelState.STALE
    assert states[ModelKey.SKILL_GAP] is ModelState.FRESH
    assert states[ModelKey.LEARNING_PATH] is ModelState.FRESH
    assert len(store_with_goal.goals) == 1


@pytest.mark.asyncio
async def test_unknown_role_is_rejected(
    store: InMemoryRecordStore, propagator: ConsistencyPropagator, career: CareerService
) -> None:
    with pytest.raises(InvalidInputError) as exc_info:
        await career.set_target_role(USER_ID, 999)

    assert exc_info.value.field == "target_role_id"
    assert_untouched(store, propagator)


@pytest.mark.asyncio
async def test_new_active_goal_with_other_role_invalidates_everything(
    store_with_goal: InMemoryRecordStore, propagator: ConsistencyPropagator, career: CareerService
) -> None:
    goal = await career.create_career_goal(
        USER_ID, CareerGoalCreate(target_role_id=PLATFORM_ROLE, title="Platform", is_active=True)
    )

    assert goal.is_active is True
    assert [g.is_active for g in await store_with_goal.get_career_goals(USER_ID)] == [False, True]
    assert propagator.table(USER_ID).role_hint.role_id == PLATFORM_ROLE
    assert propagator.state_of(USER_ID, ModelKey.LEARNING_PATH) is ModelState.STALE


@pytest.mark.asyncio
async def test_goal_of_another_user_is_rejected(
    store: InMemoryRecordStore, propagator: ConsistencyPropagator, career: CareerService
) -> None:
    other = store.add_goal(2, BACKEND_ROLE, is_active=True)

    with pytest.raises(InvalidInputError) as exc_info:
        await career.activate_career_goal(USER_ID, other.id)

    assert exc_info.value.field == "goal_id"
    assert_untouched(store, propagator)


@pytest.mark.asyncio
async def test_unknown_goal_is_not_found(store: InMemoryRecordStore, career: CareerService) -> None:
    with pytest.raises(ResourceNotFoundError):
        await career.update_career_goal(USER_ID, 4242, CareerGoalUpdate(title="Nope"))


@pytest.mark.asyncio
async def test_clearing_timeline_is_rejected(
    store_with_goal: InMemoryRecordStore, propagator: ConsistencyPropagator, career: CareerService
) -> None:
    goal = next(iter(store_with_goal.goals.values()))

    with pytest.raises(InvalidInputError):
        await career.update_career_goal(USER_ID, goal.id, CareerGoalUpdate(timeline_months=None))

    assert propagator.generation_of(USER_ID) == 0


@pytest.mark.asyncio
async def test_activating_goal_switches_role(
    store_with_goal: InMemoryRecordStore, propagator: ConsistencyPropagator, career: CareerService
) -> None:
    platform = store_with_goal.add_goal(USER_ID, PLATFORM_ROLE, title="Platform")

    await career.activate_career_goal(USER_ID, platform.id)

    report = (await propagator.read(USER_ID, ModelKey.SKILL_GAP)).value
    assert report.goal_id == platform.id
    assert report.role_id == PLATFORM_ROLE


@pytest.mark.asyncio
async def test_activating_goal_with_same_role_moves_summary(
    store_with_goal: InMemoryRecordStore, propagator: ConsistencyPropagator, career: CareerService
) -> None:
    for key in ModelKey:
        await propagator.read(USER_ID, key)
    senior = store_with_goal.add_goal(USER_ID, BACKEND_ROLE, title="Senior backend", timeline_months=36)

    await career.activate_career_goal(USER_ID, senior.id)

    states = propagator.table(USER_ID).states()
    assert states[ModelKey.SKILL_GAP] is ModelState.STALE
    assert states[ModelKey.LEARNING_PATH] is ModelState.FRESH
    summary = (await propagator.read(USER_ID, ModelKey.DASHBOARD)).value.career_goal_summary
    assert (summary.goal_id, summary.title, summary.timeline_months) == (senior.id, "Senior backend", 36)
    assert (await propagator.read(USER_ID, ModelKey.SKILL_GAP)).value.goal_id == senior.id


@pytest.mark.asyncio
async def test_new_active_goal_with_same_role_moves_summary(
    store_with_goal: InMemoryRecordStore, propagator: ConsistencyPropagator, career: CareerService
) -> None:
    await propagator.read(USER_ID, ModelKey.DASHBOARD)

    staff = await career.create_career_goal(
        USER_ID,
        CareerGoalCreate(target_role_id=BACKEND_ROLE, title="Staff backend", timeline_months=24, is_active=True),
    )

    view = (await propagator.read(USER_ID, ModelKey.DASHBOARD)).value
    assert view.career_goal_summary.goal_id == staff.id
    assert view.career_goal_summary.timeline == "Target timeline: 24 months"
    assert view.overall_readiness == 75
    assert propagator.table(USER_ID).role_hint is None



@pytest.mark.asyncio
async def test_progress_on_unknown_resource_is_rejected(
    store: InMemoryRecordStore, propagator: ConsistencyPropagator, career: CareerService
) -> None:
    with pytest.raises(InvalidInputError) as exc_info:
        await career.record_progress(USER_ID, 999, 10)

    assert exc_info.value.field == "resource_id"
    assert_untouched(store, propagator)


@pytest.mark.asyncio
async def test_progress_cannot_decrease(
    store: InMemoryRecordStore, propagator: ConsistencyPropagator, career: CareerService
) -> None:
    store.add_progress(USER_ID, 100, 60)

    with pytest.raises(InvalidInputError) as exc_info:
        await career.record_progress(USER_ID, 100, 40)

    assert exc_info.value.field == "progress"
    assert store.progress[(USER_ID, 100)].progress == 60
    assert_untouched(store, propagator)


@pytest.mark.asyncio
async def test_progress_records_start_and_completion(
    store: InMemoryRecordStore, propagator: ConsistencyPropagator, career: CareerService
) -> None:
    started = await career.record_progress(USER_ID, 100, 30)
    halfway = await career.record_progress(USER_ID, 100, 50)
    done = await career.record_progress(USER_ID, 100, 80, completed=True, score=92)

    assert started.progress == 30 and not started.completed
    assert halfway.progress == 50
    assert done.completed is True
    assert done.progress == 100
    assert done.score == 92
    assert done.completed_at is not None
    assert [activity.activity_type for activity in store.activities] == ["started_resource", "completed_resource"]
    assert propagator.generation_of(USER_ID) == 3


@pytest.mark.asyncio
async def test_completion_is_sticky(store: InMemoryRecordStore, career: CareerService) -> None:
    first = store.add_progress(USER_ID, 100, 100, completed=True)

    again = await career.record_progress(USER_ID, 100, 100)

    assert again.completed is True
    assert again.completed_at == first.completed_at
    assert store.activities == []


@pytest.mark.asyncio
async def test_remove_progress(
    store: InMemoryRecordStore, propagator: ConsistencyPropagator, career: CareerService
) -> None:
    assert await career.remove_progress(USER_ID, 100) is False
    assert propagator.generation_of(USER_ID) == 0

    store.add_progress(USER_ID, 100, 40)

    assert await career.remove_progress(USER_ID, 100) is True
    assert (USER_ID, 100) not in store.progress
    assert propagator.generation_of(USER_ID) == 1


@pytest.mark.asyncio
async def test_auto_refresh_schedules_learning_path(
    store: InMemoryRecordStore, propagator: ConsistencyPropagator, settings: Settings
) -> None:
    settings.LEARNING_PATH_AUTO_REFRESH = True
    career = CareerService(store, propagator, settings)

    with patch.object(propagator, "schedule_refresh") as schedule:
        await career.set_target_role(USER_ID, BACKEND_ROLE)
        await career.update_skill_level(USER_ID, PYTHON, 45)

    schedule.assert_called_once_with(USER_ID, include_learning_path=True)
