"""Pure selection rules shared by the record store and the aggregators."""

from collections.abc import Iterable
from datetime import datetime

from .schemas import CareerGoal


def _goal_order(goal: CareerGoal) -> tuple[datetime, int]:
    return goal.created_at, goal.id


def select_active_goal(goals: Iterable[CareerGoal]) -> CareerGoal | None:
    """Pick the user's active career goal.

    Goals explicitly marked active win; among them, and otherwise among all
    goals, the most recently created one (ties broken by id) is active.
    """
    goals = list(goals)
    if not goals:
        return None
    marked = [goal for goal in goals if goal.is_active]
    return max(marked or goals, key=_goal_order)
