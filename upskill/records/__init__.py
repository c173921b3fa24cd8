"""Skill, role, goal and progress records plus the store that serves them."""

from .repository import SkillRecordStore, SqlSkillRecordStore
from .selectors import select_active_goal


__all__ = [
    "SkillRecordStore",
    "SqlSkillRecordStore",
    "select_active_goal",
]
