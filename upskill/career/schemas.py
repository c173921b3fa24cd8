"""Request bodies for career mutations.

Ranges are checked by ``CareerService`` so that out-of-range values are
reported the same way whether they come from the API or from code.
"""

from upskill.core.schemas import RequestModel


class SkillLevelUpdate(RequestModel):
    current_level: int
    target_level: int | None = None


class TargetRoleUpdate(RequestModel):
    role_id: int


class ProgressUpdate(RequestModel):
    progress: int
    completed: bool = False
    score: int | None = None
