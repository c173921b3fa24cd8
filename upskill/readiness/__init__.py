from .calculator import build_readiness_report, compute_gaps, compute_overall_readiness, resolve_target_level
from .schemas import ReadinessReport, SkillGap


__all__ = [
    "ReadinessReport",
    "SkillGap",
    "build_readiness_report",
    "compute_gaps",
    "compute_overall_readiness",
    "resolve_target_level",
]
