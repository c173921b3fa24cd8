from .advisor import ExternalAdvisor, LearningPathAdvisor
from .external import LiteLLMAdvisor
from .fallback import fallback_gap_analysis, fallback_learning_path


__all__ = [
    "ExternalAdvisor",
    "LearningPathAdvisor",
    "LiteLLMAdvisor",
    "fallback_gap_analysis",
    "fallback_learning_path",
]
