"""Learning path advisor: external suggestion service with a deterministic fallback.

The external advisor is a black box. Whatever it does (time out, fail, return a
path that references resources we do not have), callers of this module always
get a usable suggestion back.
"""

import asyncio
import logging
from collections.abc import Sequence
from typing import Protocol

from pydantic import ValidationError

from upskill.ai.errors import AIRuntimeError
from upskill.config.settings import Settings
from upskill.readiness.schemas import ReadinessReport, SkillGap
from upskill.records.schemas import CareerGoal, LearningResource

from .fallback import fallback_gap_analysis, fallback_learning_path
from .schemas import (
    GapAnalysis,
    GapAnalysisRequest,
    GeneratedGapAnalysis,
    GeneratedPath,
    GoalPayload,
    LearningPathRequest,
    LearningPathSuggestion,
    ResourcePayload,
)


logger = logging.getLogger(__name__)


class ExternalAdvisor(Protocol):
    """Generative service producing learning paths and gap analyses."""

    async def generate_learning_path(self, request: LearningPathRequest) -> GeneratedPath: ...

    async def analyze_skill_gap(self, request: GapAnalysisRequest) -> GeneratedGapAnalysis: ...


class MalformedSuggestionError(ValueError):
    """The external advisor answered, but with something we cannot use."""


class LearningPathAdvisor:
    """Time-bounded calls to the external advisor, falling back to fixed rules."""

    def __init__(
        self,
        external: ExternalAdvisor | None = None,
        *,
        timeout_seconds: float = 10.0,
        foundation_skills: int = 3,
        resource_cap: int = 3,
    ) -> None:
        self._external = external
        self._timeout = timeout_seconds
        self._foundation_skills = foundation_skills
        self._resource_cap = resource_cap

    @classmethod
    def from_settings(cls, settings: Settings, external: ExternalAdvisor | None = None) -> "LearningPathAdvisor":
        return cls(
            external,
            timeout_seconds=settings.ADVISOR_TIMEOUT_SECONDS,
            foundation_skills=settings.FALLBACK_FOUNDATION_SKILLS,
            resource_cap=settings.FALLBACK_MODULE_RESOURCE_CAP,
        )

    async def suggest_path(
        self,
        goal: CareerGoal,
        gaps: Sequence[SkillGap],
        resource_catalog: Sequence[LearningResource],
        *,
        role_title: str | None = None,
    ) -> LearningPathSuggestion:
        """Suggest a learning path for ``goal``; never raises for advisor failures."""
        goal_title = goal.title or role_title
        if self._external is None:
            return self._fallback_path(goal_title, gaps, resource_catalog, "advisor not configured")

        request = LearningPathRequest(
            goal=_goal_payload(goal, role_title),
            skills=list(gaps),
            resources=[_resource_payload(resource) for resource in resource_catalog],
        )
        try:
            generated = await asyncio.wait_for(self._external.generate_learning_path(request), timeout=self._timeout)
            generated = _validate_path(generated, {resource.id for resource in resource_catalog})
        except TimeoutError:
            logger.warning("Learning path advisor timed out after %ss for goal %s", self._timeout, goal.id)
            return self._fallback_path(goal_title, gaps, resource_catalog, "timeout")
        except AIRuntimeError as e:
            logger.warning("Learning path advisor failed for goal %s: %s", goal.id, e)
            return self._fallback_path(goal_title, gaps, resource_catalog, e.fallback_reason)
        except (MalformedSuggestionError, ValidationError) as e:
            logger.warning("Learning path advisor returned an unusable path for goal %s: %s", goal.id, e)
            return self._fallback_path(goal_title, gaps, resource_catalog, "malformed response")
        except Exception:
            logger.exception("Unexpected learning path advisor error for goal %s", goal.id)
            return self._fallback_path(goal_title, gaps, resource_catalog, "advisor error")

        return LearningPathSuggestion(
            title=generated.title,
            description=generated.description,
            modules=generated.modules,
            source="advisor",
        )

    async def analyze_gaps(self, goal: CareerGoal, report: ReadinessReport) -> GapAnalysis:
        """Gap analysis for ``goal``. Readiness always comes from ``report``."""
        goal_title = goal.title or report.role_title
        if self._external is None:
            return self._fallback_analysis(goal_title, report, "advisor not configured")

        request = GapAnalysisRequest(
            goal=_goal_payload(goal, report.role_title),
            skills=report.gaps,
            overall_readiness=report.overall_readiness,
        )
        try:
            generated = await asyncio.wait_for(self._external.analyze_skill_gap(request), timeout=self._timeout)
            generated = _validate_analysis(generated, {gap.skill_id for gap in report.gaps})
        except TimeoutError:
            logger.warning("Gap analysis advisor timed out after %ss for goal %s", self._timeout, goal.id)
            return self._fallback_analysis(goal_title, report, "timeout")
        except AIRuntimeError as e:
            logger.warning("Gap analysis advisor failed for goal %s: %s", goal.id, e)
            return self._fallback_analysis(goal_title, report, e.fallback_reason)
        except (MalformedSuggestionError, ValidationError) as e:
            logger.warning("Gap analysis advisor returned an unusable analysis for goal %s: %s", goal.id, e)
            return self._fallback_analysis(goal_title, report, "malformed response")
        except Exception:
            logger.exception("Unexpected gap analysis advisor error for goal %s", goal.id)
            return self._fallback_analysis(goal_title, report, "advisor error")

        return GapAnalysis(
            career_goal=goal_title,
            overall_readiness=report.overall_readiness,
            skill_gaps=generated.skill_gaps,
            recommendations=generated.recommendations,
            source="advisor",
        )

    def _fallback_path(
        self,
        goal_title: str | None,
        gaps: Sequence[SkillGap],
        resource_catalog: Sequence[LearningResource],
        reason: str,
    ) -> LearningPathSuggestion:
        return fallback_learning_path(
            goal_title,
            gaps,
            resource_catalog,
            foundation_skills=self._foundation_skills,
            resource_cap=self._resource_cap,
            reason=reason,
        )

    def _fallback_analysis(self, goal_title: str | None, report: ReadinessReport, reason: str) -> GapAnalysis:
        return fallback_gap_analysis(
            goal_title,
            report.gaps,
            overall_readiness=report.overall_readiness,
            reason=reason,
        )


def _goal_payload(goal: CareerGoal, role_title: str | None) -> GoalPayload:
    return GoalPayload(
        id=goal.id,
        title=goal.title,
        target_role_id=goal.target_role_id,
        target_role_title=role_title,
        timeline_months=goal.timeline_months,
    )


def _resource_payload(resource: LearningResource) -> ResourcePayload:
    return ResourcePayload(
        id=resource.id,
        title=resource.title,
        resource_type=resource.resource_type,
        duration=resource.duration,
        skill_ids=resource.skill_ids,
    )


def _validate_path(generated: GeneratedPath | dict, catalog_ids: set[int]) -> GeneratedPath:
    if not isinstance(generated, GeneratedPath):
        generated = GeneratedPath.model_validate(generated)
    if not generated.modules:
        msg = "path has no modules"
        raise MalformedSuggestionError(msg)
    unknown = sorted(
        {resource.resource_id for module in generated.modules for resource in module.resources} - catalog_ids
    )
    if unknown:
        msg = f"path references unknown resources {unknown}"
        raise MalformedSuggestionError(msg)
    return generated


def _validate_analysis(generated: GeneratedGapAnalysis | dict, skill_ids: set[int]) -> GeneratedGapAnalysis:
    if not isinstance(generated, GeneratedGapAnalysis):
        generated = GeneratedGapAnalysis.model_validate(generated)
    if not generated.skill_gaps and not generated.recommendations:
        msg = "analysis is empty"
        raise MalformedSuggestionError(msg)
    unknown = sorted({item.skill_id for item in generated.skill_gaps} - skill_ids)
    if unknown:
        msg = f"analysis references unknown skills {unknown}"
        raise MalformedSuggestionError(msg)
    return generated
