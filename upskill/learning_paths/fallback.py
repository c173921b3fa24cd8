"""Deterministic, rule-based suggestions used when the external advisor is unavailable.

Same gaps and catalog in, same suggestion out: no clock, no randomness, and
every ordering has an explicit tie-breaker.
"""

from collections.abc import Iterable, Sequence

from upskill.readiness.calculator import compute_overall_readiness
from upskill.readiness.schemas import SkillGap
from upskill.records.schemas import LearningResource

from .schemas import (
    GapAnalysis,
    GapAnalysisItem,
    GapPriority,
    LearningPathSuggestion,
    SuggestedModule,
    SuggestedResource,
)


FOUNDATION_TYPES = frozenset({"course"})
ADVANCED_TYPES = frozenset({"workshop", "assessment"})
ANALYSIS_GAP_LIMIT = 5


def rank_gaps(gaps: Iterable[SkillGap]) -> list[SkillGap]:
    """In-scope gaps that are not yet closed, largest gap (lowest percentage) first."""
    open_gaps = [gap for gap in gaps if not gap.out_of_scope and gap.percentage < 100]
    return sorted(open_gaps, key=lambda gap: (gap.percentage, gap.skill_id))


def pick_resources(
    catalog: Sequence[LearningResource],
    *,
    resource_types: frozenset[str],
    skill_order: Sequence[int],
    cap: int,
    used: set[int],
) -> list[LearningResource]:
    """Up to ``cap`` unused resources of the given types.

    Resources teaching the listed skills come first (by skill priority, then id);
    the remainder is topped up with other resources of the type, by id.
    """
    priority = {skill_id: index for index, skill_id in enumerate(skill_order)}
    candidates = [r for r in catalog if r.resource_type in resource_types and r.id not in used]

    def skill_rank(resource: LearningResource) -> int | None:
        ranks = [priority[skill_id] for skill_id in resource.skill_ids if skill_id in priority]
        return min(ranks) if ranks else None

    matching = sorted(
        (r for r in candidates if skill_rank(r) is not None),
        key=lambda r: (skill_rank(r), r.id),
    )
    others = sorted((r for r in candidates if skill_rank(r) is None), key=lambda r: r.id)

    picked = (matching + others)[:cap]
    used.update(r.id for r in picked)
    return picked


def _estimated_hours(resources: Iterable[LearningResource]) -> float:
    return round(sum(r.duration or 0 for r in resources) / 60, 1)


def fallback_learning_path(
    goal_title: str | None,
    gaps: Sequence[SkillGap],
    catalog: Sequence[LearningResource],
    *,
    foundation_skills: int = 3,
    resource_cap: int = 3,
    reason: str | None = None,
) -> LearningPathSuggestion:
    """Two-module path: Foundation courses for the largest gaps, then Advanced practice."""
    ranked = [gap.skill_id for gap in rank_gaps(gaps)]
    foundation_ids, advanced_ids = ranked[:foundation_skills], ranked[foundation_skills:]
    used: set[int] = set()

    foundation = pick_resources(
        catalog, resource_types=FOUNDATION_TYPES, skill_order=foundation_ids, cap=resource_cap, used=used
    )
    # Advanced practice also covers the foundation skills once their own skills are served
    advanced = pick_resources(
        catalog,
        resource_types=ADVANCED_TYPES,
        skill_order=advanced_ids + foundation_ids,
        cap=resource_cap,
        used=used,
    )

    target = goal_title or "your target role"
    return LearningPathSuggestion(
        title=f"Learning Path for {target}",
        description=f"A personalized learning path to help you achieve your goal: {target}",
        modules=[
            SuggestedModule(
                title="Foundation",
                description="Build the essential skills you need as a base",
                estimated_hours=_estimated_hours(foundation),
                resources=[SuggestedResource(resource_id=r.id) for r in foundation],
            ),
            SuggestedModule(
                title="Advanced",
                description="Develop specialized skills for your career goal",
                estimated_hours=_estimated_hours(advanced),
                resources=[SuggestedResource(resource_id=r.id) for r in advanced],
            ),
        ],
        source="fallback",
        fallback_reason=reason,
    )


def gap_priority(percentage: int) -> GapPriority:
    if percentage < 40:
        return "high"
    if percentage < 70:
        return "medium"
    return "low"


def fallback_gap_analysis(
    goal_title: str | None,
    gaps: Sequence[SkillGap],
    *,
    overall_readiness: int | str | None = None,
    reason: str | None = None,
) -> GapAnalysis:
    """Gap analysis built from the calculator's numbers only."""
    ranked = rank_gaps(gaps)[:ANALYSIS_GAP_LIMIT]
    items = [
        GapAnalysisItem(
            skill_id=gap.skill_id,
            skill_name=gap.skill_name,
            current_level=gap.current_level,
            required_level=gap.target_level,
            priority=gap_priority(gap.percentage),
        )
        for gap in ranked
    ]

    recommendations: list[str] = []
    if items:
        first = items[0].skill_name or f"skill {items[0].skill_id}"
        recommendations.append(f"Start with {first}: it is your largest gap")
    if any(item.priority == "high" for item in items):
        recommendations.append("Focus on foundation courses before workshops and assessments")
    if items:
        recommendations.append("Re-assess your skill levels after each completed module")
    else:
        recommendations.append("You meet every requirement of your target role; validate your skills to prove it")

    readiness = compute_overall_readiness(gaps) if overall_readiness is None else overall_readiness
    return GapAnalysis(
        career_goal=goal_title,
        overall_readiness=readiness,
        skill_gaps=items,
        recommendations=recommendations,
        source="fallback",
        fallback_reason=reason,
    )
