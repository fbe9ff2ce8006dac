"""Gap prioritisation and the recommendations built from it.

Gaps reported by the scorer are matched against the occupation's reference
entries to find how much the occupation relies on each one. Recommendations
then turn the most important gaps of each area into concrete actions with a
rough timeframe.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass

from schemas.analysis import (
    DimensionRecord,
    GapAnalysis,
    GapPriority,
    Impact,
    OccupationProfile,
    PrioritizedGap,
    Recommendation,
    RecommendationAction,
)


logger = logging.getLogger(__name__)

DEFAULT_IMPORTANCE = 50
MATCHED_TOOL_IMPORTANCE = 75

_CRITICAL_DIMENSIONS = frozenset({"tasks", "skills"})
_IMPORTANT_DIMENSIONS = frozenset({"education", "technologySkills", "tools"})
_PRIORITY_ORDER = {"high": 0, "medium": 1, "low": 2}


@dataclass(frozen=True, slots=True)
class _ReferenceLookup:
    profile_field: str
    name_keys: tuple[str, ...]
    importance_keys: tuple[str, ...] = ("importance_score",)
    fixed_importance: int | None = None


_LOOKUPS: dict[str, _ReferenceLookup] = {
    "skills": _ReferenceLookup("skills", ("skill_name", "name")),
    "tasks": _ReferenceLookup(
        "tasks", ("task", "task_text"), ("importance_score", "importance")
    ),
    "knowledge": _ReferenceLookup(
        "knowledge", ("knowledge_name", "knowledge_area", "name")
    ),
    "workActivities": _ReferenceLookup("work_activities", ("activity_name", "name")),
    "tools": _ReferenceLookup(
        "tools", ("tool_name", "name"), fixed_importance=MATCHED_TOOL_IMPORTANCE
    ),
}

# (keywords, timeframe), first match wins
_SKILL_TIMEFRAMES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("python", "javascript", "java", "c++", "ruby", "go"), "3-6 months"),
    (("react", "angular", "vue", "django", "spring", ".net"), "2-4 months"),
    (("aws", "azure", "kubernetes"), "3-5 months"),
    (("excel", "word", "powerpoint", "office", "outlook"), "1-2 weeks"),
    (("quickbooks", "salesforce", "sap"), "1-3 months"),
    (("youtube", "facebook", "instagram"), "1 week"),
    (("communication", "leadership", "management"), "6-12 months"),
)
_TOOL_TIMEFRAMES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("scissors", "brush", "clipper", "razor", "comb"), "2-4 weeks"),
    (("calculator", "notepad", "basic"), "1-3 days"),
    (("photoshop", "autocad", "maya"), "2-3 months"),
    (("medical", "diagnostic", "surgical"), "3-6 months"),
)
_EXPERIENCE_TIMEFRAMES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("manage", "lead", "strategic", "complex", "senior"), "6-12 months"),
    (("coordinate", "analyze", "develop"), "3-6 months"),
)
_KNOWLEDGE_TIMEFRAMES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("comprehensive", "advanced", "expert", "extensive", "in-depth"), "3-6 months"),
    (("intermediate", "moderate", "working"), "1-3 months"),
)
_ACTIVITY_TIMEFRAMES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("manage", "direct", "lead", "strategic", "architect"), "4-6 months"),
    (("coordinate", "implement", "develop"), "2-4 months"),
)
_SKILL_RESOURCES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("python",), "Coursera, Codecademy, Python.org tutorials"),
    (("javascript",), "freeCodeCamp, MDN Web Docs, JavaScript.info"),
    (
        ("management", "leadership"),
        "LinkedIn Learning, Harvard Business Review, management books",
    ),
)


def _first_match(
    text: str, table: tuple[tuple[tuple[str, ...], str], ...], default: str
) -> str:
    lowered = text.lower()
    for keywords, value in table:
        if any(keyword in lowered for keyword in keywords):
            return value
    return default


def _grade(score: int, thresholds: tuple[tuple[int, Impact], ...], floor: Impact) -> Impact:
    for minimum, impact in thresholds:
        if score >= minimum:
            return impact
    return floor


# ---------------------------------------------------------------------------
# Gap prioritisation
# ---------------------------------------------------------------------------


def determine_priority(dimension: str, score: int) -> GapPriority:
    """Fallback priority from the dimension and its score alone."""
    if score < 50:
        return "critical" if dimension in _CRITICAL_DIMENSIONS else "important"
    if score < 70:
        return "important" if dimension in _IMPORTANT_DIMENSIONS else "nice_to_have"
    return "nice_to_have"


def reference_importance(
    dimension: str, item: str, occupation: OccupationProfile
) -> int:
    """Importance of the reference entry whose name overlaps ``item``.

    Names match when either contains the other, ignoring case. Matched tools
    always count as important; anything unmatched gets the default.
    """
    lookup = _LOOKUPS.get(dimension)
    if lookup is None:
        return DEFAULT_IMPORTANCE
    needle = item.lower()
    for entry in getattr(occupation, lookup.profile_field):
        names = [str(entry[key]).lower() for key in lookup.name_keys if entry.get(key)]
        if not any(needle in name or name in needle for name in names):
            continue
        if lookup.fixed_importance is not None:
            return lookup.fixed_importance
        for key in lookup.importance_keys:
            value = entry.get(key)
            if isinstance(value, int | float) and value:
                return round(value)
        return DEFAULT_IMPORTANCE
    return DEFAULT_IMPORTANCE


def analyze_gaps(
    dimension_scores: Mapping[str, DimensionRecord],
    occupation: OccupationProfile | None = None,
) -> GapAnalysis:
    """Bucket every reported gap as critical, important or nice to have.

    With reference data a gap is ranked by the importance of the entry it
    matches; without it the dimension's own score decides.
    """
    analysis = GapAnalysis()
    for dimension, record in dimension_scores.items():
        ranked: list[PrioritizedGap] = []
        for item in record.gaps:
            if occupation is None:
                ranked.append(
                    PrioritizedGap(
                        dimension=dimension,
                        item=item,
                        score=record.score,
                        priority=determine_priority(dimension, record.score),
                    )
                )
                continue
            importance = reference_importance(dimension, item, occupation)
            if importance >= 80:
                priority, label = "critical", "high"
            elif importance >= 60:
                priority, label = "important", "medium"
            else:
                priority, label = "nice_to_have", "low"
            ranked.append(
                PrioritizedGap(
                    dimension=dimension,
                    item=item,
                    score=record.score,
                    priority=priority,
                    importance=label,
                    importance_score=importance,
                )
            )

        ranked.sort(key=lambda gap: gap.importance_score or 0, reverse=True)
        for gap in ranked:
            getattr(analysis, gap.priority).append(gap)
    return analysis


# ---------------------------------------------------------------------------
# Actions per area
# ---------------------------------------------------------------------------


def _importance_or(gap: PrioritizedGap, fallback: int) -> int:
    return gap.importance_score or fallback


def skill_actions(gaps: list[PrioritizedGap]) -> list[RecommendationAction]:
    return [
        RecommendationAction(
            action=f"Learn {gap.item}",
            timeframe=_first_match(gap.item, _SKILL_TIMEFRAMES, "1-2 months"),
            impact=_grade(
                _importance_or(gap, 75 - index * 5), ((80, "critical"), (60, "high")), "medium"
            ),
            resources=_first_match(
                gap.item, _SKILL_RESOURCES, "Online courses, documentation, hands-on practice"
            ),
        )
        for index, gap in enumerate(gaps[:5])
    ]


def education_actions(gaps: list[PrioritizedGap]) -> list[RecommendationAction]:
    """A missing degree replaces the itemised gaps; otherwise each gap is an action."""
    lowered = [gap.item.lower() for gap in gaps]
    if any("master" in item for item in lowered):
        return [
            RecommendationAction(
                action="Pursue a Master's degree in relevant field",
                timeframe="2 years",
                impact="critical",
            )
        ]
    if any("bachelor" in item for item in lowered):
        return [
            RecommendationAction(
                action="Complete a Bachelor's degree program",
                timeframe="3-4 years",
                impact="critical",
            )
        ]
    return [
        RecommendationAction(action=gap.item, timeframe="Varies", impact="high")
        for gap in gaps
    ]


def tool_actions(gaps: list[PrioritizedGap]) -> list[RecommendationAction]:
    return [
        RecommendationAction(
            action=f"Learn {gap.item}",
            timeframe=_first_match(gap.item, _TOOL_TIMEFRAMES, "1-2 months"),
            impact=_grade(
                _importance_or(gap, 70 - index * 5), ((75, "high"), (50, "medium")), "low"
            ),
            resources="Online tutorials, documentation, hands-on practice",
        )
        for index, gap in enumerate(gaps[:5])
    ]


def experience_actions(gaps: list[PrioritizedGap]) -> list[RecommendationAction]:
    return [
        RecommendationAction(
            action=f"Gain experience in {gap.item}",
            timeframe=_first_match(gap.item, _EXPERIENCE_TIMEFRAMES, "1-3 months"),
            impact=_grade(
                _importance_or(gap, 80 - index * 10), ((75, "high"), (50, "medium")), "low"
            ),
            approach="Look for projects, freelance work, or volunteer opportunities",
        )
        for index, gap in enumerate(gaps[:3])
    ]


def knowledge_actions(gaps: list[PrioritizedGap]) -> list[RecommendationAction]:
    return [
        RecommendationAction(
            action=f"Study {gap.item}",
            timeframe=_first_match(gap.item, _KNOWLEDGE_TIMEFRAMES, "2-4 weeks"),
            impact=_grade(_importance_or(gap, 60 - index * 10), ((70, "medium"),), "low"),
            resources="Textbooks, online courses, industry publications",
        )
        for index, gap in enumerate(gaps[:3])
    ]


def work_activity_actions(gaps: list[PrioritizedGap]) -> list[RecommendationAction]:
    return [
        RecommendationAction(
            action=f"Develop skills in {gap.item}",
            timeframe=_first_match(gap.item, _ACTIVITY_TIMEFRAMES, "1-2 months"),
            impact=_grade(
                _importance_or(gap, 70 - index * 10), ((70, "high"), (50, "medium")), "low"
            ),
            approach="Seek opportunities in current role or side projects",
        )
        for index, gap in enumerate(gaps[:3])
    ]


# (dimension, priority, category, title, action builder), in report order
_RECOMMENDATION_AREAS: tuple[
    tuple[str, str, str, str, Callable[[list[PrioritizedGap]], list[RecommendationAction]]],
    ...,
] = (
    ("skills", "high", "skills", "Skill Development", skill_actions),
    ("education", "high", "education", "Education Requirements", education_actions),
    ("tools", "medium", "tools", "Technical Tools", tool_actions),
    ("tasks", "medium", "experience", "Experience Gaps", experience_actions),
    ("knowledge", "low", "knowledge", "Knowledge Areas", knowledge_actions),
    ("workActivities", "medium", "workActivities", "Work Activities", work_activity_actions),
)


def generate_recommendations(gap_analysis: GapAnalysis) -> list[Recommendation]:
    """One recommendation per area with gaps, high priority first."""
    recommendations: list[Recommendation] = []
    for dimension, priority, category, title, build_actions in _RECOMMENDATION_AREAS:
        gaps = gap_analysis.for_dimension(dimension)
        if not gaps:
            continue
        recommendations.append(
            Recommendation(
                priority=priority,
                category=category,
                title=title,
                actions=build_actions(gaps),
            )
        )
    recommendations.sort(key=lambda r: _PRIORITY_ORDER[r.priority])
    logger.debug("Generated %d recommendations", len(recommendations))
    return recommendations
