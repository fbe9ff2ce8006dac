"""Overall fit score, fit category, breakdown and improvement impact."""

from __future__ import annotations

from collections.abc import Mapping

from schemas.analysis import (
    DimensionRecord,
    FitCategory,
    ImprovementImpact,
    Priority,
    ScoreBreakdown,
    ScoreBreakdownEntry,
)


DIMENSION_WEIGHTS: dict[str, float] = {
    "tasks": 0.20,
    "skills": 0.20,
    "technologySkills": 0.15,
    "education": 0.10,
    "tools": 0.10,
    "workActivities": 0.10,
    "abilities": 0.10,
    "knowledge": 0.05,
}

DIMENSION_LABELS: dict[str, str] = {
    "tasks": "Job Tasks",
    "skills": "Core Skills",
    "technologySkills": "Technology Skills",
    "education": "Education",
    "tools": "Tools & Software",
    "workActivities": "Work Activities",
    "abilities": "Abilities",
    "knowledge": "Knowledge Areas",
}

TARGET_SCORE = 80

# (minimum score, category, colour, description), highest first
_FIT_CATEGORIES: tuple[tuple[float, str, str, str], ...] = (
    (85, "Excellent Match", "green", "You are highly qualified for this position!"),
    (
        70,
        "Good Match",
        "blue",
        "You meet most requirements with some areas for improvement.",
    ),
    (
        55,
        "Moderate Match",
        "yellow",
        "You have foundational qualifications but need development in key areas.",
    ),
    (
        40,
        "Developing Match",
        "orange",
        "Significant skill development needed to meet requirements.",
    ),
)
_EARLY_CAREER = FitCategory(
    category="Early Career Match",
    color="red",
    description="Consider this as a longer-term career goal requiring substantial preparation.",
)


def dimension_weight(dimension: str) -> float:
    return DIMENSION_WEIGHTS.get(dimension, 0.0)


def format_dimension_name(dimension: str) -> str:
    return DIMENSION_LABELS.get(dimension, dimension)


def calculate_overall_score(dimension_scores: Mapping[str, DimensionRecord]) -> float:
    """Weighted mean of present dimensions, rounded to one decimal.

    Degraded dimensions count with their zero score. Returns 0 when no
    weighted dimension is present.
    """
    weighted_sum = 0.0
    total_weight = 0.0
    for dimension, record in dimension_scores.items():
        weight = dimension_weight(dimension)
        weighted_sum += record.score * weight
        total_weight += weight
    if total_weight <= 0:
        return 0.0
    return round(weighted_sum / total_weight, 1)


def calculate_fit_category(overall_score: float) -> FitCategory:
    for minimum, category, color, description in _FIT_CATEGORIES:
        if overall_score >= minimum:
            return FitCategory(category=category, color=color, description=description)
    return _EARLY_CAREER


def generate_score_breakdown(
    dimension_scores: Mapping[str, DimensionRecord],
) -> ScoreBreakdown:
    """Bucket dimensions by score; each bucket is sorted highest first."""
    breakdown = ScoreBreakdown()
    for dimension, record in dimension_scores.items():
        entry = ScoreBreakdownEntry(
            dimension=format_dimension_name(dimension),
            score=record.score,
            matches=len(record.matches),
            gaps=len(record.gaps),
        )
        if record.score >= 80:
            breakdown.strengths.append(entry)
        elif record.score >= 65:
            breakdown.adequate.append(entry)
        elif record.score >= 50:
            breakdown.needs_improvement.append(entry)
        else:
            breakdown.critical.append(entry)

    for bucket in (
        breakdown.strengths,
        breakdown.adequate,
        breakdown.needs_improvement,
        breakdown.critical,
    ):
        bucket.sort(key=lambda e: e.score, reverse=True)
    return breakdown


def _priority(score: int, weight: float) -> Priority:
    pressure = (100 - score) * weight
    if pressure > 15:
        return "high"
    if pressure > 8:
        return "medium"
    return "low"


def calculate_improvement_impact(
    dimension_scores: Mapping[str, DimensionRecord],
) -> list[ImprovementImpact]:
    """Overall points gained by lifting each dimension to the target score."""
    impacts: list[ImprovementImpact] = []
    for dimension, record in dimension_scores.items():
        weight = dimension_weight(dimension)
        if record.score < TARGET_SCORE:
            gain = (TARGET_SCORE / 100) * weight - (record.score / 100) * weight
            impacts.append(
                ImprovementImpact(
                    dimension=dimension,
                    current_score=record.score,
                    target_score=TARGET_SCORE,
                    potential_impact=round(gain * 100),
                    priority=_priority(record.score, weight),
                )
            )
        else:
            impacts.append(
                ImprovementImpact(
                    dimension=dimension,
                    current_score=record.score,
                    target_score=TARGET_SCORE,
                    potential_impact=0,
                    priority="achieved",
                )
            )
    impacts.sort(key=lambda i: i.potential_impact, reverse=True)
    return impacts
