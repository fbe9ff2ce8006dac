"""Schemas for dimension scoring and the aggregated fit analysis.

`DimensionScore` is the strict boundary model for a scoring response: a
payload that does not match it is rejected, never reshaped. A dimension whose
task failed for good is represented by `DegradedDimension`, which callers
tell apart by its ``error`` field.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


Confidence = Literal["low", "medium", "high"]
Priority = Literal["high", "medium", "low", "achieved"]
GapPriority = Literal["critical", "important", "nice_to_have"]
RecommendationPriority = Literal["high", "medium", "low"]
Impact = Literal["critical", "high", "medium", "low"]


class DimensionScore(BaseModel):
    """Validated result of scoring one dimension."""

    score: int = Field(..., ge=0, le=100, strict=True, description="Fit 0-100")
    matches: list[str] = Field(
        default_factory=list, description="Requirements the résumé satisfies"
    )
    gaps: list[str] = Field(
        default_factory=list, description="Requirements the résumé does not satisfy"
    )
    confidence: Confidence = Field(..., description="Scorer's confidence")
    justification: str = Field(default="", description="Reasoning behind the score")

    model_config = ConfigDict(extra="forbid", frozen=True)


class DegradedDimension(BaseModel):
    """Zero-score placeholder for a dimension whose scoring task failed."""

    score: Literal[0] = 0
    matches: list[str] = Field(default_factory=list)
    gaps: list[str] = Field(default_factory=list)
    error: str = Field(..., description="Why the dimension could not be scored")

    model_config = ConfigDict(extra="forbid", frozen=True)


DimensionRecord = DimensionScore | DegradedDimension


class DimensionProgress(BaseModel):
    """Per-dimension progress notification emitted by the orchestrator."""

    dimension: str
    status: Literal["started", "completed"]
    progress: int = Field(..., ge=0, le=100)
    result: DimensionRecord | None = None

    model_config = ConfigDict(extra="forbid")


class AnalysisAggregate(BaseModel):
    """Dimension name to scored or degraded record, once every task settled."""

    dimensions: dict[str, DimensionRecord] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid")

    def successful(self) -> dict[str, DimensionScore]:
        return {
            name: record
            for name, record in self.dimensions.items()
            if isinstance(record, DimensionScore)
        }

    def failed(self) -> dict[str, DegradedDimension]:
        return {
            name: record
            for name, record in self.dimensions.items()
            if isinstance(record, DegradedDimension)
        }

    @property
    def has_success(self) -> bool:
        return bool(self.successful())

    def to_dict(self) -> dict[str, dict[str, Any]]:
        """Plain mapping; degraded entries are the only ones with ``error``."""
        return {name: record.model_dump() for name, record in self.dimensions.items()}


class OccupationProfile(BaseModel):
    """Reference data for one occupation, one list per dimension."""

    code: str
    title: str = ""
    tasks: list[dict[str, Any]] = Field(default_factory=list)
    skills: list[dict[str, Any]] = Field(default_factory=list)
    technology_skills: list[dict[str, Any]] = Field(default_factory=list)
    tools: list[dict[str, Any]] = Field(default_factory=list)
    work_activities: list[dict[str, Any]] = Field(default_factory=list)
    knowledge: list[dict[str, Any]] = Field(default_factory=list)
    abilities: list[dict[str, Any]] = Field(default_factory=list)
    education: list[dict[str, Any]] = Field(default_factory=list)
    job_zone: dict[str, Any] | None = None


class FitCategory(BaseModel):
    category: str
    color: str
    description: str


class ScoreBreakdownEntry(BaseModel):
    dimension: str = Field(..., description="Display name of the dimension")
    score: int
    matches: int = 0
    gaps: int = 0


class ScoreBreakdown(BaseModel):
    strengths: list[ScoreBreakdownEntry] = Field(default_factory=list)
    adequate: list[ScoreBreakdownEntry] = Field(default_factory=list)
    needs_improvement: list[ScoreBreakdownEntry] = Field(default_factory=list)
    critical: list[ScoreBreakdownEntry] = Field(default_factory=list)


class ImprovementImpact(BaseModel):
    dimension: str
    current_score: int
    target_score: int
    potential_impact: int
    priority: Priority


class PrioritizedGap(BaseModel):
    """One unmet requirement, ranked by how much the occupation relies on it.

    ``importance_score`` comes from the matching reference entry (50 when
    none matches) and is ``None`` when no reference data was available.
    """

    dimension: str
    item: str
    score: int
    priority: GapPriority
    importance: Literal["high", "medium", "low"] = "medium"
    importance_score: int | None = None


class GapAnalysis(BaseModel):
    critical: list[PrioritizedGap] = Field(default_factory=list)
    important: list[PrioritizedGap] = Field(default_factory=list)
    nice_to_have: list[PrioritizedGap] = Field(default_factory=list)

    def for_dimension(self, dimension: str) -> list[PrioritizedGap]:
        """Gaps of one dimension, most important first."""
        gaps = [
            gap
            for bucket in (self.critical, self.important, self.nice_to_have)
            for gap in bucket
            if gap.dimension == dimension
        ]
        gaps.sort(key=lambda g: g.importance_score or 0, reverse=True)
        return gaps


class RecommendationAction(BaseModel):
    action: str
    timeframe: str
    impact: Impact
    resources: str | None = None
    approach: str | None = None


class Recommendation(BaseModel):
    """Grouped next steps for closing the gaps of one area."""

    priority: RecommendationPriority
    category: str
    title: str
    actions: list[RecommendationAction] = Field(default_factory=list)


class AnalysisReport(BaseModel):
    """Completed fit analysis of one résumé against one occupation."""

    analysis_id: str
    resume_id: str
    occupation_code: str
    occupation_title: str = ""
    overall_score: float = Field(..., ge=0, le=100)
    fit_category: FitCategory
    dimension_scores: dict[str, DimensionRecord]
    score_breakdown: ScoreBreakdown
    improvement_impact: list[ImprovementImpact] = Field(default_factory=list)
    gap_analysis: GapAnalysis = Field(default_factory=GapAnalysis)
    recommendations: list[Recommendation] = Field(default_factory=list)
    failed_dimensions: list[str] = Field(default_factory=list)
    processing_time_ms: int = 0
    status: Literal["completed"] = "completed"

    model_config = ConfigDict(extra="forbid")
