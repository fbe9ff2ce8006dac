"""Résumé-to-occupation fit analysis.

The service builds one scoring task per dimension, runs them through the
orchestrator and turns the aggregate into a report. The durable analysis
record is only created once the first dimension has succeeded, so a run
where every dimension fails leaves nothing behind but the raised error.
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import Any

from core.config import Settings, get_settings
from core.structured_logging import StructuredLogger, set_correlation_id
from schemas.analysis import AnalysisAggregate, AnalysisReport, OccupationProfile
from services.ai.exceptions import AnalysisFailedError
from services.ai.interfaces import AnalysisStoreProtocol, DimensionScorerProtocol
from services.analysis.dimensions import build_dimension_tasks
from services.analysis.orchestrator import (
    DimensionOrchestrator,
    ProgressCallback,
    require_success,
)
from services.analysis.recommendations import analyze_gaps, generate_recommendations
from services.analysis.scoring import (
    calculate_fit_category,
    calculate_improvement_impact,
    calculate_overall_score,
    generate_score_breakdown,
)
from services.execution.executor import RateLimitedExecutor
from services.execution.retry import RetryConfig


logger = logging.getLogger(__name__)
structured_logger = StructuredLogger(__name__)


class AnalysisService:
    """Score a parsed résumé against an occupation across every dimension."""

    def __init__(
        self,
        scorer: DimensionScorerProtocol,
        executor: RateLimitedExecutor,
        store: AnalysisStoreProtocol | None = None,
        retry_config: RetryConfig | None = None,
    ):
        self.scorer = scorer
        self.orchestrator = DimensionOrchestrator(executor)
        self.store = store
        self.retry_config = retry_config

    async def analyze(
        self,
        resume_id: str,
        resume: dict[str, Any],
        occupation: OccupationProfile,
        on_progress: ProgressCallback | None = None,
    ) -> AnalysisReport:
        """Run every dimension and return the completed report.

        Raises:
            AnalysisFailedError: when no dimension could be scored.

        Any failure after the record exists marks it failed before propagating.
        """
        set_correlation_id(f"analysis-{uuid.uuid4()}")
        started = time.perf_counter()
        tasks = build_dimension_tasks(
            resume, occupation, self.scorer, retry_config=self.retry_config
        )
        if not tasks:
            raise AnalysisFailedError(
                f"Occupation {occupation.code} has no reference data to compare against"
            )

        analysis_id: str | None = None

        async def create_record() -> None:
            nonlocal analysis_id
            if self.store is not None:
                analysis_id = await self.store.create_analysis(resume_id, occupation.code)
            else:
                analysis_id = str(uuid.uuid4())
            structured_logger.info(
                "Analysis record created",
                analysis_id=analysis_id,
                occupation_code=occupation.code,
            )

        structured_logger.info(
            "Analysis started",
            resume_id=resume_id,
            occupation_code=occupation.code,
            dimensions=[task.name for task in tasks],
        )
        aggregate = await self.orchestrator.run(tasks, create_record, on_progress)

        try:
            require_success(aggregate)
            if analysis_id is None:  # pragma: no cover - set by the first success
                raise RuntimeError("Analysis record was not created")
            report = self._build_report(
                analysis_id,
                resume_id,
                occupation,
                aggregate,
                processing_time_ms=int((time.perf_counter() - started) * 1000),
            )
            if self.store is not None:
                await self.store.save_report(analysis_id, report)
        except Exception as exc:
            # Only a record that already exists is marked; a run with no
            # success never created one.
            if analysis_id is not None and self.store is not None:
                await self.store.mark_failed(analysis_id, str(exc))
            structured_logger.error(
                "Analysis failed",
                resume_id=resume_id,
                occupation_code=occupation.code,
                failed=list(aggregate.failed()),
                error_type=type(exc).__name__,
            )
            raise

        logger.info(
            "Analysis %s completed: overall %.1f (%s)",
            analysis_id,
            report.overall_score,
            report.fit_category.category,
        )
        return report

    @staticmethod
    def _build_report(
        analysis_id: str,
        resume_id: str,
        occupation: OccupationProfile,
        aggregate: AnalysisAggregate,
        processing_time_ms: int,
    ) -> AnalysisReport:
        scores = aggregate.dimensions
        overall = calculate_overall_score(scores)
        gap_analysis = analyze_gaps(scores, occupation)
        return AnalysisReport(
            analysis_id=analysis_id,
            resume_id=resume_id,
            occupation_code=occupation.code,
            occupation_title=occupation.title,
            overall_score=overall,
            fit_category=calculate_fit_category(overall),
            dimension_scores=dict(scores),
            score_breakdown=generate_score_breakdown(scores),
            improvement_impact=calculate_improvement_impact(scores),
            gap_analysis=gap_analysis,
            recommendations=generate_recommendations(gap_analysis),
            failed_dimensions=list(aggregate.failed()),
            processing_time_ms=processing_time_ms,
        )


def build_analysis_service(
    store: AnalysisStoreProtocol | None = None,
    settings: Settings | None = None,
) -> AnalysisService:
    """Analysis service wired to the configured provider and pacing."""
    from services.ai.adapters import PydanticAIDimensionScorer
    from services.ai.model_factory import get_analysis_model

    settings = settings or get_settings()
    return AnalysisService(
        scorer=PydanticAIDimensionScorer(get_analysis_model(settings)),
        executor=RateLimitedExecutor.from_settings(settings),
        store=store,
        retry_config=settings.default_retry_config(),
    )
