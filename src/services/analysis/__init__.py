"""Dimension fan-out, scoring and the analysis pipeline."""

from .dimensions import DIMENSION_NAMES, DIMENSIONS, build_dimension_tasks
from .orchestrator import DimensionOrchestrator, DimensionTask, require_success
from .recommendations import analyze_gaps, generate_recommendations
from .service import AnalysisService, build_analysis_service


__all__ = [
    "DIMENSIONS",
    "DIMENSION_NAMES",
    "AnalysisService",
    "DimensionOrchestrator",
    "DimensionTask",
    "analyze_gaps",
    "build_analysis_service",
    "build_dimension_tasks",
    "generate_recommendations",
    "require_success",
]
