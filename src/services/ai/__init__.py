"""Init file for AI services."""

from .exceptions import (
    AnalysisFailedError,
    ExtractionStreamError,
    ExtractionTimeout,
    ExtractionValidationError,
    ParserConfigError,
    ResumeFitAIError,
    ScoreSchemaViolation,
)


__all__ = [
    "AnalysisFailedError",
    "ExtractionStreamError",
    "ExtractionTimeout",
    "ExtractionValidationError",
    "ParserConfigError",
    "ResumeFitAIError",
    "ScoreSchemaViolation",
]
