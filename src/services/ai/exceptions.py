"""Domain exceptions for résumé extraction and dimension scoring.

Each exception carries a stable `error_code` so callers (and the session's
failure record) can branch on it and tag analytics without string matching.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class ResumeFitAIError(Exception):
    """Base class for AI extraction and scoring domain errors."""

    message: str
    error_code: str

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.error_code}: {self.message}"


class ExtractionValidationError(ResumeFitAIError):
    def __init__(
        self, message: str = "Extracted document failed schema validation"
    ) -> None:
        super().__init__(message=message, error_code="validation_failed")


class ExtractionStreamError(ResumeFitAIError):
    def __init__(self, message: str = "Token stream ended with an error") -> None:
        super().__init__(message=message, error_code="stream_failed")


class ExtractionTimeout(ResumeFitAIError):
    def __init__(self, message: str = "Extraction exceeded its deadline") -> None:
        super().__init__(message=message, error_code="timeout")


class ParserConfigError(ResumeFitAIError):
    def __init__(self, message: str = "No language model provider configured") -> None:
        super().__init__(message=message, error_code="config_error")


class ScoreSchemaViolation(ResumeFitAIError):
    def __init__(
        self, message: str = "Scoring response did not match the expected schema"
    ) -> None:
        super().__init__(message=message, error_code="schema_violation")


class AnalysisFailedError(ResumeFitAIError):
    def __init__(self, message: str = "No analysis dimension succeeded") -> None:
        super().__init__(message=message, error_code="no_dimensions")
