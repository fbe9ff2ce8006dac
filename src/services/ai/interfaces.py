"""Service interfaces for extraction and analysis collaborators.

These protocols describe the narrow contracts the core consumes: a token
source for the parsing model, a per-dimension scorer, and the stores that
persist résumés and analyses. Concrete adapters live in
`services.ai.adapters`; tests pass fakes or mocks.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any, Protocol

from schemas.analysis import AnalysisReport, DimensionScore


class TokenSourceProtocol(Protocol):
    """Streams the parsing model's raw JSON output for one résumé."""

    def stream_tokens(self, resume_text: str) -> AsyncIterator[str]:
        """Return an async iterator of text deltas.

        Implementations should be async generator functions so that calling
        this method returns an AsyncIterator. An error raised while iterating
        terminates the stream.
        """
        ...


class DimensionScorerProtocol(Protocol):
    """Scores one comparison dimension against the external scoring service."""

    async def score(self, system_prompt: str, user_prompt: str) -> DimensionScore:
        """Return a validated score or raise a classifiable error."""
        ...


class ResumeStoreProtocol(Protocol):
    """Persists the terminal status of an extraction session."""

    async def mark_completed(self, resume_id: str, document: dict[str, Any]) -> None:
        ...

    async def mark_failed(
        self, resume_id: str, error_code: str, error_message: str
    ) -> None:
        ...


class AnalysisStoreProtocol(Protocol):
    """Persists an analysis once real data exists for it."""

    async def create_analysis(self, resume_id: str, occupation_code: str) -> str:
        """Create the durable record and return its id."""
        ...

    async def save_report(self, analysis_id: str, report: AnalysisReport) -> None:
        ...

    async def mark_failed(self, analysis_id: str, error_message: str) -> None:
        ...
