"""Concrete pydantic-ai implementations of the collaborator protocols.

Both adapters receive an explicitly constructed model. Provider failures are
re-raised as `UpstreamServiceError` carrying the HTTP status or a network
code, which is what the retry policy and the parser error classifier read.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Iterator
from contextlib import contextmanager

import httpx
from pydantic_ai.exceptions import ModelHTTPError
from pydantic_ai.models import Model

from core.exceptions import UpstreamServiceError
from schemas.analysis import DimensionScore
from services.ai.agents import create_dimension_agent, create_resume_parsing_agent


logger = logging.getLogger(__name__)


@contextmanager
def upstream_errors(operation: str) -> Iterator[None]:
    """Translate provider and transport errors into `UpstreamServiceError`."""
    try:
        yield
    except ModelHTTPError as e:
        raise UpstreamServiceError(
            f"{operation} failed with HTTP {e.status_code} from {e.model_name}",
            status_code=e.status_code,
        ) from e
    except httpx.TimeoutException as e:
        raise UpstreamServiceError(f"{operation} timeout", code="ETIMEDOUT") from e
    except httpx.NetworkError as e:
        raise UpstreamServiceError(
            f"{operation} network error: {type(e).__name__}", code="ECONNRESET"
        ) from e


class PydanticAIDimensionScorer:
    """Scores one dimension with a fresh agent per call."""

    def __init__(self, model: Model | str):
        self.model = model

    async def score(self, system_prompt: str, user_prompt: str) -> DimensionScore:
        agent = create_dimension_agent(self.model, system_prompt)
        with upstream_errors("Dimension scoring"):
            result = await agent.run(user_prompt)
        return result.output


class PydanticAIResumeTokenSource:
    """Streams the parsing model's JSON output as text deltas."""

    def __init__(self, model: Model | str):
        self.model = model

    async def stream_tokens(self, resume_text: str) -> AsyncIterator[str]:
        agent = create_resume_parsing_agent(self.model)
        with upstream_errors("Resume parsing stream"):
            async with agent.run_stream(f"Parse this resume:\n\n{resume_text}") as run:
                async for delta in run.stream_text(delta=True):
                    if delta:
                        yield delta
        logger.debug("Resume parsing stream finished")
