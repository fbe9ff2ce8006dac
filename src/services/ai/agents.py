"""pydantic-ai agents for résumé parsing and dimension scoring."""

import json
import logging
import re
from typing import Any

from pydantic import ValidationError
from pydantic_ai import Agent, TextOutput
from pydantic_ai.models import Model

from schemas.analysis import DimensionScore
from schemas.resume import RESUME_JSON_SCHEMA
from services.ai.exceptions import ScoreSchemaViolation


logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"^```(?:json)?\s*\n?|\n?```\s*$")


RESUME_PARSING_PROMPT = f"""
You are a résumé parsing engine. Convert the résumé text you are given into a
single JSON object that conforms exactly to the JSON schema below.

RULES:
- Output JSON only: no prose, no markdown fences.
- Emit the top-level keys in the order the schema lists them.
- Every key in the schema must be present. Use null for unknown scalar values
  and [] for empty lists; never invent content that is not in the résumé.
- Copy names, organizations and titles verbatim. Dates stay as written.
- skills.* lists hold short distinct phrases, one skill per entry.
- Put anything that fits no other section into "other" as plain text.

JSON SCHEMA:
{json.dumps(RESUME_JSON_SCHEMA, separators=(",", ":"))}
"""


def strip_markdown_json(text: str) -> str:
    """Remove a surrounding ```json fence if the model added one."""
    return _CODE_FENCE.sub("", text.strip()).strip()


def parse_dimension_score(payload: str | dict[str, Any]) -> DimensionScore:
    """Validate a scoring payload at the boundary.

    Accepts raw model text (optionally fenced) or an already-decoded dict.
    Malformed payloads are rejected, not coerced.

    Raises:
        ScoreSchemaViolation: payload is not JSON or does not match DimensionScore.
    """
    try:
        if isinstance(payload, str):
            return DimensionScore.model_validate_json(strip_markdown_json(payload))
        return DimensionScore.model_validate(payload)
    except ValidationError as e:
        errors = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
            for err in e.errors()
        )
        logger.warning("Rejected scoring payload: %s", errors)
        raise ScoreSchemaViolation(f"Invalid scoring payload: {errors}") from e


def parse_score_text(text: str) -> DimensionScore:
    """Text-output hook for the scoring agent; pydantic-ai requires a str-only signature."""
    return parse_dimension_score(text)


def create_dimension_agent(model: Model | str, system_prompt: str) -> Agent[None, DimensionScore]:
    """Agent that returns a strictly validated `DimensionScore`.

    Text output goes through `parse_score_text`, so a malformed response
    raises `ScoreSchemaViolation` instead of being reshaped.
    """
    return Agent(
        model,
        system_prompt=system_prompt,
        output_type=TextOutput(parse_score_text),
        model_settings={"temperature": 0.3, "seed": 12345},
    )


def create_resume_parsing_agent(model: Model | str) -> Agent[None, str]:
    """Agent whose plain-text output is the résumé JSON, streamed as it is written."""
    return Agent(model, system_prompt=RESUME_PARSING_PROMPT, output_type=str)
