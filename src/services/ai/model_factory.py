"""Construction of the pydantic-ai models used for parsing and scoring.

Models are built explicitly and handed to the adapters that need them; there
is no module-level client. The provider is chosen by ``LLM_PROVIDER``.

Usage:
    from services.ai.model_factory import get_analysis_model, get_parsing_model

    scorer = PydanticAIDimensionScorer(get_analysis_model())
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, cast

from pydantic_ai.models import Model
from pydantic_ai.models.google import GoogleModel
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.google import GoogleProvider
from pydantic_ai.providers.openai import OpenAIProvider

from core.config import Settings, get_settings
from services.ai.exceptions import ParserConfigError


# OpenAI reasoning models that support reasoning_effort parameter
REASONING_MODELS = {
    "gpt-5",
    "gpt-5-mini",
    "gpt-5-nano",
    "o1",
    "o3-mini",
}

SUPPORTED_PROVIDERS = ("openai", "azure_openai", "gemini")


if TYPE_CHECKING:
    from httpx import AsyncClient

logger = logging.getLogger(__name__)


def _normalize_azure_endpoint(endpoint: str) -> str:
    """Normalize Azure OpenAI endpoint.

    Trailing slashes lead to ``//openai/...`` URLs, which Azure may treat as
    a different path and answer with 404.
    """
    return endpoint.rstrip("/")


def _openai_model(model_name: str, provider: OpenAIProvider) -> Model:
    if model_name in REASONING_MODELS:
        logger.info("Applying low reasoning effort for reasoning model: %s", model_name)
        return OpenAIChatModel(
            model_name,
            provider=provider,
            settings={"openai_reasoning_effort": "low"},
        )
    return OpenAIChatModel(model_name, provider=provider)


def _create_openai_model(
    settings: Settings, model_name: str, http_client: AsyncClient | None
) -> Model:
    if not settings.OPENAI_API_KEY:
        raise ParserConfigError("LLM_PROVIDER=openai but OPENAI_API_KEY is not set")
    provider = OpenAIProvider(api_key=settings.OPENAI_API_KEY, http_client=http_client)
    return _openai_model(model_name, provider)


def _create_azure_model(
    settings: Settings, model_name: str, http_client: AsyncClient | None
) -> Model:
    if (
        not settings.AZURE_OPENAI_ENDPOINT
        or not settings.AZURE_OPENAI_API_KEY
        or not settings.AZURE_OPENAI_API_VERSION
    ):
        raise ParserConfigError(
            "LLM_PROVIDER=azure_openai requires AZURE_OPENAI_ENDPOINT, "
            "AZURE_OPENAI_API_KEY and AZURE_OPENAI_API_VERSION"
        )

    from openai import AsyncAzureOpenAI

    azure_client = AsyncAzureOpenAI(
        azure_endpoint=_normalize_azure_endpoint(settings.AZURE_OPENAI_ENDPOINT),
        api_key=settings.AZURE_OPENAI_API_KEY,
        api_version=settings.AZURE_OPENAI_API_VERSION,
        http_client=http_client,
    )
    return _openai_model(model_name, OpenAIProvider(openai_client=azure_client))


def _create_gemini_model(
    settings: Settings, model_name: str, http_client: AsyncClient | None
) -> Model:
    if not settings.GEMINI_API_KEY:
        raise ParserConfigError("LLM_PROVIDER=gemini but GEMINI_API_KEY is not set")
    provider = GoogleProvider(api_key=settings.GEMINI_API_KEY, http_client=http_client)
    return cast(Model, GoogleModel(model_name, provider=provider))


def create_model(
    model_name: str,
    settings: Settings | None = None,
    http_client: AsyncClient | None = None,
) -> Model:
    """Build a model for the configured provider.

    Raises:
        ParserConfigError: unknown provider or missing credentials.
    """
    settings = settings or get_settings()
    provider = settings.LLM_PROVIDER.lower()
    if provider == "openai":
        model = _create_openai_model(settings, model_name, http_client)
    elif provider == "azure_openai":
        model = _create_azure_model(settings, model_name, http_client)
    elif provider == "gemini":
        model = _create_gemini_model(settings, model_name, http_client)
    else:
        raise ParserConfigError(
            f"Unsupported LLM_PROVIDER {settings.LLM_PROVIDER!r}; "
            f"expected one of {', '.join(SUPPORTED_PROVIDERS)}"
        )
    logger.info("Using %s model: %s", provider, model_name)
    return model


def get_parsing_model(
    settings: Settings | None = None, http_client: AsyncClient | None = None
) -> Model:
    """Model that streams the structured résumé."""
    settings = settings or get_settings()
    return create_model(settings.PARSING_MODEL, settings, http_client)


def get_analysis_model(
    settings: Settings | None = None, http_client: AsyncClient | None = None
) -> Model:
    """Model that scores comparison dimensions."""
    settings = settings or get_settings()
    return create_model(settings.ANALYSIS_MODEL, settings, http_client)
