"""Tests for provider-specific model construction."""

import pytest
from pydantic_ai import models
from pydantic_ai.models.google import GoogleModel
from pydantic_ai.models.openai import OpenAIChatModel

from core.config import Settings
from services.ai.exceptions import ParserConfigError
from services.ai.model_factory import (
    _normalize_azure_endpoint,
    create_model,
    get_analysis_model,
    get_parsing_model,
)


# Block any real model requests in tests
models.ALLOW_MODEL_REQUESTS = False


class TestCreateModel:
    def test_openai(self) -> None:
        settings = Settings(LLM_PROVIDER="openai", OPENAI_API_KEY="test-key")
        model = create_model("gpt-4o-mini", settings)

        assert isinstance(model, OpenAIChatModel)
        assert model.model_name == "gpt-4o-mini"

    def test_openai_reasoning_model_gets_low_effort(self) -> None:
        settings = Settings(LLM_PROVIDER="openai", OPENAI_API_KEY="test-key")
        model = create_model("o3-mini", settings)

        assert model.settings == {"openai_reasoning_effort": "low"}

    def test_openai_without_key(self) -> None:
        settings = Settings(LLM_PROVIDER="openai", OPENAI_API_KEY=None)
        with pytest.raises(ParserConfigError, match="OPENAI_API_KEY"):
            create_model("gpt-4o-mini", settings)

    def test_azure(self) -> None:
        settings = Settings(
            LLM_PROVIDER="azure_openai",
            AZURE_OPENAI_ENDPOINT="https://test.openai.azure.com/",
            AZURE_OPENAI_API_KEY="test-key",
            AZURE_OPENAI_API_VERSION="2024-10-21",
        )
        model = create_model("resume-parser", settings)

        assert isinstance(model, OpenAIChatModel)
        assert model.model_name == "resume-parser"

    def test_azure_requires_every_setting(self) -> None:
        settings = Settings(
            LLM_PROVIDER="azure_openai",
            AZURE_OPENAI_ENDPOINT="https://test.openai.azure.com",
            AZURE_OPENAI_API_KEY="test-key",
            AZURE_OPENAI_API_VERSION=None,
        )
        with pytest.raises(ParserConfigError):
            create_model("resume-parser", settings)

    def test_gemini(self) -> None:
        settings = Settings(LLM_PROVIDER="gemini", GEMINI_API_KEY="test-gemini-key")
        assert isinstance(create_model("gemini-2.5-flash", settings), GoogleModel)

    def test_gemini_without_key(self) -> None:
        settings = Settings(LLM_PROVIDER="gemini", GEMINI_API_KEY=None)
        with pytest.raises(ParserConfigError, match="GEMINI_API_KEY"):
            create_model("gemini-2.5-flash", settings)

    def test_unknown_provider(self) -> None:
        settings = Settings(LLM_PROVIDER="mystery")
        with pytest.raises(ParserConfigError, match="Unsupported"):
            create_model("x", settings)


def test_role_specific_models_use_configured_names() -> None:
    settings = Settings(
        LLM_PROVIDER="openai",
        OPENAI_API_KEY="test-key",
        PARSING_MODEL="gpt-4.1-mini",
        ANALYSIS_MODEL="gpt-4o",
    )
    assert get_parsing_model(settings).model_name == "gpt-4.1-mini"
    assert get_analysis_model(settings).model_name == "gpt-4o"


def test_normalize_azure_endpoint() -> None:
    assert (
        _normalize_azure_endpoint("https://x.openai.azure.com//")
        == "https://x.openai.azure.com"
    )
