"""Application settings for the résumé extraction and analysis services."""

from __future__ import annotations

import json
import os
from functools import lru_cache
from typing import TYPE_CHECKING

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


if TYPE_CHECKING:
    from services.execution.retry import RetryConfig


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=(".env"), env_file_encoding="utf-8")

    # App
    APP_NAME: str = "ResumeFit"
    ENVIRONMENT: str = "development"  # development | production | test

    # AI / LLM provider configuration
    # openai | azure_openai | gemini
    LLM_PROVIDER: str = "openai"
    OPENAI_API_KEY: str | None = None
    GEMINI_API_KEY: str | None = None
    AZURE_OPENAI_ENDPOINT: str | None = None
    AZURE_OPENAI_API_KEY: str | None = None
    AZURE_OPENAI_API_VERSION: str | None = None

    # Model names (deployment names when using Azure)
    PARSING_MODEL: str = "gpt-4o-mini"
    ANALYSIS_MODEL: str = "gpt-4o-mini"

    # Outbound request pacing for scoring calls
    EXECUTOR_MAX_CONCURRENT: int = 10
    EXECUTOR_MIN_DELAY_MS: float = 200

    # Retry defaults applied to every task unless overridden per task
    RETRY_MAX_RETRIES: int = 3
    RETRY_INITIAL_DELAY_MS: float = 100
    RETRY_MAX_DELAY_MS: float = 5000
    RETRY_BACKOFF_MULTIPLIER: float = 2.0
    RETRY_JITTER_FRACTION: float = 0.25
    RETRY_RATE_LIMIT_FLOOR_MS: float = 1000
    # Accept list or CSV/JSON string from env; normalized to list[str] by validators
    RETRYABLE_ERROR_CODES: list[str] | str = [
        "ECONNRESET",
        "ETIMEDOUT",
        "ENOTFOUND",
        "EAI_AGAIN",
    ]

    # Deadlines (seconds)
    TASK_TIMEOUT_SECONDS: float | None = 120
    EXTRACTION_TIMEOUT_SECONDS: float | None = 300

    @field_validator("RETRYABLE_ERROR_CODES", mode="before")
    @classmethod
    def assemble_error_codes(cls, v: object) -> list[str]:
        """Allow list, CSV string, or JSON array string for error codes."""
        if isinstance(v, list | tuple):
            return [str(i).strip().upper() for i in v]
        if isinstance(v, str):
            s = v.strip()
            if not s:
                return []
            if s.startswith("["):
                try:
                    parsed = json.loads(s)
                except json.JSONDecodeError as e:
                    raise ValueError(
                        "RETRYABLE_ERROR_CODES must be a CSV list or JSON array string"
                    ) from e
                if not isinstance(parsed, list):
                    raise ValueError("RETRYABLE_ERROR_CODES JSON must be a list")
                return [str(i).strip().upper() for i in parsed]
            # CSV fallback
            return [i.strip().upper() for i in s.split(",") if i.strip()]
        raise ValueError("Invalid RETRYABLE_ERROR_CODES type; expected str or list[str]")

    @model_validator(mode="after")
    def _validate_pacing(self) -> Settings:
        """Reject pacing values the executor cannot honour."""
        # Normalize in case the union allows a stray string at runtime
        if isinstance(self.RETRYABLE_ERROR_CODES, str):
            self.RETRYABLE_ERROR_CODES = self.assemble_error_codes(
                self.RETRYABLE_ERROR_CODES
            )
        if self.EXECUTOR_MAX_CONCURRENT < 1:
            raise ValueError("EXECUTOR_MAX_CONCURRENT must be at least 1")
        if self.EXECUTOR_MIN_DELAY_MS < 0:
            raise ValueError("EXECUTOR_MIN_DELAY_MS cannot be negative")
        if self.RETRY_MAX_RETRIES < 1:
            raise ValueError("RETRY_MAX_RETRIES must be at least 1")
        return self

    def default_retry_config(self) -> RetryConfig:
        """Build the executor-wide default retry configuration."""
        from services.execution.retry import RetryConfig

        codes = self.RETRYABLE_ERROR_CODES
        return RetryConfig(
            max_retries=self.RETRY_MAX_RETRIES,
            initial_delay_ms=self.RETRY_INITIAL_DELAY_MS,
            max_delay_ms=self.RETRY_MAX_DELAY_MS,
            backoff_multiplier=self.RETRY_BACKOFF_MULTIPLIER,
            jitter_fraction=self.RETRY_JITTER_FRACTION,
            rate_limit_floor_ms=self.RETRY_RATE_LIMIT_FLOOR_MS,
            retryable_codes=frozenset(codes if isinstance(codes, list) else []),
            timeout_seconds=self.TASK_TIMEOUT_SECONDS,
        )


@lru_cache
def get_settings() -> Settings:
    env = os.getenv("ENVIRONMENT", "development").lower()
    if env not in {"development", "production", "test"}:
        raise ValueError("ENVIRONMENT must be 'development', 'production', or 'test'")

    if env == "production":
        env_file = ".env.prod"
    elif env == "development":
        env_file = ".env.dev"
    else:
        # test environment - no env file needed, use defaults
        env_file = ""

    # pydantic-settings supports _env_file at runtime; mypy doesn't type it.
    return Settings(_env_file=env_file or None)  # type: ignore[call-arg]
