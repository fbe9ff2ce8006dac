"""Shared test fixtures for pytest.

The test environment is selected before anything imports settings so that no
``.env`` file is read and every setting takes its default.
"""

import os
from collections.abc import Generator
from unittest.mock import AsyncMock

import pytest


os.environ["ENVIRONMENT"] = "test"

from core.config import get_settings
from core.structured_logging import set_correlation_id


@pytest.fixture(autouse=True)
def _fresh_settings() -> Generator[None, None, None]:
    """Drop cached settings and correlation id around every test."""
    get_settings.cache_clear()
    set_correlation_id(None)
    yield
    get_settings.cache_clear()
    set_correlation_id(None)


@pytest.fixture
def resume_store() -> AsyncMock:
    """Stand-in for the résumé status store."""
    store = AsyncMock()
    store.mark_completed = AsyncMock(return_value=None)
    store.mark_failed = AsyncMock(return_value=None)
    return store


@pytest.fixture
def analysis_store() -> AsyncMock:
    """Stand-in for the analysis store; ids are handed out in order."""
    store = AsyncMock()
    store.create_analysis = AsyncMock(return_value="analysis-1")
    store.save_report = AsyncMock(return_value=None)
    store.mark_failed = AsyncMock(return_value=None)
    return store


@pytest.fixture
def minimal_resume() -> dict:
    """Smallest document that passes final validation."""
    return {
        "personal_information": {"name": "Ada Lovelace", "email": None, "phone": None},
        "summary": "Analyst",
        "skills": {"technical": ["Python"]},
        "credentials": {},
        "experience": [],
        "education": [],
        "projects": [],
        "publications": [],
        "awards_honors": [],
        "service_volunteering": [],
        "open_source": [],
        "presentations": [],
        "patents": [],
        "teaching": [],
        "creative_portfolio": [],
        "affiliations_memberships": [],
        "grants_funding": [],
        "references": [],
        "interests": [],
        "other": "",
    }
