"""Tests for dimension selection and prompt construction."""

import pytest

from schemas.analysis import DimensionScore, OccupationProfile
from services.analysis.dimensions import (
    DIMENSION_NAMES,
    DIMENSIONS,
    JOB_ZONE_CONTEXT,
    build_dimension_tasks,
    build_user_prompt,
    select_requirements,
)


class FakeScorer:
    """Records every prompt pair it is asked to score."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []

    async def score(self, system_prompt: str, user_prompt: str) -> DimensionScore:
        self.calls.append((system_prompt, user_prompt))
        return DimensionScore(score=70, confidence="medium")


def _spec(name: str):
    return next(spec for spec in DIMENSIONS if spec.name == name)


@pytest.fixture
def occupation() -> OccupationProfile:
    return OccupationProfile(
        code="15-2051.00",
        title="Data Scientists",
        tasks=[{"task": "Analyze data"}],
        skills=[{"name": "Critical Thinking"}],
        technology_skills=[{"name": "Python"}],
        tools=[{"name": "Workstation"}],
        work_activities=[
            {"name": "Analyzing Data", "importance": 80},
            {"name": "Selling", "importance": 30},
        ],
        abilities=[
            {"name": "Deductive Reasoning", "importance": 60},
            {"name": "Stamina", "importance": 10},
        ],
        knowledge=[
            {"name": "Mathematics", "importance_score": 90},
            {"name": "Food Production", "importance_score": 5},
            {"name": "Unrated"},
        ],
        education=[{"level": "Master's degree", "percentage": 45}],
        job_zone={"zone": 4, "education": "Bachelor's degree"},
    )


def test_dimension_catalogue() -> None:
    assert DIMENSION_NAMES == (
        "tasks",
        "skills",
        "technologySkills",
        "education",
        "tools",
        "workActivities",
        "abilities",
        "knowledge",
    )
    ranges = [spec.progress_range for spec in DIMENSIONS]
    assert ranges[0] == (10, 20)
    assert ranges[-1] == (80, 90)


@pytest.mark.parametrize(
    "name,expected",
    [
        ("workActivities", ["Analyzing Data"]),
        ("abilities", ["Deductive Reasoning"]),
        ("knowledge", ["Mathematics"]),
        ("tools", ["Workstation"]),
    ],
)
def test_select_requirements_filters_by_importance(
    occupation: OccupationProfile, name: str, expected: list[str]
) -> None:
    selected = select_requirements(_spec(name), occupation)
    assert [r["name"] for r in selected] == expected


def test_user_prompt_contents() -> None:
    prompt = build_user_prompt(
        _spec("skills"), {"summary": "Analyst"}, [{"name": "Writing"}]
    )
    assert '"summary": "Analyst"' in prompt
    assert "SKILLS REQUIREMENTS:" in prompt
    assert '"name": "Writing"' in prompt
    assert "SUPPLEMENTAL INFORMATION" not in prompt


@pytest.mark.asyncio
async def test_builds_one_task_per_dimension(occupation: OccupationProfile) -> None:
    scorer = FakeScorer()
    tasks = build_dimension_tasks({"summary": "Analyst"}, occupation, scorer)

    assert [t.name for t in tasks] == list(DIMENSION_NAMES)

    for task in tasks:
        await task.factory()
    prompts = dict(zip(DIMENSION_NAMES, scorer.calls, strict=True))

    education_system, education_user = prompts["education"]
    assert "hierarchical" in education_system
    assert JOB_ZONE_CONTEXT in education_user
    assert "Bachelor's degree" in education_user

    _, skills_user = prompts["skills"]
    assert JOB_ZONE_CONTEXT not in skills_user
    _, knowledge_user = prompts["knowledge"]
    assert "Food Production" not in knowledge_user


def test_empty_dimensions_are_omitted() -> None:
    occupation = OccupationProfile(
        code="11-1011.00",
        tasks=[{"task": "Direct operations"}],
        abilities=[{"name": "Stamina", "importance": 5}],
    )
    tasks = build_dimension_tasks({}, occupation, FakeScorer())
    assert [t.name for t in tasks] == ["tasks"]


def test_factory_is_fresh_per_call(occupation: OccupationProfile) -> None:
    tasks = build_dimension_tasks({}, occupation, FakeScorer())
    first = tasks[0].factory()
    second = tasks[0].factory()
    assert first is not second
    first.close()
    second.close()
