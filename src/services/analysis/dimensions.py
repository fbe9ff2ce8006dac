"""Comparison dimensions and the prompts used to score them.

Each dimension compares the complete parsed résumé against one slice of the
occupation's reference data. Some slices are filtered to their important
entries first; education also receives the job-zone record as supplemental
context. A dimension with no reference data left is not scored at all.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from schemas.analysis import OccupationProfile
from services.ai.interfaces import DimensionScorerProtocol
from services.analysis.orchestrator import DimensionTask
from services.execution.retry import RetryConfig


Requirement = dict[str, Any]

JOB_ZONE_CONTEXT = (
    "The Job Zone requirements below are supplemental requirements generalized "
    "for all occupations. These are not hard requirements for this specific job, "
    "but are typically representative of jobs in this zone:"
)

_BASE_ROLE = "You are an expert career counselor analyzing occupational preparedness"


@dataclass(frozen=True, slots=True)
class DimensionSpec:
    name: str
    label: str
    profile_field: str
    system_role: str
    progress_range: tuple[int, int]
    requirement_filter: Callable[[Requirement], bool] | None = None


def _importance_above(key: str, threshold: float) -> Callable[[Requirement], bool]:
    def keep(requirement: Requirement) -> bool:
        value = requirement.get(key) or 0
        return isinstance(value, int | float) and value > threshold

    return keep


DIMENSIONS: tuple[DimensionSpec, ...] = (
    DimensionSpec(
        name="tasks",
        label="tasks",
        profile_field="tasks",
        system_role=f"{_BASE_ROLE} regarding work tasks and responsibilities.",
        progress_range=(10, 20),
    ),
    DimensionSpec(
        name="skills",
        label="skills",
        profile_field="skills",
        system_role=f"{_BASE_ROLE} regarding basic and cross-functional skills.",
        progress_range=(20, 30),
    ),
    DimensionSpec(
        name="technologySkills",
        label="technology skills",
        profile_field="technology_skills",
        system_role=(
            f"{_BASE_ROLE} regarding technical proficiencies.\n\n"
            "Apply realistic judgment: many technologies are alternatives to each "
            "other, proficiency in one often transfers to similar ones, and the "
            "score should reflect coverage across technology categories rather "
            "than the count of individual tools."
        ),
        progress_range=(30, 40),
    ),
    DimensionSpec(
        name="education",
        label="education",
        profile_field="education",
        system_role=(
            f"{_BASE_ROLE} regarding academic and professional qualifications. "
            "Educational thresholds are hierarchical and cumulative: once a higher "
            "threshold is satisfied, every lower threshold is satisfied too and "
            "must never be listed as a gap."
        ),
        progress_range=(40, 50),
    ),
    DimensionSpec(
        name="tools",
        label="tools",
        profile_field="tools",
        system_role=(
            f"{_BASE_ROLE} regarding digital and physical tool proficiency.\n\n"
            "Distinguish specialized tools from ubiquitous ones, do not penalize "
            "candidates for omitting generic equipment, and count tools implied "
            "by the described work as matches."
        ),
        progress_range=(50, 60),
    ),
    DimensionSpec(
        name="workActivities",
        label="work activities",
        profile_field="work_activities",
        system_role=f"{_BASE_ROLE} regarding day-to-day work activities.",
        progress_range=(60, 70),
        requirement_filter=_importance_above("importance", 50),
    ),
    DimensionSpec(
        name="abilities",
        label="abilities",
        profile_field="abilities",
        system_role=f"{_BASE_ROLE} regarding cognitive and interpersonal abilities.",
        progress_range=(70, 80),
        requirement_filter=_importance_above("importance", 20),
    ),
    DimensionSpec(
        name="knowledge",
        label="knowledge",
        profile_field="knowledge",
        system_role=f"{_BASE_ROLE} regarding domain expertise.",
        progress_range=(80, 90),
        requirement_filter=_importance_above("importance_score", 20),
    ),
)

DIMENSION_NAMES: tuple[str, ...] = tuple(spec.name for spec in DIMENSIONS)


def build_user_prompt(
    spec: DimensionSpec,
    resume: dict[str, Any],
    requirements: list[Requirement],
    supplemental: dict[str, Any] | None = None,
) -> str:
    """Prompt asking for a JSON score of ``resume`` against ``requirements``."""
    parts = [
        f"Analyze occupational readiness by comparing the provided resume data "
        f"against the occupation's {spec.label} requirements.",
        "Use the entirety of the resume data to evaluate whether each requirement "
        "can reasonably be inferred as satisfied, even when it is not mentioned "
        "explicitly.",
        "",
        "COMPLETE RESUME DATA:",
        json.dumps(resume, ensure_ascii=False),
        "",
        f"{spec.label.upper()} REQUIREMENTS:",
        json.dumps(requirements, ensure_ascii=False),
    ]
    if supplemental:
        parts += [
            "",
            "SUPPLEMENTAL INFORMATION:",
            JOB_ZONE_CONTEXT,
            json.dumps(supplemental, ensure_ascii=False),
        ]
    parts += [
        "",
        "Return a JSON object with exactly these fields:",
        "- score: integer between 0 and 100",
        "- matches: array of requirements that are met",
        "- gaps: array of requirements that are not met",
        '- confidence: exactly one of "low", "medium" or "high"',
        "- justification: one paragraph explaining the score and confidence",
        "Every requirement must appear in either matches or gaps.",
    ]
    return "\n".join(parts)


def select_requirements(spec: DimensionSpec, occupation: OccupationProfile) -> list[Requirement]:
    requirements: list[Requirement] = list(getattr(occupation, spec.profile_field))
    if spec.requirement_filter is not None:
        requirements = [r for r in requirements if spec.requirement_filter(r)]
    return requirements


def build_dimension_tasks(
    resume: dict[str, Any],
    occupation: OccupationProfile,
    scorer: DimensionScorerProtocol,
    retry_config: RetryConfig | None = None,
    dimensions: tuple[DimensionSpec, ...] = DIMENSIONS,
) -> list[DimensionTask]:
    """One task per dimension that has reference data to compare against."""
    tasks: list[DimensionTask] = []
    for spec in dimensions:
        requirements = select_requirements(spec, occupation)
        if not requirements:
            continue
        supplemental = occupation.job_zone if spec.name == "education" else None
        user_prompt = build_user_prompt(spec, resume, requirements, supplemental)

        def factory(spec: DimensionSpec = spec, prompt: str = user_prompt):
            return scorer.score(spec.system_role, prompt)

        tasks.append(
            DimensionTask(
                name=spec.name,
                progress_range=spec.progress_range,
                factory=factory,
                retry_config=retry_config,
            )
        )
    return tasks
