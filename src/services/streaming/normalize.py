"""Post-validation clean-up of an extracted résumé."""

from __future__ import annotations

import re
from typing import Any


_NA_PATTERN = re.compile(r"^(n/?a|none|unknown)$", re.IGNORECASE)
_EMAIL_PATTERN = re.compile(r"\S+@\S+\.\S+")
_SCHEME_PATTERN = re.compile(r"^https?://", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")

PROFILE_KEYS = ("linkedin", "github", "website", "portfolio", "scholar", "orcid")
LEGACY_TECHNICAL_CATEGORIES = (
    "frameworks",
    "platforms",
    "databases",
    "cloud",
    "methodologies",
)

SKILL_LIMITS: dict[str, int] = {
    "soft_skills": 30,
    "tools": 50,
    "domains": 20,
    "programming_languages": 30,
    "spoken_languages": 20,
}
TECHNICAL_LIMIT = 100


def prune_na(value: Any) -> Any:
    """Map placeholder strings like "N/A" to ``None``."""
    if isinstance(value, str) and _NA_PATTERN.match(value.strip()):
        return None
    return value


def normalize_email(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    candidate = value.strip()
    return candidate if _EMAIL_PATTERN.search(candidate) else None


def normalize_url(value: Any) -> str | None:
    if not isinstance(value, str) or not value.strip():
        return None
    candidate = value.strip()
    return candidate if _SCHEME_PATTERN.match(candidate) else f"https://{candidate}"


def dedupe_trimmed(values: Any, limit: int = 50) -> list[str]:
    """Trim, collapse whitespace and de-duplicate case-insensitively.

    Non-string entries are dropped and the result holds at most ``limit``
    items, keeping first occurrences.
    """
    if not isinstance(values, list):
        return []
    seen: set[str] = set()
    out: list[str] = []
    for value in values:
        if not isinstance(value, str):
            continue
        text = _WHITESPACE.sub(" ", value.strip())
        if not text or text.lower() in seen:
            continue
        seen.add(text.lower())
        out.append(text)
        if len(out) >= limit:
            break
    return out


def _as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _normalize_personal_information(raw: Any) -> dict[str, Any]:
    info = dict(_as_dict(raw))
    info["name"] = prune_na(info.get("name"))
    info["email"] = normalize_email(prune_na(info.get("email")))
    info["phone"] = prune_na(info.get("phone"))

    profiles = dict(_as_dict(info.get("profiles")))
    for key in PROFILE_KEYS:
        profiles[key] = normalize_url(profiles.get(key))
    links = []
    for link in _as_list(profiles.get("other")):
        link = _as_dict(link)
        url = normalize_url(link.get("url"))
        if url:
            links.append({"label": prune_na(link.get("label")), "url": url})
    profiles["other"] = links
    info["profiles"] = profiles
    return info


def _normalize_skills(raw: Any) -> dict[str, Any]:
    skills = dict(_as_dict(raw))
    technical: list[Any] = list(_as_list(skills.get("technical")))
    for category in LEGACY_TECHNICAL_CATEGORIES:
        technical.extend(_as_list(skills.pop(category, None)))
    skills["technical"] = dedupe_trimmed(technical, TECHNICAL_LIMIT)
    for category, limit in SKILL_LIMITS.items():
        skills[category] = dedupe_trimmed(skills.get(category), limit)
    return skills


def _normalize_experience(entry: Any) -> dict[str, Any]:
    entry = _as_dict(entry)
    return {
        "organization": prune_na(entry.get("organization")),
        "role": prune_na(entry.get("role")),
        "department": prune_na(entry.get("department")),
        "employment_type": prune_na(entry.get("employment_type")),
        "dates": entry.get("dates") or {"start": None, "end": None},
        "responsibilities": dedupe_trimmed(entry.get("responsibilities"), 12),
        "achievements": dedupe_trimmed(entry.get("achievements"), 12),
        "technologies": dedupe_trimmed(entry.get("technologies"), 20),
    }


def _normalize_education(entry: Any) -> dict[str, Any]:
    entry = _as_dict(entry)
    return {
        "degree": prune_na(entry.get("degree")),
        "field_of_study": prune_na(entry.get("field_of_study")),
        "institution": prune_na(entry.get("institution")),
        "dates": entry.get("dates") or {"start": None, "end": None},
        "gpa": prune_na(entry.get("gpa")),
        "honors_awards": dedupe_trimmed(entry.get("honors_awards"), 10),
        "coursework": dedupe_trimmed(entry.get("coursework"), 20),
        "thesis_title": prune_na(entry.get("thesis_title")),
        "advisor": prune_na(entry.get("advisor")),
    }


def normalize_resume(document: dict[str, Any]) -> dict[str, Any]:
    """Return a cleaned copy of a validated résumé document."""
    data = dict(document)
    data["personal_information"] = _normalize_personal_information(
        data.get("personal_information")
    )
    data["summary"] = prune_na(data.get("summary"))
    data["skills"] = _normalize_skills(data.get("skills"))
    data["experience"] = [_normalize_experience(e) for e in _as_list(data.get("experience"))]
    data["education"] = [_normalize_education(e) for e in _as_list(data.get("education"))]

    credentials = dict(_as_dict(data.get("credentials")))
    credentials["certifications"] = _as_list(credentials.get("certifications"))
    credentials["licenses"] = _as_list(credentials.get("licenses"))
    credentials["security_clearances"] = dedupe_trimmed(
        credentials.get("security_clearances"), 10
    )
    credentials["work_authorization"] = dedupe_trimmed(
        credentials.get("work_authorization"), 10
    )
    data["credentials"] = credentials

    data["interests"] = dedupe_trimmed(data.get("interests"), 20)
    other = data.get("other")
    data["other"] = other.strip() if isinstance(other, str) else ""
    return data
