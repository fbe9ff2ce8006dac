"""Shape of the structured résumé produced by the parsing model.

`DocumentSchema` tells the extraction session which fields are tracked as
arrays or categories while streaming, which top-level keys are mandatory in
the final document, and which nested containers are defaulted when missing.
`RESUME_JSON_SCHEMA` is the structured-output schema sent to the model.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any


@dataclass(frozen=True, slots=True)
class DocumentSchema:
    """Fixed, known-in-advance layout of an extracted document.

    Paths are dotted (``skills.technical``). Top-level keys that are neither
    tracked arrays, tracked categories nor listed in ``complex_fields`` are
    reported once as simple fields.
    """

    required_fields: tuple[str, ...] = ()
    array_fields: tuple[str, ...] = ()
    set_fields: tuple[str, ...] = ()
    complex_fields: tuple[str, ...] = ()
    defaults: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def tracked_roots(self) -> frozenset[str]:
        """Top-level keys excluded from the simple-field rule."""
        roots = {path.split(".", 1)[0] for path in (*self.array_fields, *self.set_fields)}
        roots.update(self.complex_fields)
        return frozenset(roots)


RESUME_REQUIRED_FIELDS: tuple[str, ...] = (
    "personal_information",
    "summary",
    "skills",
    "credentials",
    "experience",
    "education",
    "projects",
    "publications",
    "awards_honors",
    "service_volunteering",
    "open_source",
    "presentations",
    "patents",
    "teaching",
    "creative_portfolio",
    "affiliations_memberships",
    "grants_funding",
    "references",
    "interests",
    "other",
)

RESUME_ARRAY_SECTIONS: tuple[str, ...] = (
    "experience",
    "education",
    "projects",
    "publications",
    "presentations",
    "patents",
    "teaching",
    "service_volunteering",
    "creative_portfolio",
    "awards_honors",
    "affiliations_memberships",
    "grants_funding",
    "open_source",
)

SKILL_CATEGORIES: tuple[str, ...] = (
    "soft_skills",
    "technical",
    "tools",
    "domains",
    "programming_languages",
    "spoken_languages",
)

CREDENTIAL_LISTS: tuple[str, ...] = (
    "certifications",
    "licenses",
    "security_clearances",
    "work_authorization",
)


def _resume_defaults() -> Mapping[str, Any]:
    defaults: dict[str, Any] = {f"skills.{c}": [] for c in SKILL_CATEGORIES}
    defaults.update({f"credentials.{c}": [] for c in CREDENTIAL_LISTS})
    defaults.update({section: [] for section in RESUME_ARRAY_SECTIONS})
    defaults.update(
        {
            "references": [],
            "interests": [],
            "other": "",
            "personal_information.profiles": {},
        }
    )
    return MappingProxyType(defaults)


RESUME_DOCUMENT_SCHEMA = DocumentSchema(
    required_fields=RESUME_REQUIRED_FIELDS,
    array_fields=(
        *RESUME_ARRAY_SECTIONS,
        "credentials.certifications",
        "credentials.licenses",
    ),
    set_fields=tuple(f"skills.{c}" for c in SKILL_CATEGORIES),
    complex_fields=("skills", "credentials", "personal_information"),
    defaults=_resume_defaults(),
)


# ---------------------------------------------------------------------------
# Structured-output JSON schema
# ---------------------------------------------------------------------------

_NULLABLE_STR: dict[str, Any] = {"type": ["string", "null"]}
_STR_LIST: dict[str, Any] = {"type": "array", "items": {"type": "string"}}
_DATE_RANGE: dict[str, Any] = {"$ref": "#/$defs/date_range"}


def _obj(properties: dict[str, Any]) -> dict[str, Any]:
    """Closed object whose every property is required (strict mode rule)."""
    return {
        "type": "object",
        "additionalProperties": False,
        "required": list(properties),
        "properties": properties,
    }


def _list_of(properties: dict[str, Any]) -> dict[str, Any]:
    return {"type": "array", "items": _obj(properties)}


RESUME_JSON_SCHEMA: dict[str, Any] = {
    **_obj(
        {
            "personal_information": _obj(
                {
                    "name": _NULLABLE_STR,
                    "email": _NULLABLE_STR,
                    "phone": _NULLABLE_STR,
                    "profiles": _obj(
                        {
                            "linkedin": _NULLABLE_STR,
                            "github": _NULLABLE_STR,
                            "website": _NULLABLE_STR,
                            "portfolio": _NULLABLE_STR,
                            "scholar": _NULLABLE_STR,
                            "orcid": _NULLABLE_STR,
                            "other": {
                                "type": "array",
                                "items": {"$ref": "#/$defs/link"},
                            },
                        }
                    ),
                }
            ),
            "summary": _NULLABLE_STR,
            "skills": _obj({category: _STR_LIST for category in SKILL_CATEGORIES}),
            "credentials": _obj(
                {
                    "certifications": _list_of(
                        {
                            "name": {"type": "string"},
                            "issuer": _NULLABLE_STR,
                            "issue_date": _NULLABLE_STR,
                            "expiry_date": _NULLABLE_STR,
                            "credential_id": _NULLABLE_STR,
                        }
                    ),
                    "licenses": _list_of(
                        {
                            "name": {"type": "string"},
                            "authority": _NULLABLE_STR,
                            "region": _NULLABLE_STR,
                            "issue_date": _NULLABLE_STR,
                            "expiry_date": _NULLABLE_STR,
                            "license_id": _NULLABLE_STR,
                        }
                    ),
                    "security_clearances": _STR_LIST,
                    "work_authorization": _STR_LIST,
                }
            ),
            "experience": _list_of(
                {
                    "organization": _NULLABLE_STR,
                    "role": _NULLABLE_STR,
                    "department": _NULLABLE_STR,
                    "employment_type": _NULLABLE_STR,
                    "dates": _DATE_RANGE,
                    "responsibilities": _STR_LIST,
                    "achievements": _STR_LIST,
                    "technologies": _STR_LIST,
                }
            ),
            "education": _list_of(
                {
                    "degree": _NULLABLE_STR,
                    "field_of_study": _NULLABLE_STR,
                    "institution": _NULLABLE_STR,
                    "dates": _DATE_RANGE,
                    "gpa": _NULLABLE_STR,
                    "honors_awards": _STR_LIST,
                    "coursework": _STR_LIST,
                    "thesis_title": _NULLABLE_STR,
                    "advisor": _NULLABLE_STR,
                }
            ),
            "projects": _list_of(
                {
                    "name": {"type": "string"},
                    "role": _NULLABLE_STR,
                    "organization": _NULLABLE_STR,
                    "description": _NULLABLE_STR,
                    "dates": _DATE_RANGE,
                    "technologies": _STR_LIST,
                    "impact": _STR_LIST,
                }
            ),
            "publications": _list_of(
                {
                    "title": {"type": "string"},
                    "venue": _NULLABLE_STR,
                    "date": _NULLABLE_STR,
                    "authors": _STR_LIST,
                    "doi": _NULLABLE_STR,
                    "url": _NULLABLE_STR,
                }
            ),
            "awards_honors": _list_of(
                {
                    "name": {"type": "string"},
                    "issuer": _NULLABLE_STR,
                    "date": _NULLABLE_STR,
                    "description": _NULLABLE_STR,
                }
            ),
            "service_volunteering": _list_of(
                {
                    "organization": {"type": "string"},
                    "role": _NULLABLE_STR,
                    "dates": _DATE_RANGE,
                    "description": _NULLABLE_STR,
                }
            ),
            "open_source": _list_of(
                {
                    "project": {"type": "string"},
                    "role": _NULLABLE_STR,
                    "repo_url": _NULLABLE_STR,
                    "contributions": _STR_LIST,
                }
            ),
            "presentations": _list_of(
                {
                    "title": {"type": "string"},
                    "event": _NULLABLE_STR,
                    "type": _NULLABLE_STR,
                    "date": _NULLABLE_STR,
                    "url": _NULLABLE_STR,
                }
            ),
            "patents": _list_of(
                {
                    "title": {"type": "string"},
                    "number": _NULLABLE_STR,
                    "status": _NULLABLE_STR,
                    "date": _NULLABLE_STR,
                }
            ),
            "teaching": _list_of(
                {
                    "course": {"type": "string"},
                    "institution": _NULLABLE_STR,
                    "role": _NULLABLE_STR,
                    "dates": _DATE_RANGE,
                }
            ),
            "creative_portfolio": _list_of(
                {
                    "title": {"type": "string"},
                    "medium": _NULLABLE_STR,
                    "venue": _NULLABLE_STR,
                    "date": _NULLABLE_STR,
                    "url": _NULLABLE_STR,
                }
            ),
            "affiliations_memberships": _list_of(
                {
                    "organization": {"type": "string"},
                    "role": _NULLABLE_STR,
                    "dates": _DATE_RANGE,
                }
            ),
            "grants_funding": _list_of(
                {
                    "title": {"type": "string"},
                    "funder": _NULLABLE_STR,
                    "amount": _NULLABLE_STR,
                    "date": _NULLABLE_STR,
                }
            ),
            "references": _list_of(
                {
                    "name": _NULLABLE_STR,
                    "relationship": _NULLABLE_STR,
                    "contact": _NULLABLE_STR,
                }
            ),
            "interests": _STR_LIST,
            "other": _NULLABLE_STR,
        }
    ),
    "$defs": {
        "date_range": _obj({"start": _NULLABLE_STR, "end": _NULLABLE_STR}),
        "link": _obj({"label": _NULLABLE_STR, "url": _NULLABLE_STR}),
    },
}
