"""Schemas for incremental résumé extraction.

Update events are the unit of the streaming contract: each one reports a
piece of the document that has not been reported before. `SessionUpdate`
wraps an event with the progress hint and the running list of completed
top-level fields, and renders itself to the SSE wire format.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field


MAX_SSE_EVENT_BYTES: int = 16_384


class ExtractionStatus(StrEnum):
    """Lifecycle of one extraction session."""

    ACCUMULATING = "accumulating"
    VALIDATING = "validating"
    COMPLETED = "completed"
    FAILED = "failed"


class FieldCompleted(BaseModel):
    """A top-level scalar (or otherwise untracked) field gained content."""

    kind: Literal["field_completed"] = "field_completed"
    field: str
    value: Any

    model_config = ConfigDict(frozen=True, extra="forbid")


class ArrayItemAdded(BaseModel):
    """A new element appeared in a tracked array field."""

    kind: Literal["array_item_added"] = "array_item_added"
    field: str
    index: int = Field(..., ge=0)
    value: Any

    model_config = ConfigDict(frozen=True, extra="forbid")


class SetMemberAdded(BaseModel):
    """A new string appeared in a tracked category (set-like list)."""

    kind: Literal["set_member_added"] = "set_member_added"
    field: str
    member: str

    model_config = ConfigDict(frozen=True, extra="forbid")


UpdateEvent = Annotated[
    FieldCompleted | ArrayItemAdded | SetMemberAdded,
    Field(discriminator="kind"),
]


class SessionUpdate(BaseModel):
    """One message on the session's update channel.

    `kind` is `update` for document events; `stream_started` and `completed`
    bracket them. `progress` never decreases within a session.
    """

    kind: Literal["stream_started", "update", "completed"] = "update"
    event: UpdateEvent | None = None
    progress: int = Field(0, ge=0, le=100)
    completed_fields: list[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")

    def to_sse(self) -> str:
        """Serialize to SSE format with size validation."""
        payload = self.model_dump_json()
        if len(payload.encode("utf-8")) > MAX_SSE_EVENT_BYTES:
            raise ValueError(
                "SSE payload exceeded MAX_SSE_EVENT_BYTES; emit smaller events."
            )
        return f"data: {payload}\n\n"


class ExtractionResult(BaseModel):
    """Terminal outcome of a session (completed document or failure)."""

    status: ExtractionStatus
    document: dict[str, Any] | None = None
    error_code: str | None = None
    error_message: str | None = None
    updates_emitted: int = 0

    model_config = ConfigDict(extra="forbid")
