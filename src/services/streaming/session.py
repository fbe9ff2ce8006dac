"""Incremental extraction of a structured résumé from a token stream.

An `ExtractionSession` owns one growing buffer. Every chunk is appended,
repaired into a provisional document and diffed against what was already
reported, so callers see each field, array element and category member
exactly once while the model is still generating. When the stream ends the
buffer is parsed strictly, validated against the document schema and
normalised; anything less than a conforming document ends in ``FAILED``.
"""

from __future__ import annotations

import asyncio
import copy
import json
import logging
import uuid
from collections.abc import AsyncIterable, AsyncIterator, Callable
from dataclasses import dataclass
from typing import Any

from core.config import get_settings
from core.exceptions import DomainError
from core.structured_logging import StructuredLogger, set_correlation_id
from schemas.extraction import ExtractionResult, ExtractionStatus, SessionUpdate
from schemas.resume import RESUME_DOCUMENT_SCHEMA, DocumentSchema
from services.ai.exceptions import (
    ExtractionStreamError,
    ExtractionTimeout,
    ExtractionValidationError,
    ParserConfigError,
    ResumeFitAIError,
)
from services.ai.interfaces import ResumeStoreProtocol, TokenSourceProtocol
from services.streaming.diff import FieldState, IncrementalDiffEmitter
from services.streaming.normalize import normalize_resume
from services.streaming.partial_json import has_content, is_settled, repair


logger = logging.getLogger(__name__)
structured_logger = StructuredLogger(__name__)

STREAMING_PROGRESS_BASE = 10
STREAMING_PROGRESS_STEP = 2
STREAMING_PROGRESS_CAP = 90


@dataclass(frozen=True, slots=True)
class ParserErrorInfo:
    """User-facing category for an extraction failure."""

    code: str
    message: str


def classify_parser_error(exc: BaseException) -> ParserErrorInfo:
    """Map an extraction failure to a stable code and a friendly message."""
    status = getattr(exc, "status_code", None)
    text = str(exc).lower()

    if isinstance(exc, ParserConfigError):
        return ParserErrorInfo(
            "PARSER_CONFIG_ERROR",
            "Resume parsing service is temporarily unavailable. Please try again later.",
        )
    if isinstance(exc, ExtractionValidationError | json.JSONDecodeError):
        return ParserErrorInfo(
            "PARSER_JSON_ERROR",
            "Failed to parse resume structure. The resume format may be incompatible.",
        )
    if status == 429 or "rate limit" in text:
        return ParserErrorInfo(
            "PARSER_RATE_LIMIT",
            "Too many requests. Please wait a moment and try again.",
        )
    if (
        isinstance(exc, ExtractionTimeout | TimeoutError)
        or status in (408, 504)
    ):
        return ParserErrorInfo(
            "PARSER_TIMEOUT",
            "Resume processing is taking longer than expected. Please try again.",
        )
    if isinstance(status, int) and status >= 500:
        return ParserErrorInfo(
            "PARSER_SERVER_ERROR",
            "Resume parsing service encountered an error. Please try again later.",
        )
    return ParserErrorInfo("PARSER_UNKNOWN_ERROR", "Resume processing failed.")


class ExtractionSession:
    """Drive one token stream to a validated document.

    The synchronous steps are `feed` (one chunk in, zero or more updates out)
    and `finish` (strict parse and validation). `stream` wraps both around an
    async token source, brackets the updates with ``stream_started`` and
    ``completed`` messages, enforces the deadline and records the terminal
    status in the optional store.
    """

    def __init__(
        self,
        schema: DocumentSchema = RESUME_DOCUMENT_SCHEMA,
        *,
        normalizer: Callable[[dict[str, Any]], dict[str, Any]] | None = None,
        store: ResumeStoreProtocol | None = None,
        timeout_seconds: float | None = None,
        session_id: str | None = None,
    ):
        self.schema = schema
        self.normalizer = normalizer
        self.store = store
        self.timeout_seconds = timeout_seconds
        self.session_id = session_id or str(uuid.uuid4())

        self._emitter = IncrementalDiffEmitter(schema)
        self._buffer = ""
        self._state: FieldState = {}
        self._completed_fields: list[str] = []
        self._updates_emitted = 0
        self._status = ExtractionStatus.ACCUMULATING
        self._document: dict[str, Any] | None = None
        self._error: ParserErrorInfo | None = None

    @property
    def status(self) -> ExtractionStatus:
        return self._status

    @property
    def buffer(self) -> str:
        return self._buffer

    @property
    def field_state(self) -> FieldState:
        return dict(self._state)

    @property
    def completed_fields(self) -> list[str]:
        return list(self._completed_fields)

    @property
    def updates_emitted(self) -> int:
        return self._updates_emitted

    @property
    def progress(self) -> int:
        if self._status is ExtractionStatus.COMPLETED:
            return 100
        return min(
            STREAMING_PROGRESS_BASE + STREAMING_PROGRESS_STEP * self._updates_emitted,
            STREAMING_PROGRESS_CAP,
        )

    @property
    def document(self) -> dict[str, Any] | None:
        return self._document

    def feed(self, chunk: str) -> list[SessionUpdate]:
        """Append a chunk and return the updates it made reportable."""
        if self._status is not ExtractionStatus.ACCUMULATING:
            raise RuntimeError(f"Cannot feed a session in state {self._status}")
        if not chunk:
            return []

        self._buffer += chunk
        # Values at an unsettled tail (open string, half-written number) may
        # still change, so nothing is reported until the tail settles.
        if not is_settled(self._buffer):
            return []
        partial = repair(self._buffer)
        if partial is None:
            logger.debug("Buffer not yet parseable at %d chars", len(self._buffer))
            return []

        events, self._state = self._emitter.diff(partial, self._state)
        updates: list[SessionUpdate] = []
        for event in events:
            progress = self.progress
            root = event.field.split(".", 1)[0]
            if root not in self._completed_fields:
                self._completed_fields.append(root)
            self._updates_emitted += 1
            updates.append(
                SessionUpdate(
                    event=event,
                    progress=progress,
                    completed_fields=list(self._completed_fields),
                )
            )
        # Complex sections count as completed once they have any content.
        if isinstance(partial, dict):
            for name in self.schema.complex_fields:
                if name not in self._completed_fields and has_content(partial.get(name)):
                    self._completed_fields.append(name)
        return updates

    def finish(self) -> dict[str, Any]:
        """Strictly parse the buffer and validate it into the final document.

        Raises:
            ExtractionValidationError: when the buffer is not valid JSON or
                the document lacks required fields. The session is ``FAILED``.
        """
        if self._status is not ExtractionStatus.ACCUMULATING:
            raise RuntimeError(f"Cannot finish a session in state {self._status}")
        self._status = ExtractionStatus.VALIDATING

        try:
            parsed = json.loads(self._buffer)
            document = self._validate(parsed)
            if self.normalizer is not None:
                document = self.normalizer(document)
        except json.JSONDecodeError as exc:
            error = ExtractionValidationError(f"Final output is not valid JSON: {exc.msg}")
            self.fail(error)
            raise error from exc
        except ExtractionValidationError as exc:
            self.fail(exc)
            raise

        self._document = document
        self._status = ExtractionStatus.COMPLETED
        return document

    def fail(self, exc: BaseException) -> ParserErrorInfo:
        """Move the session to ``FAILED`` and remember why."""
        self._status = ExtractionStatus.FAILED
        self._document = None
        self._error = classify_parser_error(exc)
        return self._error

    def result(self) -> ExtractionResult:
        return ExtractionResult(
            status=self._status,
            document=self._document,
            error_code=self._error.code if self._error else None,
            error_message=self._error.message if self._error else None,
            updates_emitted=self._updates_emitted,
        )

    def _validate(self, parsed: Any) -> dict[str, Any]:
        if not isinstance(parsed, dict):
            raise ExtractionValidationError("Final output must be a JSON object")
        missing = [f for f in self.schema.required_fields if f not in parsed]
        if missing:
            raise ExtractionValidationError(
                f"Missing required field: {', '.join(missing)}"
            )

        document = parsed
        for path, default in self.schema.defaults.items():
            *parents, leaf = path.split(".")
            node = document
            for part in parents:
                child = node.get(part)
                if child is None:
                    child = node[part] = {}
                elif not isinstance(child, dict):
                    raise ExtractionValidationError(f"{part} must be an object")
                node = child
            if not isinstance(node.get(leaf), type(default)):
                node[leaf] = copy.deepcopy(default)
        return document

    async def stream(self, token_source: AsyncIterable[str]) -> AsyncIterator[SessionUpdate]:
        """Consume a token source and yield session updates as they appear.

        Raises the failure after recording it: `ExtractionTimeout` when the
        deadline passes, `ExtractionValidationError` when the final document
        does not conform, the upstream error for classifiable provider
        failures, and `ExtractionStreamError` for anything else.
        """
        set_correlation_id(self.session_id)
        structured_logger.info("Extraction stream started", session_id=self.session_id)
        yield SessionUpdate(kind="stream_started", progress=0)

        loop = asyncio.get_running_loop()
        deadline = (
            loop.time() + self.timeout_seconds
            if self.timeout_seconds is not None
            else None
        )
        iterator = aiter(token_source)
        try:
            while True:
                async with asyncio.timeout_at(deadline):
                    chunk = await anext(iterator, None)
                if chunk is None:
                    break
                for update in self.feed(chunk):
                    yield update
            document = self.finish()
        except TimeoutError as exc:
            error = ExtractionTimeout(
                f"Extraction exceeded {self.timeout_seconds}s deadline"
            )
            await self._record_failure(error)
            raise error from exc
        except (ResumeFitAIError, DomainError) as exc:
            await self._record_failure(exc)
            raise
        except Exception as exc:
            await self._record_failure(exc)
            raise ExtractionStreamError(str(exc) or type(exc).__name__) from exc

        if self.store is not None:
            await self.store.mark_completed(self.session_id, document)
        structured_logger.info(
            "Extraction completed",
            session_id=self.session_id,
            updates_emitted=self._updates_emitted,
            fields=len(self._completed_fields),
        )
        yield SessionUpdate(
            kind="completed",
            progress=100,
            completed_fields=list(self._completed_fields),
        )

    async def _record_failure(self, exc: BaseException) -> None:
        info = (
            self._error
            if self._status is ExtractionStatus.FAILED and self._error
            else self.fail(exc)
        )
        structured_logger.error(
            "Extraction failed",
            session_id=self.session_id,
            error_code=info.code,
            error_type=type(exc).__name__,
            updates_emitted=self._updates_emitted,
        )
        if self.store is not None:
            await self.store.mark_failed(self.session_id, info.code, info.message)


def create_resume_session(
    *,
    store: ResumeStoreProtocol | None = None,
    timeout_seconds: float | None = None,
    session_id: str | None = None,
) -> ExtractionSession:
    """Session wired with the résumé schema and normaliser."""
    return ExtractionSession(
        RESUME_DOCUMENT_SCHEMA,
        normalizer=normalize_resume,
        store=store,
        timeout_seconds=timeout_seconds,
        session_id=session_id,
    )


async def stream_resume_extraction(
    resume_text: str,
    token_source: TokenSourceProtocol,
    *,
    store: ResumeStoreProtocol | None = None,
    session_id: str | None = None,
) -> AsyncIterator[SessionUpdate]:
    """Parse one résumé through the token source, yielding session updates.

    The deadline comes from ``EXTRACTION_TIMEOUT_SECONDS``.
    """
    session = create_resume_session(
        store=store,
        timeout_seconds=get_settings().EXTRACTION_TIMEOUT_SECONDS,
        session_id=session_id,
    )
    async for update in session.stream(token_source.stream_tokens(resume_text)):
        yield update
