"""Incremental JSON extraction: repair, diff and session driving."""

from .diff import IncrementalDiffEmitter, diff
from .partial_json import has_content, is_settled, repair
from .session import (
    ExtractionSession,
    ParserErrorInfo,
    classify_parser_error,
    create_resume_session,
    stream_resume_extraction,
)


__all__ = [
    "ExtractionSession",
    "IncrementalDiffEmitter",
    "ParserErrorInfo",
    "classify_parser_error",
    "create_resume_session",
    "diff",
    "has_content",
    "is_settled",
    "repair",
    "stream_resume_extraction",
]
