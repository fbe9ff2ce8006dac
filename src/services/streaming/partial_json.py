"""Best-effort parsing of a growing JSON buffer.

The model streams its structured output one token at a time, so most of
the buffers we see are prefixes of a document. `repair` closes whatever is
still open and hands back a parsed value, or ``None`` when the prefix cannot
be turned into JSON yet. A partial value is always provisional: only the
strict parse at the end of the stream is authoritative.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any


_CLOSERS = {"{": "}", "[": "]"}
_BARE_LITERAL_TAIL = frozenset("0123456789.-+eEtrufalsn")


def has_content(value: Any) -> bool:
    """Whether a parsed value carries anything worth reporting.

    ``None`` and blank strings are empty, lists are empty when they have no
    elements, and a dict has content when any of its values does. Numbers
    and booleans always count.
    """
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, list):
        return len(value) > 0
    if isinstance(value, dict):
        return any(has_content(v) for v in value.values())
    return True


@dataclass(slots=True)
class ScanState:
    """Lexical state at the end of a buffer."""

    in_string: bool = False
    escaped: bool = False
    open_brackets: list[str] = field(default_factory=list)
    corrupt: bool = False


def scan(text: str) -> ScanState:
    """Walk ``text`` tracking string state and bracket nesting.

    Brackets inside string literals are ignored. A closer that does not match
    the innermost opener marks the buffer as corrupt.
    """
    state = ScanState()
    for ch in text:
        if state.escaped:
            state.escaped = False
            continue
        if state.in_string:
            if ch == "\\":
                state.escaped = True
            elif ch == '"':
                state.in_string = False
            continue
        if ch == '"':
            state.in_string = True
        elif ch in _CLOSERS:
            state.open_brackets.append(ch)
        elif ch in ("}", "]"):
            if not state.open_brackets or _CLOSERS[state.open_brackets[-1]] != ch:
                state.corrupt = True
                return state
            state.open_brackets.pop()
    return state


def is_settled(text: str) -> bool:
    """True when the buffer does not end inside a string or a bare literal.

    A number such as ``1`` at the very end of the buffer may still grow into
    ``12``; the same holds for ``tr`` on its way to ``true``. Values read
    from an unsettled tail are not reported yet.
    """
    state = scan(text)
    if state.in_string or state.corrupt:
        return False
    return bool(text) and text[-1] not in _BARE_LITERAL_TAIL


def repair(text: str) -> Any | None:
    """Parse a JSON prefix, closing any unterminated string and brackets.

    Returns ``None`` when the prefix is empty, structurally corrupt, or still
    not valid JSON after closing. Never raises for malformed input.
    """
    if not text or not text.strip():
        return None

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    state = scan(text)
    if state.corrupt:
        return None

    candidate = text
    if state.in_string:
        if state.escaped:
            # Drop a dangling backslash so the closing quote is not escaped.
            candidate = candidate[:-1]
        candidate += '"'

    # A prefix of valid JSON can only carry a trailing comma at its very end.
    candidate = candidate.rstrip().rstrip(",")
    candidate += "".join(_CLOSERS[b] for b in reversed(state.open_brackets))

    try:
        return json.loads(candidate)
    except json.JSONDecodeError:
        return None
