"""Turn successive partial documents into update events.

Field state maps a dotted path to what has already been reported: the value
for simple fields, the list of reported elements for array fields, and the
list of reported members for category fields. Only paths known through the
document schema are diffed element by element; any other top-level key is
reported once, when it first has content.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any

from schemas.extraction import ArrayItemAdded, FieldCompleted, SetMemberAdded
from schemas.resume import DocumentSchema
from services.streaming.partial_json import has_content


FieldState = dict[str, Any]
UpdateEvent = FieldCompleted | ArrayItemAdded | SetMemberAdded


def get_path(document: Any, path: str) -> Any:
    """Resolve a dotted path inside nested dicts, ``None`` when absent."""
    node = document
    for part in path.split("."):
        if not isinstance(node, Mapping):
            return None
        node = node.get(part)
    return node


class IncrementalDiffEmitter:
    """Diff a partial document against previously reported field state."""

    def __init__(self, schema: DocumentSchema):
        self.schema = schema
        self._tracked_roots = schema.tracked_roots

    def diff(
        self, current: Any, previous: FieldState
    ) -> tuple[list[UpdateEvent], FieldState]:
        """Return the new events and the state that includes them.

        ``previous`` is not mutated. Calling again with the same ``current``
        and the returned state yields no events.
        """
        state: FieldState = dict(previous)
        events = list(self._iter_events(current, state))
        return events, state

    def _iter_events(self, current: Any, state: FieldState) -> Iterator[UpdateEvent]:
        if not isinstance(current, Mapping):
            return

        for key, value in current.items():
            if key in self._tracked_roots or key in state:
                continue
            if has_content(value):
                state[key] = value
                yield FieldCompleted(field=key, value=value)

        for path in self.schema.array_fields:
            yield from self._array_events(path, get_path(current, path), state)

        for path in self.schema.set_fields:
            yield from self._set_events(path, get_path(current, path), state)

    @staticmethod
    def _array_events(
        path: str, items: Any, state: FieldState
    ) -> Iterator[ArrayItemAdded]:
        if not isinstance(items, list):
            return
        reported = list(state.get(path, ()))
        for index in range(len(reported), len(items)):
            item = items[index]
            # An element without content yet is revisited on the next chunk;
            # reporting past it would leave a hole in the index sequence.
            if not has_content(item):
                break
            reported.append(item)
            yield ArrayItemAdded(field=path, index=index, value=item)
        state[path] = reported

    @staticmethod
    def _set_events(
        path: str, members: Any, state: FieldState
    ) -> Iterator[SetMemberAdded]:
        if not isinstance(members, list):
            return
        reported = list(state.get(path, ()))
        for member in members:
            if not isinstance(member, str) or not member.strip():
                continue
            if member in reported:
                continue
            reported.append(member)
            yield SetMemberAdded(field=path, member=member)
        state[path] = reported


def diff(
    current: Any, previous: FieldState, schema: DocumentSchema
) -> tuple[list[UpdateEvent], FieldState]:
    """Functional form of `IncrementalDiffEmitter.diff`."""
    return IncrementalDiffEmitter(schema).diff(current, previous)
