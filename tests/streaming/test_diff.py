"""Tests for turning partial documents into update events."""

from schemas.extraction import ArrayItemAdded, FieldCompleted, SetMemberAdded
from schemas.resume import RESUME_DOCUMENT_SCHEMA, DocumentSchema
from services.streaming.diff import IncrementalDiffEmitter, diff, get_path


SCHEMA = DocumentSchema(array_fields=("b",), set_fields=("tags.core",))


class TestSimpleFields:
    def test_reported_once_when_content_appears(self) -> None:
        emitter = IncrementalDiffEmitter(SCHEMA)

        events, state = emitter.diff({"a": ""}, {})
        assert events == []

        events, state = emitter.diff({"a": "1"}, state)
        assert events == [FieldCompleted(field="a", value="1")]

        events, state = emitter.diff({"a": "12"}, state)
        assert events == []
        assert state["a"] == "1"

    def test_previous_state_is_not_mutated(self) -> None:
        previous = {"a": "1"}
        events, state = diff({"a": "1", "c": 3}, previous, SCHEMA)

        assert events == [FieldCompleted(field="c", value=3)]
        assert previous == {"a": "1"}
        assert state == {"a": "1", "c": 3}

    def test_non_object_document_yields_nothing(self) -> None:
        events, state = diff([1, 2], {}, SCHEMA)
        assert events == []
        assert state == {}


class TestArrayFields:
    def test_new_elements_get_consecutive_indices(self) -> None:
        events, state = diff({"b": [1]}, {}, SCHEMA)
        assert events == [ArrayItemAdded(field="b", index=0, value=1)]

        events, state = diff({"b": [1, 2, 3]}, state, SCHEMA)
        assert events == [
            ArrayItemAdded(field="b", index=1, value=2),
            ArrayItemAdded(field="b", index=2, value=3),
        ]

    def test_stops_at_first_element_without_content(self) -> None:
        events, state = diff({"b": [{"x": 1}, {"x": None}, {"x": 3}]}, {}, SCHEMA)
        assert [e.index for e in events] == [0]
        assert state["b"] == [{"x": 1}]

        events, state = diff({"b": [{"x": 1}, {"x": 2}, {"x": 3}]}, state, SCHEMA)
        assert [e.index for e in events] == [1, 2]

    def test_array_root_is_never_a_simple_field(self) -> None:
        events, _ = diff({"b": [1]}, {}, SCHEMA)
        assert not any(isinstance(e, FieldCompleted) for e in events)

    def test_nested_array_path(self) -> None:
        document = {"credentials": {"certifications": [{"name": "CISSP"}]}}
        events, state = diff(document, {}, RESUME_DOCUMENT_SCHEMA)

        assert events == [
            ArrayItemAdded(
                field="credentials.certifications", index=0, value={"name": "CISSP"}
            )
        ]
        assert "credentials" not in state


class TestSetFields:
    def test_members_are_deduplicated_by_value(self) -> None:
        events, state = diff({"tags": {"core": ["sql", "sql", " ", "go"]}}, {}, SCHEMA)
        assert events == [
            SetMemberAdded(field="tags.core", member="sql"),
            SetMemberAdded(field="tags.core", member="go"),
        ]

        events, _ = diff({"tags": {"core": ["go", "sql", "rust"]}}, state, SCHEMA)
        assert events == [SetMemberAdded(field="tags.core", member="rust")]

    def test_non_string_members_are_skipped(self) -> None:
        events, _ = diff({"tags": {"core": [1, None, "ok"]}}, {}, SCHEMA)
        assert events == [SetMemberAdded(field="tags.core", member="ok")]


def test_same_document_twice_emits_nothing_new() -> None:
    document = {
        "summary": "Engineer",
        "skills": {"technical": ["Python", "SQL"]},
        "experience": [{"role": "Dev"}],
    }
    first, state = diff(document, {}, RESUME_DOCUMENT_SCHEMA)
    second, _ = diff(document, state, RESUME_DOCUMENT_SCHEMA)

    assert len(first) == 4
    assert second == []


def test_get_path() -> None:
    document = {"a": {"b": {"c": 1}}, "x": 2}
    assert get_path(document, "a.b.c") == 1
    assert get_path(document, "a.missing") is None
    assert get_path(document, "x.y") is None
