"""Tests for the task body properties block."""
from __future__ import annotations

from datetime import date

from app.services.planning_types import TaskAttributes
from app.services.property_parser import (
    build_task_body,
    extract_description,
    format_checklist_display_name,
    parse_checklist_display_name,
    parse_start_date,
    parse_task_properties,
)

ENRICHED_BODY = """---
EstTime: 45
Urgency: 7
Importance: 6
Energy: high
Context: email
StartDate: None
---
Reply to the quarterly survey."""


def test_parses_required_and_optional_fields() -> None:
    attrs = parse_task_properties(ENRICHED_BODY)

    assert attrs is not None
    assert (attrs.est_time, attrs.urgency, attrs.importance) == (45, 7, 6)
    assert attrs.energy == "high"
    assert attrs.context == "email"
    assert attrs.start_date is None


def test_keys_are_case_insensitive_and_whitespace_tolerant() -> None:
    body = "---\n  esttime :  30\nURGENCY:4\nimportance:\t2\nparentTaskId: abc\nsequence: 3\n---\n"

    attrs = parse_task_properties(body)

    assert attrs is not None
    assert attrs.est_time == 30
    assert attrs.parent_task_id == "abc"
    assert attrs.sequence == 3
    assert attrs.energy == "medium"
    assert attrs.context == "none"


def test_missing_or_zero_required_field_is_not_enriched() -> None:
    assert parse_task_properties("---\nEstTime: 30\nUrgency: 5\n---\n") is None
    assert parse_task_properties("---\nEstTime: 0\nUrgency: 5\nImportance: 5\n---\n") is None
    assert parse_task_properties("---\nEstTime: soon\nUrgency: 5\nImportance: 5\n---\n") is None


def test_body_without_markers_is_description_only() -> None:
    body = "Just a note with no properties"

    assert parse_task_properties(body) is None
    assert extract_description(body) == body
    assert parse_task_properties(None) is None


def test_description_excludes_properties_block() -> None:
    assert extract_description(ENRICHED_BODY) == "Reply to the quarterly survey."


def test_serialized_block_parses_back_to_same_attributes() -> None:
    original = TaskAttributes(
        est_time=90,
        urgency=8,
        importance=3,
        energy="low",
        context="deep-work",
        start_date="2024-05-01",
    )

    body = build_task_body(original, "Write the design doc")
    parsed = parse_task_properties(body)

    assert parsed is not None
    assert (parsed.est_time, parsed.urgency, parsed.importance) == (90, 8, 3)
    assert (parsed.energy, parsed.context, parsed.start_date) == ("low", "deep-work", "2024-05-01")
    assert extract_description(body) == "Write the design doc"


def test_multi_word_context_survives_a_round_trip() -> None:
    body = build_task_body(TaskAttributes(est_time=30, urgency=5, importance=5, context="deep work"), "x")

    assert parse_task_properties(body).context == "deep work"
    assert parse_task_properties("---\nEstTime: 30\nUrgency: 5\nImportance: 5\nContext: deep work  \r\n---\n").context == "deep work"


def test_out_of_range_ratings_are_kept_as_written() -> None:
    attrs = parse_task_properties("---\nEstTime: 30\nUrgency: 12\nImportance: -2\n---\n")

    assert attrs is not None
    assert (attrs.urgency, attrs.importance) == (12, -2)


def test_missing_start_date_serializes_as_none_marker() -> None:
    body = build_task_body(TaskAttributes(est_time=10, urgency=1, importance=1), "")

    assert "StartDate: None" in body
    assert parse_task_properties(body).start_date is None


def test_checklist_duration_suffix_round_trip() -> None:
    name = format_checklist_display_name("Draft outline", 25)

    assert name == "Draft outline (25 min)"
    assert parse_checklist_display_name(name) == ("Draft outline", 25)


def test_checklist_duration_requires_positive_minutes() -> None:
    assert parse_checklist_display_name("Stretch (0 min)") is None
    assert parse_checklist_display_name("No duration here") is None
    assert parse_checklist_display_name("Read (10min)") == ("Read", 10)


def test_parse_start_date_handles_marker_and_garbage() -> None:
    assert parse_start_date("2024-02-29") == date(2024, 2, 29)
    assert parse_start_date("None") is None
    assert parse_start_date("next week") is None
