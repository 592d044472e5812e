"""Tests for the timeline layout engine."""
from __future__ import annotations

from datetime import datetime

from app.services.planning_types import CalendarEvent, ChecklistItem, EnrichedTask, Task, TaskAttributes
from app.services.timeline_layout import (
    TimelineConfig,
    TimelineItemType,
    apply_drag_override,
    current_minute,
    flatten_schedulable_items,
    layout,
    offset_to_datetime,
    window_start,
)

CONFIG = TimelineConfig(start_hour=6, end_hour=26, minute_scale=3.3, switch_gap_min=5)
NINE_AM = datetime(2024, 6, 10, 9, 0)


def _task(task_id: str, est_time: int = 30, score: int = 50, context: str = "work", checklist=()) -> EnrichedTask:
    return EnrichedTask(
        task=Task(id=task_id, title=f"Task {task_id}", checklist_items=tuple(checklist)),
        attributes=TaskAttributes(est_time=est_time, urgency=5, importance=5, context=context),
        score=score,
    )


def _event(event_id: str, start: datetime, end: datetime) -> CalendarEvent:
    return CalendarEvent(id=event_id, summary=f"Meeting {event_id}", start=start, end=end)


def _by_id(result):
    return {item.id: item for item in result.items}


def test_nothing_to_show_returns_none() -> None:
    assert layout([], [], reference_now=NINE_AM, config=CONFIG) is None
    assert layout([Task(id="plain", title="Plain")], [], reference_now=NINE_AM, config=CONFIG) is None


def test_task_is_pushed_past_blocking_event() -> None:
    event = _event("standup", datetime(2024, 6, 10, 9, 0), datetime(2024, 6, 10, 10, 0))

    result = layout([_task("a")], [event], reference_now=NINE_AM, config=CONFIG)

    placed = _by_id(result)["a"]
    assert placed.start >= datetime(2024, 6, 10, 10, 0)
    assert placed.start_minute == 240
    assert placed.offset == 240 * 3.3
    assert placed.width == 30 * 3.3
    assert [item.id for item in result.events] == ["standup"]


def test_auto_items_start_at_current_time() -> None:
    result = layout([_task("a")], [], reference_now=NINE_AM, config=CONFIG)

    assert _by_id(result)["a"].start == NINE_AM
    assert result.current_time_offset == 180 * 3.3


def test_context_switch_adds_gap() -> None:
    tasks = [_task("a", score=90, context="work"), _task("b", score=80, context="home")]

    result = layout(tasks, [], reference_now=NINE_AM, config=CONFIG)

    placed = _by_id(result)
    assert placed["a"].start_minute == 180
    assert placed["b"].start_minute == 215


def test_unchecked_subtasks_replace_parent() -> None:
    parent = _task(
        "p",
        est_time=60,
        checklist=[
            ChecklistItem(id="s1", display_name="Outline (20 min)"),
            ChecklistItem(id="s2", display_name="Polish (15 min)", checked=True),
            ChecklistItem(id="s3", display_name="Send it"),
            ChecklistItem(id="s4", display_name="Review (10 min)"),
        ],
    )

    items = flatten_schedulable_items([parent])

    assert [(item.id, item.title, item.duration_min) for item in items] == [
        ("s1", "Outline", 20),
        ("s4", "Review", 10),
    ]
    assert all(item.type is TimelineItemType.SUBTASK for item in items)
    assert items[0].parent is parent


def test_task_without_parseable_subtasks_is_scheduled_whole() -> None:
    parent = _task("p", est_time=45, checklist=[ChecklistItem(id="s1", display_name="Loose note")])

    items = flatten_schedulable_items([parent])

    assert [(item.id, item.type, item.duration_min) for item in items] == [("p", TimelineItemType.TASK, 45)]


def test_parents_are_scheduled_by_score() -> None:
    items = flatten_schedulable_items([_task("low", score=10), _task("high", score=90)])

    assert [item.id for item in items] == ["high", "low"]


def test_pinned_item_blocks_auto_items() -> None:
    overrides = {"a": datetime(2024, 6, 10, 9, 0)}

    result = layout([_task("a", score=90), _task("b", score=80)], [], overrides, NINE_AM, CONFIG)

    placed = _by_id(result)
    assert placed["a"].manual
    assert placed["a"].start_minute == 180
    assert placed["b"].start_minute == 210
    assert not placed["b"].manual


def test_auto_item_skips_events_gaps_and_pins_until_a_slot_fits() -> None:
    events = [
        _event("standup", datetime(2024, 6, 10, 9, 0), datetime(2024, 6, 10, 10, 0)),
        _event("review", datetime(2024, 6, 10, 10, 20), datetime(2024, 6, 10, 11, 0)),
    ]
    overrides = {"pinned": datetime(2024, 6, 10, 11, 0)}

    result = layout([_task("pinned", score=90), _task("a", score=80)], events, overrides, NINE_AM, CONFIG)

    placed = _by_id(result)
    assert placed["pinned"].start_minute == 300
    assert placed["a"].start == datetime(2024, 6, 10, 11, 30)
    assert placed["a"].start_minute == 330


def test_overlapping_labels_get_separate_levels() -> None:
    event = _event("review", datetime(2024, 6, 10, 9, 0), datetime(2024, 6, 10, 9, 30))
    overrides = {"a": datetime(2024, 6, 10, 9, 0)}

    result = layout([_task("a")], [event], overrides, NINE_AM, CONFIG)

    assert sorted(item.level for item in result.items) == [0, 1]
    assert result.total_levels == 2


def test_window_after_midnight_belongs_to_previous_day() -> None:
    late = datetime(2024, 6, 11, 1, 0)

    assert window_start(late, CONFIG) == datetime(2024, 6, 10, 6, 0)
    assert current_minute(late, CONFIG) == 1140
    assert current_minute(datetime(2024, 6, 11, 4, 0), CONFIG) == 0


def test_event_after_midnight_is_placed_at_end_of_window() -> None:
    event = _event("late", datetime(2024, 6, 11, 1, 0), datetime(2024, 6, 11, 1, 30))

    result = layout([], [event], reference_now=NINE_AM, config=CONFIG)

    assert result.events[0].start_minute == 1140


def test_drop_offset_converts_to_wall_clock() -> None:
    overrides = apply_drag_override({}, "a", 100 * 3.3, NINE_AM, CONFIG)

    assert overrides == {"a": datetime(2024, 6, 10, 7, 40)}


def test_drop_offset_is_clamped_to_window() -> None:
    assert offset_to_datetime(-30, NINE_AM, CONFIG) == datetime(2024, 6, 10, 6, 0)
    assert offset_to_datetime(5000, NINE_AM, CONFIG) == datetime(2024, 6, 11, 2, 0)
