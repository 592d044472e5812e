"""Tests for priority scoring."""
from __future__ import annotations

from datetime import date, datetime, timedelta

from app.services.planning_types import EnrichedTask, Task, TaskAttributes
from app.services.scoring import (
    calculate_context_switch_penalty,
    calculate_score,
    calculate_urgency_boost,
    map_importance,
    round_half_up,
)

TODAY = date(2024, 6, 10)


def _task(task_id: str, context: str = "work", urgency: int = 5, importance: int = 5, due=None) -> EnrichedTask:
    return EnrichedTask(
        task=Task(id=task_id, title=f"Task {task_id}", due=due),
        attributes=TaskAttributes(est_time=30, urgency=urgency, importance=importance, context=context),
    )


def _days_out(days: int) -> datetime:
    return datetime(2024, 6, 10, 9, 0) + timedelta(days=days)


def test_due_today_or_overdue_gets_maximum_boost() -> None:
    assert calculate_urgency_boost(datetime(2024, 6, 10, 0, 0), TODAY) == 150
    assert calculate_urgency_boost(datetime(2024, 6, 1, 12, 0), TODAY) == 150


def test_boost_decreases_with_distance() -> None:
    assert calculate_urgency_boost(datetime(2024, 6, 11, 0, 0), TODAY) == 100
    assert calculate_urgency_boost(datetime(2024, 6, 17, 0, 0), TODAY) == 14
    assert calculate_urgency_boost(datetime(2024, 6, 24, 0, 0), TODAY) == 7
    assert calculate_urgency_boost(datetime(2024, 6, 30, 0, 0), TODAY) == 0


def test_partial_days_round_up() -> None:
    # Anything after midnight counts as the next whole day.
    assert calculate_urgency_boost(_days_out(0), TODAY) == 100
    assert calculate_urgency_boost(_days_out(1), TODAY) == 50


def test_no_due_date_means_no_boost() -> None:
    assert calculate_urgency_boost(None, TODAY) == 0


def test_half_values_round_up() -> None:
    assert round_half_up(2.5) == 3
    assert round_half_up(12.5) == 13
    assert round_half_up(14.28) == 14
    # 100 / 8 = 12.5 days out -> 13
    assert calculate_urgency_boost(datetime(2024, 6, 18, 0, 0), TODAY) == 13


def test_context_switch_penalty_uses_previous_peer() -> None:
    first = _task("a", context="work")
    second = _task("b", context="home")
    third = _task("c", context="home")
    peers = [first, second, third]

    assert calculate_context_switch_penalty(first, peers) == 0
    assert calculate_context_switch_penalty(second, peers) == 5
    assert calculate_context_switch_penalty(third, peers) == 0


def test_score_formula() -> None:
    task = _task("a", urgency=7, importance=6, due=datetime(2024, 6, 17, 0, 0))

    assert calculate_score(task, [task], TODAY) == 7 * 10 + 6 * 8 + 14


def test_score_is_reproducible() -> None:
    peers = [_task("a", context="work"), _task("b", context="home", due=datetime(2024, 6, 12))]

    scores = {calculate_score(peers[1], peers, TODAY) for _ in range(5)}

    assert len(scores) == 1


def test_map_importance_buckets() -> None:
    assert [map_importance(level) for level in (1, 3, 4, 7, 8, 10)] == [
        "low",
        "low",
        "normal",
        "normal",
        "high",
        "high",
    ]
