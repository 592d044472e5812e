"""Tests for plan workload warnings."""
from __future__ import annotations

from app.services.planning_types import EnrichedTask, Task, TaskAttributes
from app.services.workload_validator import (
    CONTEXT_SWITCH_WARNING,
    HIGH_ENERGY_WARNING,
    NO_BUDGET_WARNING,
    calculate_context_switch_cost,
    calculate_planned_day_meta,
    detect_workload_issues,
)


def _task(task_id: str, est_time: int, context: str = "work", energy: str = "medium") -> EnrichedTask:
    return EnrichedTask(
        task=Task(id=task_id, title=task_id),
        attributes=TaskAttributes(est_time=est_time, urgency=5, importance=5, energy=energy, context=context),
    )


def test_overage_warning_reports_percentage() -> None:
    meta = calculate_planned_day_meta([_task("a", 120)], 100)

    assert meta.warnings == ("Planned time exceeds budget by 20%",)
    assert detect_workload_issues(meta)


def test_small_overage_within_tolerance_is_silent() -> None:
    meta = calculate_planned_day_meta([_task("a", 110)], 100)

    assert meta.warnings == ()
    assert not detect_workload_issues(meta)


def test_zero_budget_reports_no_time_available() -> None:
    meta = calculate_planned_day_meta([_task("a", 30, energy="low")], 0)

    assert meta.warnings == (NO_BUDGET_WARNING,)


def test_high_energy_share_warning() -> None:
    meta = calculate_planned_day_meta([_task("a", 50, energy="high"), _task("b", 40)], 100)

    assert HIGH_ENERGY_WARNING in meta.warnings
    assert meta.energy_load.to_dict() == {"low": 0, "medium": 40, "high": 50}


def test_context_switch_cost_counts_transitions() -> None:
    plan = [_task("a", 5, "work"), _task("b", 5, "home"), _task("c", 5, "home"), _task("d", 5, "work")]

    assert calculate_context_switch_cost(plan) == 6
    assert calculate_context_switch_cost([]) == 0


def test_too_many_switches_warns() -> None:
    plan = [_task(str(index), 5, "work" if index % 2 else "home") for index in range(10)]

    meta = calculate_planned_day_meta(plan, 1000)

    assert meta.warnings == (CONTEXT_SWITCH_WARNING,)
