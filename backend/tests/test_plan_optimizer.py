"""Tests for context grouping, budget filling and dependency ordering."""
from __future__ import annotations

from typing import Optional

from app.services.plan_optimizer import (
    build_dependency_graph,
    generate_optimized_plan,
    group_tasks_by_context,
    optimize_task_order,
    topological_sort,
)
from app.services.planning_types import EnrichedTask, Task, TaskAttributes


def _task(
    task_id: str,
    est_time: int,
    score: int,
    context: str = "work",
    energy: str = "medium",
    parent: Optional[str] = None,
) -> EnrichedTask:
    return EnrichedTask(
        task=Task(id=task_id, title=f"Task {task_id}"),
        attributes=TaskAttributes(
            est_time=est_time,
            urgency=5,
            importance=5,
            energy=energy,
            context=context,
            parent_task_id=parent,
        ),
        score=score,
    )


def _ids(tasks) -> list:
    return [task.id for task in tasks]


def test_groups_keep_first_seen_order() -> None:
    tasks = [_task("a", 10, 50, "work"), _task("b", 10, 40, "home"), _task("c", 10, 30, "work")]

    groups = group_tasks_by_context(tasks)

    assert list(groups) == ["work", "home"]
    assert _ids(groups["work"]) == ["a", "c"]


def test_task_longer_than_budget_is_excluded() -> None:
    plan = optimize_task_order([_task("big", 200, 100)], 60)

    assert plan == []


def test_whole_group_taken_when_it_fits() -> None:
    tasks = [
        _task("w1", 30, 90, "work"),
        _task("w2", 20, 80, "work"),
        _task("h1", 30, 70, "home"),
    ]

    plan = optimize_task_order(tasks, 100)

    assert _ids(plan) == ["w1", "w2", "h1"]


def test_partial_group_takes_members_that_fit() -> None:
    tasks = [
        _task("w1", 50, 90, "work"),
        _task("w2", 80, 80, "work"),
        _task("w3", 20, 70, "work"),
    ]

    plan = optimize_task_order(tasks, 90)

    assert _ids(plan) == ["w1", "w3"]


def test_lower_ranked_groups_use_leftover_time() -> None:
    tasks = [
        _task("w1", 100, 90, "work"),
        _task("h1", 15, 60, "home"),
        _task("e1", 10, 50, "email"),
    ]

    plan = optimize_task_order(tasks, 120)

    assert _ids(plan) == ["w1", "h1"]
    assert sum(task.est_time for task in plan) <= 120


def test_partial_group_checks_each_member_against_the_same_leftover() -> None:
    tasks = [
        _task("w1", 60, 90, "work"),
        _task("w2", 80, 85, "work"),
        _task("h1", 30, 50, "home"),
    ]

    plan = optimize_task_order(tasks, 100)

    assert _ids(plan) == ["w1", "w2"]
    assert sum(task.est_time for task in plan) == 140


def test_lower_ranked_group_fills_time_left_by_a_partial_group() -> None:
    tasks = [
        _task("w1", 70, 90, "work"),
        _task("w2", 120, 85, "work"),
        _task("h1", 20, 50, "home"),
        _task("e1", 20, 40, "email"),
    ]

    plan = optimize_task_order(tasks, 100)

    assert _ids(plan) == ["w1", "h1"]


def test_groups_ranked_by_first_member_score() -> None:
    tasks = [
        _task("h1", 10, 40, "home"),
        _task("w1", 10, 95, "work"),
        _task("h2", 10, 30, "home"),
    ]

    plan = optimize_task_order(tasks, 60)

    assert _ids(plan) == ["w1", "h1", "h2"]


def test_parent_precedes_dependent_regardless_of_input_order() -> None:
    child = _task("b", 10, 90, parent="a")
    parent = _task("a", 10, 10)

    result = generate_optimized_plan([child, parent], 60)

    assert _ids(result.plan) == ["a", "b"]


def test_dependency_graph_maps_parent_to_children() -> None:
    tasks = [_task("a", 10, 1), _task("b", 10, 1, parent="a"), _task("c", 10, 1, parent="a")]

    assert build_dependency_graph(tasks) == {"a": ["b", "c"]}


def test_topological_sort_keeps_tasks_with_external_parent() -> None:
    tasks = [_task("x", 10, 1, parent="missing"), _task("y", 10, 1)]

    ordered = topological_sort(tasks, build_dependency_graph(tasks))

    assert sorted(_ids(ordered)) == ["x", "y"]


def test_cycle_emits_each_task_once() -> None:
    tasks = [_task("a", 10, 1, parent="b"), _task("b", 10, 1, parent="a"), _task("c", 10, 1)]

    ordered = topological_sort(tasks, build_dependency_graph(tasks))

    assert sorted(_ids(ordered)) == ["a", "b", "c"]
    assert len(ordered) == 3


def test_plan_meta_summarises_selected_tasks() -> None:
    tasks = [
        _task("w1", 30, 90, "work", energy="high"),
        _task("h1", 20, 50, "home", energy="low"),
        _task("big", 500, 10, "other"),
    ]

    result = generate_optimized_plan(tasks, 100)

    assert result.meta.total_min == 50
    assert result.meta.energy_load.high == 30
    assert result.meta.energy_load.low == 20
    assert result.meta.warnings == ()
    assert result.to_dict()["plan"] == ["w1", "h1"]
