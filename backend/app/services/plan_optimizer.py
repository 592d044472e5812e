"""Build an ordered, time-boxed plan from enriched candidate tasks."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Sequence, Set

from app.services.planning_types import EnrichedTask, PlannedDayMeta
from app.services.workload_validator import FALLBACK_CONTEXT, calculate_planned_day_meta

DependencyGraph = Dict[str, List[str]]


@dataclass(frozen=True)
class OptimizedPlan:
    plan: List[EnrichedTask]
    meta: PlannedDayMeta

    def to_dict(self) -> Dict[str, object]:
        return {"plan": [task.id for task in self.plan], "meta": self.meta.to_dict()}


def group_tasks_by_context(tasks: Sequence[EnrichedTask]) -> Dict[str, List[EnrichedTask]]:
    """Group tasks by context in first-seen order; members keep their relative order."""
    groups: Dict[str, List[EnrichedTask]] = {}
    for task in tasks:
        groups.setdefault(task.context or FALLBACK_CONTEXT, []).append(task)
    return groups


def optimize_task_order(tasks: Sequence[EnrichedTask], time_budget: int) -> List[EnrichedTask]:
    """
    Fill the budget group by group, best group first.

    Groups are ranked by the score of their first member. A group that fits is
    taken whole; otherwise only its members that individually fit the budget
    left at that point are taken. Every group is considered, so small tasks in
    lower-ranked groups can still use leftover time.
    """
    groups = sorted(group_tasks_by_context(tasks).values(), key=lambda members: members[0].score, reverse=True)

    plan: List[EnrichedTask] = []
    remaining = time_budget
    for members in groups:
        group_time = sum(task.est_time for task in members)
        if group_time <= remaining:
            plan.extend(members)
            remaining -= group_time
            continue
        partial = [task for task in members if task.est_time <= remaining]
        plan.extend(partial)
        remaining -= sum(task.est_time for task in partial)
    return plan


def build_dependency_graph(tasks: Sequence[EnrichedTask]) -> DependencyGraph:
    """Map each parent task id to the ids of the tasks that depend on it."""
    graph: DependencyGraph = {}
    for task in tasks:
        if task.parent_task_id:
            graph.setdefault(task.parent_task_id, []).append(task.id)
    return graph


def topological_sort(tasks: Sequence[EnrichedTask], dependencies: DependencyGraph) -> List[EnrichedTask]:
    """
    Order tasks so every parent in the list comes before its dependents.

    Roots (tasks that are not listed as anyone's dependent) are walked in list
    order; a final sweep picks up tasks whose parent is outside the list or
    that sit on a cycle. Each task is emitted exactly once.
    """
    task_map = {task.id: task for task in tasks}
    dependents: Set[str] = {child for children in dependencies.values() for child in children}
    visited: Set[str] = set()
    result: List[EnrichedTask] = []

    def visit(task_id: str) -> None:
        if task_id in visited or task_id not in task_map:
            return
        visited.add(task_id)
        task = task_map[task_id]
        if task.parent_task_id:
            visit(task.parent_task_id)
        result.append(task)
        for child_id in dependencies.get(task_id, []):
            visit(child_id)

    for task in tasks:
        if task.id not in dependents:
            visit(task.id)
    for task in tasks:
        visit(task.id)
    return result


def generate_optimized_plan(candidates: Sequence[EnrichedTask], time_budget: int) -> OptimizedPlan:
    ordered = optimize_task_order(candidates, time_budget)
    dependencies = build_dependency_graph(ordered)
    if dependencies:
        ordered = topological_sort(ordered, dependencies)
    return OptimizedPlan(plan=ordered, meta=calculate_planned_day_meta(ordered, time_budget))
