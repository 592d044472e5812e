"""Workload checks for a generated day plan."""
from __future__ import annotations

from typing import List, Sequence

from app.services.planning_types import EnergyLoad, EnrichedTask, PlannedDayMeta
from app.services.scoring import round_half_up

CONTEXT_SWITCH_COST_MINUTES = 3
OVERLOAD_THRESHOLD = 1.15
HIGH_ENERGY_LIMIT_PERCENT = 40
MAX_CONTEXT_SWITCHES_PER_DAY = 8
FALLBACK_CONTEXT = "other"

HIGH_ENERGY_WARNING = "High-energy tasks exceed recommended limit"
CONTEXT_SWITCH_WARNING = "Too many context switches may reduce productivity"
NO_BUDGET_WARNING = "Planned time exceeds budget (no time available)"


def calculate_context_switch_cost(plan: Sequence[EnrichedTask]) -> int:
    total_cost = 0
    previous = ""
    for task in plan:
        current = task.context or FALLBACK_CONTEXT
        if previous and current != previous:
            total_cost += CONTEXT_SWITCH_COST_MINUTES
        previous = current
    return total_cost


def calculate_planned_day_meta(plan: Sequence[EnrichedTask], time_budget: int) -> PlannedDayMeta:
    total_min = sum(task.est_time for task in plan)
    energy_load = EnergyLoad(
        low=sum(task.est_time for task in plan if task.energy == "low"),
        medium=sum(task.est_time for task in plan if task.energy == "medium"),
        high=sum(task.est_time for task in plan if task.energy == "high"),
    )

    warnings: List[str] = []
    if total_min > time_budget * OVERLOAD_THRESHOLD:
        if time_budget > 0:
            overage = round_half_up((total_min / time_budget - 1) * 100)
            warnings.append(f"Planned time exceeds budget by {overage}%")
        else:
            warnings.append(NO_BUDGET_WARNING)
    if energy_load.high > time_budget * HIGH_ENERGY_LIMIT_PERCENT / 100:
        warnings.append(HIGH_ENERGY_WARNING)
    if calculate_context_switch_cost(plan) > MAX_CONTEXT_SWITCHES_PER_DAY * CONTEXT_SWITCH_COST_MINUTES:
        warnings.append(CONTEXT_SWITCH_WARNING)

    return PlannedDayMeta(total_min=total_min, energy_load=energy_load, warnings=tuple(warnings))


def detect_workload_issues(meta: PlannedDayMeta) -> bool:
    return bool(meta.warnings)
