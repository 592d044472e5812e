"""Classify raw tasks into enriched and needs-review buckets."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Iterable, List, Optional, Sequence

from app.services.planning_types import EnrichedTask, PlanItem, Task, TaskKind, TaskList
from app.services.property_parser import NO_START_DATE, parse_start_date, parse_task_properties
from app.services.scoring import calculate_score

logger = logging.getLogger(__name__)

SORT_FIELDS = ("score", "due_date")
ALL_CONTEXTS = "all"


@dataclass
class ProcessedTasks:
    enriched_tasks: List[EnrichedTask] = field(default_factory=list)
    review_tasks: List[Task] = field(default_factory=list)


@dataclass
class PlanPartition:
    """Tasks split against the plan list: the current plan, what can still be planned, and what needs review."""

    plan: List[PlanItem] = field(default_factory=list)
    available: List[EnrichedTask] = field(default_factory=list)
    review: List[Task] = field(default_factory=list)


def process_tasks(raw_tasks: Iterable[Task], today: date) -> ProcessedTasks:
    """
    Parse every raw task exactly once.

    Tasks with a valid properties block are wrapped as EnrichedTask and scored
    with the enriched set (in input order) as the peer context. The enriched
    output is sorted by score, highest first; ties keep their input order.
    """
    enriched: List[EnrichedTask] = []
    review: List[Task] = []
    for task in raw_tasks:
        attributes = parse_task_properties(task.body)
        if attributes is None:
            review.append(task)
        else:
            enriched.append(EnrichedTask(task=task, attributes=attributes))

    scored = [task.with_score(calculate_score(task, enriched, today)) for task in enriched]
    scored.sort(key=lambda task: task.score, reverse=True)
    logger.debug("Processed %s tasks: %s enriched, %s for review", len(scored) + len(review), len(scored), len(review))
    return ProcessedTasks(enriched_tasks=scored, review_tasks=review)


def is_candidate(task: EnrichedTask, today: date) -> bool:
    raw_start = task.start_date
    if not raw_start or raw_start.lower() == NO_START_DATE.lower():
        return True
    start = parse_start_date(raw_start)
    if start is None:
        logger.debug("Task %s has an unreadable start date %r; leaving it out of the plan", task.id, raw_start)
        return False
    return start <= today


def select_candidates(tasks: Sequence[EnrichedTask], today: date) -> List[EnrichedTask]:
    """Enriched tasks whose start date is missing or on/before ``today``."""
    return [task for task in tasks if is_candidate(task, today)]


def partition_by_plan_list(processed: ProcessedTasks, plan_list: Optional[TaskList]) -> PlanPartition:
    if plan_list is None:
        return PlanPartition(available=list(processed.enriched_tasks), review=list(processed.review_tasks))

    partition = PlanPartition()
    for task in processed.enriched_tasks:
        if task.list_id == plan_list.id:
            partition.plan.append(task)
        else:
            partition.available.append(task)
    for raw in processed.review_tasks:
        if raw.list_id == plan_list.id:
            partition.plan.append(raw)
        else:
            partition.review.append(raw)
    partition.plan.sort(key=lambda item: item.score, reverse=True)
    return partition


def filter_and_sort_tasks(
    tasks: Sequence[PlanItem],
    context: str = ALL_CONTEXTS,
    sort_by: str = "score",
    descending: bool = True,
) -> List[PlanItem]:
    """Filter by context keyword and sort by score or due date; missing values sort as 0."""
    if context != ALL_CONTEXTS:
        selected = [task for task in tasks if task.kind is TaskKind.ENRICHED and task.context == context]
    else:
        selected = list(tasks)

    if sort_by == "score":
        selected.sort(key=lambda task: task.score, reverse=descending)
    elif sort_by == "due_date":
        selected.sort(key=_due_sort_key, reverse=descending)
    return selected


def _due_sort_key(task: PlanItem) -> float:
    due: Optional[datetime] = task.due
    if due is None:
        return 0.0
    return due.timestamp()
