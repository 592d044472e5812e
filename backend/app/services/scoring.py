"""Priority scoring for enriched tasks."""
from __future__ import annotations

import math
from datetime import date, datetime, time
from typing import Optional, Sequence

from app.services.planning_types import EnrichedTask, to_local_naive

URGENCY_WEIGHT = 10
IMPORTANCE_WEIGHT = 8
DUE_NOW_BOOST = 150
DUE_SOON_WINDOW_DAYS = 14
DUE_SOON_BOOST = 100
CONTEXT_SWITCH_PENALTY = 5


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def days_until_due(due: datetime, today: date) -> int:
    """Whole days from local midnight of ``today`` to ``due``, rounded up."""
    delta = to_local_naive(due) - datetime.combine(today, time.min)
    return math.ceil(delta.total_seconds() / 86400)


def calculate_urgency_boost(due: Optional[datetime], today: date) -> int:
    if due is None:
        return 0
    days = days_until_due(due, today)
    if days <= 0:
        return DUE_NOW_BOOST
    if days <= DUE_SOON_WINDOW_DAYS:
        return round_half_up(DUE_SOON_BOOST / days)
    return 0


def calculate_context_switch_penalty(task: EnrichedTask, peers: Sequence[EnrichedTask]) -> int:
    """Penalty when the peer just before ``task`` in ``peers`` works in another context."""
    index = next((position for position, peer in enumerate(peers) if peer.id == task.id), -1)
    if index > 0 and peers[index - 1].context != task.context:
        return CONTEXT_SWITCH_PENALTY
    return 0


def calculate_score(task: EnrichedTask, peers: Sequence[EnrichedTask], today: date) -> int:
    """
    Score a task against an explicit peer ordering.

    urgency * 10 + importance * 8 + due-date boost - context switch penalty.
    """
    return (
        task.urgency * URGENCY_WEIGHT
        + task.importance * IMPORTANCE_WEIGHT
        + calculate_urgency_boost(task.due, today)
        - calculate_context_switch_penalty(task, peers)
    )


def map_importance(level: int) -> str:
    """Translate a 1-10 importance into the task store's low/normal/high scale."""
    if level <= 3:
        return "low"
    if level <= 7:
        return "normal"
    return "high"
