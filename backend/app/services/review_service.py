"""Aggregations over the completed-task log for the review page."""
from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Dict, List, Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session

from app.api.schemas.review import (
    BurnoutRisk,
    CompletedTaskItem,
    DailyEnergy,
    EnergyMinutes,
    ReviewSummary,
)
from app.db.models.completed_task import CompletedTask
from app.services.planning_types import ENERGY_LEVELS

BURNOUT_THRESHOLD_MIN = 300
BURNOUT_MEDIUM_MIN = 150
RECENT_LIMIT = 10
UNKNOWN_CONTEXT = "other"


def burnout_risk_level(high_energy_minutes: int) -> str:
    if high_energy_minutes > BURNOUT_THRESHOLD_MIN:
        return "high"
    if high_energy_minutes > BURNOUT_MEDIUM_MIN:
        return "medium"
    return "low"


def get_review_summary(
    db: Session,
    user_id: str,
    range_days: int = 7,
    now: Optional[datetime] = None,
) -> ReviewSummary:
    now = now or datetime.now(timezone.utc)
    since = now - timedelta(days=range_days)

    rows: List[CompletedTask] = (
        db.query(CompletedTask)
        .filter(CompletedTask.user_id == user_id, CompletedTask.completed_at >= since)
        .order_by(desc(CompletedTask.completed_at))
        .all()
    )

    energy: Dict[str, int] = {level: 0 for level in ENERGY_LEVELS}
    contexts: Dict[str, int] = {}
    daily: Dict[date, Dict[str, int]] = {}
    total_minutes = 0
    for row in rows:
        minutes = row.est_time or 0
        total_minutes += minutes
        context = row.context or UNKNOWN_CONTEXT
        contexts[context] = contexts.get(context, 0) + minutes
        day_bucket = daily.setdefault(row.completed_at.date(), {level: 0 for level in ENERGY_LEVELS})
        if row.energy in energy:
            energy[row.energy] += minutes
            day_bucket[row.energy] += minutes

    high_minutes = energy["high"]
    return ReviewSummary(
        user_id=user_id,
        range_days=range_days,
        since=since,
        completed_count=len(rows),
        total_minutes=total_minutes,
        energy_minutes=EnergyMinutes(**energy),
        context_minutes=contexts,
        daily=[DailyEnergy(day=day, **bucket) for day, bucket in sorted(daily.items())],
        burnout=BurnoutRisk(
            risk_level=burnout_risk_level(high_minutes),
            high_energy_minutes=high_minutes,
            threshold=BURNOUT_THRESHOLD_MIN,
        ),
        recent=[
            CompletedTaskItem(
                task_id=row.task_id,
                title=row.title,
                completed_at=row.completed_at,
                est_time=row.est_time,
                context=row.context,
                energy=row.energy,
                list_name=row.list_name,
            )
            for row in rows[:RECENT_LIMIT]
        ],
    )
