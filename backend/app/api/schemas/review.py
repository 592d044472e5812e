"""Schemas for the review analytics endpoint."""
from __future__ import annotations

from datetime import date, datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel


class EnergyMinutes(BaseModel):
    low: int = 0
    medium: int = 0
    high: int = 0


class DailyEnergy(BaseModel):
    day: date
    low: int = 0
    medium: int = 0
    high: int = 0


class BurnoutRisk(BaseModel):
    risk_level: Literal["low", "medium", "high"]
    high_energy_minutes: int
    threshold: int


class CompletedTaskItem(BaseModel):
    task_id: str
    title: str
    completed_at: datetime
    est_time: Optional[int]
    context: Optional[str]
    energy: Optional[str]
    list_name: Optional[str]


class ReviewSummary(BaseModel):
    user_id: str
    range_days: int
    since: datetime
    completed_count: int
    total_minutes: int
    energy_minutes: EnergyMinutes
    context_minutes: Dict[str, int]
    daily: List[DailyEnergy]
    burnout: BurnoutRisk
    recent: List[CompletedTaskItem]


class ReviewSummaryResponse(ReviewSummary):
    request_id: str
