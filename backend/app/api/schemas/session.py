"""Schemas for the planner session endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from app.api.schemas.planner import CalendarEventPayload, PlannedDayMetaPayload, TaskView


class SessionStateResponse(BaseModel):
    todays_plan: List[TaskView]
    available: List[TaskView]
    needs_review: List[TaskView]
    contexts: List[str]
    warnings: List[str]
    plan_meta: Optional[PlannedDayMetaPayload] = None
    time_budget: Optional[int] = None
    calendar_events: List[CalendarEventPayload] = Field(default_factory=list)
    manual_overrides: Dict[str, datetime] = Field(default_factory=dict)
    refreshed_at: Optional[datetime] = None
    request_id: str


class RefreshRequest(BaseModel):
    include_calendar: bool = True


class GeneratePlanRequest(BaseModel):
    time_budget: Optional[int] = Field(default=None, description="Minutes available; defaults to the calendar budget")


class BatchFailurePayload(BaseModel):
    item_id: str
    title: str
    message: str


class ExportResponse(BaseModel):
    plan_list_id: Optional[str]
    moved: List[str]
    failures: List[BatchFailurePayload]
    failed_count: int
    request_id: str


class EnrichResponse(BaseModel):
    task_id: str
    estimate: Dict[str, Any]
    request_id: str


class EnrichBatchResponse(BaseModel):
    attempted: int
    enriched: List[str]
    failures: List[BatchFailurePayload]
    request_id: str
    warning: Optional[str] = None


class CompleteResponse(BaseModel):
    task_id: str
    logged: bool
    warning: Optional[str] = None
    request_id: str


class ChecklistUpdateRequest(BaseModel):
    checked: Optional[bool] = None
    display_name: Optional[str] = Field(default=None, min_length=1)

    @model_validator(mode="after")
    def _has_change(self) -> "ChecklistUpdateRequest":
        if self.checked is None and self.display_name is None:
            raise ValueError("provide checked or display_name")
        return self


class DismissWarningRequest(BaseModel):
    warning: str


class SessionDragRequest(BaseModel):
    item_id: str
    drop_offset: float
    now: Optional[datetime] = None
