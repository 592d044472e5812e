"""Schemas for the stateless planning engine endpoints."""
from __future__ import annotations

from datetime import date, datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

from app.services.planning_types import (
    CalendarEvent,
    ChecklistItem,
    PlanItem,
    PlannedDayMeta,
    Task,
    TaskKind,
)
from app.services.property_parser import extract_description
from app.services.timeline_layout import PositionedItem, TimelineLayout


class ChecklistItemPayload(BaseModel):
    id: str
    display_name: str
    checked: bool = False


class TaskPayload(BaseModel):
    id: str
    title: str
    body: str = ""
    list_id: str = ""
    list_name: str = ""
    due: Optional[datetime] = None
    due_time_zone: Optional[str] = None
    checklist_items: List[ChecklistItemPayload] = Field(default_factory=list)

    def to_domain(self) -> Task:
        return Task(
            id=self.id,
            title=self.title,
            body=self.body,
            list_id=self.list_id,
            list_name=self.list_name,
            due=self.due,
            due_time_zone=self.due_time_zone,
            checklist_items=tuple(
                ChecklistItem(id=item.id, display_name=item.display_name, checked=item.checked)
                for item in self.checklist_items
            ),
        )


class TaskAttributesPayload(BaseModel):
    est_time: int
    urgency: int
    importance: int
    energy: str
    context: str
    start_date: Optional[str] = None
    sequence: Optional[int] = None
    parent_task_id: Optional[str] = None
    suggested_start: Optional[str] = None


class TaskView(BaseModel):
    kind: Literal["plain", "enriched"]
    id: str
    title: str
    description: str
    list_id: str
    list_name: str
    due: Optional[datetime]
    checklist_items: List[ChecklistItemPayload]
    score: int
    attributes: Optional[TaskAttributesPayload] = None

    @classmethod
    def from_domain(cls, item: PlanItem) -> "TaskView":
        attributes = None
        if item.kind is TaskKind.ENRICHED:
            attrs = item.attributes
            attributes = TaskAttributesPayload(
                est_time=attrs.est_time,
                urgency=attrs.urgency,
                importance=attrs.importance,
                energy=attrs.energy,
                context=attrs.context,
                start_date=attrs.start_date,
                sequence=attrs.sequence,
                parent_task_id=attrs.parent_task_id,
                suggested_start=attrs.suggested_start,
            )
        return cls(
            kind=item.kind.value,
            id=item.id,
            title=item.title,
            description=extract_description(item.body),
            list_id=item.list_id,
            list_name=item.list_name,
            due=item.due,
            checklist_items=[
                ChecklistItemPayload(id=entry.id, display_name=entry.display_name, checked=entry.checked)
                for entry in item.checklist_items
            ],
            score=item.score,
            attributes=attributes,
        )


class CalendarEventPayload(BaseModel):
    id: str
    summary: str = ""
    start: datetime
    end: datetime

    @model_validator(mode="after")
    def _end_after_start(self) -> "CalendarEventPayload":
        if self.end < self.start:
            raise ValueError("event end must not be before its start")
        return self

    def to_domain(self) -> CalendarEvent:
        return CalendarEvent(id=self.id, summary=self.summary, start=self.start, end=self.end)

    @classmethod
    def from_domain(cls, event: CalendarEvent) -> "CalendarEventPayload":
        return cls(id=event.id, summary=event.summary, start=event.start, end=event.end)


class EnergyLoadPayload(BaseModel):
    low: int
    medium: int
    high: int


class PlannedDayMetaPayload(BaseModel):
    total_min: int
    energy_load: EnergyLoadPayload
    warnings: List[str]

    @classmethod
    def from_domain(cls, meta: PlannedDayMeta) -> "PlannedDayMetaPayload":
        return cls.model_validate(meta.to_dict())


class ProcessRequest(BaseModel):
    tasks: List[TaskPayload]
    today: Optional[date] = None


class ProcessResponse(BaseModel):
    enriched: List[TaskView]
    review: List[TaskView]
    request_id: str


class PlanRequest(BaseModel):
    tasks: List[TaskPayload]
    time_budget: int
    today: Optional[date] = None


class PlanResponse(BaseModel):
    plan: List[TaskView]
    meta: PlannedDayMetaPayload
    request_id: str


class PositionedItemPayload(BaseModel):
    id: str
    title: str
    type: Literal["event", "task", "subtask"]
    start: datetime
    start_minute: float
    duration_min: float
    offset: float
    width: float
    level: int
    parent_task_id: Optional[str] = None
    context: Optional[str] = None
    manual: bool = False

    @classmethod
    def from_domain(cls, item: PositionedItem) -> "PositionedItemPayload":
        return cls(
            id=item.id,
            title=item.title,
            type=item.type.value,
            start=item.start,
            start_minute=item.start_minute,
            duration_min=item.duration_min,
            offset=item.offset,
            width=item.width,
            level=item.level,
            parent_task_id=item.parent_task_id,
            context=item.context,
            manual=item.manual,
        )


class TimelineRequest(BaseModel):
    tasks: List[TaskPayload] = Field(default_factory=list)
    events: List[CalendarEventPayload] = Field(default_factory=list)
    manual_overrides: Dict[str, datetime] = Field(default_factory=dict)
    now: Optional[datetime] = None


class TimelineResponse(BaseModel):
    empty: bool
    items: List[PositionedItemPayload] = Field(default_factory=list)
    current_time_offset: Optional[float] = None
    total_levels: int = 0
    request_id: str

    @classmethod
    def from_layout(cls, result: Optional[TimelineLayout], request_id: str) -> "TimelineResponse":
        if result is None:
            return cls(empty=True, request_id=request_id)
        return cls(
            empty=False,
            items=[PositionedItemPayload.from_domain(item) for item in result.items],
            current_time_offset=result.current_time_offset,
            total_levels=result.total_levels,
            request_id=request_id,
        )


class DragRequest(BaseModel):
    item_id: str
    drop_offset: float
    manual_overrides: Dict[str, datetime] = Field(default_factory=dict)
    now: Optional[datetime] = None


class DragResponse(BaseModel):
    manual_overrides: Dict[str, datetime]
    request_id: str


class TimeBudgetRequest(BaseModel):
    events: List[CalendarEventPayload] = Field(default_factory=list)
    now: Optional[datetime] = None


class TimeBudgetResponse(BaseModel):
    available_minutes: int
    request_id: str
