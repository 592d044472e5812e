"""Stateless planning engine endpoints."""
from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Request

from app.api.schemas.planner import (
    DragRequest,
    DragResponse,
    PlannedDayMetaPayload,
    PlanRequest,
    PlanResponse,
    ProcessRequest,
    ProcessResponse,
    TaskView,
    TimeBudgetRequest,
    TimeBudgetResponse,
    TimelineRequest,
    TimelineResponse,
)
from app.observability.metrics import log_metric, timed_metric
from app.observability.tracing import trace
from app.services.plan_optimizer import generate_optimized_plan
from app.services.task_processor import process_tasks, select_candidates
from app.services.time_budget import calculate_available_minutes
from app.services.timeline_layout import TimelineConfig, apply_drag_override, layout

router = APIRouter(prefix="/planner", tags=["planner"])


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or ""


def _today(requested: Optional[date]) -> date:
    return requested or date.today()


@router.post("/process", response_model=ProcessResponse)
def process(payload: ProcessRequest, request: Request) -> ProcessResponse:
    """Split tasks into scored, enriched tasks and tasks that need review."""
    request_id = _request_id(request)
    with trace("planner.process", metadata={"route": "/planner/process", "tasks": len(payload.tasks)}):
        processed = process_tasks([task.to_domain() for task in payload.tasks], _today(payload.today))

    log_metric("planner.process.review_tasks", len(processed.review_tasks))
    return ProcessResponse(
        enriched=[TaskView.from_domain(task) for task in processed.enriched_tasks],
        review=[TaskView.from_domain(task) for task in processed.review_tasks],
        request_id=request_id,
    )


@router.post("/plan", response_model=PlanResponse)
def plan(payload: PlanRequest, request: Request) -> PlanResponse:
    """Process the tasks, keep the ones that can start today and build the day plan."""
    request_id = _request_id(request)
    today = _today(payload.today)
    metadata = {"route": "/planner/plan", "tasks": len(payload.tasks), "time_budget": payload.time_budget}

    with timed_metric("planner.plan", metadata={"tasks": len(payload.tasks)}):
        with trace("planner.optimize", metadata=metadata):
            processed = process_tasks([task.to_domain() for task in payload.tasks], today)
            candidates = select_candidates(processed.enriched_tasks, today)
            result = generate_optimized_plan(candidates, payload.time_budget)

    log_metric("planner.plan.warnings", len(result.meta.warnings), metadata={"time_budget": payload.time_budget})
    return PlanResponse(
        plan=[TaskView.from_domain(task) for task in result.plan],
        meta=PlannedDayMetaPayload.from_domain(result.meta),
        request_id=request_id,
    )


@router.post("/timeline", response_model=TimelineResponse)
def timeline(payload: TimelineRequest, request: Request) -> TimelineResponse:
    request_id = _request_id(request)
    now = payload.now or datetime.now()
    with trace("planner.timeline", metadata={"route": "/planner/timeline", "events": len(payload.events)}):
        processed = process_tasks([task.to_domain() for task in payload.tasks], now.date())
        result = layout(
            processed.enriched_tasks,
            [event.to_domain() for event in payload.events],
            payload.manual_overrides,
            now,
            TimelineConfig.from_settings(),
        )
    return TimelineResponse.from_layout(result, request_id)


@router.post("/timeline/drag", response_model=DragResponse)
def timeline_drag(payload: DragRequest, request: Request) -> DragResponse:
    """Convert a drop position into a pinned start time."""
    overrides = apply_drag_override(
        payload.manual_overrides,
        payload.item_id,
        payload.drop_offset,
        payload.now or datetime.now(),
        TimelineConfig.from_settings(),
    )
    return DragResponse(manual_overrides=overrides, request_id=_request_id(request))


@router.post("/time-budget", response_model=TimeBudgetResponse)
def time_budget(payload: TimeBudgetRequest, request: Request) -> TimeBudgetResponse:
    available = calculate_available_minutes(
        [event.to_domain() for event in payload.events],
        payload.now or datetime.now(),
    )
    return TimeBudgetResponse(available_minutes=available, request_id=_request_id(request))
