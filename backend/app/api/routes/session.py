"""Planner session endpoints backed by the configured collaborators."""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from app.api.schemas.planner import CalendarEventPayload, PlannedDayMetaPayload, TaskView, TimelineResponse
from app.api.schemas.session import (
    BatchFailurePayload,
    ChecklistUpdateRequest,
    CompleteResponse,
    DismissWarningRequest,
    EnrichBatchResponse,
    EnrichResponse,
    ExportResponse,
    GeneratePlanRequest,
    RefreshRequest,
    SessionDragRequest,
    SessionStateResponse,
)
from app.observability.metrics import log_metric
from app.observability.tracing import trace
from app.services.errors import CollaboratorError, EstimationError, PlannerError, TaskNotFoundError
from app.services.planner_session import PlannerSession, get_planner_session

router = APIRouter(prefix="/session", tags=["session"])
logger = logging.getLogger(__name__)


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or ""


def _to_http_error(exc: PlannerError) -> HTTPException:
    if isinstance(exc, TaskNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, (CollaboratorError, EstimationError)):
        logger.warning("Planner collaborator failure: %s", exc)
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


def _state_response(
    session: PlannerSession,
    request_id: str,
    context: str = "all",
    sort_by: str = "score",
    descending: bool = True,
) -> SessionStateResponse:
    state = session.state
    view = session.view(context=context, sort_by=sort_by, descending=descending)
    return SessionStateResponse(
        todays_plan=[TaskView.from_domain(task) for task in view.todays_plan],
        available=[TaskView.from_domain(task) for task in view.available],
        needs_review=[TaskView.from_domain(task) for task in view.needs_review],
        contexts=view.contexts,
        warnings=list(state.warnings),
        plan_meta=PlannedDayMetaPayload.from_domain(state.plan_meta) if state.plan_meta else None,
        time_budget=state.time_budget,
        calendar_events=[CalendarEventPayload.from_domain(event) for event in state.calendar_events],
        manual_overrides=dict(state.manual_overrides),
        refreshed_at=state.refreshed_at,
        request_id=request_id,
    )


@router.get("/state", response_model=SessionStateResponse)
def get_state(
    request: Request,
    context: str = Query("all", description="Context keyword or 'all'"),
    sort_by: str = Query("score", pattern="^(score|due_date)$"),
    direction: str = Query("desc", pattern="^(asc|desc)$"),
    session: PlannerSession = Depends(get_planner_session),
) -> SessionStateResponse:
    return _state_response(session, _request_id(request), context, sort_by, direction == "desc")


@router.post("/refresh", response_model=SessionStateResponse)
def refresh(
    request: Request,
    payload: Optional[RefreshRequest] = None,
    session: PlannerSession = Depends(get_planner_session),
) -> SessionStateResponse:
    """Reload tasks (and optionally today's calendar) from the collaborators."""
    include_calendar = payload.include_calendar if payload else True
    try:
        session.refresh()
        if include_calendar:
            session.load_calendar()
    except PlannerError as exc:
        raise _to_http_error(exc) from exc
    return _state_response(session, _request_id(request))


@router.post("/plan", response_model=SessionStateResponse)
def generate_plan(
    request: Request,
    payload: Optional[GeneratePlanRequest] = None,
    session: PlannerSession = Depends(get_planner_session),
) -> SessionStateResponse:
    session.generate_plan(payload.time_budget if payload else None)
    return _state_response(session, _request_id(request))


@router.post("/export", response_model=ExportResponse)
def export_plan(request: Request, session: PlannerSession = Depends(get_planner_session)) -> ExportResponse:
    try:
        result = session.export_plan()
    except PlannerError as exc:
        raise _to_http_error(exc) from exc
    return ExportResponse(
        plan_list_id=result.plan_list_id,
        moved=result.moved,
        failures=[BatchFailurePayload(**failure.__dict__) for failure in result.failures],
        failed_count=result.failed_count,
        request_id=_request_id(request),
    )


@router.post("/tasks/{list_id}/{task_id}/enrich", response_model=EnrichResponse)
def enrich_task(
    list_id: str,
    task_id: str,
    request: Request,
    session: PlannerSession = Depends(get_planner_session),
) -> EnrichResponse:
    try:
        result = session.enrich_task(list_id, task_id)
    except PlannerError as exc:
        log_metric("planner.enrich.success", 0, metadata={"task_id": task_id})
        raise _to_http_error(exc) from exc
    log_metric("planner.enrich.success", 1, metadata={"task_id": task_id})
    return EnrichResponse(
        task_id=result.task_id,
        estimate=result.estimate.model_dump(by_alias=True),
        request_id=_request_id(request),
    )


@router.post("/enrich-review", response_model=EnrichBatchResponse)
def enrich_review_tasks(request: Request, session: PlannerSession = Depends(get_planner_session)) -> EnrichBatchResponse:
    try:
        with trace("planner.enrich_batch", metadata={"route": "/session/enrich-review"}):
            result = session.enrich_review_tasks()
    except PlannerError as exc:
        raise _to_http_error(exc) from exc
    return EnrichBatchResponse(
        attempted=result.attempted,
        enriched=result.enriched,
        failures=[BatchFailurePayload(**failure.__dict__) for failure in result.failures],
        request_id=_request_id(request),
        warning=result.warning,
    )


@router.post("/tasks/{list_id}/{task_id}/complete", response_model=CompleteResponse)
def complete_task(
    list_id: str,
    task_id: str,
    request: Request,
    session: PlannerSession = Depends(get_planner_session),
) -> CompleteResponse:
    try:
        result = session.complete_task(list_id, task_id)
    except PlannerError as exc:
        raise _to_http_error(exc) from exc
    return CompleteResponse(
        task_id=result.task_id,
        logged=result.logged,
        warning=result.warning,
        request_id=_request_id(request),
    )


@router.patch("/tasks/{list_id}/{task_id}/checklist/{item_id}", response_model=SessionStateResponse)
def update_checklist_item(
    list_id: str,
    task_id: str,
    item_id: str,
    payload: ChecklistUpdateRequest,
    request: Request,
    session: PlannerSession = Depends(get_planner_session),
) -> SessionStateResponse:
    try:
        session.update_checklist_item(
            list_id,
            task_id,
            item_id,
            checked=payload.checked,
            display_name=payload.display_name,
        )
    except PlannerError as exc:
        raise _to_http_error(exc) from exc
    return _state_response(session, _request_id(request))


@router.post("/warnings/dismiss", response_model=SessionStateResponse)
def dismiss_warning(
    payload: DismissWarningRequest,
    request: Request,
    session: PlannerSession = Depends(get_planner_session),
) -> SessionStateResponse:
    session.dismiss_warning(payload.warning)
    return _state_response(session, _request_id(request))


@router.get("/timeline", response_model=TimelineResponse)
def get_timeline(request: Request, session: PlannerSession = Depends(get_planner_session)) -> TimelineResponse:
    return TimelineResponse.from_layout(session.timeline(), _request_id(request))


@router.post("/timeline/drag", response_model=TimelineResponse)
def drag_timeline_item(
    payload: SessionDragRequest,
    request: Request,
    session: PlannerSession = Depends(get_planner_session),
) -> TimelineResponse:
    """Pin a dragged item and return the re-laid-out timeline."""
    session.pin_timeline_item(payload.item_id, payload.drop_offset, payload.now)
    return TimelineResponse.from_layout(session.timeline(payload.now), _request_id(request))
