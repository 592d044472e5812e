"""Stateful planner orchestration over the external collaborators.

The engine modules (scoring, optimizer, validator, layout) are pure. This
module owns the mutable ``PlannerState`` and is the only place that talks to
the task store, calendar, estimation service and completed-task log. Every
operation performs its collaborator I/O first and applies the outcome to the
state afterwards, so a failed call leaves the state untouched.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from functools import lru_cache
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from app.core.config import Settings, get_settings
from app.core.context import get_planner_user
from app.observability.metrics import log_metric
from app.observability.tracing import trace
from app.services.ai_estimator import AIEstimate
from app.services.collaborators.base import (
    CalendarSource,
    CompletedTaskLog,
    CompletedTaskRecord,
    EstimationService,
    TaskStore,
)
from app.services.collaborators.factory import (
    get_calendar_source,
    get_completed_task_log,
    get_estimation_service,
    get_task_store,
)
from app.services.errors import (
    BatchFailure,
    CollaboratorError,
    EnrichmentBatchResult,
    ExportResult,
    PlannerError,
    TaskNotFoundError,
)
from app.services.plan_optimizer import OptimizedPlan, generate_optimized_plan
from app.services.planning_types import (
    CalendarEvent,
    EnrichedTask,
    PlanItem,
    PlannedDayMeta,
    Task,
    TaskKind,
    TaskList,
)
from app.services.property_parser import build_task_body, extract_description, format_checklist_display_name
from app.services.scoring import map_importance
from app.services.task_processor import filter_and_sort_tasks, partition_by_plan_list, process_tasks, select_candidates
from app.services.time_budget import calculate_available_minutes
from app.services.timeline_layout import TimelineConfig, TimelineLayout, apply_drag_override, layout

logger = logging.getLogger(__name__)

COMPLETED_STATUS = "completed"
ANALYTICS_WARNING = "Task completed, but failed to save for analytics."
REFRESH_WARNING = "Failed to refresh tasks after enriching"


@dataclass(frozen=True)
class PlannerState:
    task_lists: Tuple[TaskList, ...] = ()
    all_enriched: Tuple[EnrichedTask, ...] = ()
    todays_plan: Tuple[PlanItem, ...] = ()
    available: Tuple[EnrichedTask, ...] = ()
    needs_review: Tuple[Task, ...] = ()
    calendar_events: Tuple[CalendarEvent, ...] = ()
    time_budget: Optional[int] = None
    plan_meta: Optional[PlannedDayMeta] = None
    warnings: Tuple[str, ...] = ()
    manual_overrides: Dict[str, datetime] = field(default_factory=dict)
    refreshed_at: Optional[datetime] = None

    def find_task(self, task_id: str) -> Optional[PlanItem]:
        for collection in (self.all_enriched, self.needs_review, self.todays_plan):
            for task in collection:
                if task.id == task_id:
                    return task
        return None

    def without_task(self, task_id: str) -> "PlannerState":
        return replace(
            self,
            all_enriched=tuple(task for task in self.all_enriched if task.id != task_id),
            todays_plan=tuple(task for task in self.todays_plan if task.id != task_id),
            available=tuple(task for task in self.available if task.id != task_id),
            needs_review=tuple(task for task in self.needs_review if task.id != task_id),
        )

    def with_checklist_item(self, task_id: str, item_id: str, **changes: Any) -> "PlannerState":
        def patch(task: Any) -> Any:
            return task.with_checklist_item(item_id, **changes) if task.id == task_id else task

        return replace(
            self,
            all_enriched=tuple(patch(task) for task in self.all_enriched),
            todays_plan=tuple(patch(task) for task in self.todays_plan),
            available=tuple(patch(task) for task in self.available),
            needs_review=tuple(patch(task) for task in self.needs_review),
        )


@dataclass(frozen=True)
class PlannerView:
    todays_plan: List[PlanItem]
    available: List[PlanItem]
    needs_review: List[PlanItem]
    contexts: List[str]


@dataclass(frozen=True)
class CompletionResult:
    task_id: str
    logged: bool
    warning: Optional[str] = None


@dataclass(frozen=True)
class EnrichmentResult:
    task_id: str
    estimate: AIEstimate
    state: PlannerState = field(repr=False)


class PlannerSession:
    """Owns one user's planner state; safe to call from several request threads."""

    def __init__(
        self,
        task_store: TaskStore,
        calendar: CalendarSource,
        estimator: EstimationService,
        completed_log: CompletedTaskLog,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._task_store = task_store
        self._calendar = calendar
        self._estimator = estimator
        self._completed_log = completed_log
        self._settings = settings or get_settings()
        self._clock = clock
        self._state = PlannerState()
        self._lock = threading.Lock()

    @property
    def state(self) -> PlannerState:
        with self._lock:
            return self._state

    def _apply(self, change: Callable[[PlannerState], PlannerState]) -> PlannerState:
        with self._lock:
            self._state = change(self._state)
            return self._state

    def _today(self) -> date:
        return self._clock().date()

    def _user_id(self) -> str:
        return get_planner_user() or self._settings.planner_user_id

    def refresh(self) -> PlannerState:
        """Reload every list, reprocess all tasks and split them against the plan list."""
        with trace("planner.process", metadata={"user_id": self._user_id()}):
            task_lists = self._task_store.list_lists()
            raw_tasks: List[Task] = []
            for task_list in task_lists:
                for task in self._task_store.list_tasks(task_list.id):
                    raw_tasks.append(replace(task, list_id=task_list.id, list_name=task_list.name))

            processed = process_tasks(raw_tasks, self._today())
            plan_list = _find_list(task_lists, self._settings.plan_list_name)
            partition = partition_by_plan_list(processed, plan_list)

        logger.info(
            "Refreshed %s tasks from %s lists: %s planned, %s available, %s need review",
            len(raw_tasks),
            len(task_lists),
            len(partition.plan),
            len(partition.available),
            len(partition.review),
        )
        return self._apply(
            lambda state: replace(
                state,
                task_lists=tuple(task_lists),
                all_enriched=tuple(processed.enriched_tasks),
                todays_plan=tuple(partition.plan),
                available=tuple(partition.available),
                needs_review=tuple(partition.review),
                refreshed_at=self._clock(),
            )
        )

    def load_calendar(self) -> PlannerState:
        """Fetch today's events and derive the free-time budget from them."""
        events = self._calendar.list_todays_events()
        budget = calculate_available_minutes(events, self._clock())
        logger.info("Loaded %s calendar events; ~%s minutes free", len(events), budget)
        return self._apply(lambda state: replace(state, calendar_events=tuple(events), time_budget=budget))

    def generate_plan(self, time_budget: Optional[int] = None) -> OptimizedPlan:
        snapshot = self.state
        budget = _resolve_budget(time_budget, snapshot.time_budget, self._settings.default_time_budget_min)
        candidates = select_candidates(snapshot.all_enriched, self._today())
        with trace("planner.optimize", metadata={"candidates": len(candidates), "time_budget": budget}):
            result = generate_optimized_plan(candidates, budget)
        plan_ids = {task.id for task in result.plan}

        self._apply(
            lambda state: replace(
                state,
                todays_plan=tuple(result.plan),
                available=tuple(task for task in state.all_enriched if task.id not in plan_ids),
                plan_meta=result.meta,
                warnings=result.meta.warnings,
            )
        )

        log_metric("planner.plan.total_min", result.meta.total_min, metadata={"time_budget": budget})
        logger.info(
            "Generated plan with %s of %s candidates (%s/%s min, %s warnings)",
            len(result.plan),
            len(candidates),
            result.meta.total_min,
            budget,
            len(result.meta.warnings),
        )
        return result

    def export_plan(self) -> ExportResult:
        """
        Move every plan item into the plan list.

        Each item is copied into the plan list and then deleted from its source
        list. Items are attempted independently; failures are collected and the
        successful moves are kept.
        """
        snapshot = self.state
        if not snapshot.todays_plan:
            raise PlannerError("There is no plan to export.")

        plan_list_name = self._settings.plan_list_name
        plan_list = _find_list(snapshot.task_lists, plan_list_name)
        created_list = plan_list is None
        if plan_list is None:
            logger.info("List %r not found; creating it", plan_list_name)
            plan_list = self._task_store.create_list(plan_list_name)

        result = ExportResult(plan_list_id=plan_list.id)
        moved: Dict[str, PlanItem] = {}
        for item in snapshot.todays_plan:
            if item.list_id == plan_list.id:
                continue
            importance = map_importance(item.importance) if item.kind is TaskKind.ENRICHED else "normal"
            try:
                copy = self._task_store.create_task(
                    plan_list.id,
                    title=item.title,
                    body=item.body,
                    due=item.due,
                    importance=importance,
                )
                self._task_store.delete_task(item.list_id, item.id)
            except CollaboratorError as exc:
                logger.warning("Failed to move task %s (%s) to %r: %s", item.id, item.title, plan_list_name, exc)
                result.failures.append(BatchFailure(item_id=item.id, title=item.title, message=str(exc)))
                continue
            moved[item.id] = _rehome(item, copy, plan_list)
            result.moved.append(item.id)

        def apply_export(state: PlannerState) -> PlannerState:
            lists = state.task_lists + (plan_list,) if created_list else state.task_lists
            return replace(
                state,
                task_lists=lists,
                all_enriched=tuple(task for task in state.all_enriched if task.id not in moved),
                available=tuple(task for task in state.available if task.id not in moved),
                todays_plan=tuple(moved.get(task.id, task) for task in state.todays_plan),
            )

        self._apply(apply_export)
        log_metric("planner.export.failed", result.failed_count, metadata={"moved": len(result.moved)})
        logger.info("Exported plan: %s moved, %s failed", len(result.moved), result.failed_count)
        return result

    def enrich_task(self, list_id: str, task_id: str) -> EnrichmentResult:
        task = self._require_task(list_id, task_id)
        estimate = self._enrich(task)
        state = self.refresh()
        return EnrichmentResult(task_id=task_id, estimate=estimate, state=state)

    def enrich_review_tasks(self) -> EnrichmentBatchResult:
        """Enrich every task that needs review, one at a time, and refresh once at the end."""
        pending = self.state.needs_review
        result = EnrichmentBatchResult(attempted=len(pending))
        for task in pending:
            try:
                self._enrich(task)
            except PlannerError as exc:
                logger.warning("Failed to enrich task %s (%s): %s", task.id, task.title, exc)
                result.failures.append(BatchFailure(item_id=task.id, title=task.title, message=str(exc)))
                continue
            result.enriched.append(task.id)

        if result.enriched:
            try:
                self.refresh()
            except PlannerError as exc:
                logger.warning("Enriched %s tasks but the refresh failed: %s", result.succeeded_count, exc)
                result.warning = REFRESH_WARNING
        logger.info("Enriched %s of %s review tasks", result.succeeded_count, result.attempted)
        return result

    def _enrich(self, task: PlanItem) -> AIEstimate:
        with trace("planner.enrich", metadata={"task_id": task.id, "list_id": task.list_id}):
            estimate = self._estimator.estimate(task)
            body = build_task_body(estimate.to_attributes(), extract_description(task.body))
            self._task_store.update_task(task.list_id, task.id, body=body)
            if estimate.subtasks:
                for item in task.checklist_items:
                    self._task_store.delete_checklist_item(task.list_id, task.id, item.id)
                for subtask in estimate.subtasks:
                    self._task_store.create_checklist_item(
                        task.list_id,
                        task.id,
                        format_checklist_display_name(subtask.title, subtask.est_time),
                    )
        return estimate

    def complete_task(self, list_id: str, task_id: str) -> CompletionResult:
        task = self.state.find_task(task_id)
        self._task_store.update_task(list_id, task_id, status=COMPLETED_STATUS)

        logged = False
        warning: Optional[str] = None
        if task is not None:
            try:
                self._completed_log.append(self._completion_record(task))
                logged = True
            except CollaboratorError as exc:
                logger.warning("Task %s completed but the completed-task log failed: %s", task_id, exc)
                warning = ANALYTICS_WARNING

        self._apply(lambda state: state.without_task(task_id))
        logger.info("Completed task %s (logged=%s)", task_id, logged)
        return CompletionResult(task_id=task_id, logged=logged, warning=warning)

    def _completion_record(self, task: PlanItem) -> CompletedTaskRecord:
        record = CompletedTaskRecord(
            task_id=task.id,
            user_id=self._user_id(),
            title=task.title,
            list_name=task.list_name or None,
        )
        if task.kind is TaskKind.ENRICHED:
            record = replace(
                record,
                est_time=task.est_time,
                urgency=task.urgency,
                importance=task.importance,
                context=task.context,
                energy=task.energy,
            )
        return record

    def update_checklist_item(
        self,
        list_id: str,
        task_id: str,
        item_id: str,
        *,
        checked: Optional[bool] = None,
        display_name: Optional[str] = None,
    ) -> PlannerState:
        self._require_task(list_id, task_id)
        self._task_store.update_checklist_item(list_id, task_id, item_id, checked=checked, display_name=display_name)
        changes = {key: value for key, value in {"checked": checked, "display_name": display_name}.items() if value is not None}
        return self._apply(lambda state: state.with_checklist_item(task_id, item_id, **changes))

    def dismiss_warning(self, warning: str) -> PlannerState:
        return self._apply(lambda state: replace(state, warnings=tuple(w for w in state.warnings if w != warning)))

    def view(self, context: str = "all", sort_by: str = "score", descending: bool = True) -> PlannerView:
        snapshot = self.state
        contexts = sorted({task.context for task in snapshot.all_enriched})
        return PlannerView(
            todays_plan=filter_and_sort_tasks(snapshot.todays_plan, context, sort_by, descending),
            available=filter_and_sort_tasks(snapshot.available, context, sort_by, descending),
            needs_review=filter_and_sort_tasks(snapshot.needs_review, context, sort_by, descending),
            contexts=contexts,
        )

    def timeline(self, now: Optional[datetime] = None) -> Optional[TimelineLayout]:
        snapshot = self.state
        with trace("planner.timeline", metadata={"items": len(snapshot.todays_plan)}):
            return layout(
                snapshot.todays_plan,
                snapshot.calendar_events,
                snapshot.manual_overrides,
                now or self._clock(),
                TimelineConfig.from_settings(self._settings),
            )

    def pin_timeline_item(self, item_id: str, drop_offset: float, now: Optional[datetime] = None) -> Dict[str, datetime]:
        """Record a dragged item's new start as a manual override for later layouts."""
        config = TimelineConfig.from_settings(self._settings)
        moment = now or self._clock()
        state = self._apply(
            lambda current: replace(
                current,
                manual_overrides=apply_drag_override(current.manual_overrides, item_id, drop_offset, moment, config),
            )
        )
        return dict(state.manual_overrides)

    def _require_task(self, list_id: str, task_id: str) -> PlanItem:
        task = self.state.find_task(task_id)
        if task is None or task.list_id != list_id:
            raise TaskNotFoundError(task_id)
        return task


def _find_list(task_lists: Sequence[TaskList], name: str) -> Optional[TaskList]:
    return next((task_list for task_list in task_lists if task_list.name == name), None)


def _resolve_budget(requested: Optional[int], calendar_budget: Optional[int], default: int) -> int:
    if requested is not None:
        return requested
    if calendar_budget is not None:
        return calendar_budget
    return default


def _rehome(item: PlanItem, copy: Task, plan_list: TaskList) -> PlanItem:
    moved = replace(copy, list_id=plan_list.id, list_name=plan_list.name)
    if item.kind is TaskKind.ENRICHED:
        return replace(item, task=moved)
    return moved


@lru_cache
def get_planner_session() -> PlannerSession:
    return PlannerSession(
        task_store=get_task_store(),
        calendar=get_calendar_source(),
        estimator=get_estimation_service(),
        completed_log=get_completed_task_log(),
    )
