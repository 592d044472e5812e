"""Interfaces for the external services the planner talks to."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from app.services.planning_types import CalendarEvent, ChecklistItem, PlanItem, Task, TaskList

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from app.services.ai_estimator import AIEstimate


@dataclass(frozen=True)
class CompletedTaskRecord:
    task_id: str
    user_id: str
    title: str
    list_name: Optional[str] = None
    est_time: Optional[int] = None
    urgency: Optional[int] = None
    importance: Optional[int] = None
    context: Optional[str] = None
    energy: Optional[str] = None
    completed_at: Optional[datetime] = None


class TaskStore:
    """Task lists, tasks and checklist items owned by an external provider.

    Implementations raise ``CollaboratorError`` when a call fails.
    """

    def list_lists(self) -> List[TaskList]:
        raise NotImplementedError

    def list_tasks(self, list_id: str) -> List[Task]:
        """Open (not completed) tasks of a list."""
        raise NotImplementedError

    def create_list(self, name: str) -> TaskList:
        raise NotImplementedError

    def create_task(
        self,
        list_id: str,
        *,
        title: str,
        body: str = "",
        due: Optional[datetime] = None,
        importance: str = "normal",
    ) -> Task:
        raise NotImplementedError

    def update_task(
        self,
        list_id: str,
        task_id: str,
        *,
        title: Optional[str] = None,
        body: Optional[str] = None,
        status: Optional[str] = None,
    ) -> None:
        raise NotImplementedError

    def delete_task(self, list_id: str, task_id: str) -> None:
        raise NotImplementedError

    def create_checklist_item(self, list_id: str, task_id: str, display_name: str) -> ChecklistItem:
        raise NotImplementedError

    def update_checklist_item(
        self,
        list_id: str,
        task_id: str,
        item_id: str,
        *,
        checked: Optional[bool] = None,
        display_name: Optional[str] = None,
    ) -> None:
        raise NotImplementedError

    def delete_checklist_item(self, list_id: str, task_id: str, item_id: str) -> None:
        raise NotImplementedError


class CalendarSource:
    def list_todays_events(self) -> List[CalendarEvent]:
        raise NotImplementedError


class EstimationService:
    def estimate(self, task: PlanItem) -> "AIEstimate":
        raise NotImplementedError


class CompletedTaskLog:
    """Append-only sink for finished tasks."""

    def append(self, record: CompletedTaskRecord) -> None:
        raise NotImplementedError
