"""In-process collaborator implementations (local runs and tests)."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional
from uuid import uuid4

from app.services.collaborators.base import CalendarSource, CompletedTaskLog, CompletedTaskRecord, TaskStore
from app.services.errors import CollaboratorError
from app.services.planning_types import CalendarEvent, ChecklistItem, Task, TaskList

logger = logging.getLogger(__name__)

TASK_STORE = "task_store"
COMPLETED_STATUS = "completed"


@dataclass
class _StoredTask:
    task: Task
    importance: str = "normal"
    status: str = "notStarted"


@dataclass
class _StoredList:
    task_list: TaskList
    tasks: Dict[str, _StoredTask] = field(default_factory=dict)


class InMemoryTaskStore(TaskStore):
    """Dictionary-backed task store; lists and tasks keep insertion order."""

    def __init__(self) -> None:
        self._lists: Dict[str, _StoredList] = {}
        self._lock = threading.Lock()

    def list_lists(self) -> List[TaskList]:
        with self._lock:
            return [stored.task_list for stored in self._lists.values()]

    def list_tasks(self, list_id: str) -> List[Task]:
        with self._lock:
            stored_list = self._get_list(list_id)
            return [entry.task for entry in stored_list.tasks.values() if entry.status != COMPLETED_STATUS]

    def create_list(self, name: str) -> TaskList:
        task_list = TaskList(id=_new_id(), name=name)
        with self._lock:
            self._lists[task_list.id] = _StoredList(task_list=task_list)
        logger.info("Created task list %s (%s)", task_list.name, task_list.id)
        return task_list

    def create_task(
        self,
        list_id: str,
        *,
        title: str,
        body: str = "",
        due: Optional[datetime] = None,
        importance: str = "normal",
    ) -> Task:
        with self._lock:
            stored_list = self._get_list(list_id)
            task = Task(
                id=_new_id(),
                title=title,
                body=body,
                list_id=list_id,
                list_name=stored_list.task_list.name,
                due=due,
            )
            stored_list.tasks[task.id] = _StoredTask(task=task, importance=importance)
        return task

    def update_task(
        self,
        list_id: str,
        task_id: str,
        *,
        title: Optional[str] = None,
        body: Optional[str] = None,
        status: Optional[str] = None,
    ) -> None:
        with self._lock:
            entry = self._get_task(list_id, task_id)
            changes = {key: value for key, value in {"title": title, "body": body}.items() if value is not None}
            if changes:
                entry.task = replace(entry.task, **changes)
            if status is not None:
                entry.status = status

    def delete_task(self, list_id: str, task_id: str) -> None:
        with self._lock:
            self._get_task(list_id, task_id)
            del self._lists[list_id].tasks[task_id]

    def create_checklist_item(self, list_id: str, task_id: str, display_name: str) -> ChecklistItem:
        item = ChecklistItem(id=_new_id(), display_name=display_name)
        with self._lock:
            entry = self._get_task(list_id, task_id)
            entry.task = replace(entry.task, checklist_items=entry.task.checklist_items + (item,))
        return item

    def update_checklist_item(
        self,
        list_id: str,
        task_id: str,
        item_id: str,
        *,
        checked: Optional[bool] = None,
        display_name: Optional[str] = None,
    ) -> None:
        changes = {key: value for key, value in {"checked": checked, "display_name": display_name}.items() if value is not None}
        with self._lock:
            entry = self._get_task(list_id, task_id)
            self._require_item(entry, item_id)
            entry.task = entry.task.with_checklist_item(item_id, **changes)

    def delete_checklist_item(self, list_id: str, task_id: str, item_id: str) -> None:
        with self._lock:
            entry = self._get_task(list_id, task_id)
            self._require_item(entry, item_id)
            remaining = tuple(item for item in entry.task.checklist_items if item.id != item_id)
            entry.task = replace(entry.task, checklist_items=remaining)

    def importance_of(self, list_id: str, task_id: str) -> str:
        with self._lock:
            return self._get_task(list_id, task_id).importance

    def status_of(self, list_id: str, task_id: str) -> str:
        with self._lock:
            return self._get_task(list_id, task_id).status

    def _get_list(self, list_id: str) -> _StoredList:
        stored_list = self._lists.get(list_id)
        if stored_list is None:
            raise CollaboratorError(TASK_STORE, f"List {list_id} not found")
        return stored_list

    def _get_task(self, list_id: str, task_id: str) -> _StoredTask:
        entry = self._get_list(list_id).tasks.get(task_id)
        if entry is None:
            raise CollaboratorError(TASK_STORE, f"Task {task_id} not found in list {list_id}")
        return entry

    @staticmethod
    def _require_item(entry: _StoredTask, item_id: str) -> None:
        if not any(item.id == item_id for item in entry.task.checklist_items):
            raise CollaboratorError(TASK_STORE, f"Checklist item {item_id} not found")


class StaticCalendarSource(CalendarSource):
    def __init__(self, events: Iterable[CalendarEvent] = ()) -> None:
        self._events = list(events)

    def set_events(self, events: Iterable[CalendarEvent]) -> None:
        self._events = list(events)

    def list_todays_events(self) -> List[CalendarEvent]:
        return list(self._events)


class InMemoryCompletedTaskLog(CompletedTaskLog):
    def __init__(self) -> None:
        self.records: List[CompletedTaskRecord] = []

    def append(self, record: CompletedTaskRecord) -> None:
        if record.completed_at is None:
            record = replace(record, completed_at=datetime.now(timezone.utc))
        self.records.append(record)


def _new_id() -> str:
    return uuid4().hex
