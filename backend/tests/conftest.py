"""Shared planner fixtures built on the in-memory collaborators."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional, Set

import pytest

from app.core.config import Settings
from app.services.ai_estimator import AIEstimate
from app.services.collaborators.base import CompletedTaskLog, EstimationService
from app.services.collaborators.memory import InMemoryCompletedTaskLog, InMemoryTaskStore, StaticCalendarSource
from app.services.errors import CollaboratorError, EstimationError
from app.services.planner_session import PlannerSession
from app.services.planning_types import TaskList

NOW = datetime(2024, 6, 10, 9, 0)


def make_body(est: int, urgency: int, importance: int, context: str = "work", energy: str = "medium") -> str:
    return (
        f"---\nEstTime: {est}\nUrgency: {urgency}\nImportance: {importance}\n"
        f"Energy: {energy}\nContext: {context}\nStartDate: None\n---\n"
    )


class FakeEstimator(EstimationService):
    """Returns canned replies keyed by task title; unknown titles fail."""

    def __init__(self, replies: Optional[Dict[str, dict]] = None) -> None:
        self.replies = replies or {}
        self.calls: list[str] = []

    def estimate(self, task):
        self.calls.append(task.id)
        reply = self.replies.get(task.title)
        if reply is None:
            raise EstimationError(f"No estimate for {task.title}")
        return AIEstimate.model_validate(reply)


class FlakyTaskStore(InMemoryTaskStore):
    """Rejects task creation for selected titles."""

    def __init__(self) -> None:
        super().__init__()
        self.reject_titles: Set[str] = set()

    def create_task(self, list_id, *, title, body="", due=None, importance="normal"):
        if title in self.reject_titles:
            raise CollaboratorError("task_store", f"Cannot create {title}")
        return super().create_task(list_id, title=title, body=body, due=due, importance=importance)


class BrokenCompletedLog(CompletedTaskLog):
    def append(self, record) -> None:
        raise CollaboratorError("completed_log", "database unavailable")


@dataclass
class PlannerHarness:
    session: PlannerSession
    store: FlakyTaskStore
    calendar: StaticCalendarSource
    estimator: FakeEstimator
    completed_log: CompletedTaskLog
    lists: Dict[str, TaskList] = field(default_factory=dict)
    ids: Dict[str, str] = field(default_factory=dict)

    def add_task(self, list_name: str, title: str, body: str = "", due: Optional[datetime] = None) -> str:
        task = self.store.create_task(self.lists[list_name].id, title=title, body=body, due=due)
        self.ids[title] = task.id
        return task.id


def build_harness(completed_log: Optional[CompletedTaskLog] = None) -> PlannerHarness:
    store = FlakyTaskStore()
    calendar = StaticCalendarSource()
    estimator = FakeEstimator()
    log = completed_log or InMemoryCompletedTaskLog()
    session = PlannerSession(
        task_store=store,
        calendar=calendar,
        estimator=estimator,
        completed_log=log,
        settings=Settings(),
        clock=lambda: NOW,
    )
    harness = PlannerHarness(session=session, store=store, calendar=calendar, estimator=estimator, completed_log=log)
    for name in ("Inbox", "Work"):
        harness.lists[name] = store.create_list(name)
    harness.add_task("Inbox", "Email reply", make_body(20, 8, 6, context="email"))
    harness.add_task("Inbox", "Buy milk", "Semi-skimmed")
    harness.add_task("Work", "Write report", make_body(90, 6, 9, context="work", energy="high"))
    return harness


@pytest.fixture()
def planner() -> PlannerHarness:
    return build_harness()


@pytest.fixture()
def planner_with_broken_log() -> PlannerHarness:
    return build_harness(completed_log=BrokenCompletedLog())
