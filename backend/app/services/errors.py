"""Error types raised by the planner services."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional


class PlannerError(Exception):
    """Base class for planner failures surfaced to callers."""


class CollaboratorError(PlannerError):
    """A task store, calendar or completed-task log call failed."""

    def __init__(self, service: str, message: str) -> None:
        super().__init__(f"{service}: {message}")
        self.service = service
        self.message = message


class EstimationError(PlannerError):
    """The AI estimation request could not produce usable attributes."""


class TaskNotFoundError(PlannerError):
    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task {task_id} not found")
        self.task_id = task_id


@dataclass
class BatchFailure:
    item_id: str
    title: str
    message: str


@dataclass
class ExportResult:
    plan_list_id: str | None = None
    moved: List[str] = field(default_factory=list)
    failures: List[BatchFailure] = field(default_factory=list)

    @property
    def failed_count(self) -> int:
        return len(self.failures)


@dataclass
class EnrichmentBatchResult:
    attempted: int = 0
    enriched: List[str] = field(default_factory=list)
    failures: List[BatchFailure] = field(default_factory=list)
    warning: Optional[str] = None

    @property
    def succeeded_count(self) -> int:
        return len(self.enriched)
