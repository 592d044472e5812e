"""Domain types shared by the planning engine.

Raw tasks come from the task store as ``Task``. The task processor decides once
whether a task carries planning attributes and wraps it as ``EnrichedTask``;
downstream code dispatches on ``kind`` and never probes for optional fields.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Dict, Optional, Tuple, Union

ENERGY_LEVELS: Tuple[str, ...] = ("low", "medium", "high")
DEFAULT_ENERGY = "medium"
DEFAULT_CONTEXT = "none"


class TaskKind(str, Enum):
    PLAIN = "plain"
    ENRICHED = "enriched"


@dataclass(frozen=True)
class TaskList:
    id: str
    name: str


@dataclass(frozen=True)
class ChecklistItem:
    id: str
    display_name: str
    checked: bool = False


@dataclass(frozen=True)
class Task:
    """A task exactly as the task store returns it."""

    id: str
    title: str
    body: str = ""
    list_id: str = ""
    list_name: str = ""
    due: Optional[datetime] = None
    due_time_zone: Optional[str] = None
    checklist_items: Tuple[ChecklistItem, ...] = ()

    kind: ClassVar[TaskKind] = TaskKind.PLAIN

    @property
    def score(self) -> int:
        return 0

    def with_checklist_item(self, item_id: str, **changes: Any) -> "Task":
        items = tuple(replace(item, **changes) if item.id == item_id else item for item in self.checklist_items)
        return replace(self, checklist_items=items)


@dataclass(frozen=True)
class TaskAttributes:
    """Planning attributes stored in the properties block of a task body."""

    est_time: int
    urgency: int
    importance: int
    energy: str = DEFAULT_ENERGY
    context: str = DEFAULT_CONTEXT
    start_date: Optional[str] = None
    sequence: Optional[int] = None
    parent_task_id: Optional[str] = None
    suggested_start: Optional[str] = None


@dataclass(frozen=True)
class EnrichedTask:
    """A task plus its planning attributes and the score computed for it."""

    task: Task
    attributes: TaskAttributes
    score: int = 0

    kind: ClassVar[TaskKind] = TaskKind.ENRICHED

    @property
    def id(self) -> str:
        return self.task.id

    @property
    def title(self) -> str:
        return self.task.title

    @property
    def body(self) -> str:
        return self.task.body

    @property
    def list_id(self) -> str:
        return self.task.list_id

    @property
    def list_name(self) -> str:
        return self.task.list_name

    @property
    def due(self) -> Optional[datetime]:
        return self.task.due

    @property
    def checklist_items(self) -> Tuple[ChecklistItem, ...]:
        return self.task.checklist_items

    @property
    def est_time(self) -> int:
        return self.attributes.est_time

    @property
    def urgency(self) -> int:
        return self.attributes.urgency

    @property
    def importance(self) -> int:
        return self.attributes.importance

    @property
    def energy(self) -> str:
        return self.attributes.energy

    @property
    def context(self) -> str:
        return self.attributes.context

    @property
    def start_date(self) -> Optional[str]:
        return self.attributes.start_date

    @property
    def parent_task_id(self) -> Optional[str]:
        return self.attributes.parent_task_id

    def with_score(self, score: int) -> "EnrichedTask":
        return replace(self, score=score)

    def with_checklist_item(self, item_id: str, **changes: Any) -> "EnrichedTask":
        return replace(self, task=self.task.with_checklist_item(item_id, **changes))


PlanItem = Union[Task, EnrichedTask]


@dataclass(frozen=True)
class CalendarEvent:
    """Fixed, externally owned block of time."""

    id: str
    summary: str
    start: datetime
    end: datetime


@dataclass(frozen=True)
class EnergyLoad:
    low: int = 0
    medium: int = 0
    high: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {"low": self.low, "medium": self.medium, "high": self.high}


@dataclass(frozen=True)
class PlannedDayMeta:
    total_min: int
    energy_load: EnergyLoad = field(default_factory=EnergyLoad)
    warnings: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_min": self.total_min,
            "energy_load": self.energy_load.to_dict(),
            "warnings": list(self.warnings),
        }


def to_local_naive(value: datetime) -> datetime:
    """Aware datetimes are converted to local wall-clock time; naive ones are already local."""
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)
