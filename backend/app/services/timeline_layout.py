"""Lay out the day's plan on a horizontal timeline around fixed calendar events.

The timeline covers a window that starts at ``start_hour`` and may run past
midnight (``end_hour`` > 24). Positions are minutes from the window start;
offsets and widths are those minutes multiplied by ``minute_scale``. All
datetimes handled here are local wall-clock times.
"""
from __future__ import annotations

import logging
from bisect import bisect_right
from dataclasses import dataclass, field, replace
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from app.core.config import Settings, get_settings
from app.services.planning_types import (
    CalendarEvent,
    EnrichedTask,
    PlanItem,
    TaskKind,
    to_local_naive,
)
from app.services.property_parser import parse_checklist_display_name

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60
LABEL_CHAR_WIDTH = 7
LABEL_PADDING = 16
LABEL_MARGIN = 10


class TimelineItemType(str, Enum):
    EVENT = "event"
    TASK = "task"
    SUBTASK = "subtask"


@dataclass(frozen=True)
class TimelineConfig:
    start_hour: int = 6
    end_hour: int = 26
    minute_scale: float = 3.3
    switch_gap_min: int = 5

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "TimelineConfig":
        settings = settings or get_settings()
        return cls(
            start_hour=settings.timeline_start_hour,
            end_hour=settings.timeline_end_hour,
            minute_scale=settings.timeline_minute_scale,
            switch_gap_min=settings.timeline_switch_gap_min,
        )

    @property
    def window_minutes(self) -> int:
        return (self.end_hour - self.start_hour) * 60


@dataclass(frozen=True)
class SchedulableItem:
    """A task, or one unchecked subtask of a task, that needs a slot on the timeline."""

    id: str
    title: str
    duration_min: int
    type: TimelineItemType
    parent: EnrichedTask

    @property
    def context(self) -> str:
        return self.parent.context


@dataclass(frozen=True)
class PositionedItem:
    id: str
    title: str
    type: TimelineItemType
    start_minute: float
    duration_min: float
    offset: float
    width: float
    start: datetime
    level: int = 0
    parent_task_id: Optional[str] = None
    context: Optional[str] = None
    manual: bool = False

    @property
    def end_minute(self) -> float:
        return self.start_minute + self.duration_min


@dataclass(frozen=True)
class TimelineLayout:
    items: Tuple[PositionedItem, ...]
    current_time_offset: float
    total_levels: int = 1

    @property
    def tasks(self) -> List[PositionedItem]:
        return [item for item in self.items if item.type is not TimelineItemType.EVENT]

    @property
    def events(self) -> List[PositionedItem]:
        return [item for item in self.items if item.type is TimelineItemType.EVENT]


@dataclass
class _BlockedIntervals:
    """Merged, sorted intervals; finds the first free slot with a bounded forward walk."""

    starts: List[float] = field(default_factory=list)
    ends: List[float] = field(default_factory=list)

    @classmethod
    def build(cls, intervals: Iterable[Tuple[float, float]]) -> "_BlockedIntervals":
        merged: List[List[float]] = []
        for start, end in sorted(interval for interval in intervals if interval[1] > interval[0]):
            if merged and start <= merged[-1][1]:
                merged[-1][1] = max(merged[-1][1], end)
            else:
                merged.append([start, end])
        return cls(starts=[start for start, _ in merged], ends=[end for _, end in merged])

    def first_free(self, start: float, duration: float) -> float:
        index = bisect_right(self.ends, start)
        while index < len(self.starts) and self.starts[index] < start + duration:
            start = self.ends[index]
            index += 1
        return start


def window_start(now: datetime, config: TimelineConfig) -> datetime:
    """Start of the timeline window that ``now`` belongs to."""
    local_now = to_local_naive(now)
    day: date = local_now.date()
    if local_now.hour < config.end_hour - 24:
        day -= timedelta(days=1)
    return datetime.combine(day, time(hour=config.start_hour))


def minutes_from_window_start(moment: datetime, config: TimelineConfig) -> int:
    """Position of a wall-clock time in the window; hours before the start hour belong to the next day."""
    local = to_local_naive(moment)
    minutes = (local.hour - config.start_hour) * 60 + local.minute
    if local.hour < config.start_hour:
        minutes += MINUTES_PER_DAY
    return minutes


def current_minute(now: datetime, config: TimelineConfig) -> int:
    local_now = to_local_naive(now)
    if local_now.hour >= config.start_hour:
        return (local_now.hour - config.start_hour) * 60 + local_now.minute
    if local_now.hour < config.end_hour - 24:
        return (local_now.hour + 24 - config.start_hour) * 60 + local_now.minute
    return 0


def current_time_offset(now: datetime, config: Optional[TimelineConfig] = None) -> float:
    config = config or TimelineConfig()
    return current_minute(now, config) * config.minute_scale


def offset_to_datetime(minutes: float, now: datetime, config: Optional[TimelineConfig] = None) -> datetime:
    """Wall-clock time of a window position, clamped to the window."""
    config = config or TimelineConfig()
    clamped = min(max(minutes, 0), config.window_minutes)
    return window_start(now, config) + timedelta(minutes=round(clamped))


def apply_drag_override(
    overrides: Mapping[str, datetime],
    item_id: str,
    drop_offset: float,
    now: datetime,
    config: Optional[TimelineConfig] = None,
) -> Dict[str, datetime]:
    """Return a copy of ``overrides`` with ``item_id`` pinned where it was dropped."""
    config = config or TimelineConfig()
    updated = dict(overrides)
    updated[item_id] = offset_to_datetime(drop_offset / config.minute_scale, now, config)
    return updated


def flatten_schedulable_items(tasks: Sequence[PlanItem]) -> List[SchedulableItem]:
    """
    Expand plan tasks into schedulable items, highest parent score first.

    Unchecked subtasks named ``"<title> (<N> min)"`` become one item each. A task
    without such subtasks is scheduled as a whole when it has a positive
    estimate. Plain (not enriched) tasks are never scheduled.
    """
    parents = sorted(
        (task for task in tasks if task.kind is TaskKind.ENRICHED),
        key=lambda task: task.score,
        reverse=True,
    )

    items: List[SchedulableItem] = []
    for parent in parents:
        subtasks: List[SchedulableItem] = []
        for checklist_item in parent.checklist_items:
            if checklist_item.checked:
                continue
            parsed = parse_checklist_display_name(checklist_item.display_name)
            if parsed is None:
                continue
            title, minutes = parsed
            subtasks.append(
                SchedulableItem(
                    id=checklist_item.id,
                    title=title,
                    duration_min=minutes,
                    type=TimelineItemType.SUBTASK,
                    parent=parent,
                )
            )
        if subtasks:
            items.extend(subtasks)
        elif parent.est_time > 0:
            items.append(
                SchedulableItem(
                    id=parent.id,
                    title=parent.title,
                    duration_min=parent.est_time,
                    type=TimelineItemType.TASK,
                    parent=parent,
                )
            )
    return items


def layout(
    tasks: Sequence[PlanItem],
    events: Sequence[CalendarEvent],
    manual_overrides: Optional[Mapping[str, datetime]] = None,
    reference_now: Optional[datetime] = None,
    config: Optional[TimelineConfig] = None,
) -> Optional[TimelineLayout]:
    """
    Place events, manually pinned items and auto-scheduled items on the timeline.

    Returns None when there is nothing to show.
    """
    config = config or TimelineConfig.from_settings()
    now = reference_now or datetime.now()
    overrides = manual_overrides or {}
    origin = window_start(now, config)

    schedulable = flatten_schedulable_items(tasks)
    if not schedulable and not events:
        return None

    placed: List[PositionedItem] = []
    for event in events:
        start_minute = minutes_from_window_start(event.start, config)
        duration = (event.end - event.start).total_seconds() / 60
        placed.append(
            _position(event.id, event.summary, TimelineItemType.EVENT, start_minute, duration, origin, config)
        )

    auto_items: List[SchedulableItem] = []
    for item in schedulable:
        pinned_at = overrides.get(item.id)
        if pinned_at is None:
            auto_items.append(item)
            continue
        placed.append(
            _position(
                item.id,
                item.title,
                item.type,
                minutes_from_window_start(pinned_at, config),
                item.duration_min,
                origin,
                config,
                parent=item.parent,
                manual=True,
            )
        )

    blocked = _BlockedIntervals.build((entry.start_minute, entry.end_minute) for entry in placed)
    cursor: float = current_minute(now, config)
    last_context: Optional[str] = None
    for item in auto_items:
        start = cursor
        if last_context and last_context != item.context:
            start += config.switch_gap_min
        last_context = item.context
        start = blocked.first_free(start, item.duration_min)
        placed.append(
            _position(item.id, item.title, item.type, start, item.duration_min, origin, config, parent=item.parent)
        )
        cursor = start + item.duration_min

    leveled, total_levels = _assign_levels(placed)
    logger.debug(
        "Timeline laid out %s items (%s events, %s pinned) on %s levels",
        len(leveled),
        len(events),
        len(schedulable) - len(auto_items),
        total_levels,
    )
    return TimelineLayout(
        items=tuple(leveled),
        current_time_offset=current_time_offset(now, config),
        total_levels=total_levels,
    )


def _position(
    item_id: str,
    title: str,
    item_type: TimelineItemType,
    start_minute: float,
    duration: float,
    origin: datetime,
    config: TimelineConfig,
    parent: Optional[EnrichedTask] = None,
    manual: bool = False,
) -> PositionedItem:
    return PositionedItem(
        id=item_id,
        title=title,
        type=item_type,
        start_minute=start_minute,
        duration_min=duration,
        offset=start_minute * config.minute_scale,
        width=duration * config.minute_scale,
        start=origin + timedelta(minutes=start_minute),
        parent_task_id=parent.id if parent is not None else None,
        context=parent.context if parent is not None else None,
        manual=manual,
    )


def _assign_levels(items: Sequence[PositionedItem]) -> Tuple[List[PositionedItem], int]:
    """Stack labels: each item takes the lowest level whose last label ends at or before it."""
    level_ends: List[float] = []
    leveled: List[PositionedItem] = []
    for item in sorted(items, key=lambda entry: entry.offset):
        label_width = len(item.title) * LABEL_CHAR_WIDTH + LABEL_PADDING
        level = next((index for index, end in enumerate(level_ends) if item.offset >= end), len(level_ends))
        if level == len(level_ends):
            level_ends.append(0.0)
        level_ends[level] = item.offset + label_width + LABEL_MARGIN
        leveled.append(replace(item, level=level))
    return leveled, max(len(level_ends), 1)
