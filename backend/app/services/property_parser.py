"""Read and write the properties block embedded in a task body.

A task body looks like::

    ---
    EstTime: 45
    Urgency: 7
    Importance: 6
    Energy: medium
    Context: email
    StartDate: None
    ---
    Free-text description shown to the user.

Everything between the marker lines is machine data; everything after the
closing marker is the description.
"""
from __future__ import annotations

import re
from datetime import date, datetime
from typing import Dict, Optional, Tuple

from app.services.planning_types import DEFAULT_CONTEXT, DEFAULT_ENERGY, TaskAttributes

PROPERTIES_MARKER = "---"
NO_START_DATE = "None"

_BLOCK_RE = re.compile(r"^[ \t]*---[ \t\r]*$(.*?)^[ \t]*---[ \t\r]*$", re.MULTILINE | re.DOTALL)
_KEY_VALUE_RE = re.compile(
    r"^[ \t]*(esttime|urgency|importance|energy|context|startdate|sequence|parenttaskid|suggestedstart)[ \t]*:[ \t]*(\S.*?)[ \t\r]*$",
    re.IGNORECASE | re.MULTILINE,
)
_LEADING_INT_RE = re.compile(r"[+-]?\d+")
_NUMERIC_KEYS = {"esttime", "urgency", "importance", "sequence"}
_DURATION_SUFFIX_RE = re.compile(r"^(.*) \((\d+)\s*min\)$")


def parse_task_properties(body: str | None) -> Optional[TaskAttributes]:
    """Return the planning attributes in ``body`` or None when the task is not enriched."""
    match = _BLOCK_RE.search(body or "")
    if not match:
        return None

    props: Dict[str, object] = {}
    for key, value in _KEY_VALUE_RE.findall(match.group(1)):
        lowered = key.lower()
        props[lowered] = _parse_int(value) if lowered in _NUMERIC_KEYS else value

    est_time = props.get("esttime")
    urgency = props.get("urgency")
    importance = props.get("importance")
    if not est_time or not urgency or not importance or est_time < 0:  # type: ignore[operator]
        return None

    start_date = props.get("startdate")
    if isinstance(start_date, str) and start_date.lower() == NO_START_DATE.lower():
        start_date = None

    return TaskAttributes(
        est_time=int(est_time),  # type: ignore[arg-type]
        urgency=int(urgency),  # type: ignore[arg-type]
        importance=int(importance),  # type: ignore[arg-type]
        energy=str(props.get("energy") or DEFAULT_ENERGY),
        context=str(props.get("context") or DEFAULT_CONTEXT),
        start_date=start_date,  # type: ignore[arg-type]
        sequence=props.get("sequence"),  # type: ignore[arg-type]
        parent_task_id=props.get("parenttaskid"),  # type: ignore[arg-type]
        suggested_start=props.get("suggestedstart"),  # type: ignore[arg-type]
    )


def extract_description(body: str | None) -> str:
    """Return the human-readable part of a task body."""
    text = body or ""
    match = _BLOCK_RE.search(text)
    if not match:
        return text.strip()
    return text[match.end():].strip()


def serialize_properties(attributes: TaskAttributes) -> str:
    """Render attributes as the lines of a properties block (without markers)."""
    lines = [
        f"EstTime: {attributes.est_time}",
        f"Urgency: {attributes.urgency}",
        f"Importance: {attributes.importance}",
        f"Energy: {attributes.energy}",
        f"Context: {attributes.context}",
        f"StartDate: {attributes.start_date or NO_START_DATE}",
    ]
    if attributes.sequence is not None:
        lines.append(f"sequence: {attributes.sequence}")
    if attributes.parent_task_id:
        lines.append(f"parentTaskId: {attributes.parent_task_id}")
    if attributes.suggested_start:
        lines.append(f"suggestedStart: {attributes.suggested_start}")
    return "\n".join(lines)


def build_task_body(attributes: TaskAttributes, description: str) -> str:
    return f"{PROPERTIES_MARKER}\n{serialize_properties(attributes)}\n{PROPERTIES_MARKER}\n{description.strip()}"


def parse_start_date(value: str | None) -> Optional[date]:
    """Parse a ``YYYY-MM-DD`` start date; None for missing or malformed values."""
    if not value or value.lower() == NO_START_DATE.lower():
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        return None


def parse_checklist_display_name(display_name: str) -> Optional[Tuple[str, int]]:
    """Split ``"<title> (<N> min)"`` into ``(title, N)``; None unless N is positive."""
    match = _DURATION_SUFFIX_RE.match(display_name or "")
    if not match:
        return None
    minutes = int(match.group(2))
    if minutes <= 0:
        return None
    return match.group(1).strip(), minutes


def format_checklist_display_name(title: str, minutes: int) -> str:
    return f"{title.strip()} ({minutes} min)"


def _parse_int(value: str) -> Optional[int]:
    match = _LEADING_INT_RE.match(value)
    return int(match.group(0)) if match else None