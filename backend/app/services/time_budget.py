"""Free time left today once calendar commitments are taken out."""
from __future__ import annotations

from datetime import datetime, time, timedelta
from typing import Sequence

from app.services.planning_types import CalendarEvent, to_local_naive
from app.services.scoring import round_half_up


def calculate_available_minutes(events: Sequence[CalendarEvent], now: datetime) -> int:
    """Minutes from ``now`` to the next local midnight minus the event time that overlaps it."""
    local_now = to_local_naive(now)
    midnight = datetime.combine(local_now.date() + timedelta(days=1), time.min)
    total_left = (midnight - local_now).total_seconds() / 60

    booked = 0.0
    for event in events:
        overlap_start = max(local_now, to_local_naive(event.start))
        overlap_end = min(midnight, to_local_naive(event.end))
        if overlap_end > overlap_start:
            booked += (overlap_end - overlap_start).total_seconds() / 60

    return round_half_up(total_left - booked)
