"""
Courier Pickup Scheduling

A pickup is requested two hours after "now", clamped to the store's
dispatch window for that day of the week:

    Day       Window        Before window      At/after window end
    Sunday    13:00-20:00   13:00 same day     13:00 next day
    Monday    13:00-20:00   13:00 same day     12:00 next day
    Tue-Fri   12:00-21:00   12:00 same day     12:00 next day
    Saturday  12:00-21:00   12:00 same day     13:00 next day

The next-day time is part of the table, not derived from the next day's
window.
"""

from dataclasses import dataclass
from datetime import datetime, time, timedelta
from typing import Dict

from .models import PickupSlot

PICKUP_LEAD_TIME = timedelta(hours=2)


@dataclass(frozen=True)
class DispatchWindow:
    start: time
    end: time
    next_day_start: time


# Keyed by datetime.weekday(): Monday == 0 ... Sunday == 6
DISPATCH_WINDOWS: Dict[int, DispatchWindow] = {
    0: DispatchWindow(start=time(13, 0), end=time(20, 0), next_day_start=time(12, 0)),
    1: DispatchWindow(start=time(12, 0), end=time(21, 0), next_day_start=time(12, 0)),
    2: DispatchWindow(start=time(12, 0), end=time(21, 0), next_day_start=time(12, 0)),
    3: DispatchWindow(start=time(12, 0), end=time(21, 0), next_day_start=time(12, 0)),
    4: DispatchWindow(start=time(12, 0), end=time(21, 0), next_day_start=time(12, 0)),
    5: DispatchWindow(start=time(12, 0), end=time(21, 0), next_day_start=time(13, 0)),
    6: DispatchWindow(start=time(13, 0), end=time(20, 0), next_day_start=time(13, 0)),
}


def next_pickup_slot(now: datetime) -> PickupSlot:
    """
    Compute the pickup slot for a booking made at `now`.

    `now` should already be in the store's local time; the result is in the
    same wall-clock frame, truncated to the minute.
    """
    candidate = (now + PICKUP_LEAD_TIME).replace(second=0, microsecond=0)
    window = DISPATCH_WINDOWS[candidate.weekday()]
    at = candidate.time()

    if at < window.start:
        return PickupSlot(day=candidate.date(), time_of_day=window.start)
    if at >= window.end:
        return PickupSlot(day=candidate.date() + timedelta(days=1), time_of_day=window.next_day_start)
    return PickupSlot(day=candidate.date(), time_of_day=at)
