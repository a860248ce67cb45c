"""Weekly availability arithmetic.

Times travel as ``HH:MM:SS`` strings and are compared as minutes since
midnight; seconds are ignored. Ranges are half-open, ``[start, end)``, so
two ranges that only share a boundary instant do not overlap.
"""
import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Iterable, Sequence

from medibook.core.errors import ConflictError, InvalidInputError

logger = logging.getLogger(__name__)

class DayOfWeek(str, Enum):
    MONDAY = "MONDAY"
    TUESDAY = "TUESDAY"
    WEDNESDAY = "WEDNESDAY"
    THURSDAY = "THURSDAY"
    FRIDAY = "FRIDAY"
    SATURDAY = "SATURDAY"
    SUNDAY = "SUNDAY"

    @classmethod
    def of(cls, d: date) -> "DayOfWeek":
        return list(cls)[d.weekday()]

    @property
    def index(self) -> int:
        return list(DayOfWeek).index(self)

def to_minutes(value: str) -> int:
    parts = value.split(":")
    try:
        hours, minutes = int(parts[0]), int(parts[1]) if len(parts) > 1 else 0
    except (ValueError, IndexError):
        raise InvalidInputError(f"Invalid time value {value!r}; expected HH:MM:SS")
    return hours * 60 + minutes

def minutes_to_time(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}:00"

@dataclass(frozen=True)
class TimeRange:
    start_time: str
    end_time: str

    @property
    def start(self) -> int:
        return to_minutes(self.start_time)

    @property
    def end(self) -> int:
        return to_minutes(self.end_time)

    @property
    def minutes(self) -> int:
        return self.end - self.start

    def overlaps(self, other: "TimeRange") -> bool:
        return ranges_overlap(self.start_time, self.end_time, other.start_time, other.end_time)

    def contains(self, other: "TimeRange") -> bool:
        return self.start <= other.start and other.end <= self.end

    def same_span(self, other: "TimeRange") -> bool:
        return self.start == other.start and self.end == other.end

    def as_dict(self) -> dict:
        return {"start_time": self.start_time, "end_time": self.end_time}

    def __str__(self) -> str:
        return f"{self.start_time}-{self.end_time}"

def as_range(obj) -> TimeRange:
    if isinstance(obj, TimeRange):
        return obj
    if isinstance(obj, dict):
        return TimeRange(obj["start_time"], obj["end_time"])
    return TimeRange(obj.start_time, obj.end_time)

def ranges_overlap(start1: str, end1: str, start2: str, end2: str) -> bool:
    s1, e1 = to_minutes(start1), to_minutes(end1)
    s2, e2 = to_minutes(start2), to_minutes(end2)
    return not (e1 <= s2 or e2 <= s1)

def validate_time_range(start_time: str, end_time: str) -> None:
    if to_minutes(start_time) >= to_minutes(end_time):
        raise InvalidInputError(
            f"Invalid time range: end time ({end_time}) must be after start time ({start_time})"
        )

def _first_overlap(ranges: Sequence[TimeRange]) -> tuple[TimeRange, TimeRange] | None:
    for i in range(len(ranges)):
        for j in range(i + 1, len(ranges)):
            if ranges[i].overlaps(ranges[j]):
                return ranges[i], ranges[j]
    return None

def validate_working_ranges(ranges: Iterable, day: DayOfWeek | str) -> list[TimeRange]:
    rs = [as_range(r) for r in ranges]
    for r in rs:
        validate_time_range(r.start_time, r.end_time)
    pair = _first_overlap(rs)
    if pair:
        raise ConflictError(f"Overlapping working hours detected on {_day(day)}: {pair[0]} overlaps with {pair[1]}")
    return rs

def validate_break_ranges(breaks: Iterable, working: Iterable, day: DayOfWeek | str) -> list[TimeRange]:
    bs = [as_range(b) for b in breaks]
    ws = [as_range(w) for w in working]
    for b in bs:
        validate_time_range(b.start_time, b.end_time)
    pair = _first_overlap(bs)
    if pair:
        raise ConflictError(f"Overlapping break hours detected on {_day(day)}: {pair[0]} overlaps with {pair[1]}")
    for b in bs:
        if not any(w.contains(b) for w in ws):
            raise InvalidInputError(
                f"Break time {b} on {_day(day)} is outside of working hours. Breaks must be within working time ranges."
            )
    return bs

def check_against_existing(new: Iterable, existing: Iterable, day: DayOfWeek | str, kind: str = "working hours") -> None:
    """Reject ranges that duplicate or overlap ranges already persisted for the scope."""
    current = [as_range(e) for e in existing]
    for r in (as_range(n) for n in new):
        for e in current:
            if r.same_span(e):
                raise ConflictError(f"{kind.capitalize()} {r} on {_day(day)} already exists")
            if r.overlaps(e):
                raise ConflictError(f"{kind.capitalize()} {r} on {_day(day)} overlaps with existing {e}")

def session_minutes(session_time: str | int | None) -> int:
    if session_time is None:
        return 0
    if isinstance(session_time, int):
        return session_time
    return to_minutes(session_time)

def generate_slots(start_time: str, end_time: str, session_time: str | int | None) -> list[TimeRange]:
    """Cut ``[start, end)`` into consecutive session-sized slots.

    The last slot is clipped to ``end`` and may be shorter than a session.
    A non-positive session length yields the whole range as a single slot.
    """
    start, end = to_minutes(start_time), to_minutes(end_time)
    d = session_minutes(session_time)
    if d <= 0:
        logger.warning(f"Non-positive session length {session_time!r}; returning {start_time}-{end_time} as one slot")
        return [TimeRange(start_time, end_time)]
    slots: list[TimeRange] = []
    cur = start
    while cur < end:
        nxt = min(cur + d, end)
        slots.append(TimeRange(
            start_time if cur == start else minutes_to_time(cur),
            end_time if nxt == end else minutes_to_time(nxt),
        ))
        cur = nxt
    return slots

def subtract_breaks(working: Iterable, breaks: Iterable) -> list[TimeRange]:
    """Working ranges with break ranges cut out, in start order."""
    bs = sorted((as_range(b) for b in breaks), key=lambda r: r.start)
    out: list[TimeRange] = []
    for w in sorted((as_range(w) for w in working), key=lambda r: r.start):
        cur, w_end = w.start, w.end
        for b in bs:
            if b.end <= cur or b.start >= w_end:
                continue
            if cur < b.start:
                out.append(TimeRange(minutes_to_time(cur), minutes_to_time(b.start)))
            cur = max(cur, b.end)
        if cur < w_end:
            out.append(TimeRange(minutes_to_time(cur), minutes_to_time(w_end)))
    return out

def _day(day: DayOfWeek | str) -> str:
    return day.value if isinstance(day, DayOfWeek) else str(day)
