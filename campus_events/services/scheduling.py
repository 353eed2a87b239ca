"""Half-open interval arithmetic for same-day time slots."""
from collections.abc import Iterable
from typing import Protocol, TypeVar

from campus_events.services.errors import InvalidIntervalError


class _Slot(Protocol):
    start_time: object
    end_time: object


SlotT = TypeVar("SlotT", bound=_Slot)


def overlaps(start_a, end_a, start_b, end_b) -> bool:
    """
    Return True if [start_a, end_a) and [start_b, end_b) share an instant.

    Touching intervals (end_a == start_b) do not overlap, so back-to-back
    bookings are allowed. Both intervals must use the same comparable
    representation.
    """
    return start_a < end_b and start_b < end_a


def validate_interval(start, end) -> None:
    if start >= end:
        raise InvalidIntervalError("Start time must be before end time.")


def find_conflicts(start, end, slots: Iterable[SlotT]) -> list[SlotT]:
    """Return the slots whose interval overlaps [start, end)."""
    return [slot for slot in slots if overlaps(start, end, slot.start_time, slot.end_time)]
