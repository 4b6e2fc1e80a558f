"""
Time-slot ordering and booking for a service's `availableSlot` collection.

A slot looks like {"slot": "10:00 AM - 11:00 AM", "bookedDates": ["2024-05-01"]}.
Everything here is pure: callers read the slots, compute the new collection
and write it back.
"""
import re
from functools import cmp_to_key
from typing import Any, Dict, List

Slot = Dict[str, Any]

TIME_PATTERN = re.compile(r"(\d+):(\d+) ([AP]M)")


class SlotNotFound(LookupError):
    def __init__(self, label: str):
        super().__init__(f"slot '{label}' not found")
        self.label = label


def start_hour(label: str) -> int:
    """24-hour start hour of the first "H:MM AM/PM" in the label, 0 if none.

    Minutes are parsed but ignored, so 10:00 and 10:30 compare equal.
    """
    match = TIME_PATTERN.search(label or "")
    if not match:
        return 0
    hours = int(match.group(1))
    meridiem = match.group(3)
    if meridiem == "PM" and hours != 12:
        return hours + 12
    if meridiem == "AM" and hours == 12:
        return 0
    return hours


def compare_start_times(a: Slot, b: Slot) -> int:
    return start_hour(a.get("slot", "")) - start_hour(b.get("slot", ""))


def sort_slots(slots: List[Slot]) -> List[Slot]:
    return sorted(slots, key=cmp_to_key(compare_start_times))


def _split(slots: List[Slot], label: str):
    selected = None
    rest = []
    for slot in slots:
        if selected is None and slot.get("slot") == label:
            selected = slot
        else:
            rest.append(slot)
    if selected is None:
        raise SlotNotFound(label)
    return selected, rest


def book_date(slots: List[Slot], label: str, date: str) -> List[Slot]:
    selected, rest = _split(slots, label)
    updated = dict(selected, bookedDates=list(selected.get("bookedDates") or []) + [date])
    return rest + [updated]


def unbook_date(slots: List[Slot], label: str, date: str) -> List[Slot]:
    selected, rest = _split(slots, label)
    dates = list(selected.get("bookedDates") or [])
    if date in dates:
        dates.remove(date)
    updated = dict(selected, bookedDates=dates)
    return rest + [updated]
