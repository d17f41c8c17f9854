from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, List, Tuple, Union

from capacity_ledger.domain.assignment import Assignment

DateLike = Union[date, datetime, str]


def as_date(value: DateLike) -> date:
    """
    Coerce a date, datetime or ISO-8601 string to a calendar date.

    Accepts "2024-01-10" as well as timestamps such as
    "2024-01-10T00:00:00.000Z". Raises ValueError for anything else.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if "T" in text or " " in text:
            if text.endswith("Z"):
                text = text[:-1] + "+00:00"
            return datetime.fromisoformat(text).date()
        return date.fromisoformat(text)
    raise ValueError(f"Not a date: {value!r}")


def is_date_range_valid(start_date: DateLike, end_date: DateLike) -> bool:
    """
    True if end_date is strictly after start_date.
    """
    return as_date(end_date) > as_date(start_date)


def ranges_overlap(
    start_a: date,
    end_a: date,
    start_b: date,
    end_b: date,
) -> bool:
    """
    True if the half-open ranges [start_a, end_a) and [start_b, end_b) share a day.
    """
    return not (end_a <= start_b or end_b <= start_a)


def assignments_overlap(a1: Assignment, a2: Assignment) -> bool:
    return ranges_overlap(a1.start_date, a1.end_date, a2.start_date, a2.end_date)


def overlapping_assignments(
    assignments: Iterable[Assignment],
    start_date: DateLike,
    end_date: DateLike,
) -> List[Assignment]:
    """
    Returns the assignments whose range overlaps [start_date, end_date).
    """
    start, end = as_date(start_date), as_date(end_date)
    return [
        a for a in assignments
        if ranges_overlap(a.start_date, a.end_date, start, end)
    ]


def compute_overlap_pairs(
        assignments: List[Assignment],
) -> List[Tuple[str, str]]:
    """
    Returns list of (assignment_id1, assignment_id2) with id1 < id2 that belong
    to the same engineer and overlap in time.
    """
    pairs: List[Tuple[str, str]] = []
    n = len(assignments)

    for i in range(n):
        for j in range(i + 1, n):
            a1, a2 = assignments[i], assignments[j]
            if a1.engineer_id != a2.engineer_id:
                continue
            if assignments_overlap(a1, a2):
                pairs.append(tuple(sorted((a1.assignment_id, a2.assignment_id))))

    pairs.sort()
    return pairs
