from __future__ import annotations

import math
from enum import Enum
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional

from capacity_ledger.domain.assignment import Assignment
from capacity_ledger.domain.capacity import CapacityRecord
from capacity_ledger.domain.engineer import Engineer
from capacity_ledger.ledger.date_ranges import DateLike, as_date

if TYPE_CHECKING:
    from capacity_ledger.preprocessing.loaders import LedgerSettings

HIGH_LOAD_THRESHOLD = 70
OVERLOADED_THRESHOLD = 90


class CapacityStatus(str, Enum):
    AVAILABLE = "Available"
    HIGH_LOAD = "High Load"
    OVERLOADED = "Overloaded"


def compute_capacity(
        engineer: Engineer,
        assignments: Iterable[Assignment],
) -> CapacityRecord:
    """
    Allocated vs. available capacity for one engineer.

    Sums the allocation percentages of every assignment referencing the
    engineer. available_capacity is not clamped, so over-allocation shows
    up as a negative number.
    """
    total = engineer.max_capacity
    allocated = sum(
        a.allocation_percentage
        for a in assignments
        if a.engineer_id == engineer.engineer_id
    )
    return CapacityRecord(
        engineer_id=engineer.engineer_id,
        total_capacity=total,
        allocated_capacity=allocated,
        available_capacity=total - allocated,
    )


def compute_all_capacity(
        engineers: Iterable[Engineer],
        assignments: Iterable[Assignment],
) -> Dict[str, CapacityRecord]:
    """
    Returns dict[engineer_id] = CapacityRecord for every engineer.
    """
    assignments = list(assignments)
    return {e.engineer_id: compute_capacity(e, assignments) for e in engineers}


def validate_allocation(
    current_allocated: float,
    proposed_allocation: float,
    max_capacity: float,
) -> bool:
    """
    True if the proposed allocation fits on top of what is already allocated.
    Range checks on proposed_allocation belong to the caller.
    """
    return current_allocated + proposed_allocation <= max_capacity


def format_percentage(value: float) -> str:
    # round half up, 0.5 -> 1
    return f"{int(math.floor(value + 0.5))}%"


def format_date(value: DateLike) -> str:
    d = as_date(value)
    return f"{d.strftime('%b')} {d.day}, {d.year}"


def capacity_status(
    record: CapacityRecord,
    settings: Optional[LedgerSettings] = None,
) -> CapacityStatus:
    """
    Load label for a record. Thresholds come from settings, or the
    module defaults when no settings are given.
    """
    high = settings.high_load_threshold if settings is not None else HIGH_LOAD_THRESHOLD
    overloaded = settings.overloaded_threshold if settings is not None else OVERLOADED_THRESHOLD

    used = record.utilization_pct
    if used >= overloaded:
        return CapacityStatus.OVERLOADED
    if used >= high:
        return CapacityStatus.HIGH_LOAD
    return CapacityStatus.AVAILABLE


def over_allocated(records: Iterable[CapacityRecord]) -> List[CapacityRecord]:
    """
    Records with negative available capacity, most over-allocated first.
    """
    issues = [r for r in records if r.available_capacity < 0]
    issues.sort(key=lambda r: (r.available_capacity, r.engineer_id))
    return issues
