from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Iterable, List

from capacity_ledger.domain.assignment import Assignment
from capacity_ledger.domain.engineer import Engineer
from capacity_ledger.ledger.capacity import validate_allocation
from capacity_ledger.ledger.date_ranges import DateLike, as_date, ranges_overlap

logger = logging.getLogger(__name__)


class AllocationPolicy(str, Enum):
    """
    Which existing assignments count against a proposed one.

    TOTAL sums every assignment of the engineer regardless of dates.
    OVERLAPPING only sums assignments whose range overlaps the proposal.
    """
    TOTAL = "total"
    OVERLAPPING = "overlapping"


@dataclass(frozen=True)
class ProposedAssignment:
    engineer_id: str
    allocation_percentage: int
    start_date: date
    end_date: date


@dataclass(frozen=True)
class AdmissionDecision:
    engineer_id: str
    policy: AllocationPolicy
    current_allocated: int
    proposed_allocation: int
    max_capacity: int
    admissible: bool
    counted_assignment_ids: List[str]

    @property
    def remaining_capacity(self) -> int:
        return self.max_capacity - self.current_allocated


def make_proposal(
    engineer_id: str,
    allocation_percentage: int,
    start_date: DateLike,
    end_date: DateLike,
) -> ProposedAssignment:
    return ProposedAssignment(
        engineer_id=engineer_id,
        allocation_percentage=int(allocation_percentage),
        start_date=as_date(start_date),
        end_date=as_date(end_date),
    )


def counted_assignments(
    engineer_id: str,
    assignments: Iterable[Assignment],
    start_date: date,
    end_date: date,
    policy: AllocationPolicy,
) -> List[Assignment]:
    """
    Returns the engineer's assignments that count against [start_date, end_date)
    under the given policy.
    """
    policy = AllocationPolicy(policy)
    own = [a for a in assignments if a.engineer_id == engineer_id]
    if policy is AllocationPolicy.TOTAL:
        return own
    return [
        a for a in own
        if ranges_overlap(a.start_date, a.end_date, start_date, end_date)
    ]


def check_assignment(
    engineer: Engineer,
    assignments: Iterable[Assignment],
    proposed: ProposedAssignment,
    policy: AllocationPolicy = AllocationPolicy.TOTAL,
) -> AdmissionDecision:
    """
    Decide whether a proposed assignment fits the engineer's remaining capacity.

    The allocation range of `proposed` is assumed to be validated already;
    this only performs the capacity comparison.
    """
    assignments = list(assignments)
    policy = AllocationPolicy(policy)
    max_capacity = engineer.max_capacity

    counted = counted_assignments(
        engineer.engineer_id, assignments, proposed.start_date, proposed.end_date, policy
    )
    current = sum(a.allocation_percentage for a in counted)
    admissible = validate_allocation(current, proposed.allocation_percentage, max_capacity)

    if policy is AllocationPolicy.TOTAL:
        overlapping = counted_assignments(
            engineer.engineer_id,
            assignments,
            proposed.start_date,
            proposed.end_date,
            AllocationPolicy.OVERLAPPING,
        )
        overlapping_current = sum(a.allocation_percentage for a in overlapping)
        if admissible != validate_allocation(
            overlapping_current, proposed.allocation_percentage, max_capacity
        ):
            logger.warning(
                "Allocation policies disagree for engineer %s: total=%d%%, overlapping=%d%%, "
                "proposed=%d%%, max=%d%%",
                engineer.engineer_id,
                current,
                overlapping_current,
                proposed.allocation_percentage,
                max_capacity,
            )

    return AdmissionDecision(
        engineer_id=engineer.engineer_id,
        policy=policy,
        current_allocated=current,
        proposed_allocation=proposed.allocation_percentage,
        max_capacity=max_capacity,
        admissible=admissible,
        counted_assignment_ids=sorted(a.assignment_id for a in counted),
    )
