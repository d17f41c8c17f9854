from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional


@dataclass(frozen=True)
class Assignment:
    """
    Represents a time-bounded allocation of an engineer to a project.

    Assignments are created by a manager and destroyed by explicit deletion.
    The ledger only reads them.

    Attributes
    ----------
    assignment_id : str
        Unique identifier of the assignment.
    engineer_id : str
        Engineer the allocation belongs to (reference, not ownership).
    project_id : str
        Project the engineer is allocated to (reference).
    allocation_percentage : int
        Share of the engineer's time, 1..100.
    start_date : date
        First day of the assignment.
    end_date : date
        End of the assignment. Ranges are half-open, so end_date > start_date.
    role : str
        Free-text role on the project (e.g. "Tech Lead").
    engineer_name : Optional[str]
        Denormalised engineer name when the payload was populated.
    project_name : Optional[str]
        Denormalised project name when the payload was populated.
    """
    assignment_id: str
    engineer_id: str
    project_id: str
    allocation_percentage: int
    start_date: date
    end_date: date
    role: str = ""
    engineer_name: Optional[str] = None
    project_name: Optional[str] = None

    @property
    def duration_days(self) -> int:
        return (self.end_date - self.start_date).days
