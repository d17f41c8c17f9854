from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

DEFAULT_MAX_CAPACITY = 100


@dataclass(frozen=True)
class Engineer:
    """
    Represents a single engineer whose time can be allocated to projects.

    An Engineer is read-only from the ledger's point of view: the record is
    owned by the user-management side and only its capacity budget matters
    for allocation accounting.

    Attributes
    ----------
    engineer_id : str
        Unique identifier of the engineer.
    max_capacity : int
        Maximum capacity as a percentage of full time.
        100 is full time, values below 100 denote part-time.
        None is replaced by DEFAULT_MAX_CAPACITY on construction.
    name : str
        Display name, used by searches and reports.
    email : str
        Contact address.
    role : str
        Account role ("engineer" or "manager").
    skills : List[str]
        Skills listed on the profile. Used for filtering and staffing.
    department : str
        Department name.
    seniority : str
        "junior", "mid" or "senior".
    """
    engineer_id: str
    max_capacity: Optional[int] = DEFAULT_MAX_CAPACITY
    name: str = ""
    email: str = ""
    role: str = "engineer"
    skills: List[str] = field(default_factory=list)
    department: str = ""
    seniority: Optional[str] = None

    def __post_init__(self) -> None:
        if self.max_capacity is None:
            object.__setattr__(self, "max_capacity", DEFAULT_MAX_CAPACITY)

    @property
    def is_part_time(self) -> bool:
        return self.max_capacity < DEFAULT_MAX_CAPACITY
