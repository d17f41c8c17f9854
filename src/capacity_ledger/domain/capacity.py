from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class CapacityRecord:
    """
    Derived capacity figures for one engineer.

    A CapacityRecord is never persisted. It is recomputed from the current
    assignment set and is stale as soon as that set changes.

    Attributes
    ----------
    engineer_id : str
        Engineer the figures belong to.
    total_capacity : int
        The engineer's maximum capacity.
    allocated_capacity : int
        Sum of counted allocation percentages.
    available_capacity : int
        total_capacity - allocated_capacity. Negative when over-allocated.
    """
    engineer_id: str
    total_capacity: int
    allocated_capacity: int
    available_capacity: int

    @property
    def utilization_pct(self) -> float:
        if self.total_capacity <= 0:
            return 0.0 if self.allocated_capacity <= 0 else float("inf")
        return self.allocated_capacity / self.total_capacity * 100

    @property
    def is_over_allocated(self) -> bool:
        return self.available_capacity < 0
