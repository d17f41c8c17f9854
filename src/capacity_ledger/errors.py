from __future__ import annotations

from typing import TYPE_CHECKING, List

if TYPE_CHECKING:
    from capacity_ledger.ledger.admission import AdmissionDecision
    from capacity_ledger.preprocessing.validate_inputs import FieldError


class InvalidAssignmentError(ValueError):
    """Raised when an assignment request fails syntactic validation."""

    def __init__(self, errors: List["FieldError"]) -> None:
        detail = "; ".join(f"{e.field}: {e.message}" for e in errors)
        super().__init__(f"Invalid assignment request: {detail}")
        self.errors = errors


class InvalidProjectError(ValueError):
    """Raised when a project request fails syntactic validation."""

    def __init__(self, errors: List["FieldError"]) -> None:
        detail = "; ".join(f"{e.field}: {e.message}" for e in errors)
        super().__init__(f"Invalid project request: {detail}")
        self.errors = errors


class OverAllocationError(RuntimeError):
    def __init__(self, decision: "AdmissionDecision") -> None:
        super().__init__(
            f"Engineer {decision.engineer_id} cannot take "
            f"{decision.proposed_allocation}%: {decision.current_allocated}% "
            f"already allocated of {decision.max_capacity}%"
        )
        self.decision = decision


class UnknownReferenceError(KeyError):
    def __init__(self, kind: str, ref_id: str) -> None:
        super().__init__(f"Unknown {kind}: {ref_id}")
        self.kind = kind
        self.ref_id = ref_id

    def __str__(self) -> str:
        return self.args[0]
