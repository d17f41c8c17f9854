from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Sequence

from capacity_ledger.domain.assignment import Assignment
from capacity_ledger.domain.engineer import Engineer
from capacity_ledger.domain.project import PROJECT_STATUSES, Project
from capacity_ledger.errors import InvalidAssignmentError, InvalidProjectError
from capacity_ledger.ledger.date_ranges import as_date

ALLOWED_ROLES = {"engineer", "manager"}
ALLOWED_SENIORITY = {"junior", "mid", "senior"}
MIN_ALLOCATION = 1
MAX_ALLOCATION = 100


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str


@dataclass(frozen=True)
class AssignmentRequest:
    engineer_id: str
    project_id: str
    allocation_percentage: int
    start_date: date
    end_date: date
    role: str


@dataclass(frozen=True)
class ProjectRequest:
    name: str
    description: str
    start_date: date
    end_date: date
    status: str
    team_size: int
    required_skills: List[str]
    manager_id: str


def _check_unique(ids: Sequence[str], kind: str) -> None:
    seen = set()
    for i in ids:
        if i in seen:
            raise ValueError(f"Duplicate {kind} id found: {i}")
        seen.add(i)


def validate_engineers(engineers: Sequence[Engineer]) -> None:
    _check_unique([e.engineer_id for e in engineers], "engineer")

    for e in engineers:
        if e.role not in ALLOWED_ROLES:
            raise ValueError(f"Invalid role for engineer {e.engineer_id}: {e.role}")
        if e.max_capacity < 0:
            raise ValueError(f"max_capacity must be >= 0 for engineer {e.engineer_id}")
        if e.seniority is not None and e.seniority not in ALLOWED_SENIORITY:
            raise ValueError(f"Invalid seniority for engineer {e.engineer_id}: {e.seniority}")


def validate_projects(projects: Sequence[Project]) -> None:
    _check_unique([p.project_id for p in projects], "project")

    for p in projects:
        if not p.name.strip():
            raise ValueError(f"Project {p.project_id} has an empty name")
        if p.status not in PROJECT_STATUSES:
            raise ValueError(f"Project {p.project_id} has unknown status: {p.status}")
        if p.end_date <= p.start_date:
            raise ValueError(f"Project {p.project_id} end_date must be > start_date")
        if p.team_size < 1:
            raise ValueError(f"Project {p.project_id} team_size must be >= 1")


def validate_assignments(
    assignments: Sequence[Assignment],
    engineers: Optional[Sequence[Engineer]] = None,
    projects: Optional[Sequence[Project]] = None,
) -> None:
    """
    Structural checks only. Over-allocation is not an error here.
    """
    _check_unique([a.assignment_id for a in assignments], "assignment")
    engineer_ids = {e.engineer_id for e in engineers} if engineers is not None else None
    project_ids = {p.project_id for p in projects} if projects is not None else None

    for a in assignments:
        if not (MIN_ALLOCATION <= a.allocation_percentage <= MAX_ALLOCATION):
            raise ValueError(
                f"Assignment {a.assignment_id} allocation {a.allocation_percentage} "
                f"outside {MIN_ALLOCATION}..{MAX_ALLOCATION}"
            )
        if a.end_date <= a.start_date:
            raise ValueError(f"Assignment {a.assignment_id} end_date must be > start_date")
        if engineer_ids is not None and a.engineer_id not in engineer_ids:
            raise ValueError(f"Assignment {a.assignment_id} references unknown engineer {a.engineer_id}")
        if project_ids is not None and a.project_id not in project_ids:
            raise ValueError(f"Assignment {a.assignment_id} references unknown project {a.project_id}")


def _required_str(payload: Dict[str, Any], key: str, message: str, errors: List[FieldError]) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value.strip():
        errors.append(FieldError(key, message))
        return ""
    return value.strip()


def _required_date(payload: Dict[str, Any], key: str, label: str, errors: List[FieldError]) -> Optional[date]:
    value = payload.get(key)
    if value is None or value == "":
        errors.append(FieldError(key, f"{label} is required"))
        return None
    try:
        return as_date(value)
    except ValueError:
        errors.append(FieldError(key, f"Invalid {label.lower()}"))
        return None


def validate_assignment_request(payload: Dict[str, Any]) -> List[FieldError]:
    """
    Field-level checks for a new assignment, before any capacity check.

    Returns a list of FieldError (empty => request is well formed).
    """
    errors: List[FieldError] = []

    _required_str(payload, "engineerId", "Engineer is required", errors)
    _required_str(payload, "projectId", "Project is required", errors)

    allocation = payload.get("allocationPercentage")
    if (
        isinstance(allocation, bool)
        or not isinstance(allocation, (int, float))
        or not math.isfinite(allocation)
    ):
        errors.append(FieldError("allocationPercentage", "Allocation must be a number"))
    elif allocation < MIN_ALLOCATION:
        errors.append(FieldError("allocationPercentage", "Allocation must be at least 1%"))
    elif allocation > MAX_ALLOCATION:
        errors.append(FieldError("allocationPercentage", "Allocation cannot exceed 100%"))
    elif allocation != int(allocation):
        errors.append(FieldError("allocationPercentage", "Allocation must be a whole number"))

    start = _required_date(payload, "startDate", "Start date", errors)
    end = _required_date(payload, "endDate", "End date", errors)
    _required_str(payload, "role", "Role is required", errors)

    if start is not None and end is not None and not end > start:
        errors.append(FieldError("endDate", "End date must be after start date"))

    return errors


def parse_assignment_request(payload: Dict[str, Any]) -> AssignmentRequest:
    errors = validate_assignment_request(payload)
    if errors:
        raise InvalidAssignmentError(errors)

    return AssignmentRequest(
        engineer_id=payload["engineerId"].strip(),
        project_id=payload["projectId"].strip(),
        allocation_percentage=int(payload["allocationPercentage"]),
        start_date=as_date(payload["startDate"]),
        end_date=as_date(payload["endDate"]),
        role=payload["role"].strip(),
    )


def normalize_skills(skills: Iterable[str]) -> List[str]:
    """
    Split comma-separated entries, trim, lower-case and drop duplicates.
    First occurrence wins, so the input order is kept.
    """
    out: List[str] = []
    for entry in skills:
        for part in entry.split(","):
            skill = part.strip().lower()
            if skill and skill not in out:
                out.append(skill)
    return out


def validate_project_request(payload: Dict[str, Any]) -> List[FieldError]:
    """
    Field-level checks for a new or edited project.

    Returns a list of FieldError (empty => request is well formed).
    """
    errors: List[FieldError] = []

    _required_str(payload, "name", "Project name is required", errors)

    start = _required_date(payload, "startDate", "Start date", errors)
    end = _required_date(payload, "endDate", "End date", errors)
    if start is not None and end is not None and not end > start:
        errors.append(FieldError("endDate", "End date must be after start date"))

    status = payload.get("status", "planning")
    if status not in PROJECT_STATUSES:
        errors.append(FieldError("status", f"Status must be one of {', '.join(PROJECT_STATUSES)}"))

    team_size = payload.get("teamSize")
    if team_size is None or team_size == "":
        errors.append(FieldError("teamSize", "Team size is required"))
    elif (
        isinstance(team_size, bool)
        or not isinstance(team_size, (int, float))
        or not math.isfinite(team_size)
    ):
        errors.append(FieldError("teamSize", "Team size must be a number"))
    elif team_size < 1:
        errors.append(FieldError("teamSize", "Team size must be at least 1"))
    elif team_size != int(team_size):
        errors.append(FieldError("teamSize", "Team size must be a whole number"))

    skills = payload.get("requiredSkills", [])
    if isinstance(skills, str):
        skills = [skills]
    if not isinstance(skills, (list, tuple)) or not all(isinstance(s, str) for s in skills):
        errors.append(FieldError("requiredSkills", "Skills must be a list of text"))

    return errors


def parse_project_request(payload: Dict[str, Any]) -> ProjectRequest:
    errors = validate_project_request(payload)
    if errors:
        raise InvalidProjectError(errors)

    skills = payload.get("requiredSkills", [])
    if isinstance(skills, str):
        skills = [skills]

    return ProjectRequest(
        name=payload["name"].strip(),
        description=(payload.get("description") or "").strip(),
        start_date=as_date(payload["startDate"]),
        end_date=as_date(payload["endDate"]),
        status=payload.get("status", "planning"),
        team_size=int(payload["teamSize"]),
        required_skills=normalize_skills(skills),
        manager_id=str(payload.get("managerId") or ""),
    )
