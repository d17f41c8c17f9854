from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, TypeVar

from capacity_ledger.domain.assignment import Assignment
from capacity_ledger.domain.engineer import DEFAULT_MAX_CAPACITY, Engineer
from capacity_ledger.domain.project import Project
from capacity_ledger.ledger.admission import AllocationPolicy
from capacity_ledger.ledger.capacity import HIGH_LOAD_THRESHOLD, OVERLOADED_THRESHOLD
from capacity_ledger.ledger.date_ranges import as_date

logger = logging.getLogger(__name__)

T = TypeVar("T")

ENGINEERS_FILE = "engineers.json"
PROJECTS_FILE = "projects.json"
ASSIGNMENTS_FILE = "assignments.json"
SETTINGS_FILE = "settings.json"


@dataclass(frozen=True)
class LedgerSettings:
    allocation_policy: AllocationPolicy = AllocationPolicy.TOTAL
    default_max_capacity: int = DEFAULT_MAX_CAPACITY
    high_load_threshold: int = HIGH_LOAD_THRESHOLD
    overloaded_threshold: int = OVERLOADED_THRESHOLD
    refresh_interval_seconds: float = 3.0
    staleness_seconds: float = 30.0


def _read_json(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Missing file: {path}")
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def write_json(path: Path, obj: Dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(obj, indent=2), encoding="utf-8")


def _ref_id(value: Any) -> str:
    # populated payloads carry the referenced document instead of its id
    if isinstance(value, dict):
        return str(value["_id"])
    return str(value)


def _ref_name(value: Any) -> str | None:
    if isinstance(value, dict):
        return value.get("name")
    return None


def _parse_records(records: List[Dict[str, Any]], kind: str, build: Callable[[Dict[str, Any]], T]) -> List[T]:
    out: List[T] = []
    for i, r in enumerate(records):
        try:
            out.append(build(r))
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise ValueError(f"Malformed {kind} record at index {i}: {exc!r}") from exc
    return out


def engineer_from_record(r: Dict[str, Any], default_max_capacity: int = DEFAULT_MAX_CAPACITY) -> Engineer:
    max_capacity = r.get("maxCapacity")
    return Engineer(
        engineer_id=str(r["_id"]),
        max_capacity=int(max_capacity) if max_capacity is not None else default_max_capacity,
        name=r.get("name", ""),
        email=r.get("email", ""),
        role=r.get("role", "engineer"),
        skills=list(r.get("skills") or []),
        department=r.get("department", ""),
        seniority=r.get("seniority"),
    )


def project_from_record(r: Dict[str, Any]) -> Project:
    return Project(
        project_id=str(r["_id"]),
        name=r["name"],
        start_date=as_date(r["startDate"]),
        end_date=as_date(r["endDate"]),
        description=r.get("description", ""),
        required_skills=[s.strip().lower() for s in r.get("requiredSkills", []) if s.strip()],
        team_size=int(r.get("teamSize", 1)),
        status=r.get("status", "planning"),
        manager_id=str(r.get("managerId", "")),
    )


def project_to_record(p: Project) -> Dict[str, Any]:
    record: Dict[str, Any] = {
        "_id": p.project_id,
        "name": p.name,
        "description": p.description,
        "startDate": p.start_date.isoformat(),
        "endDate": p.end_date.isoformat(),
        "requiredSkills": list(p.required_skills),
        "teamSize": p.team_size,
        "status": p.status,
    }
    if p.manager_id:
        record["managerId"] = p.manager_id
    return record


def assignment_from_record(r: Dict[str, Any]) -> Assignment:
    return Assignment(
        assignment_id=str(r["_id"]),
        engineer_id=_ref_id(r["engineerId"]),
        project_id=_ref_id(r["projectId"]),
        allocation_percentage=int(r["allocationPercentage"]),
        start_date=as_date(r["startDate"]),
        end_date=as_date(r["endDate"]),
        role=r.get("role", ""),
        engineer_name=r.get("engineerName") or _ref_name(r["engineerId"]),
        project_name=r.get("projectName") or _ref_name(r["projectId"]),
    )


def assignment_to_record(a: Assignment) -> Dict[str, Any]:
    record: Dict[str, Any] = {
        "_id": a.assignment_id,
        "engineerId": a.engineer_id,
        "projectId": a.project_id,
        "allocationPercentage": a.allocation_percentage,
        "startDate": a.start_date.isoformat(),
        "endDate": a.end_date.isoformat(),
        "role": a.role,
    }
    if a.engineer_name:
        record["engineerName"] = a.engineer_name
    if a.project_name:
        record["projectName"] = a.project_name
    return record


def load_engineers(path: Path, default_max_capacity: int = DEFAULT_MAX_CAPACITY) -> List[Engineer]:
    obj = _read_json(path)
    return _parse_records(
        obj.get("engineers", []),
        "engineer",
        lambda r: engineer_from_record(r, default_max_capacity),
    )


def load_projects(path: Path) -> List[Project]:
    obj = _read_json(path)
    return _parse_records(obj.get("projects", []), "project", project_from_record)


def load_assignments(path: Path) -> List[Assignment]:
    if not path.exists():
        return []  # no assignments yet

    obj = _read_json(path)
    return _parse_records(obj.get("assignments", []), "assignment", assignment_from_record)


def save_projects(path: Path, projects: List[Project]) -> None:
    write_json(path, {"projects": [project_to_record(p) for p in projects]})


def save_assignments(path: Path, assignments: List[Assignment]) -> None:
    write_json(path, {"assignments": [assignment_to_record(a) for a in assignments]})


def load_settings(path: Path) -> LedgerSettings:
    if not path.exists():
        logger.debug("No settings at %s, using defaults", path)
        return LedgerSettings()  # settings are optional

    obj = _read_json(path)
    defaults = LedgerSettings()
    try:
        policy = AllocationPolicy(obj.get("allocation_policy", defaults.allocation_policy.value))
    except ValueError as exc:
        raise ValueError(
            f"allocation_policy must be one of {[p.value for p in AllocationPolicy]}"
        ) from exc

    settings = LedgerSettings(
        allocation_policy=policy,
        default_max_capacity=int(obj.get("default_max_capacity", defaults.default_max_capacity)),
        high_load_threshold=int(obj.get("high_load_threshold", defaults.high_load_threshold)),
        overloaded_threshold=int(obj.get("overloaded_threshold", defaults.overloaded_threshold)),
        refresh_interval_seconds=float(obj.get("refresh_interval_seconds", defaults.refresh_interval_seconds)),
        staleness_seconds=float(obj.get("staleness_seconds", defaults.staleness_seconds)),
    )
    if settings.refresh_interval_seconds <= 0:
        raise ValueError("refresh_interval_seconds must be > 0")
    if settings.staleness_seconds < 0:
        raise ValueError("staleness_seconds must be >= 0")
    return settings
