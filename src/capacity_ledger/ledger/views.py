from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

from capacity_ledger.domain.assignment import Assignment
from capacity_ledger.domain.capacity import CapacityRecord
from capacity_ledger.domain.engineer import Engineer
from capacity_ledger.domain.project import Project

UNKNOWN_ENGINEER = "Unknown Engineer"
UNKNOWN_PROJECT = "Unknown Project"


@dataclass(frozen=True)
class DashboardSummary:
    active_projects: int
    total_engineers: int
    total_assignments: int
    average_available_capacity: float


def engineer_projects(
    engineer_id: str,
    assignments: Iterable[Assignment],
    projects: Sequence[Project],
) -> List[Project]:
    """
    Projects the engineer holds at least one assignment on, in project order.
    """
    project_ids = {a.project_id for a in assignments if a.engineer_id == engineer_id}
    return [p for p in projects if p.project_id in project_ids]


def project_team(project_id: str, assignments: Iterable[Assignment]) -> List[Assignment]:
    return [a for a in assignments if a.project_id == project_id]


def filter_engineers(
    engineers: Iterable[Engineer],
    search: str = "",
    skills: Sequence[str] = (),
) -> List[Engineer]:
    """
    Case-insensitive name search. Every selected skill must be on the profile.
    """
    needle = search.lower()
    return [
        e for e in engineers
        if needle in e.name.lower() and all(s in e.skills for s in skills)
    ]


def filter_projects(
    projects: Iterable[Project],
    search: str = "",
    status: Optional[str] = None,
    skills: Sequence[str] = (),
) -> List[Project]:
    needle = search.lower()
    return [
        p for p in projects
        if needle in p.name.lower()
        and (not status or p.status == status)
        and all(s in p.required_skills for s in skills)
    ]


def resolve_names(
    assignment: Assignment,
    engineers_by_id: Dict[str, Engineer],
    projects_by_id: Dict[str, Project],
) -> tuple[str, str]:
    engineer = engineers_by_id.get(assignment.engineer_id)
    project = projects_by_id.get(assignment.project_id)
    engineer_name = assignment.engineer_name or (engineer.name if engineer else UNKNOWN_ENGINEER)
    project_name = assignment.project_name or (project.name if project else UNKNOWN_PROJECT)
    return engineer_name, project_name


def filter_assignments(
    assignments: Iterable[Assignment],
    engineers: Iterable[Engineer],
    projects: Iterable[Project],
    search: str = "",
    engineer_id: Optional[str] = None,
    project_id: Optional[str] = None,
) -> List[Assignment]:
    """
    Search matches either the engineer or the project name.
    """
    engineers_by_id = {e.engineer_id: e for e in engineers}
    projects_by_id = {p.project_id: p for p in projects}
    needle = search.lower()

    out: List[Assignment] = []
    for a in assignments:
        engineer_name, project_name = resolve_names(a, engineers_by_id, projects_by_id)
        if needle not in engineer_name.lower() and needle not in project_name.lower():
            continue
        if engineer_id and a.engineer_id != engineer_id:
            continue
        if project_id and a.project_id != project_id:
            continue
        out.append(a)
    return out


def dashboard_summary(
    engineers: Sequence[Engineer],
    projects: Sequence[Project],
    assignments: Sequence[Assignment],
    capacity: Dict[str, CapacityRecord],
) -> DashboardSummary:
    records = [capacity[e.engineer_id] for e in engineers if e.engineer_id in capacity]
    if records:
        average = sum(r.available_capacity for r in records) / len(records)
    else:
        average = 0.0

    return DashboardSummary(
        active_projects=sum(1 for p in projects if p.status == "active"),
        total_engineers=len(engineers),
        total_assignments=len(assignments),
        average_available_capacity=average,
    )
