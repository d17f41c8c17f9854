from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List

from ortools.sat.python import cp_model

from capacity_ledger.domain.assignment import Assignment
from capacity_ledger.domain.engineer import Engineer
from capacity_ledger.domain.project import Project
from capacity_ledger.ledger.admission import AllocationPolicy
from capacity_ledger.model.staffing_model import build_staffing_model, compute_candidates

logger = logging.getLogger(__name__)

NO_CANDIDATES = "NO_CANDIDATES"


@dataclass(frozen=True)
class StaffingMember:
    engineer_id: str
    allocation: int
    matched_skills: List[str]


@dataclass(frozen=True)
class StaffingPlan:
    project_id: str
    status: str
    members: List[StaffingMember] = field(default_factory=list)
    covered_skills: List[str] = field(default_factory=list)
    missing_skills: List[str] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return self.status in ("OPTIMAL", "FEASIBLE")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def solve_staffing(
    project: Project,
    engineers: List[Engineer],
    assignments: List[Assignment],
    *,
    policy: AllocationPolicy = AllocationPolicy.TOTAL,
    min_allocation: int = 10,
    target_allocation: int = 100,
    time_limit: float = 10.0,
    num_workers: int = 4,
) -> StaffingPlan:
    """
    Propose up to project.team_size engineers and an allocation for each.

    Remaining capacity is counted with the same policy the admission check uses,
    so every proposed member passes admission on its own.
    """
    candidates = compute_candidates(project, engineers, assignments, policy, min_allocation)
    if not candidates:
        logger.info("No candidates with %d%% free for project %s", min_allocation, project.project_id)
        return StaffingPlan(
            project_id=project.project_id,
            status=NO_CANDIDATES,
            missing_skills=list(project.required_skills),
        )

    sm = build_staffing_model(project, candidates, min_allocation, target_allocation)

    solver = cp_model.CpSolver()
    solver.parameters.max_time_in_seconds = float(time_limit)
    solver.parameters.num_workers = int(num_workers)

    status = solver.solve(sm.model)
    status_name = solver.status_name(status)
    logger.debug("Staffing solve for %s: %s", project.project_id, status_name)

    if status not in (cp_model.OPTIMAL, cp_model.FEASIBLE):
        return StaffingPlan(
            project_id=project.project_id,
            status=status_name,
            missing_skills=list(project.required_skills),
        )

    members = [
        StaffingMember(
            engineer_id=e_id,
            allocation=int(solver.value(sm.allocation[e_id])),
            matched_skills=candidates[e_id].matched_skills,
        )
        for e_id, var in sm.x.items()
        if solver.value(var) == 1
    ]
    members.sort(key=lambda m: (-len(m.matched_skills), -m.allocation, m.engineer_id))

    covered = sorted({s for m in members for s in m.matched_skills})
    missing = [s for s in project.required_skills if s not in covered]

    return StaffingPlan(
        project_id=project.project_id,
        status=status_name,
        members=members,
        covered_skills=covered,
        missing_skills=missing,
    )


def plan_to_requests(plan: StaffingPlan, project: Project, role: str = "Developer") -> List[Dict[str, Any]]:
    """
    Turn a plan into assignment request payloads over the project window.
    """
    return [
        {
            "engineerId": m.engineer_id,
            "projectId": project.project_id,
            "allocationPercentage": m.allocation,
            "startDate": project.start_date.isoformat(),
            "endDate": project.end_date.isoformat(),
            "role": role,
        }
        for m in plan.members
    ]


def save_plan(plan: StaffingPlan, out_dir: Path) -> Path:
    out_dir.mkdir(parents=True, exist_ok=True)
    out_path = out_dir / f"staffing_{plan.project_id}.json"
    out_path.write_text(json.dumps(plan.to_dict(), indent=2), encoding="utf-8")
    return out_path
