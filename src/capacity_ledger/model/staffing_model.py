from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List

from ortools.sat.python import cp_model

from capacity_ledger.domain.assignment import Assignment
from capacity_ledger.domain.engineer import Engineer
from capacity_ledger.domain.project import Project
from capacity_ledger.ledger.admission import AllocationPolicy, counted_assignments


@dataclass(frozen=True)
class Candidate:
    engineer_id: str
    remaining_capacity: int
    matched_skills: List[str]


@dataclass(frozen=True)
class StaffingModel:
    model: cp_model.CpModel
    x: Dict[str, cp_model.IntVar]            # engineer_id -> BoolVar (on the team)
    allocation: Dict[str, cp_model.IntVar]   # engineer_id -> allocation %
    covered: Dict[str, cp_model.IntVar]      # skill -> BoolVar
    candidates: Dict[str, Candidate]


def remaining_capacity_for(
    engineer: Engineer,
    project: Project,
    assignments: List[Assignment],
    policy: AllocationPolicy,
) -> int:
    counted = counted_assignments(
        engineer.engineer_id, assignments, project.start_date, project.end_date, policy
    )
    return engineer.max_capacity - sum(a.allocation_percentage for a in counted)


def compute_candidates(
        project: Project,
        engineers: List[Engineer],
        assignments: List[Assignment],
        policy: AllocationPolicy,
        min_allocation: int,
) -> Dict[str, Candidate]:
    """
    Returns dict[engineer_id] = Candidate for engineers who could join the project.
    An engineer is a candidate if:
    - Has the engineer role
    - Is not already on the project
    - Has at least min_allocation capacity left over the project window
    """
    on_project = {a.engineer_id for a in assignments if a.project_id == project.project_id}
    required = set(project.required_skills)

    candidates: Dict[str, Candidate] = {}
    for e in engineers:
        if e.role != "engineer" or e.engineer_id in on_project:
            continue
        remaining = remaining_capacity_for(e, project, assignments, policy)
        if remaining < min_allocation:
            continue
        matched = sorted(required & {s.lower() for s in e.skills})
        candidates[e.engineer_id] = Candidate(e.engineer_id, remaining, matched)

    return candidates


def build_staffing_model(
        project: Project,
        candidates: Dict[str, Candidate],
        min_allocation: int,
        target_allocation: int = 100,
) -> StaffingModel:
    """
    Build a CP-SAT model proposing a team for one project.

    Variables:
      x[e] = 1 if engineer e joins the team
      allocation[e] = percentage allocated to engineer e
      covered[s] = 1 if some selected engineer has required skill s

    Constraints:
      - Team size: at most project.team_size engineers
      - Capacity: min_allocation * x[e] <= allocation[e] <= min(remaining[e], target) * x[e]
      - Coverage: covered[s] <= sum of x over engineers holding s

    Objective (lexicographic through weights):
      skill coverage, then team members, then total allocation
    """
    model = cp_model.CpModel()

    x: Dict[str, cp_model.IntVar] = {}
    allocation: Dict[str, cp_model.IntVar] = {}
    for e_id, c in candidates.items():
        cap = min(c.remaining_capacity, target_allocation)
        x[e_id] = model.new_bool_var(f"x[{e_id}]")
        allocation[e_id] = model.new_int_var(0, cap, f"alloc[{e_id}]")
        model.add(allocation[e_id] >= min_allocation * x[e_id])
        model.add(allocation[e_id] <= cap * x[e_id])

    if x:
        model.add(sum(x.values()) <= project.team_size)

    # --- Skill coverage: only for skills some candidate has ---
    covered: Dict[str, cp_model.IntVar] = {}
    for skill in project.required_skills:
        holders = [x[e_id] for e_id, c in candidates.items() if skill in c.matched_skills]
        if not holders:
            continue
        covered[skill] = model.new_bool_var(f"covered[{skill}]")
        model.add(covered[skill] <= sum(holders))

    max_alloc_total = project.team_size * target_allocation
    member_w = max_alloc_total + 1
    skill_w = member_w * (project.team_size + 1)

    model.maximize(
        skill_w * sum(covered.values())
        + member_w * sum(x.values())
        + sum(allocation.values())
    )

    return StaffingModel(
        model=model,
        x=x,
        allocation=allocation,
        covered=covered,
        candidates=candidates,
    )
