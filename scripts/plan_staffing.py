from __future__ import annotations

import argparse
import dataclasses
import logging
from pathlib import Path

from capacity_ledger.errors import InvalidAssignmentError, OverAllocationError
from capacity_ledger.ledger.admission import AllocationPolicy
from capacity_ledger.ledger.capacity import format_percentage
from capacity_ledger.preprocessing.loaders import load_settings
from capacity_ledger.solver.plan_staffing import plan_to_requests, save_plan, solve_staffing
from capacity_ledger.store.resource_store import ResourceStore


DEFAULT_INSTANCE_DIR = Path("data/sample")


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--instance-dir", type=Path, default=DEFAULT_INSTANCE_DIR)
    parser.add_argument("--project", required=True)
    parser.add_argument("--min-allocation", type=int, default=10)
    parser.add_argument("--target-allocation", type=int, default=100)
    parser.add_argument("--policy", choices=[p.value for p in AllocationPolicy], default=None)
    parser.add_argument("--time-limit", type=float, default=10.0)
    parser.add_argument("--num-workers", type=int, default=4)
    parser.add_argument("--role", default="Developer")
    parser.add_argument("--out-dir", type=Path, default=Path("outputs/solutions"))
    parser.add_argument("--apply", action="store_true", help="create the proposed assignments")
    parser.add_argument("--log-level", default="WARNING")
    args = parser.parse_args()
    logging.basicConfig(level=args.log_level.upper())

    settings = load_settings(args.instance_dir / "settings.json")
    if args.policy:
        settings = dataclasses.replace(settings, allocation_policy=AllocationPolicy(args.policy))
    store = ResourceStore.from_instance_dir(args.instance_dir, settings)

    snap = store.snapshot()
    project = snap.project(args.project)

    plan = solve_staffing(
        project,
        list(snap.engineers),
        list(snap.assignments),
        policy=settings.allocation_policy,
        min_allocation=args.min_allocation,
        target_allocation=args.target_allocation,
        time_limit=args.time_limit,
        num_workers=args.num_workers,
    )

    print("Status:", plan.status)
    if not plan.found:
        print("No staffing proposal found. Check remaining capacity and --min-allocation.")
        return

    print(f"\nProposed team for {project.name} (team size {project.team_size}):")
    for m in plan.members:
        skills = ", ".join(m.matched_skills) or "-"
        print(f"  {m.engineer_id}: {format_percentage(m.allocation)}  skills: {skills}")
    print("Covered skills:", ", ".join(plan.covered_skills) or "-")
    print("Missing skills:", ", ".join(plan.missing_skills) or "-")

    out_path = save_plan(plan, args.out_dir)
    print(f"\nSaved: {out_path}")

    if args.apply:
        for payload in plan_to_requests(plan, project, role=args.role):
            try:
                a = store.create_assignment(payload)
            except (InvalidAssignmentError, OverAllocationError) as exc:
                print(f"  skipped: {exc}")
                continue
            print(f"  created {a.assignment_id} for {a.engineer_id}")


if __name__ == "__main__":
    main()
