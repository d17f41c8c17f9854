from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from pathlib import Path

from capacity_ledger.errors import InvalidAssignmentError, OverAllocationError, UnknownReferenceError
from capacity_ledger.ledger.admission import AllocationPolicy
from capacity_ledger.ledger.capacity import format_percentage
from capacity_ledger.preprocessing.loaders import load_settings
from capacity_ledger.store.resource_store import ResourceStore


DEFAULT_INSTANCE_DIR = Path("data/sample")

EXIT_ADMISSIBLE = 0
EXIT_BLOCKED = 1
EXIT_INVALID = 2


def main() -> int:
    parser = argparse.ArgumentParser(description="Check whether a proposed assignment fits.")
    parser.add_argument("--instance-dir", type=Path, default=DEFAULT_INSTANCE_DIR)
    parser.add_argument("--engineer", required=True)
    parser.add_argument("--project", required=True)
    parser.add_argument("--allocation", type=float, required=True)
    parser.add_argument("--start", default=None, help="defaults to the project start date")
    parser.add_argument("--end", default=None, help="defaults to the project end date")
    parser.add_argument("--role", default="Developer")
    parser.add_argument("--policy", choices=[p.value for p in AllocationPolicy], default=None)
    parser.add_argument("--apply", action="store_true", help="create the assignment if it fits")
    parser.add_argument("--log-level", default="WARNING")
    args = parser.parse_args()
    logging.basicConfig(level=args.log_level.upper())

    settings = load_settings(args.instance_dir / "settings.json")
    if args.policy:
        settings = dataclasses.replace(settings, allocation_policy=AllocationPolicy(args.policy))
    store = ResourceStore.from_instance_dir(args.instance_dir, settings)

    start, end = args.start, args.end
    if start is None or end is None:
        try:
            project = store.snapshot().project(args.project)
        except UnknownReferenceError as exc:
            print(f"Invalid request: {exc}")
            return EXIT_INVALID
        start = start or project.start_date.isoformat()
        end = end or project.end_date.isoformat()

    payload = {
        "engineerId": args.engineer,
        "projectId": args.project,
        "allocationPercentage": args.allocation,
        "startDate": start,
        "endDate": end,
        "role": args.role,
    }

    try:
        decision = store.check(payload)
    except InvalidAssignmentError as exc:
        print("Invalid request:")
        for e in exc.errors:
            print(f"  {e.field}: {e.message}")
        return EXIT_INVALID
    except UnknownReferenceError as exc:
        print(f"Invalid request: {exc}")
        return EXIT_INVALID

    print(f"Policy: {decision.policy.value}")
    print(f"Currently allocated: {format_percentage(decision.current_allocated)}")
    print(f"Proposed: {format_percentage(decision.proposed_allocation)}")
    print(f"Max capacity: {format_percentage(decision.max_capacity)}")
    print(f"Counted assignments: {', '.join(decision.counted_assignment_ids) or '-'}")

    if not decision.admissible:
        print("This allocation exceeds the engineer's available capacity")
        return EXIT_BLOCKED

    print("Allocation fits")
    if args.apply:
        try:
            assignment = store.create_assignment(payload)
        except OverAllocationError as exc:
            # assignments changed between check and create
            print(str(exc))
            return EXIT_BLOCKED
        print(f"Created assignment {assignment.assignment_id}")
    return EXIT_ADMISSIBLE


if __name__ == "__main__":
    sys.exit(main())
