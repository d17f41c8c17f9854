from __future__ import annotations

import argparse
import logging
from collections import Counter
from pathlib import Path

from capacity_ledger.ledger.capacity import compute_all_capacity, format_percentage, over_allocated
from capacity_ledger.ledger.date_ranges import compute_overlap_pairs
from capacity_ledger.ledger.views import dashboard_summary
from capacity_ledger.preprocessing.loaders import (
    load_assignments,
    load_engineers,
    load_projects,
    load_settings,
)
from capacity_ledger.preprocessing.validate_inputs import (
    validate_assignments,
    validate_engineers,
    validate_projects,
)


DEFAULT_INSTANCE_DIR = Path("data/sample")


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--instance-dir",
        type=Path,
        default=DEFAULT_INSTANCE_DIR,
        help="Path to instance folder (default: data/sample)",
    )
    parser.add_argument("--log-level", default="WARNING")
    args = parser.parse_args()
    logging.basicConfig(level=args.log_level.upper())

    inst = args.instance_dir

    settings = load_settings(inst / "settings.json")
    engineers = load_engineers(inst / "engineers.json", settings.default_max_capacity)
    projects = load_projects(inst / "projects.json")
    assignments = load_assignments(inst / "assignments.json")

    validate_engineers(engineers)
    validate_projects(projects)
    validate_assignments(assignments, engineers, projects)

    capacity = compute_all_capacity(engineers, assignments)
    summary = dashboard_summary(engineers, projects, assignments, capacity)

    print(f"Allocation policy: {settings.allocation_policy.value}")
    print(f"Engineers: {summary.total_engineers}")
    print("Engineers by department:", dict(Counter(e.department or "-" for e in engineers)))
    print("Part-time engineers:", sum(1 for e in engineers if e.is_part_time))
    print(f"Projects: {len(projects)} ({summary.active_projects} active)")
    print("Projects by status:", dict(Counter(p.status for p in projects)))
    print(f"Assignments: {summary.total_assignments}")
    print(f"Average available capacity: {format_percentage(summary.average_available_capacity)}")

    overlaps = compute_overlap_pairs(assignments)
    print(f"Overlapping assignment pairs: {len(overlaps)}")

    issues = over_allocated(capacity.values())
    if issues:
        print("\nOver-allocated engineers:")
        for r in issues:
            print(
                f"  {r.engineer_id}: allocated={format_percentage(r.allocated_capacity)} "
                f"of {format_percentage(r.total_capacity)}"
            )


if __name__ == "__main__":
    main()
