from __future__ import annotations

import argparse
import logging
from pathlib import Path

from capacity_ledger.ledger.capacity import format_percentage
from capacity_ledger.store.resource_store import ResourceStore
from capacity_ledger.visualization.report import build_report_frames, save_plots, save_tables


DEFAULT_INSTANCE_DIR = Path("data/sample")


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--instance-dir", type=Path, default=DEFAULT_INSTANCE_DIR)
    parser.add_argument("--out-dir", type=Path, default=Path("outputs/report"))
    parser.add_argument("--log-level", default="WARNING")
    args = parser.parse_args()
    logging.basicConfig(level=args.log_level.upper())

    store = ResourceStore.from_instance_dir(args.instance_dir)
    snap = store.snapshot()
    capacity = store.capacity(snap)

    frames = build_report_frames(
        engineers=list(snap.engineers),
        projects=list(snap.projects),
        assignments=list(snap.assignments),
        capacity=capacity,
        settings=store.settings,
    )

    print("Capacity")
    for row in frames.capacity.itertuples():
        kind = "part-time" if row.is_part_time else "full-time"
        print(
            f"  {row.name:<24} allocated={format_percentage(row.allocated):>5} "
            f"available={format_percentage(row.available):>5} "
            f"{kind} {format_percentage(row.max_capacity)}  [{row.status}]"
        )

    tables = save_tables(frames, args.out_dir)
    plots = save_plots(frames, args.out_dir)

    print("\nOutputs")
    for p in tables + plots:
        print(f"  {p}")


if __name__ == "__main__":
    main()
