from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List

import numpy as np
import matplotlib.pyplot as plt
import matplotlib.patches as mpatches
import pandas as pd

from capacity_ledger.domain.assignment import Assignment
from capacity_ledger.domain.capacity import CapacityRecord
from capacity_ledger.domain.engineer import Engineer
from capacity_ledger.domain.project import Project
from capacity_ledger.ledger.capacity import capacity_status, format_percentage
from capacity_ledger.ledger.views import UNKNOWN_ENGINEER, UNKNOWN_PROJECT
from capacity_ledger.preprocessing.loaders import LedgerSettings

ALLOCATED_COLOR = "#4f46e5"
AVAILABLE_COLOR = "#9ca3af"
OVER_COLOR = "#d62728"

CAPACITY_COLUMNS = [
    "engineer_id", "name", "allocated", "available", "max_capacity", "is_part_time", "status",
]


@dataclass(frozen=True)
class ReportFrames:
    capacity: pd.DataFrame
    assignments: pd.DataFrame


def build_capacity_frame(
    engineers: List[Engineer],
    capacity: Dict[str, CapacityRecord],
    settings: LedgerSettings,
) -> pd.DataFrame:
    rows = []
    for e in engineers:
        record = capacity.get(e.engineer_id)
        if record is None:
            # no record yet: nothing allocated
            record = CapacityRecord(e.engineer_id, e.max_capacity, 0, e.max_capacity)
        status = capacity_status(record, settings)
        rows.append(
            {
                "engineer_id": e.engineer_id,
                "name": e.name or e.engineer_id,
                "allocated": record.allocated_capacity,
                "available": record.available_capacity,
                "max_capacity": record.total_capacity,
                "is_part_time": record.total_capacity < 100,
                "status": status.value,
            }
        )

    if not rows:
        return pd.DataFrame(columns=CAPACITY_COLUMNS)
    return pd.DataFrame(rows, columns=CAPACITY_COLUMNS)


def build_assignment_frame(
    assignments: List[Assignment],
    engineers: List[Engineer],
    projects: List[Project],
) -> pd.DataFrame:
    engineer_names = {e.engineer_id: e.name for e in engineers}
    project_names = {p.project_id: p.name for p in projects}

    rows = [
        {
            "assignment_id": a.assignment_id,
            "engineer_id": a.engineer_id,
            "engineer": a.engineer_name or engineer_names.get(a.engineer_id, UNKNOWN_ENGINEER),
            "project_id": a.project_id,
            "project": a.project_name or project_names.get(a.project_id, UNKNOWN_PROJECT),
            "role": a.role,
            "allocation": a.allocation_percentage,
            "start_date": a.start_date.isoformat(),
            "end_date": a.end_date.isoformat(),
        }
        for a in assignments
    ]
    columns = [
        "assignment_id", "engineer_id", "engineer", "project_id", "project",
        "role", "allocation", "start_date", "end_date",
    ]
    if not rows:
        return pd.DataFrame(columns=columns)
    return pd.DataFrame(rows, columns=columns).sort_values(["engineer", "start_date"])


def build_report_frames(
    engineers: List[Engineer],
    projects: List[Project],
    assignments: List[Assignment],
    capacity: Dict[str, CapacityRecord],
    settings: LedgerSettings,
) -> ReportFrames:
    return ReportFrames(
        capacity=build_capacity_frame(engineers, capacity, settings),
        assignments=build_assignment_frame(assignments, engineers, projects),
    )


def plot_capacity_chart(frames: ReportFrames, out_dir: Path) -> Path | None:
    """
    Stacked allocated/available bars per engineer, y axis in percent.
    Over-allocated engineers get a red bar for the excess instead of "available".
    Returns the image path, or None when there is nothing to plot.
    """
    out_dir.mkdir(parents=True, exist_ok=True)
    df = frames.capacity
    if df.empty:
        return None

    positions = np.arange(len(df))
    allocated = df["allocated"].to_numpy(dtype=float)
    available = np.clip(df["available"].to_numpy(dtype=float), 0, None)
    excess = np.clip(-df["available"].to_numpy(dtype=float), 0, None)

    fig, ax = plt.subplots(figsize=(max(6, len(df) * 0.9), 6))

    ax.bar(positions, allocated, color=ALLOCATED_COLOR, label="Allocated")
    ax.bar(positions, available, bottom=allocated, color=AVAILABLE_COLOR, label="Available")
    if excess.any():
        ax.bar(positions, excess, bottom=allocated - excess, color=OVER_COLOR, alpha=0.6)

    for pos, row in zip(positions, df.itertuples()):
        if row.is_part_time:
            ax.hlines(row.max_capacity, pos - 0.4, pos + 0.4, colors="black", linestyles="--", linewidth=1)

    ax.set_xticks(positions)
    ax.set_xticklabels(df["name"], rotation=-45, ha="left", fontsize=10)
    ax.set_ylim(0, max(100, float(allocated.max()) + 10))
    ax.yaxis.set_major_formatter(lambda v, _pos: format_percentage(v))
    ax.set_ylabel("Capacity (%)", fontsize=12)
    ax.set_title("Team Capacity", fontsize=16, fontweight="bold")

    ax.yaxis.grid(True, linestyle="--", linewidth=0.6, alpha=0.4)
    ax.spines["top"].set_visible(False)
    ax.spines["right"].set_visible(False)

    handles = [
        mpatches.Patch(color=ALLOCATED_COLOR, label="Allocated"),
        mpatches.Patch(color=AVAILABLE_COLOR, label="Available"),
    ]
    if excess.any():
        handles.append(mpatches.Patch(color=OVER_COLOR, alpha=0.6, label="Over-allocated"))
    ax.legend(handles=handles, loc="upper left", bbox_to_anchor=(1.02, 1), borderaxespad=0)

    out_path = out_dir / "capacity_chart.png"
    plt.tight_layout()
    plt.savefig(out_path, dpi=200, bbox_inches="tight")
    plt.close(fig)
    return out_path


def save_plots(frames: ReportFrames, out_dir: Path) -> List[Path]:
    path = plot_capacity_chart(frames, out_dir)
    return [path] if path is not None else []


def save_tables(frames: ReportFrames, out_dir: Path) -> List[Path]:
    out_dir.mkdir(parents=True, exist_ok=True)

    capacity_path = out_dir / "capacity.csv"
    assignments_path = out_dir / "assignments.csv"
    frames.capacity.to_csv(capacity_path, index=False)
    frames.assignments.to_csv(assignments_path, index=False)
    return [capacity_path, assignments_path]
