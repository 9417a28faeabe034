from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Sequence

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from .ledger.records import Record, payload_tree
from .ledger.validator import ValidationResult, validate_chain
from .simulation.battery import DEFAULT_TIME_STEP_HOURS

SNAPSHOT_COLUMNS = [
    "index",
    "timestamp",
    "kind",
    "tampered",
    "solar_output",
    "load_consumption",
    "soc",
    "battery_status",
    "grid_exchange",
    "produced_at",
]


def _slugify(value: str) -> str:
    """
    Convert a free-form string into a filesystem-safe slug.
    """
    return "".join(c if c.isalnum() or c in ("-", "_") else "_" for c in value.strip()).strip("_")


def _create_run_directory(name: str, output_root: Path) -> Path:
    """
    Create the timestamped output directory for one export.
    """
    timestamp = datetime.now().strftime("%y%m%d_%H%M%S")
    slug = _slugify(name) or "microgrid"
    run_dir = output_root / f"{timestamp}_{slug}"
    run_dir.mkdir(parents=True, exist_ok=True)
    return run_dir


def _float_or_nan(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return float("nan")


def chain_to_frame(records: Sequence[Record]) -> pd.DataFrame:
    """
    One row per record with its linkage fields.
    """
    rows = [
        {
            "index": r.index,
            "timestamp": r.timestamp,
            "kind": r.kind,
            "tampered": r.tampered,
            "prev_digest": r.prev_digest,
            "digest": r.digest,
        }
        for r in records
    ]
    return pd.DataFrame(rows, columns=["index", "timestamp", "kind", "tampered", "prev_digest", "digest"])


def snapshots_to_frame(records: Sequence[Record]) -> pd.DataFrame:
    """
    Flatten record payloads into energy columns.

    Injected payloads are read field by field; anything missing or
    non-numeric becomes NaN.
    """
    rows = []
    for r in records:
        tree = payload_tree(r.payload)
        data = tree if isinstance(tree, dict) else {}
        battery = data.get("battery") if isinstance(data.get("battery"), dict) else {}
        rows.append(
            {
                "index": r.index,
                "timestamp": r.timestamp,
                "kind": r.kind,
                "tampered": r.tampered,
                "solar_output": _float_or_nan(data.get("solar_output")),
                "load_consumption": _float_or_nan(data.get("load_consumption")),
                "soc": _float_or_nan(battery.get("soc")),
                "battery_status": battery.get("status"),
                "grid_exchange": _float_or_nan(data.get("grid_exchange")),
                "produced_at": data.get("produced_at"),
            }
        )
    return pd.DataFrame(rows, columns=SNAPSHOT_COLUMNS)


def summarize(
    frame: pd.DataFrame,
    validation: ValidationResult,
    time_step: float = DEFAULT_TIME_STEP_HOURS,
) -> Dict[str, Any]:
    """
    Energy totals (kWh, one record per step) and the audit outcome.
    """
    grid = frame["grid_exchange"].fillna(0.0).to_numpy(dtype=float)
    soc = frame["soc"].dropna()
    return {
        "records": int(len(frame)),
        "tampered_records": int(frame["tampered"].sum()) if len(frame) else 0,
        "valid": validation.valid,
        "error_index": validation.error_index,
        "reason": validation.reason.value if validation.reason else None,
        "solar_kwh": round(float(frame["solar_output"].sum(skipna=True)) * time_step, 3),
        "load_kwh": round(float(frame["load_consumption"].sum(skipna=True)) * time_step, 3),
        "grid_import_kwh": round(float(np.clip(grid, 0.0, None).sum()) * time_step, 3),
        "grid_export_kwh": round(float(-np.clip(grid, None, 0.0).sum()) * time_step, 3),
        "final_soc": float(soc.iloc[-1]) if len(soc) else None,
    }


def _plot_energy_profile(frame: pd.DataFrame, save_path: Path) -> None:
    """
    Plot solar, load and grid power per record with the battery SOC on a twin axis.
    """
    if frame.empty:
        return
    fig, ax = plt.subplots(figsize=(10, 5))
    ax.plot(frame["index"], frame["solar_output"], label="Solar [kW]", color="#f2a900")
    ax.plot(frame["index"], frame["load_consumption"], label="Load [kW]", color="#1f77b4")
    ax.plot(frame["index"], frame["grid_exchange"], label="Grid [kW]", color="#7f7f7f")
    tampered = frame[frame["tampered"]]
    if not tampered.empty:
        ax.scatter(tampered["index"], tampered["load_consumption"], color="red", marker="x", label="Tampered")
    ax.axhline(0.0, color="black", linewidth=0.5)
    ax.set_xlabel("Record")
    ax.set_ylabel("Power [kW]")

    ax_soc = ax.twinx()
    ax_soc.plot(frame["index"], frame["soc"], label="SOC [%]", color="#2ca02c", linestyle="--")
    ax_soc.set_ylabel("State of charge [%]")
    ax_soc.set_ylim(0, 100)

    ax.set_title("Microgrid energy profile")
    ax.grid(True, alpha=0.3)
    handles, labels = ax.get_legend_handles_labels()
    soc_handles, soc_labels = ax_soc.get_legend_handles_labels()
    ax.legend(handles + soc_handles, labels + soc_labels, fontsize=8, loc="best")
    fig.tight_layout()
    fig.savefig(save_path, dpi=150)
    plt.close(fig)


class ResultBuilder:
    """
    Export a ledger to CSV, JSON and a plot.
    """

    def __init__(self, output_root: str | Path = "results") -> None:
        """
        Args:
            output_root: Base directory for generated assets.
        """
        self.output_root = Path(output_root)

    def build(
        self,
        records: Sequence[Record],
        *,
        name: str = "microgrid",
        validation: ValidationResult | None = None,
        time_step: float = DEFAULT_TIME_STEP_HOURS,
    ) -> Path:
        """
        Write chain.csv, snapshots.csv, summary.json and energy_profile.png.

        Args:
            records: Ledger records, typically ``Ledger.records()``.
            name: Base name for the run directory.
            validation: Audit result; computed from ``records`` when omitted.
            time_step: Hours per record, for energy totals.

        Returns:
            Path of the created directory.
        """
        if validation is None:
            validation = validate_chain(records)

        run_dir = _create_run_directory(name, self.output_root)
        chain_to_frame(records).to_csv(run_dir / "chain.csv", index=False)
        frame = snapshots_to_frame(records)
        frame.to_csv(run_dir / "snapshots.csv", index=False)

        summary = summarize(frame, validation, time_step)
        (run_dir / "summary.json").write_text(json.dumps(summary, indent=2), encoding="utf-8")
        _plot_energy_profile(frame, run_dir / "energy_profile.png")
        return run_dir
