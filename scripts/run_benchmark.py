"""Benchmark overrun models on a CSV/JSON task snapshot."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from task_intelligence.adapters import csv_adapter, json_adapter
from task_intelligence.config import get_settings
from task_intelligence.logging_setup import setup_logging
from task_intelligence.overrun_model import benchmark_models, build_training_table


def _load_tasks(path: Path, tz):
    suffix = path.suffix.lower()
    if suffix == ".csv":
        return csv_adapter.parse(str(path), tz)
    if suffix == ".json":
        return json_adapter.parse(str(path), tz)
    raise ValueError("Unsupported input format, expected .csv or .json")


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the task overrun model benchmark")
    parser.add_argument("--data", required=True, help="Path to CSV/JSON task snapshot")
    parser.add_argument("--out", default="outputs/benchmark_report.json", help="Where to save the report")
    args = parser.parse_args()

    settings = get_settings()
    setup_logging(settings.log_level)

    tasks = _load_tasks(Path(args.data), settings.tz)
    X, y, feature_names = build_training_table(tasks)
    report = benchmark_models(X, y, seed=42)
    report["feature_names"] = feature_names
    report["n_instances"] = int(len(y))

    print(json.dumps(report, indent=2))

    out_path = Path(args.out)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(json.dumps(report, indent=2), encoding="utf-8")
    print(f"Saved benchmark report to {out_path}")


if __name__ == "__main__":
    main()
