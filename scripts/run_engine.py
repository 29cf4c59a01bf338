"""Run one task intelligence report against a JSON snapshot."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import date
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from task_intelligence.adapters.json_adapter import load_snapshot
from task_intelligence.config import get_settings
from task_intelligence.errors import EngineError, ValidationError
from task_intelligence.logging_setup import setup_logging
from task_intelligence.serialization import to_payload
from task_intelligence.service import TaskIntelligenceService
from task_intelligence.store import InMemoryTaskStore

logger = logging.getLogger(__name__)

REPORTS = (
    "priorities",
    "explain",
    "route",
    "redistribution",
    "delay-risk",
    "next-actions",
    "money",
    "workload",
    "collisions",
    "gaps",
    "performance",
    "overruns",
    "overrun-features",
    "predictions",
    "day-moves",
)


def _day(raw: str | None) -> date | None:
    return date.fromisoformat(raw) if raw else None


def _base(raw: str | None) -> tuple[float, float] | None:
    if not raw:
        return None
    lat, lon = raw.split(",", 1)
    return float(lat), float(lon)


def run(service: TaskIntelligenceService, args: argparse.Namespace):
    user = args.user
    if args.report == "priorities":
        return service.recalculate_all_priorities(user)
    if args.report == "explain":
        if not args.task:
            raise ValidationError("task", "--task is required for the explain report")
        return service.explain_priority(user, args.task)
    if args.report == "route":
        return service.optimize_route(user, _day(args.day) or service.now(), _base(args.base), args.speed)
    if args.report == "redistribution":
        return service.redistribution_suggestions(user, _day(args.start), _day(args.end), args.capacity)
    if args.report == "delay-risk":
        return service.delay_risk(user, _day(args.start), _day(args.end), args.capacity)
    if args.report == "next-actions":
        return service.next_actions(user)
    if args.report == "money":
        return service.money_opportunity(user, _day(args.start), _day(args.end))
    if args.report == "predictions":
        return service.operational_predictions(user, _day(args.start), _day(args.end), args.capacity)
    if args.report == "day-moves":
        return service.day_move_suggestions(user, _day(args.start), _day(args.end))
    if args.report == "workload":
        return service.workload_flags(user, _day(args.start), _day(args.end))
    if args.report == "collisions":
        return service.schedule_collisions(user, _day(args.day))
    if args.report == "gaps":
        return service.idle_gaps(user, _day(args.day))
    if args.report == "performance":
        return service.performance(user, _day(args.day))
    if args.report == "overrun-features":
        return service.explain_overrun_model(user)
    return service.overrun_predictions(user)


def main() -> int:
    parser = argparse.ArgumentParser(description="Run a task intelligence report")
    parser.add_argument("--data", required=True, help="Path to a JSON snapshot (tasks, reminders, clients)")
    parser.add_argument("--user", required=True, help="Owner id the report is scoped to")
    parser.add_argument("--report", choices=REPORTS, required=True)
    parser.add_argument("--task", help="Task id for the explain report")
    parser.add_argument("--day", help="Target day (YYYY-MM-DD) for route and agenda reports")
    parser.add_argument("--start", help="Range start (YYYY-MM-DD)")
    parser.add_argument("--end", help="Range end (YYYY-MM-DD)")
    parser.add_argument("--capacity", type=float, help="Capacity override in minutes per day")
    parser.add_argument("--base", help="Route base as 'lat,lon'")
    parser.add_argument("--speed", type=float, help="Average travel speed in km/h")
    args = parser.parse_args()

    settings = get_settings()
    setup_logging(settings.log_level)

    snapshot = load_snapshot(args.data, settings.tz)
    store = InMemoryTaskStore(snapshot.tasks, snapshot.reminders, snapshot.clients, tz=settings.tz)
    service = TaskIntelligenceService(store, settings)

    try:
        result = run(service, args)
    except EngineError as exc:
        logger.error("Report %s failed: %s", args.report, exc)
        return 1

    print(json.dumps(to_payload(result), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
