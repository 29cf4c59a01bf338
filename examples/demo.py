"""Demo script for the task intelligence engine."""

import json
import sys
from datetime import date, datetime, timezone
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from task_intelligence.adapters.json_adapter import load_snapshot
from task_intelligence.config import Settings
from task_intelligence.logging_setup import setup_logging
from task_intelligence.serialization import to_payload
from task_intelligence.service import TaskIntelligenceService
from task_intelligence.store import InMemoryTaskStore


def main() -> None:
    setup_logging("WARNING")
    settings = Settings()
    snapshot = load_snapshot(str(Path(__file__).with_name("sample_snapshot.json")), settings.tz)
    store = InMemoryTaskStore(snapshot.tasks, snapshot.reminders, snapshot.clients, tz=settings.tz)
    service = TaskIntelligenceService(
        store, settings, clock=lambda: datetime(2025, 3, 10, 7, 0, tzinfo=timezone.utc)
    )

    day = date(2025, 3, 10)
    print("Priorities:", service.recalculate_all_priorities("u1"))
    print("Route:", to_payload(service.optimize_route("u1", day, base=(40.4168, -3.7038))))
    print("Redistribution:", to_payload(service.redistribution_suggestions("u1", day, day)))
    print("Delay risk:", to_payload(service.delay_risk("u1", day, day)))
    print("Next actions:", json.dumps(to_payload(service.next_actions("u1")), indent=2))
    print("Money:", to_payload(service.money_opportunity("u1", day, day)))
    print("Collisions:", to_payload(service.schedule_collisions("u1", day)))
    print("Predictions:", json.dumps(to_payload(service.operational_predictions("u1", day, day)), indent=2))
    print("Explain t1:", service.explain_priority("u1", "t1"))


if __name__ == "__main__":
    main()
