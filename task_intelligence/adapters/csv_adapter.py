"""CSV adapter for task snapshots."""

from __future__ import annotations

import csv
from datetime import tzinfo
from typing import Optional

from task_intelligence.adapters.fields import task_from_record
from task_intelligence.schema import Task


def parse(file_path: str, tz: Optional[tzinfo] = None) -> list[Task]:
    """Parse a CSV file with one task per row; naive instants are read in ``tz``."""

    with open(file_path, newline="", encoding="utf-8") as handle:
        reader = csv.DictReader(handle)
        if not reader.fieldnames:
            return []

        tasks: list[Task] = []
        for row_number, row in enumerate(reader, start=2):
            tasks.append(task_from_record(row, f"Row {row_number}", tz))
        return tasks
