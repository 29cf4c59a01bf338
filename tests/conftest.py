from datetime import datetime, timezone

import pytest

from task_intelligence.schema import Task

# Wednesday; the ISO week runs from Mon 2025-01-06 to Mon 2025-01-13.
NOW = datetime(2025, 1, 8, 12, 0, tzinfo=timezone.utc)


@pytest.fixture()
def now():
    return NOW


@pytest.fixture()
def make_task():
    counter = {"n": 0}

    def factory(**fields):
        counter["n"] += 1
        fields.setdefault("id", f"t{counter['n']}")
        fields.setdefault("user_id", "u1")
        return Task(**fields)

    return factory


def at(day: int, hour: int = 0, minute: int = 0, month: int = 1) -> datetime:
    return datetime(2025, month, day, hour, minute, tzinfo=timezone.utc)


@pytest.fixture()
def utc_at():
    return at
