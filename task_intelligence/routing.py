"""Daily visit ordering with a greedy nearest-neighbour heuristic."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from task_intelligence.geo import haversine_km, travel_minutes
from task_intelligence.schema import Task

Coordinate = tuple[float, float]


@dataclass
class RoutePlan:
    """Advisory visit order; never written back without an explicit apply."""

    task_ids: list[str] = field(default_factory=list)
    travel_minutes: float = 0.0
    distance_km: float = 0.0


def optimize_route(tasks: list[Task], base: Optional[Coordinate] = None, speed_kmh: float = 30.0) -> RoutePlan:
    """Order geolocated tasks by repeatedly visiting the nearest remaining stop.

    Without a base the first geolocated task is the starting point and costs
    nothing; with a base the closing leg back to it is included in the totals.
    Distance ties go to the task that appears first in the input.
    """

    remaining = [task for task in tasks if task.has_location]
    if not remaining:
        return RoutePlan()

    order: list[str] = []
    if base is not None:
        position = (float(base[0]), float(base[1]))
    else:
        first = remaining.pop(0)
        order.append(first.id)
        position = (first.latitude, first.longitude)

    total_km = 0.0
    total_minutes = 0.0
    while remaining:
        best_index = 0
        best_distance = haversine_km(position[0], position[1], remaining[0].latitude, remaining[0].longitude)
        for index in range(1, len(remaining)):
            candidate = remaining[index]
            distance = haversine_km(position[0], position[1], candidate.latitude, candidate.longitude)
            if distance < best_distance:
                best_index = index
                best_distance = distance

        chosen = remaining.pop(best_index)
        order.append(chosen.id)
        total_km += best_distance
        total_minutes += travel_minutes(best_distance, speed_kmh)
        position = (chosen.latitude, chosen.longitude)

    if base is not None:
        closing = haversine_km(position[0], position[1], float(base[0]), float(base[1]))
        total_km += closing
        total_minutes += travel_minutes(closing, speed_kmh)

    return RoutePlan(task_ids=order, travel_minutes=round(total_minutes, 2), distance_km=round(total_km, 3))
