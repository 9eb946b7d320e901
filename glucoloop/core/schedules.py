"""
Per-step input schedules for the closed loop.

Meals are grams of carbohydrate eaten at a clock hour; basal segments give a
pump rate in U/h that holds until the next segment starts. Both expand into
flat lists indexed by simulation step, repeated for each simulated day.
"""

from dataclasses import dataclass
from typing import List, Sequence

MINUTES_PER_HOUR = 60
HOURS_PER_DAY = 24


@dataclass(frozen=True)
class Meal:
    hour: float      # clock time of the meal (h)
    carbs_g: float   # carbohydrate content (g)


@dataclass(frozen=True)
class BasalSegment:
    start_hour: float       # segment start (h)
    rate_u_per_hr: float    # basal rate (U/h)


def _schedule_length(days: int, step: float) -> int:
    # One extra point so the inclusive loop has an input at the last minute.
    return int(round(days * HOURS_PER_DAY * MINUTES_PER_HOUR / step)) + 1


def build_carb_schedule(meals: Sequence[Meal], days: int = 1, step: float = 1.0) -> List[float]:
    """
    Carbohydrates (g) per step, each meal landing on the step at its hour.

    Meals outside [0, 24) h are ignored.
    """
    if step <= 0:
        raise ValueError(f"Schedule step must be positive, got {step}")
    n = _schedule_length(days, step)
    steps_per_day = int(round(HOURS_PER_DAY * MINUTES_PER_HOUR / step))
    carbs = [0.0] * n

    for day in range(days):
        for meal in meals:
            if not 0 <= meal.hour < HOURS_PER_DAY:
                continue
            idx = day * steps_per_day + int(round(meal.hour * MINUTES_PER_HOUR / step))
            if idx < n:
                carbs[idx] += meal.carbs_g
    return carbs


def build_basal_schedule(segments: Sequence[BasalSegment], days: int = 1, step: float = 1.0) -> List[float]:
    """
    Basal insulin (U per step) expanded from hourly segments.

    A segment's rate applies from its start hour until the next segment; the
    first segment's rate also covers any time before it, wrapping around midnight.
    """
    if step <= 0:
        raise ValueError(f"Schedule step must be positive, got {step}")
    n = _schedule_length(days, step)
    if not segments:
        return [0.0] * n

    ordered = sorted(segments, key=lambda s: s.start_hour)
    steps_per_hour = MINUTES_PER_HOUR / step
    basal = []
    for i in range(n):
        hour = (i * step / MINUTES_PER_HOUR) % HOURS_PER_DAY
        # Before the first segment the last one of the previous day still runs.
        active = ordered[-1]
        for segment in ordered:
            if segment.start_hour <= hour:
                active = segment
        basal.append(active.rate_u_per_hr / steps_per_hour)
    return basal


def default_meals() -> List[Meal]:
    """Breakfast, lunch, snack and dinner of a standard day."""
    return [
        Meal(hour=8, carbs_g=40),
        Meal(hour=12, carbs_g=70),
        Meal(hour=16, carbs_g=10),
        Meal(hour=20, carbs_g=50),
    ]


def default_basal() -> List[BasalSegment]:
    return [
        BasalSegment(start_hour=0, rate_u_per_hr=1.5),
        BasalSegment(start_hour=8, rate_u_per_hr=1.3),
        BasalSegment(start_hour=12, rate_u_per_hr=1.9),
        BasalSegment(start_hour=20, rate_u_per_hr=1.7),
    ]
