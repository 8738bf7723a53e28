import os
from pathlib import Path
import sys

import pytest

# Keep Kivy from parsing pytest's arguments or opening windows
os.environ.setdefault("KIVY_NO_ARGS", "1")
os.environ.setdefault("KIVY_WINDOW", "mock")
os.environ.setdefault("KIVY_NO_FILELOG", "1")
os.environ.setdefault("KIVY_UNITTEST", "1")

sys.path.append(str(Path(__file__).resolve().parents[1]))

from workout_engine.clock import ManualClock
from workout_engine.engine import WorkoutSessionEngine
from workout_engine.models import session_from_template


BENCH_DAY = {
    "id": "tpl-bench",
    "name": "Bench Day",
    "exercises": [
        {
            "exerciseId": "bench",
            "name": "Bench Press",
            "restTime": 90,
            "sets": [{"reps": 10, "weight": 50} for _ in range(3)],
        }
    ],
}

LEG_DAY = {
    "id": "tpl-legs",
    "name": "Leg Day",
    "exercises": [
        {
            "exerciseId": "squat",
            "name": "Squat",
            "restTime": 120,
            "sets": [{"reps": 5, "weight": 100} for _ in range(2)],
        },
        {
            "exerciseId": "pullup",
            "name": "Pull-up",
            "restTime": 60,
            "sets": [{"reps": 8} for _ in range(2)],
        },
    ],
}


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(start=1_000.0)


@pytest.fixture
def bench_session():
    """One exercise with three 10 x 50 kg sets and 90 s rest."""
    return session_from_template(BENCH_DAY, user_id="user-1")


@pytest.fixture
def leg_session():
    """Two exercises with two sets each; the second is bodyweight."""
    return session_from_template(LEG_DAY, user_id="user-1")


@pytest.fixture
def events():
    return []


@pytest.fixture
def engine(bench_session, clock, events):
    eng = WorkoutSessionEngine(bench_session, time_source=clock, listeners=[events.append])
    eng.start()
    return eng


@pytest.fixture
def leg_engine(leg_session, clock, events):
    eng = WorkoutSessionEngine(leg_session, time_source=clock, listeners=[events.append])
    eng.start()
    return eng
