from pathlib import Path
import sys

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import pytest

from glucoloop.patient.patient import PatientParameters
from glucoloop.patient.hovorka import HovorkaModel
from glucoloop.core.engine import SimulationEngine
from glucoloop.core.state import SimulationConfig
from glucoloop.core.controller import ControllerConfig, ControllerGains


@pytest.fixture
def patient():
    """Literature-default adult patient used across most tests."""
    return PatientParameters()


@pytest.fixture
def model():
    return HovorkaModel()


@pytest.fixture
def config():
    """Two-hour fasting window with a P controller at Kp=0."""
    return SimulationConfig(
        t_start=0,
        t_end=120,
        controller=ControllerConfig(kind="P", gains=ControllerGains(kp=0.0)),
    )


@pytest.fixture
def run_engine(patient):
    """Helper building an engine and running it on the given schedules."""
    def _run(config, carbs=(), basal=(), params=None, initial_state=None):
        engine = SimulationEngine(params or patient, config)
        return engine, engine.run(carbs, basal, initial_state=initial_state)

    return _run
