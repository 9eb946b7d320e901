import math
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, astuple
from typing import Dict, Iterator, Optional, Tuple

from .controller import ControllerConfig
from .enums import SteadyStateMethod

STATE_KEYS: Tuple[str, ...] = ("Q1", "Q2", "S1", "S2", "I", "x1", "x2", "x3", "D1", "D2")


@dataclass(frozen=True, slots=True, eq=False)
class PatientState(Mapping):
    """
    Snapshot of the ten Hovorka compartments at one instant.

    Also used for time derivatives and for the intermediate RK4 stages, so it
    reads like a mapping keyed by compartment name.
    """
    # Glucose subsystem (mmol).
    Q1: float = 0.0  # accessible compartment
    Q2: float = 0.0  # non-accessible compartment

    # Subcutaneous insulin absorption (mU).
    S1: float = 0.0
    S2: float = 0.0

    # Plasma insulin (mU/L).
    I: float = 0.0

    # Remote insulin action: transport (1/min), disposal (1/min), EGP (-).
    x1: float = 0.0
    x2: float = 0.0
    x3: float = 0.0

    # Gut glucose absorption (mmol).
    D1: float = 0.0
    D2: float = 0.0

    def __getitem__(self, key: str) -> float:
        if key not in STATE_KEYS:
            raise KeyError(key)
        return getattr(self, key)

    def __iter__(self) -> Iterator[str]:
        return iter(STATE_KEYS)

    def __len__(self) -> int:
        return len(STATE_KEYS)

    def __eq__(self, other) -> bool:
        if isinstance(other, PatientState):
            return astuple(other) == astuple(self)
        if isinstance(other, Mapping):
            return dict(other) == self.as_dict()
        return NotImplemented

    @classmethod
    def from_mapping(cls, values: Mapping) -> "PatientState":
        """Build a state from any mapping; missing compartments read as 0."""
        unknown = set(values) - set(STATE_KEYS)
        if unknown:
            raise KeyError(f"Unknown state keys: {sorted(unknown)}")
        return cls(**{key: float(values.get(key, 0.0)) for key in STATE_KEYS})

    @classmethod
    def zeros(cls) -> "PatientState":
        return cls()

    def as_dict(self) -> Dict[str, float]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def is_finite(self) -> bool:
        """False when any compartment went NaN or infinite."""
        return all(math.isfinite(v) for v in astuple(self))


@dataclass
class SimulationConfig:
    """Configuration for one closed-loop run."""
    # Timing (minutes). The loop covers t_start..t_end inclusive.
    t_start: int = 0
    t_end: int = 24 * 60
    time_step: float = 1.0  # integrator step and controller sampling time

    controller: ControllerConfig = field(default_factory=ControllerConfig)

    # Carbohydrate disturbance clamp (g per minute).
    min_disturbance: float = 0.0
    max_disturbance: float = 150.0

    steady_state_method: SteadyStateMethod = SteadyStateMethod.QUADRATIC

    # Deliver the steady-state basal rate underneath the scheduled basal.
    equilibrium_basal: bool = True

    rng_seed: Optional[int] = None

    def __post_init__(self):
        if self.t_end < self.t_start:
            raise ValueError(f"t_end ({self.t_end}) must not precede t_start ({self.t_start})")
        if not self.time_step > 0:
            raise ValueError(f"time_step must be positive, got {self.time_step}")
        if self.min_disturbance > self.max_disturbance:
            raise ValueError("min_disturbance must not exceed max_disturbance")
        if isinstance(self.steady_state_method, str):
            self.steady_state_method = SteadyStateMethod(self.steady_state_method.lower())

    @property
    def n_minutes(self) -> int:
        return self.t_end - self.t_start + 1
