import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from .state import PatientState, SimulationConfig, STATE_KEYS
from .solver import SolverRK4
from .controller import compute_control, parse_kind
from .equilibrium import EquilibriumSolver
from .units import insulin_mu_to_u
from glucoloop.patient.patient import PatientParameters
from glucoloop.patient.hovorka import HovorkaModel
from glucoloop.machine.pumps import InsulinPump

logger = logging.getLogger(__name__)


def _at(schedule: Sequence[float], index: int) -> float:
    """Schedule value at index; anything outside the schedule reads as 0."""
    if 0 <= index < len(schedule):
        return schedule[index]
    return 0.0


@dataclass
class SimulationResult:
    """Per-minute histories of one closed-loop run."""
    time: List[int] = field(default_factory=list)
    glucose: List[float] = field(default_factory=list)      # mmol/L
    insulin: List[float] = field(default_factory=list)      # U/min, applied dose
    disturbance: List[float] = field(default_factory=list)  # g, clamped carbs
    states: List[PatientState] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.time)

    def as_arrays(self) -> Dict[str, np.ndarray]:
        """Histories as numpy arrays; `states` is (n, 10) in STATE_KEYS order."""
        states = np.array([[s[k] for k in STATE_KEYS] for s in self.states], dtype=float)
        return {
            "time": np.asarray(self.time, dtype=float),
            "glucose": np.asarray(self.glucose, dtype=float),
            "insulin": np.asarray(self.insulin, dtype=float),
            "disturbance": np.asarray(self.disturbance, dtype=float),
            "states": states.reshape(len(self.states), len(STATE_KEYS)),
        }

    def to_dataframe(self) -> pd.DataFrame:
        """One row per minute: time, glucose, insulin, disturbance and the ten compartments."""
        records = []
        for t, g, u, d, s in zip(self.time, self.glucose, self.insulin, self.disturbance, self.states):
            row = {"time": t, "glucose": g, "insulin": u, "disturbance": d}
            row.update(s.as_dict())
            records.append(row)
        return pd.DataFrame(records, columns=["time", "glucose", "insulin", "disturbance", *STATE_KEYS])


class SimulationEngine:
    """
    Closed-loop driver: controller -> pump -> Hovorka model, one minute at a time.

    Each engine owns its patient record, solver and pump; runs never share
    mutable state, so several engines can be used side by side.
    """
    def __init__(
        self,
        params: Optional[PatientParameters] = None,
        config: Optional[SimulationConfig] = None,
        model: Optional[HovorkaModel] = None,
    ):
        self.config = config if config is not None else SimulationConfig()
        if params is None:
            params = PatientParameters.sample(np.random.default_rng(self.config.rng_seed))
        self.params = params
        self.model = model if model is not None else HovorkaModel()

        ctrl = self.config.controller
        self.solver = SolverRK4(self.config.time_step)
        self.pump = InsulinPump(min_rate=ctrl.min_dose, max_rate=ctrl.max_dose)

    def initial_conditions(self):
        """(steady state, equilibrium basal in U/min) for the configured method."""
        eq = EquilibriumSolver(self.params)
        x0 = eq.solve(self.config.steady_state_method)
        if eq.last_infusion_mu_min is None:
            return x0, 0.0
        return x0, insulin_mu_to_u(eq.last_infusion_mu_min)

    def run(
        self,
        carbs: Sequence[float] = (),
        basal: Sequence[float] = (),
        initial_state: Optional[PatientState] = None,
    ) -> SimulationResult:
        """
        Simulate minutes t_start..t_end inclusive.

        Args:
            carbs: Carbohydrate intake (g) indexed by minute
            basal: Scheduled basal insulin (U/min) indexed by minute
            initial_state: Start here instead of the computed steady state

        Returns:
            SimulationResult with one entry per minute
        """
        cfg = self.config
        ctrl = cfg.controller
        params = self.params

        # Unsupported kinds fail before anything is integrated.
        kind = parse_kind(ctrl.kind)

        x0, eq_basal = self.initial_conditions()
        x = initial_state if initial_state is not None else x0
        if not cfg.equilibrium_basal:
            eq_basal = 0.0

        logger.info(
            "Starting %s run t=%d..%d min (Geq=%.2f mmol/L, G0=%.2f mmol/L, eq basal=%.5f U/min)",
            kind.value, cfg.t_start, cfg.t_end, params.Geq,
            self.model.output(x, params), eq_basal,
        )

        self.solver.reset(cfg.time_step)
        self.pump.status.units_infused = 0.0
        result = SimulationResult()
        warned_non_finite = False

        for t in range(cfg.t_start, cfg.t_end + 1):
            action = compute_control(kind, ctrl.gains, cfg.time_step, params.Geq, result.glucose)
            dose = self.pump.set_rate(action / ctrl.insulin_sensitivity + _at(basal, t) + eq_basal)
            self.pump.step(1.0)

            d = min(max(_at(carbs, t), cfg.min_disturbance), cfg.max_disturbance)

            def f(tau, state, dose=dose, d=d):
                return self.model.derivatives(tau, state, dose, d, params)

            x = self.solver.solve(f, float(t), x, float(t + 1))
            g = self.model.output(x, params)

            if not warned_non_finite and not x.is_finite():
                logger.warning("State became non-finite at t=%d min", t)
                warned_non_finite = True

            result.time.append(t)
            result.insulin.append(dose)
            result.disturbance.append(d)
            result.states.append(x)
            result.glucose.append(g)
            logger.debug("t=%d G=%.4f dose=%.6f carbs=%.1f", t, g, dose, d)

        logger.info(
            "Run complete: %d minutes, %.2f U delivered, final G=%.2f mmol/L",
            len(result), self.pump.status.units_infused, result.glucose[-1],
        )
        return result
