import logging
import math
from typing import Optional

from scipy.optimize import root_scalar

from glucoloop.patient.patient import PatientParameters
from glucoloop.patient.glucose_fluxes import non_insulin_uptake, renal_clearance
from .constants import BISECTION_MAX_ITER, BISECTION_RATE_MAX, BISECTION_RATE_MIN, BISECTION_XTOL
from .enums import SteadyStateMethod
from .state import PatientState
from .units import insulin_mu_to_u

logger = logging.getLogger(__name__)


def state_for_infusion(params: PatientParameters, u_mu_min: float) -> PatientState:
    """Fasting compartments held by a constant infusion u (mU/min) at glycemia Geq."""
    s_eq = params.tauI * u_mu_min
    i_eq = u_mu_min / (params.ke * params.insulin_volume)
    x1 = params.SI1 * i_eq
    x2 = params.SI2 * i_eq
    x3 = params.SI3 * i_eq
    q1 = params.Geq * params.glucose_volume
    q2 = x1 * q1 / (params.k12 + x2)
    return PatientState(
        Q1=q1, Q2=q2,
        S1=s_eq, S2=s_eq, I=i_eq,
        x1=x1, x2=x2, x3=x3,
        D1=0.0, D2=0.0,
    )


class EquilibriumSolver:
    """
    Solves for the fasting steady state that holds glycemia at Geq.

    With no meal (D1 = D2 = 0) and a constant infusion u (mU/min):
        S1 = S2 = tauI * u
        I = u / (ke * VI * BW)
        x_k = SI_k * I
        Q1 = Geq * VG * BW
        Q2 = x1 * Q1 / (k12 + x2)
    and u must zero the Q1 balance
        EGP0*BW*(1 - x3) - F01c - FR - x1*Q1 + k12*Q2 = 0.

    When no physical equilibrium exists the failure is logged and the
    neutral (all-zero) state is returned instead of NaNs.
    """

    def __init__(self, params: PatientParameters):
        self.params = params
        self.last_infusion_mu_min: Optional[float] = None

    # -- shared pieces -------------------------------------------------------

    def _target_fluxes(self):
        """(Q1eq, EGP0*BW, F01c + FR) at the target glycemia."""
        p = self.params
        q1 = p.Geq * p.glucose_volume
        egp = p.EGP0 * p.BW
        uptake = non_insulin_uptake(p.Geq, p) + renal_clearance(p.Geq, p)
        return q1, egp, uptake

    def state_for_infusion(self, u_mu_min: float) -> PatientState:
        return state_for_infusion(self.params, u_mu_min)

    def glucose_balance(self, u_mu_min: float) -> float:
        """Net dQ1/dt (mmol/min) at Geq under infusion u; decreasing in u."""
        p = self.params
        state = self.state_for_infusion(u_mu_min)
        _, egp, uptake = self._target_fluxes()
        return (egp * (1.0 - state.x3) - uptake
                - state.x1 * state.Q1 + p.k12 * state.Q2)

    # -- quadratic strategy --------------------------------------------------

    def equilibrium_insulin(self) -> Optional[float]:
        """
        Plasma insulin (mU/L) balancing glucose production and uptake at Geq.

        Multiplying the Q1 balance by (k12 + SI2*I) gives a*I^2 + b*I + c = 0;
        the physical root is the one on the -sqrt branch. Returns None when the
        discriminant is negative, the quadratic degenerates or the root is
        negative (production cannot cover uptake at Geq even without insulin).
        """
        p = self.params
        q1, egp, uptake = self._target_fluxes()
        net = egp - uptake

        a = -q1 * p.SI1 * p.SI2 - egp * p.SI2 * p.SI3
        b = net * p.SI2 - egp * p.k12 * p.SI3
        c = net * p.k12

        det = b * b - 4.0 * a * c
        if det < 0:
            logger.error("Negative determinant in insulin equilibrium calculation (det=%.6g)", det)
            return None
        if a == 0:
            logger.error("Degenerate insulin equilibrium: SI2 or SI1/SI3 is zero")
            return None
        i_eq = (-b - math.sqrt(det)) / (2.0 * a)
        if i_eq < 0:
            logger.error("Negative equilibrium insulin (I=%.6g mU/L): EGP0*BW below uptake at Geq", i_eq)
            return None
        return i_eq

    def basal_rate(self) -> float:
        """Infusion (U/min) that holds Geq, from the quadratic; 0.0 when none exists."""
        i_eq = self.equilibrium_insulin()
        if i_eq is None:
            return 0.0
        u_mu_min = i_eq * self.params.ke * self.params.insulin_volume
        return insulin_mu_to_u(u_mu_min)

    def solve_quadratic(self) -> PatientState:
        i_eq = self.equilibrium_insulin()
        if i_eq is None:
            self.last_infusion_mu_min = None
            return PatientState.zeros()
        u_mu_min = i_eq * self.params.ke * self.params.insulin_volume
        self.last_infusion_mu_min = u_mu_min
        return self.state_for_infusion(u_mu_min)

    # -- bisection strategy --------------------------------------------------

    def solve_bisection(
        self,
        rate_min: float = BISECTION_RATE_MIN,
        rate_max: float = BISECTION_RATE_MAX,
    ) -> PatientState:
        """Bisect the glucose balance on u in [rate_min, rate_max] mU/min."""
        try:
            res = root_scalar(
                self.glucose_balance,
                bracket=[rate_min, rate_max],
                method="bisect",
                xtol=BISECTION_XTOL,
                maxiter=BISECTION_MAX_ITER,
            )
        except ValueError:
            # f(a) and f(b) share a sign
            logger.error(
                "Glucose balance does not change sign on [%.3g, %.3g] mU/min; no equilibrium",
                rate_min, rate_max,
            )
            self.last_infusion_mu_min = None
            return PatientState.zeros()

        self.last_infusion_mu_min = res.root
        return self.state_for_infusion(res.root)

    def solve(self, method: SteadyStateMethod = SteadyStateMethod.QUADRATIC) -> PatientState:
        if method is SteadyStateMethod.BISECTION:
            return self.solve_bisection()
        return self.solve_quadratic()
