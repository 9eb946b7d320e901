from glucoloop.core.enums import SteadyStateMethod
from glucoloop.core.equilibrium import EquilibriumSolver
from glucoloop.core.state import PatientState
from glucoloop.core.units import carbs_g_to_mmol, convert_rate
from .glucose_fluxes import non_insulin_uptake, renal_clearance
from .patient import PatientParameters

# =============================================================================
# HOVORKA GLUCOSE-INSULIN MODEL
# =============================================================================
#
# Hovorka et al. Physiol Meas. 2004;25:905-920. Equation numbers below follow
# chapter 2 of the model description (eq 2.1 - 2.13).
#
# Subsystems:
#   - Gut absorption:     D1 -> D2 -> UG                    (mmol)
#   - SC insulin:         S1 -> S2 -> UI -> plasma I        (mU, mU/L)
#   - Insulin action:     x1 (transport), x2 (disposal), x3 (EGP)
#   - Glucose:            Q1 (accessible) <-> Q2 (non-accessible)  (mmol)
#
# Exogenous inputs arrive in pump/meal units (U/min, g per minute) and are
# converted to mU/min and mmol/min here.
# =============================================================================


class HovorkaModel:
    """
    Compartmental ODE of glucose-insulin dynamics.

    Stateless: the patient record and the state are passed to every call so
    independent runs never share anything.
    """

    def derivatives(
        self,
        t: float,
        state: PatientState,
        insulin_rate: float,
        carbs: float,
        params: PatientParameters,
    ) -> PatientState:
        """
        dx/dt at time t (minutes).

        Args:
            t: Simulation time (min); the model is autonomous, kept for the solver signature
            state: Current compartments
            insulin_rate: SC insulin infusion (U/min)
            carbs: Carbohydrate intake over the current minute (g)
            params: Patient parameters

        Returns:
            PatientState of derivatives (per minute)
        """
        tau_g = params.tauG
        tau_i = params.tauI
        vg = params.glucose_volume
        vi = params.insulin_volume

        u = convert_rate(insulin_rate, "u/min", "mu/min")  # mU/min
        d = carbs_g_to_mmol(carbs, params.MwG)          # mmol/min

        Q1, Q2 = state.Q1, state.Q2
        S1, S2, I = state.S1, state.S2, state.I
        x1, x2, x3 = state.x1, state.x2, state.x3
        D1, D2 = state.D1, state.D2

        # CHO absorption
        dD1 = params.AG * d - D1 / tau_g                 # eq 2.8a
        dD2 = (D1 - D2) / tau_g                          # eq 2.8b
        UG = D2 / tau_g                                  # eq 2.9

        # Insulin absorption
        dS1 = u - S1 / tau_i                             # eq 2.11a
        dS2 = (S1 - S2) / tau_i                          # eq 2.11b
        UI = S2 / tau_i                                  # eq 2.12
        dI = UI / vi - params.ke * I                     # eq 2.6

        # Glucose
        G = Q1 / vg                                      # eq 2.3
        F01c = non_insulin_uptake(G, params)
        FR = renal_clearance(G, params)
        EGP = params.EGP0 * params.BW * (1.0 - x3)
        dQ1 = UG - F01c - FR - x1 * Q1 + params.k12 * Q2 + EGP   # eq 2.1
        dQ2 = x1 * Q1 - (params.k12 + x2) * Q2                   # eq 2.2

        # Insulin action, kb_k = SI_k * ka_k (eq 2.13)
        dx1 = params.SI1 * params.ka1 * I - params.ka1 * x1      # eq 2.7a
        dx2 = params.SI2 * params.ka2 * I - params.ka2 * x2      # eq 2.7b
        dx3 = params.SI3 * params.ka3 * I - params.ka3 * x3      # eq 2.7c

        return PatientState(
            Q1=dQ1, Q2=dQ2,
            S1=dS1, S2=dS2, I=dI,
            x1=dx1, x2=dx2, x3=dx3,
            D1=dD1, D2=dD2,
        )

    def output(self, state: PatientState, params: PatientParameters) -> float:
        """Measured glycemia G = Q1 / (VG * BW) in mmol/L."""
        return state.Q1 / params.glucose_volume

    def basal_infusion_for_target(self, params: PatientParameters) -> float:
        """Open-loop infusion (U/min) that holds the patient at Geq; 0.0 if none exists."""
        return EquilibriumSolver(params).basal_rate()

    def steady_state(
        self,
        params: PatientParameters,
        method: SteadyStateMethod = SteadyStateMethod.QUADRATIC,
    ) -> PatientState:
        """Fasting equilibrium at Geq; an all-zero state when none exists."""
        return EquilibriumSolver(params).solve(method)
