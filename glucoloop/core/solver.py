from typing import Callable

from .vectors import times_scalar, vector_sum
from .state import PatientState

# dx/dt as a pure function of (t in minutes, state)
Derivatives = Callable[[float, PatientState], PatientState]


class SolverRK4:
    """
    Classical fourth-order Runge-Kutta with a fixed nominal step.

    Works on any named vector; exogenous inputs must already be closed over
    by the derivative function.
    """

    def __init__(self, time_step: float = 1.0):
        self.time_step = 1.0
        self.reset(time_step)

    def reset(self, time_step: float):
        """Set the nominal step in minutes."""
        if not time_step > 0:
            raise ValueError(f"Solver time step must be positive, got {time_step}")
        self.time_step = float(time_step)

    def solve(self, derivatives: Derivatives, t_init: float, x_init, t_end: float):
        """
        Integrate from t_init to t_end (minutes).

        The final sub-step is shortened so the integration lands exactly on
        t_end. Returns x_init unchanged when t_end <= t_init.
        """
        t = t_init
        x = x_init
        while t < t_end:
            t_next = min(t + self.time_step, t_end)
            x = self.perform_time_step(derivatives, t, x, t_next - t)
            t = t_next
        return x

    def perform_time_step(self, derivatives: Derivatives, t: float, x, dt: float):
        """Single RK4 step of size dt."""
        k1 = times_scalar(derivatives(t, x), dt)
        k2 = times_scalar(derivatives(t + dt / 2.0, vector_sum(x, times_scalar(k1, 0.5))), dt)
        k3 = times_scalar(derivatives(t + dt / 2.0, vector_sum(x, times_scalar(k2, 0.5))), dt)
        k4 = times_scalar(derivatives(t + dt, vector_sum(x, k3)), dt)

        return vector_sum(
            x,
            times_scalar(k1, 1.0 / 6.0),
            times_scalar(k2, 1.0 / 3.0),
            times_scalar(k3, 1.0 / 3.0),
            times_scalar(k4, 1.0 / 6.0),
        )
