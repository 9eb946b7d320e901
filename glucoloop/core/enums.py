from enum import Enum


class ControllerKind(Enum):
    """Feedback laws understood by the controller."""
    P = "P"
    PD = "PD"
    PI = "PI"
    PID = "PID"

    @property
    def has_integral(self) -> bool:
        return self in (ControllerKind.PI, ControllerKind.PID)

    @property
    def has_derivative(self) -> bool:
        return self in (ControllerKind.PD, ControllerKind.PID)


class SteadyStateMethod(Enum):
    """Strategies for the fasting equilibrium."""
    QUADRATIC = "quadratic"
    BISECTION = "bisection"
