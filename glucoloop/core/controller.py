import logging
from dataclasses import dataclass, field
from typing import Sequence, Union

from .enums import ControllerKind

logger = logging.getLogger(__name__)


class UnsupportedControllerError(ValueError):
    """Raised for controller kinds other than P, PD, PI and PID."""


@dataclass(frozen=True)
class ControllerGains:
    kp: float = 0.2
    ki: float = 0.0
    kd: float = 0.0


@dataclass
class ControllerConfig:
    """
    Controller selection plus the dose conversion the engine applies.

    The raw action is in glucose-error units (mmol/L); dividing it by
    `insulin_sensitivity` gives U/min, which is then clamped to
    [min_dose, max_dose].
    """
    kind: Union[ControllerKind, str] = ControllerKind.P
    gains: ControllerGains = field(default_factory=ControllerGains)
    min_dose: float = 0.0     # U/min
    max_dose: float = 0.25    # U/min (15 U/hr)
    insulin_sensitivity: float = 100.0  # mmol/L of error per U/min

    def __post_init__(self):
        self.kind = parse_kind(self.kind)
        if self.min_dose > self.max_dose:
            raise ValueError("min_dose must not exceed max_dose")
        if self.insulin_sensitivity == 0:
            raise ValueError("insulin_sensitivity must be non-zero")


def parse_kind(kind: Union[ControllerKind, str]) -> ControllerKind:
    """Resolve a controller kind, case-insensitively for strings."""
    if isinstance(kind, ControllerKind):
        return kind
    try:
        return ControllerKind(str(kind).strip().upper())
    except ValueError:
        raise UnsupportedControllerError(f"Controller {kind!r} not supported") from None


def compute_control(
    kind: Union[ControllerKind, str],
    gains: ControllerGains,
    step_minutes: float,
    desired: float,
    history: Sequence[float],
) -> float:
    """
    Raw feedback action from the measured output history.

    Args:
        kind: P, PD, PI or PID
        gains: Kp, Ki, Kd
        step_minutes: Sampling interval (min)
        desired: Set-point (mmol/L)
        history: Measured outputs so far, most recent last

    Returns:
        Kp*e + Ki*step*sum(y - desired) + Kd*(e - e_prev)/step, keeping only
        the terms the kind includes.
    """
    kind = parse_kind(kind)

    n = len(history)
    err = history[n - 1] - desired if n > 0 else 0.0
    err_prev = history[n - 2] - desired if n > 1 else 0.0

    p_term = gains.kp * err

    i_term = 0.0
    if kind.has_integral:
        integral_err = sum(y - desired for y in history)
        i_term = gains.ki * step_minutes * integral_err

    d_term = 0.0
    if kind.has_derivative:
        d_term = gains.kd * (err - err_prev) / step_minutes

    u = p_term + i_term + d_term
    logger.debug("%s control: P=%.6g I=%.6g D=%.6g u=%.6g", kind.value, p_term, i_term, d_term, u)
    return u
