from glucoloop.core.constants import (
    F01_SATURATION_GLUCOSE,
    RENAL_CLEARANCE_RATE,
    RENAL_THRESHOLD_GLUCOSE,
)
from .patient import PatientParameters


def non_insulin_uptake(glucose: float, params: PatientParameters) -> float:
    """F01c (mmol/min): linear below 4.5 mmol/L, saturated above. eq 2.4"""
    f01 = params.F01 * params.BW
    if glucose >= F01_SATURATION_GLUCOSE:
        return f01
    return f01 * glucose / F01_SATURATION_GLUCOSE


def renal_clearance(glucose: float, params: PatientParameters) -> float:
    """FR (mmol/min): zero below 9 mmol/L. eq 2.5"""
    if glucose >= RENAL_THRESHOLD_GLUCOSE:
        return RENAL_CLEARANCE_RATE * (glucose - RENAL_THRESHOLD_GLUCOSE) * params.glucose_volume
    return 0.0
