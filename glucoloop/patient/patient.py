import math
from dataclasses import dataclass, fields
from typing import Optional

import numpy as np

from glucoloop.core.units import GLUCOSE_MOLAR_MASS

# =============================================================================
# HOVORKA MODEL PARAMETERS - LITERATURE REFERENCES
# =============================================================================
#
#   - Hovorka et al. Physiol Meas. 2004;25:905-920 (model structure, Table 1)
#   - Wilinska et al. J Diabetes Sci Technol. 2010;4:132-144 (virtual population
#     distributions used by sample())
#
# Units:
#   - Volumes: L/kg (multiplied by BW where a volume is needed)
#   - Fluxes F01, EGP0: mmol/kg/min
#   - Rate constants: 1/min
#   - SI1, SI2: (1/min) per (mU/L); SI3: 1/(mU/L)
# =============================================================================

# Parameters that appear as denominators somewhere in the model.
_STRUCTURAL = ("BW", "VG", "VI", "ke", "tauI", "tauG", "MwG", "k12")


@dataclass(frozen=True)
class PatientParameters:
    """
    Physiological constants of one virtual patient.

    Immutable for the duration of a run; pass it explicitly to every model call.
    """
    BW: float = 70.0        # body weight (kg)
    VG: float = 0.16        # glucose distribution volume (L/kg)
    VI: float = 0.12        # insulin distribution volume (L/kg)
    ke: float = 0.138       # insulin elimination from plasma (1/min)
    tauI: float = 55.0      # time-to-max of SC insulin absorption (min)
    tauG: float = 40.0      # time-to-max of CHO absorption (min)
    AG: float = 0.8         # CHO bioavailability (-)
    MwG: float = GLUCOSE_MOLAR_MASS  # g/mol
    F01: float = 0.0097     # non-insulin-dependent glucose flux (mmol/kg/min)
    EGP0: float = 0.0161    # EGP extrapolated to zero insulin (mmol/kg/min)
    k12: float = 0.066      # transfer non-accessible -> accessible (1/min)
    ka1: float = 0.006      # deactivation rates (1/min)
    ka2: float = 0.06
    ka3: float = 0.03
    SI1: float = 51.2e-4    # sensitivity of transport/distribution
    SI2: float = 8.2e-4     # sensitivity of disposal
    SI3: float = 520e-4     # sensitivity of EGP
    Geq: float = 5.5        # target equilibrium glycemia (mmol/L)

    def __post_init__(self):
        self._validate()

    def _validate(self):
        """Reject parameters the model cannot divide by; fail before any run starts."""
        for f in fields(self):
            value = getattr(self, f.name)
            if not math.isfinite(value):
                raise ValueError(f"Patient parameter {f.name} must be finite, got {value}")
            if f.name in _STRUCTURAL:
                if value <= 0:
                    raise ValueError(f"Patient parameter {f.name} must be positive, got {value}")
            elif value < 0:
                raise ValueError(f"Patient parameter {f.name} must be non-negative, got {value}")

    @property
    def glucose_volume(self) -> float:
        """Distribution volume of the accessible glucose compartment (L)."""
        return self.VG * self.BW

    @property
    def insulin_volume(self) -> float:
        """Plasma insulin distribution volume (L)."""
        return self.VI * self.BW

    @classmethod
    def sample(cls, rng: Optional[np.random.Generator] = None, **overrides) -> "PatientParameters":
        """
        Draw a random virtual patient.

        Normal draws are redrawn until positive. exp(VG) is normal, tauI and
        tauG are drawn on their reciprocal scales, BW and AG are uniform.
        Keyword overrides replace sampled values.
        """
        if rng is None:
            rng = np.random.default_rng()

        values = dict(
            EGP0=_positive_normal(rng, 0.0161, 0.0039),
            F01=_positive_normal(rng, 0.0097, 0.0022),
            k12=_positive_normal(rng, 0.0649, 0.0282),
            ka1=_positive_normal(rng, 0.0055, 0.0056),
            ka2=_positive_normal(rng, 0.0683, 0.0507),
            ka3=_positive_normal(rng, 0.0304, 0.0235),
            SI1=_positive_normal(rng, 51.2, 32.09) * 1e-4,
            SI2=_positive_normal(rng, 8.2, 7.84) * 1e-4,
            SI3=_positive_normal(rng, 520.0, 306.2) * 1e-4,
            ke=_positive_normal(rng, 0.14, 0.035),
            VI=_positive_normal(rng, 0.12, 0.012),
            VG=math.log(_positive_normal(rng, 1.16, 0.23, floor=1.0)),
            tauI=1.0 / _positive_normal(rng, 0.018, 0.0045),
            tauG=math.exp(-rng.normal(-3.689, 0.25)),
            AG=rng.uniform(0.7, 1.2),
            BW=rng.uniform(65.0, 95.0),
        )
        values.update(overrides)
        return cls(**values)


def _positive_normal(rng: np.random.Generator, mean: float, sd: float, floor: float = 0.0) -> float:
    value = rng.normal(mean, sd)
    while value <= floor:
        value = rng.normal(mean, sd)
    return float(value)
