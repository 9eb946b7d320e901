"""
Physiological and Numerical Constants for glucoloop.

This module centralizes magic numbers used throughout the simulation.

NOTE: Only add constants here that are ACTIVELY IMPORTED elsewhere.
"""

# Glucose subsystem thresholds (used in hovorka.py and equilibrium.py).

# Below this glycemia non-insulin-mediated uptake falls linearly (mmol/L)
F01_SATURATION_GLUCOSE = 4.5

# Renal clearance starts above this glycemia (mmol/L)
RENAL_THRESHOLD_GLUCOSE = 9.0

# Renal clearance rate (1/min), Hovorka et al. 2004
RENAL_CLEARANCE_RATE = 0.003

# Unit factors (used in units.py and hovorka.py).

# mU per U of insulin
MILLIUNITS_PER_UNIT = 1000.0

# mg per g
MG_PER_G = 1000.0

# Equilibrium solver constants (used in equilibrium.py).

# Bracket for the steady infusion rate bisection (mU/min)
BISECTION_RATE_MIN = 0.0
BISECTION_RATE_MAX = 300.0

# Iteration cap for the bisection
BISECTION_MAX_ITER = 60

# Absolute tolerance on the infusion rate (mU/min)
BISECTION_XTOL = 1e-12

# Glycemic ranges (mmol/L, used in metrics.py).
# Reference: Battelino et al. Diabetes Care. 2019 (international consensus on TIR).
TARGET_RANGE_LOW = 3.9
TARGET_RANGE_HIGH = 10.0
