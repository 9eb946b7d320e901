"""
Unit conversion helpers for insulin, carbohydrate and glycemia.

Internal convention:
- Insulin infusion: mU/min
- Carbohydrate appearance: mmol/min of glucose
- Glycemia: mmol/L
"""

from typing import Dict, Tuple

from .constants import MILLIUNITS_PER_UNIT, MG_PER_G

# Molar mass of glucose (g/mol).
GLUCOSE_MOLAR_MASS = 180.1577

_RATE_UNIT_ALIASES: Dict[str, str] = {
    "u/h": "u/hr",
    "u/hour": "u/hr",
    "u/m": "u/min",
    "iu/hr": "u/hr",
    "iu/min": "u/min",
    "mu/h": "mu/hr",
    "mu/m": "mu/min",
}

# Conversion factors between rate units (multiplicative).
_RATE_CONVERSIONS: Dict[Tuple[str, str], float] = {
    ("u/hr", "mu/min"): MILLIUNITS_PER_UNIT / 60.0,
    ("u/min", "mu/min"): MILLIUNITS_PER_UNIT,
    ("mu/hr", "mu/min"): 1.0 / 60.0,
    ("mu/min", "mu/min"): 1.0,
    ("u/hr", "u/min"): 1.0 / 60.0,
}


def normalize_rate_unit(unit: str) -> str:
    """Normalize rate unit strings to canonical lowercase form."""
    if not unit:
        return ""
    u = unit.strip()
    u = u.replace("per", "/")
    u = u.replace(" ", "")
    u = u.lower()
    return _RATE_UNIT_ALIASES.get(u, u)


def convert_rate(value: float, from_unit: str, to_unit: str) -> float:
    """
    Convert an insulin rate between supported units.

    Raises ValueError if conversion is unsupported.
    """
    from_norm = normalize_rate_unit(from_unit)
    to_norm = normalize_rate_unit(to_unit)
    if from_norm == to_norm:
        return value
    key = (from_norm, to_norm)
    if key in _RATE_CONVERSIONS:
        return value * _RATE_CONVERSIONS[key]
    reverse = (to_norm, from_norm)
    if reverse in _RATE_CONVERSIONS:
        return value / _RATE_CONVERSIONS[reverse]
    # Bridge through the internal unit.
    to_internal = (from_norm, "mu/min")
    from_internal = (to_norm, "mu/min")
    if to_internal in _RATE_CONVERSIONS and from_internal in _RATE_CONVERSIONS:
        return value * _RATE_CONVERSIONS[to_internal] / _RATE_CONVERSIONS[from_internal]
    raise ValueError(f"Unsupported rate conversion: {from_unit} -> {to_unit}")


def insulin_mu_to_u(rate_mu_min: float) -> float:
    """mU/min -> U/min."""
    return rate_mu_min / MILLIUNITS_PER_UNIT


def carbs_g_to_mmol(carbs_g: float, molar_mass: float = GLUCOSE_MOLAR_MASS) -> float:
    """Grams of carbohydrate -> mmol of glucose."""
    return carbs_g * MG_PER_G / molar_mass


def mmol_l_to_mg_dl(glucose_mmol_l: float, molar_mass: float = GLUCOSE_MOLAR_MASS) -> float:
    # mmol/L * g/mol = mg/L; /10 -> mg/dL
    return glucose_mmol_l * molar_mass / 10.0


def mg_dl_to_mmol_l(glucose_mg_dl: float, molar_mass: float = GLUCOSE_MOLAR_MASS) -> float:
    return glucose_mg_dl * 10.0 / molar_mass
