
import numpy as np

from .constants import TARGET_RANGE_LOW, TARGET_RANGE_HIGH

def compute_performance_error(measured: np.array, target: np.array) -> np.array:
    """
    Compute Performance Error (PE) = (Measured - Target) / Target * 100.
    """
    measured = np.asarray(measured, dtype=float)
    target = np.broadcast_to(np.asarray(target, dtype=float), measured.shape)
    pe = np.zeros_like(measured)
    mask = (target != 0)
    pe[mask] = (measured[mask] - target[mask]) / target[mask] * 100.0
    return pe

def compute_mdpe(pe: np.array) -> float:
    return float(np.median(pe))

def compute_mdape(pe: np.array) -> float:
    return float(np.median(np.abs(pe)))

def compute_wobble(pe: np.array, mdpe: float = None) -> float:
    if mdpe is None:
        mdpe = np.median(pe)
    return float(np.median(np.abs(pe - mdpe)))


def compute_control_metrics(time: list, measured: list, target,
                            start_time: float = 0.0, end_time: float = None) -> dict:
    """
    Compute Varvel metrics for glucose control performance.

    Args:
        time: List of timestamps (min)
        measured: List of glycemia values (mmol/L)
        target: Target glycemia, scalar or one value per timestamp
        start_time: Start of evaluation window (min)
        end_time: End of evaluation window (min)

    Returns:
        dict: {MDPE, MDAPE, Wobble, GlobalScore}
    """
    t_arr = np.asarray(time, dtype=float)
    m_arr = np.asarray(measured, dtype=float)
    tgt_arr = np.broadcast_to(np.asarray(target, dtype=float), m_arr.shape)

    if end_time is None:
        end_time = t_arr[-1]

    mask = (t_arr >= start_time) & (t_arr <= end_time)

    if not np.any(mask):
        return {"MDPE": 0, "MDAPE": 0, "Wobble": 0, "GlobalScore": 0}

    pe = compute_performance_error(m_arr[mask], tgt_arr[mask])

    mdpe = compute_mdpe(pe)
    mdape = compute_mdape(pe)
    wobble = compute_wobble(pe, mdpe)

    return {
        "MDPE": mdpe,
        "MDAPE": mdape,
        "Wobble": wobble,
        "GlobalScore": mdape + wobble
    }


def time_in_range(glucose, low: float = TARGET_RANGE_LOW, high: float = TARGET_RANGE_HIGH) -> dict:
    """
    Percent of samples below, within and above [low, high] mmol/L.
    """
    g = np.asarray(glucose, dtype=float)
    if g.size == 0:
        return {"below": 0.0, "in_range": 0.0, "above": 0.0}
    below = np.mean(g < low) * 100.0
    above = np.mean(g > high) * 100.0
    return {
        "below": float(below),
        "in_range": float(100.0 - below - above),
        "above": float(above),
    }


def glucose_variability(glucose) -> dict:
    g = np.asarray(glucose, dtype=float)
    if g.size == 0:
        return {"mean": 0.0, "sd": 0.0, "cv": 0.0}
    mean = float(np.mean(g))
    sd = float(np.std(g))
    cv = sd / mean * 100.0 if mean != 0 else 0.0
    return {"mean": mean, "sd": sd, "cv": cv}


def summarize(result, target: float) -> dict:
    """Control, range and variability metrics of a SimulationResult in one dict."""
    summary = compute_control_metrics(result.time, result.glucose, target)
    summary.update({f"TIR_{k}": v for k, v in time_in_range(result.glucose).items()})
    summary.update({f"G_{k}": v for k, v in glucose_variability(result.glucose).items()})
    summary["G_min"] = float(np.min(result.glucose))
    summary["G_max"] = float(np.max(result.glucose))
    summary["insulin_total"] = float(np.sum(result.insulin))
    summary["carbs_total"] = float(np.sum(result.disturbance))
    return summary
