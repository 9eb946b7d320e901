from dataclasses import dataclass


@dataclass
class PumpStatus:
    is_infusing: bool = False
    rate: float = 0.0 # U/min, after clamping
    commanded_rate: float = 0.0 # U/min, as requested by the loop
    units_infused: float = 0.0


class InsulinPump:
    """
    Simulates a subcutaneous insulin pump with a bounded delivery rate.
    """
    def __init__(self, min_rate: float = 0.0, max_rate: float = 0.25):
        if min_rate > max_rate:
            raise ValueError(f"Pump min_rate ({min_rate}) exceeds max_rate ({max_rate})")
        self.min_rate = min_rate
        self.max_rate = max_rate
        self.status = PumpStatus()

    def set_rate(self, rate: float) -> float:
        """Set the delivery rate (U/min), clamped to the pump limits. Returns the applied rate."""
        self.status.commanded_rate = rate
        applied = min(max(rate, self.min_rate), self.max_rate)
        self.status.rate = applied
        self.status.is_infusing = (applied > 0)
        return applied

    def step(self, dt: float) -> float:
        """
        Advance pump by dt minutes.
        Returns insulin delivered in this step (U).
        """
        if not self.status.is_infusing:
            return 0.0
        amount = self.status.rate * dt
        self.status.units_infused += amount
        return amount
