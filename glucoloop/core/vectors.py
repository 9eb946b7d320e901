"""
Keyed-vector arithmetic used by the integrator.

A named vector is any mapping from string keys to floats. The operations
work on the union of keys, reading an absent key as 0. Inputs are never
mutated.
"""

from typing import Dict, Mapping


def _rebuild(template: Mapping[str, float], values: Dict[str, float]):
    """Return `values` in the record type of `template` when the keys fit it."""
    factory = getattr(type(template), "from_mapping", None)
    if factory is not None and set(values) == set(template.keys()):
        return factory(values)
    return values


def vector_sum(*vectors: Mapping[str, float]):
    """Keywise total of any number of named vectors."""
    total: Dict[str, float] = {}
    for vector in vectors:
        for key, value in vector.items():
            total[key] = total.get(key, 0.0) + value

    if not vectors:
        return total
    first = vectors[0]
    if all(type(v) is type(first) for v in vectors):
        return _rebuild(first, total)
    return total


def times_scalar(vector: Mapping[str, float], a: float):
    """Multiply every present entry by `a`."""
    scaled = {key: value * a for key, value in vector.items()}
    return _rebuild(vector, scaled)
