"""Per-episode baselines and temperature differentials."""

from __future__ import annotations

import math
from typing import Iterable, Optional, Tuple

from models.records import Baseline, DifferentialReading, HeatPulseEpisode, RawReading

BASELINE_WINDOW_MS = 10000


def get_mean(values: Iterable[float]) -> Optional[float]:
    """Arithmetic mean, or ``None`` for an empty sequence."""
    total = 0.0
    count = 0
    for value in values:
        total += value
        count += 1
    if not count:
        return None
    return total / count


def divide(numerator: Optional[float], denominator: Optional[float]) -> Optional[float]:
    """Float division that yields inf/NaN on a zero denominator instead of raising."""
    if numerator is None or denominator is None:
        return None
    if denominator == 0:
        if numerator == 0 or math.isnan(numerator):
            return math.nan
        return math.copysign(math.inf, numerator) * math.copysign(1.0, denominator)
    return numerator / denominator


def _subtract(value: float, reference: Optional[float]) -> Optional[float]:
    if reference is None:
        return None
    return value - reference


def is_baseline_reading(reading: RawReading) -> bool:
    return reading.millis_since_reference_temp < BASELINE_WINDOW_MS


def compute_baseline(episode: HeatPulseEpisode) -> Baseline:
    pre_pulse = [reading for reading in episode.readings if is_baseline_reading(reading)]
    return Baseline(
        reference_downstream_temp=get_mean(reading.downstream_temp for reading in pre_pulse),
        reference_upstream_temp=get_mean(reading.upstream_temp for reading in pre_pulse),
    )


def differential(reading: RawReading, baseline: Baseline) -> DifferentialReading:
    downstream = _subtract(reading.downstream_temp, baseline.reference_downstream_temp)
    upstream = _subtract(reading.upstream_temp, baseline.reference_upstream_temp)
    return DifferentialReading(
        reading=reading,
        downstream_temp_difference=downstream,
        upstream_temp_difference=upstream,
        heat_ratio=divide(downstream, upstream),
    )


def compute_differentials(
    episode: HeatPulseEpisode, baseline: Optional[Baseline] = None
) -> Tuple[DifferentialReading, ...]:
    """Differentials for every reading of the episode, not only the baseline rows."""
    if baseline is None:
        baseline = compute_baseline(episode)
    return tuple(differential(reading, baseline) for reading in episode.readings)
