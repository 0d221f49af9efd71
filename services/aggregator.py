"""Windowed aggregation of heat ratios per episode."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Dict, Iterable, Mapping, Optional, Tuple

from models.records import (
    DifferentialReading,
    HeatPulseEpisode,
    HeatRatioResult,
    MeanHeatRatioRecord,
)
from services.baseline import BASELINE_WINDOW_MS, compute_differentials, divide, get_mean
from services.normalizer import pulse_timestamp


@dataclass(frozen=True)
class HeatRatioWindow:
    """Heat pulse timer bounds in milliseconds, both exclusive."""

    start: int = 55000
    end: int = 75000

    def __post_init__(self) -> None:
        if self.start >= self.end:
            raise ValueError(
                f"Heat ratio window start ({self.start}) must be below its end ({self.end})."
            )


def episode_unix_timestamp(episode: HeatPulseEpisode) -> float:
    """Back-date the episode's first reading to the heat pulse firing instant."""
    first = episode.readings[0]
    return pulse_timestamp(first.timestamp_seconds, first.millis_since_reference_temp)


def in_aggregation_window(item: DifferentialReading, window: HeatRatioWindow) -> bool:
    downstream = item.downstream_temp_difference
    upstream = item.upstream_temp_difference
    if downstream is None or upstream is None:
        return False
    return (
        item.reference_timer > BASELINE_WINDOW_MS
        and window.start < item.heat_pulse_timer < window.end
        and downstream > 0
        and upstream > 0
    )


class HeatRatioAggregator:
    """Reduces every episode to a single mean heat ratio record."""

    def __init__(self, window: HeatRatioWindow | None = None) -> None:
        self.window = window or HeatRatioWindow()

    def mean_heat_ratio(self, differentials: Iterable[DifferentialReading]) -> Optional[float]:
        return get_mean(
            item.heat_ratio
            for item in differentials
            if in_aggregation_window(item, self.window)
        )

    def summarize_episode(self, episode: HeatPulseEpisode) -> MeanHeatRatioRecord:
        unix_timestamp = episode_unix_timestamp(episode)
        return MeanHeatRatioRecord(
            node_id=episode.node_id,
            date=datetime.fromtimestamp(unix_timestamp, tz=timezone.utc),
            unix_timestamp=unix_timestamp,
            mean_heat_ratio=self.mean_heat_ratio(compute_differentials(episode)),
        )

    def aggregate(
        self, episodes_by_node: Mapping[str, Iterable[HeatPulseEpisode]]
    ) -> HeatRatioResult:
        data: Dict[str, Tuple[MeanHeatRatioRecord, ...]] = {
            node_id: tuple(self.summarize_episode(episode) for episode in episodes)
            for node_id, episodes in episodes_by_node.items()
        }
        return HeatRatioResult(ids=tuple(data), data=data)


def invert_heat_ratios(result: HeatRatioResult) -> HeatRatioResult:
    """Replace each mean heat ratio by its reciprocal, for swapped probe wiring."""
    data = {
        node_id: tuple(
            replace(record, mean_heat_ratio=divide(1.0, record.mean_heat_ratio))
            for record in records
        )
        for node_id, records in result.data.items()
    }
    return HeatRatioResult(ids=result.ids, data=data)
