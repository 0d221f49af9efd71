"""End-to-end heat ratio computation over an in-memory batch of rows."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Union

from models.records import HeatRatioResult, RawReading
from services.aggregator import HeatRatioAggregator, HeatRatioWindow, invert_heat_ratios
from services.normalizer import FieldAccessors, normalize_readings
from services.segmenter import segment_episodes
from settings import Settings, get_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HeatRatioOptions:
    window: HeatRatioWindow = field(default_factory=HeatRatioWindow)
    invert_heat_ratios: bool = False
    downstream_temp_limit: Optional[float] = None
    accessors: FieldAccessors = field(default_factory=FieldAccessors)

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "HeatRatioOptions":
        settings = settings or get_settings()
        return cls(
            window=HeatRatioWindow(
                start=settings.heat_ratio_window_start,
                end=settings.heat_ratio_window_end,
            ),
            invert_heat_ratios=settings.invert_heat_ratios,
            downstream_temp_limit=settings.downstream_temp_limit,
        )


def compute_heat_ratios(
    rows: Iterable[Union[RawReading, Mapping[str, Any]]],
    options: HeatRatioOptions | None = None,
) -> HeatRatioResult:
    """Normalize, segment, and aggregate rows into mean heat ratios per episode.

    Raises :class:`services.normalizer.ReadingCoercionError` if a row cannot be
    coerced; callers that need per-row error reporting coerce rows first.
    """
    options = options or HeatRatioOptions()
    readings = normalize_readings(rows, options.accessors)
    episodes = segment_episodes(readings, options.downstream_temp_limit)
    result = HeatRatioAggregator(options.window).aggregate(episodes)

    for node_id in result.ids:
        records = result.data[node_id]
        if all(record.mean_heat_ratio is None for record in records):
            logger.warning(
                "No episode produced a heat ratio",
                extra={"node_id": node_id, "episode_count": len(records)},
            )

    logger.info(
        "Computed heat ratios",
        extra={
            "row_count": len(readings),
            "episode_count": result.record_count,
            "window_start": options.window.start,
            "window_end": options.window.end,
        },
    )

    if options.invert_heat_ratios:
        return invert_heat_ratios(result)
    return result
