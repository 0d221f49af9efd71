"""Temperature filtering and heat-pulse episode segmentation."""

from __future__ import annotations

import logging
from functools import reduce
from typing import Dict, Iterable, List, NamedTuple, Optional, Tuple

from models.records import HeatPulseEpisode, RawReading

logger = logging.getLogger(__name__)

MAX_UPSTREAM_TEMP = 40.0


def passes_temperature_filter(
    reading: RawReading, downstream_temp_limit: Optional[float] = None
) -> bool:
    """Return whether a reading is admitted into segmentation.

    Without ``downstream_temp_limit`` the downstream magnitude check only
    rejects zero (and NaN), so a downstream temperature of 100 is admitted.
    With a limit the downstream bound mirrors the upstream one.
    """
    upstream = reading.upstream_temp
    downstream = reading.downstream_temp
    if not (upstream >= 0 and downstream >= 0 and abs(upstream) < MAX_UPSTREAM_TEMP):
        return False
    if downstream_temp_limit is None:
        return abs(downstream) != 0
    return abs(downstream) < downstream_temp_limit


def group_by_node(readings: Iterable[RawReading]) -> Dict[str, Tuple[RawReading, ...]]:
    """Group readings by node id, keeping first-appearance order of nodes."""
    groups: Dict[str, List[RawReading]] = {}
    for reading in readings:
        groups.setdefault(reading.node_id, []).append(reading)
    return {node_id: tuple(rows) for node_id, rows in groups.items()}


class _SegmentState(NamedTuple):
    episodes: List[List[RawReading]]
    previous: Optional[RawReading]


def _step(state: _SegmentState, reading: RawReading) -> _SegmentState:
    # Episode lists are owned by the fold and appended in place.
    previous = state.previous
    starts_episode = (
        previous is None
        or reading.millis_since_reference_temp < previous.millis_since_reference_temp
    )
    if not starts_episode:
        state.episodes[-1].append(reading)
        return state._replace(previous=reading)
    state.episodes.append([reading])
    return _SegmentState(state.episodes, reading)


def segment_node(node_id: str, readings: Iterable[RawReading]) -> Tuple[HeatPulseEpisode, ...]:
    """Split one node's ordered readings wherever the reference timer wraps around."""
    final = reduce(_step, readings, _SegmentState([], None))
    return tuple(
        HeatPulseEpisode(node_id=node_id, index=index, readings=tuple(rows))
        for index, rows in enumerate(final.episodes)
    )


def segment_episodes(
    readings: Iterable[RawReading],
    downstream_temp_limit: Optional[float] = None,
) -> Dict[str, Tuple[HeatPulseEpisode, ...]]:
    """Filter ordered readings and segment them into episodes per node."""
    admitted: List[RawReading] = []
    rejected = 0
    for reading in readings:
        if passes_temperature_filter(reading, downstream_temp_limit):
            admitted.append(reading)
        else:
            rejected += 1

    if rejected:
        logger.debug(
            "Dropped readings outside the temperature filter",
            extra={"rejected_count": rejected, "row_count": len(admitted)},
        )

    return {
        node_id: segment_node(node_id, rows)
        for node_id, rows in group_by_node(admitted).items()
    }
