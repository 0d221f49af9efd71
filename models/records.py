"""Domain models shared across the heat ratio pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple


@dataclass(frozen=True, slots=True)
class RawReading:
    """A single datalogger row after numeric coercion."""

    upstream_temp: float
    downstream_temp: float
    millis_since_reference_temp: int
    millis_since_heat_pulse: int
    timestamp_seconds: float
    node_id: str


@dataclass(frozen=True, slots=True)
class HeatPulseEpisode:
    """Readings of one node collected between two successive heat pulses."""

    node_id: str
    index: int
    readings: Tuple[RawReading, ...]


@dataclass(frozen=True, slots=True)
class Baseline:
    """Pre-pulse reference temperatures; ``None`` when no pre-pulse rows exist."""

    reference_downstream_temp: Optional[float]
    reference_upstream_temp: Optional[float]


@dataclass(frozen=True, slots=True)
class DifferentialReading:
    reading: RawReading
    downstream_temp_difference: Optional[float]
    upstream_temp_difference: Optional[float]
    heat_ratio: Optional[float]

    @property
    def reference_timer(self) -> int:
        return self.reading.millis_since_reference_temp

    @property
    def heat_pulse_timer(self) -> int:
        return self.reading.millis_since_heat_pulse


@dataclass(frozen=True, slots=True)
class MeanHeatRatioRecord:
    """One aggregated heat ratio per episode."""

    node_id: str
    date: datetime
    unix_timestamp: float
    mean_heat_ratio: Optional[float]

    def to_row(self) -> Dict[str, Any]:
        return {
            "node_id": self.node_id,
            "date": self.date,
            "unix_timestamp": self.unix_timestamp,
            "mean_heat_ratio": self.mean_heat_ratio,
        }


@dataclass(frozen=True)
class HeatRatioResult:
    """Per-node heat ratio records plus the node ids in first-appearance order."""

    ids: Tuple[str, ...] = ()
    data: Mapping[str, Tuple[MeanHeatRatioRecord, ...]] = field(default_factory=dict)

    @property
    def record_count(self) -> int:
        return sum(len(records) for records in self.data.values())

    def to_rows(self) -> List[Dict[str, Any]]:
        """Flatten into one dict per record, node by node."""
        return [record.to_row() for node_id in self.ids for record in self.data.get(node_id, ())]
