"""Builders for deterministic readings shared by the test modules."""

from __future__ import annotations

from models.records import HeatPulseEpisode, RawReading


def reading(
    reference: int,
    pulse: int,
    upstream: float = 20.0,
    downstream: float = 20.0,
    timestamp: float = 1_700_000_000,
    node_id: str = "1",
) -> RawReading:
    return RawReading(
        upstream_temp=upstream,
        downstream_temp=downstream,
        millis_since_reference_temp=reference,
        millis_since_heat_pulse=pulse,
        timestamp_seconds=timestamp,
        node_id=node_id,
    )


def episode(*readings: RawReading, index: int = 0) -> HeatPulseEpisode:
    return HeatPulseEpisode(node_id=readings[0].node_id, index=index, readings=tuple(readings))


def row(
    reference: int,
    pulse: int,
    temp1: float = 20.0,
    temp2: float = 20.0,
    timestamp: float = 1_700_000_000,
    node_id: object = 1,
) -> dict:
    return {
        "temp1": temp1,
        "temp2": temp2,
        "millisSinceReferenceTemp": reference,
        "millisSinceHeatPulse": pulse,
        "rtcUnixTimestamp": timestamp,
        "nodeId": node_id,
    }
