"""Coercion and ordering of raw datalogger rows."""

from __future__ import annotations

import math
from dataclasses import dataclass, fields
from datetime import datetime, timezone
from operator import itemgetter
from typing import Any, Callable, Iterable, Mapping, Tuple, Union

from models.records import RawReading

Accessor = Callable[[Mapping[str, Any]], Any]

# Seconds between the reference measurement and the heat pulse firing.
PULSE_DELAY_SECONDS = 10


class ReadingCoercionError(ValueError):
    """Raised when a required field is missing or not numeric."""

    def __init__(self, field_name: str, value: Any) -> None:
        self.field_name = field_name
        self.value = value
        if value is None:
            message = f"missing {field_name}"
        else:
            message = f"invalid numeric value for {field_name}"
        super().__init__(message)


@dataclass(frozen=True)
class ColumnMapping:
    """Input column names for each reading field."""

    upstream_temp: str = "temp1"
    downstream_temp: str = "temp2"
    millis_since_reference_temp: str = "millisSinceReferenceTemp"
    millis_since_heat_pulse: str = "millisSinceHeatPulse"
    timestamp_seconds: str = "rtcUnixTimestamp"
    node_id: str = "nodeId"

    def columns(self) -> Tuple[str, ...]:
        return tuple(getattr(self, item.name) for item in fields(self))

    def accessors(self) -> "FieldAccessors":
        return FieldAccessors(
            **{item.name: _column(getattr(self, item.name)) for item in fields(self)}
        )


def _column(name: str) -> Accessor:
    getter = itemgetter(name)

    def select(row: Mapping[str, Any]) -> Any:
        try:
            return getter(row)
        except KeyError:
            return None

    return select


@dataclass(frozen=True)
class FieldAccessors:
    """Named field selectors applied to every input row."""

    upstream_temp: Accessor = _column("temp1")
    downstream_temp: Accessor = _column("temp2")
    millis_since_reference_temp: Accessor = _column("millisSinceReferenceTemp")
    millis_since_heat_pulse: Accessor = _column("millisSinceHeatPulse")
    timestamp_seconds: Accessor = _column("rtcUnixTimestamp")
    node_id: Accessor = _column("nodeId")

    @classmethod
    def from_columns(cls, **columns: str) -> "FieldAccessors":
        """Build accessors from column names, e.g. ``from_columns(node_id="sensor")``."""
        return ColumnMapping(**columns).accessors()


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _to_float(field_name: str, value: Any) -> float:
    if _is_blank(value) or isinstance(value, bool):
        raise ReadingCoercionError(field_name, None if _is_blank(value) else value)
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ReadingCoercionError(field_name, value) from exc


def _to_finite(field_name: str, value: Any) -> float:
    parsed = _to_float(field_name, value)
    if not math.isfinite(parsed):
        raise ReadingCoercionError(field_name, value)
    return parsed


def _to_millis(field_name: str, value: Any) -> int:
    parsed = _to_finite(field_name, value)
    if not parsed.is_integer():
        raise ReadingCoercionError(field_name, value)
    return int(parsed)


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def pulse_timestamp(timestamp_seconds: float, millis_since_reference_temp: int) -> float:
    """Back-date a reading timestamp to the heat pulse firing instant."""
    offset = _round_half_up(millis_since_reference_temp / 1000) + PULSE_DELAY_SECONDS
    return timestamp_seconds - offset


def _to_timestamp(value: Any, millis_since_reference_temp: int) -> float:
    parsed = _to_finite("timestamp_seconds", value)
    try:
        datetime.fromtimestamp(parsed, tz=timezone.utc)
        datetime.fromtimestamp(
            pulse_timestamp(parsed, millis_since_reference_temp), tz=timezone.utc
        )
    except (OverflowError, OSError, ValueError) as exc:
        raise ReadingCoercionError("timestamp_seconds", value) from exc
    return parsed


def _to_node_id(value: Any) -> str:
    if _is_blank(value):
        raise ReadingCoercionError("node_id", None)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def coerce_reading(row: Mapping[str, Any], accessors: FieldAccessors | None = None) -> RawReading:
    """Coerce one input row into a :class:`RawReading`.

    Temperatures may be any float (NaN included, the temperature filter drops
    those later); timers must be whole milliseconds and timestamps must map
    to a UTC datetime, both as read and back-dated to the heat pulse.
    """
    accessors = accessors or FieldAccessors()
    reference = _to_millis(
        "millis_since_reference_temp", accessors.millis_since_reference_temp(row)
    )
    return RawReading(
        upstream_temp=_to_float("upstream_temp", accessors.upstream_temp(row)),
        downstream_temp=_to_float("downstream_temp", accessors.downstream_temp(row)),
        millis_since_reference_temp=reference,
        millis_since_heat_pulse=_to_millis(
            "millis_since_heat_pulse", accessors.millis_since_heat_pulse(row)
        ),
        timestamp_seconds=_to_timestamp(accessors.timestamp_seconds(row), reference),
        node_id=_to_node_id(accessors.node_id(row)),
    )


def sort_key(reading: RawReading) -> Tuple[float, int]:
    return reading.timestamp_seconds, reading.millis_since_heat_pulse


def normalize_readings(
    rows: Iterable[Union[RawReading, Mapping[str, Any]]],
    accessors: FieldAccessors | None = None,
) -> Tuple[RawReading, ...]:
    """Coerce rows and return them ordered by timestamp, then heat pulse timer."""
    accessors = accessors or FieldAccessors()
    readings = [
        row if isinstance(row, RawReading) else coerce_reading(row, accessors)
        for row in rows
    ]
    return tuple(sorted(readings, key=sort_key))
