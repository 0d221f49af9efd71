"""CSV export of heat ratio results."""

from __future__ import annotations

import csv
import io
from typing import TextIO

from models.records import HeatRatioResult

EXPORT_COLUMNS = ("node_id", "date", "unix_timestamp", "mean_heat_ratio")


def _plain_number(value: float) -> float | int:
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def write_csv(result: HeatRatioResult, handle: TextIO, drop_undefined: bool = False) -> int:
    """Write one row per record and return the number of rows written."""
    writer = csv.DictWriter(handle, fieldnames=EXPORT_COLUMNS, lineterminator="\n")
    writer.writeheader()
    written = 0
    for row in result.to_rows():
        if row["mean_heat_ratio"] is None and drop_undefined:
            continue
        row["date"] = row["date"].isoformat()
        row["unix_timestamp"] = _plain_number(row["unix_timestamp"])
        if row["mean_heat_ratio"] is None:
            row["mean_heat_ratio"] = ""
        writer.writerow(row)
        written += 1
    return written


def render_csv(result: HeatRatioResult, drop_undefined: bool = False) -> str:
    buffer = io.StringIO()
    write_csv(result, buffer, drop_undefined=drop_undefined)
    return buffer.getvalue()
