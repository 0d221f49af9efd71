"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Dict, List, Optional

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from services.pipeline import HeatRatioOptions
    from services.processor import ProcessingReport


class ProcessingStatus(str, Enum):
    """Outcome of a processing run."""

    processed = "processed"
    partial = "partial"
    failed = "failed"


class ProcessingError(BaseModel):
    """Details about a row that failed coercion."""

    source: str
    row_number: int = Field(..., ge=1)
    reason: str


class MeanHeatRatio(BaseModel):
    """Mean heat ratio for a single heat-pulse episode."""

    node_id: str
    date: datetime
    unix_timestamp: float
    mean_heat_ratio: Optional[float] = Field(
        default=None, description="Null when no reading fell inside the aggregation window."
    )


class HeatRatioResponse(BaseModel):
    """Heat ratios per node for a batch of uploaded files."""

    status: ProcessingStatus
    ids: List[str] = Field(default_factory=list)
    data: Dict[str, List[MeanHeatRatio]] = Field(default_factory=dict)
    row_count: int = Field(0, ge=0)
    window_start: int
    window_end: int
    inverted: bool = False
    processing_ms: Optional[int] = Field(
        default=None, description="Duration in milliseconds from start to finish."
    )
    errors: List[ProcessingError] = Field(default_factory=list)

    @classmethod
    def from_report(cls, report: "ProcessingReport", options: "HeatRatioOptions") -> "HeatRatioResponse":
        result = report.result
        return cls(
            status=report.status,
            ids=list(result.ids),
            data={
                node_id: [MeanHeatRatio(**record.to_row()) for record in result.data[node_id]]
                for node_id in result.ids
            },
            row_count=report.row_count,
            window_start=options.window.start,
            window_end=options.window.end,
            inverted=options.invert_heat_ratios,
            processing_ms=report.processing_ms,
            errors=report.errors,
        )
