"""CSV ingestion and orchestration of the heat ratio pipeline."""

from __future__ import annotations

import csv
import io
import logging
import time
from dataclasses import dataclass, field, fields, replace
from functools import lru_cache
from pathlib import Path
from typing import Iterable, List, NamedTuple, Sequence

from app.schemas import ProcessingError, ProcessingStatus
from models.records import HeatRatioResult, RawReading
from services.normalizer import ColumnMapping, ReadingCoercionError, coerce_reading
from services.pipeline import HeatRatioOptions, compute_heat_ratios

logger = logging.getLogger(__name__)


class CsvSource(NamedTuple):
    name: str
    contents: bytes


@dataclass
class ProcessingReport:
    """Outcome of processing a batch of CSV sources."""

    status: ProcessingStatus
    result: HeatRatioResult
    row_count: int = 0
    errors: List[ProcessingError] = field(default_factory=list)
    processing_ms: int = 0


class ProcessorService:
    """Parses datalogger CSV files and runs the heat ratio pipeline over them."""

    def __init__(
        self,
        options: HeatRatioOptions | None = None,
        columns: ColumnMapping | None = None,
    ) -> None:
        self.options = options or HeatRatioOptions()
        self.columns = columns or ColumnMapping()

    def process(
        self,
        sources: Sequence[CsvSource],
        options: HeatRatioOptions | None = None,
    ) -> ProcessingReport:
        """Concatenate the rows of every source, in order, and compute heat ratios."""
        if not sources:
            raise ValueError("At least one CSV file is required.")

        start_time = time.perf_counter()
        options = options or self.options
        errors: list[ProcessingError] = []
        readings: list[RawReading] = []
        for source in sources:
            readings.extend(self._parse_source(source, errors))

        result = compute_heat_ratios(readings, options)

        if not readings and errors:
            status = ProcessingStatus.failed
        elif errors:
            status = ProcessingStatus.partial
        else:
            status = ProcessingStatus.processed

        processing_ms = int((time.perf_counter() - start_time) * 1000)
        logger.info(
            "Processed CSV sources",
            extra={
                "row_count": len(readings),
                "error_count": len(errors),
                "processing_ms": processing_ms,
            },
        )
        return ProcessingReport(
            status=status,
            result=result,
            row_count=len(readings),
            errors=errors,
            processing_ms=processing_ms,
        )

    def process_paths(
        self, paths: Iterable[Path], options: HeatRatioOptions | None = None
    ) -> ProcessingReport:
        sources = [CsvSource(name=path.name, contents=path.read_bytes()) for path in paths]
        return self.process(sources, options=options)

    def _resolve_columns(self, fieldnames: Sequence[str], source: str) -> ColumnMapping:
        normalized = {name.strip().lower(): name for name in fieldnames if name}
        resolved = {}
        missing = []
        for item in fields(self.columns):
            column = getattr(self.columns, item.name)
            actual = normalized.get(column.strip().lower())
            if actual is None:
                missing.append(column)
            else:
                resolved[item.name] = actual
        if missing:
            raise ValueError(
                f"CSV missing required columns in {source}: {', '.join(sorted(missing))}"
            )
        return replace(self.columns, **resolved)

    def _parse_source(
        self, source: CsvSource, errors: list[ProcessingError]
    ) -> List[RawReading]:
        if not source.contents.strip():
            raise ValueError(f"Uploaded file {source.name} is empty.")

        text_stream = io.StringIO(source.contents.decode("utf-8-sig"))
        reader = csv.DictReader(text_stream)
        if not reader.fieldnames:
            raise ValueError(f"CSV file {source.name} is missing a header row.")

        accessors = self._resolve_columns(reader.fieldnames, source.name).accessors()

        readings: list[RawReading] = []
        for row_number, row in enumerate(reader, start=2):
            try:
                readings.append(coerce_reading(row, accessors))
            except ReadingCoercionError as exc:
                reason = str(exc)
                logger.warning(
                    "Skipping row: %s",
                    reason,
                    extra={"source": source.name, "row_number": row_number, "reason": reason},
                )
                errors.append(
                    ProcessingError(source=source.name, row_number=row_number, reason=reason)
                )
        return readings


@lru_cache
def build_default_processor() -> ProcessorService:
    """Factory that wires the processor with options from the environment."""
    return ProcessorService(options=HeatRatioOptions.from_settings())
