"""HTTP route definitions for the service."""

from __future__ import annotations

from dataclasses import replace
from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from fastapi.responses import PlainTextResponse

from app.schemas import HeatRatioResponse
from services.aggregator import HeatRatioWindow
from services.export import render_csv
from services.pipeline import HeatRatioOptions
from services.processor import CsvSource, ProcessingReport, ProcessorService, build_default_processor

router = APIRouter()


def get_processor() -> ProcessorService:
    return build_default_processor()


def _build_options(
    processor: ProcessorService,
    window_start: Optional[int],
    window_end: Optional[int],
    invert: Optional[bool],
) -> HeatRatioOptions:
    defaults = processor.options
    try:
        window = HeatRatioWindow(
            start=window_start if window_start is not None else defaults.window.start,
            end=window_end if window_end is not None else defaults.window.end,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return replace(
        defaults,
        window=window,
        invert_heat_ratios=defaults.invert_heat_ratios if invert is None else invert,
    )


async def _run(
    processor: ProcessorService,
    files: List[UploadFile],
    options: HeatRatioOptions,
) -> ProcessingReport:
    sources = []
    for upload in files:
        contents = await upload.read()
        await upload.close()
        if isinstance(contents, str):
            contents = contents.encode("utf-8")
        sources.append(CsvSource(name=upload.filename or "upload.csv", contents=contents))
    try:
        return processor.process(sources, options=options)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.post(
    "/heat-ratios",
    response_model=HeatRatioResponse,
    summary="Compute mean heat ratios per heat-pulse episode from datalogger CSV files.",
)
async def compute_heat_ratios(
    files: List[UploadFile] = File(..., description="Datalogger CSV files, concatenated in order."),
    window_start: Optional[int] = Query(None, ge=0, description="Heat pulse timer lower bound (ms)."),
    window_end: Optional[int] = Query(None, ge=0, description="Heat pulse timer upper bound (ms)."),
    invert: Optional[bool] = Query(None, description="Report 1/ratio for swapped probes."),
    processor: ProcessorService = Depends(get_processor),
) -> HeatRatioResponse:
    options = _build_options(processor, window_start, window_end, invert)
    report = await _run(processor, files, options)
    return HeatRatioResponse.from_report(report, options)


@router.post(
    "/heat-ratios/export",
    response_class=PlainTextResponse,
    summary="Compute mean heat ratios and return them as CSV.",
)
async def export_heat_ratios(
    files: List[UploadFile] = File(..., description="Datalogger CSV files, concatenated in order."),
    window_start: Optional[int] = Query(None, ge=0),
    window_end: Optional[int] = Query(None, ge=0),
    invert: Optional[bool] = Query(None),
    drop_undefined: bool = Query(False, description="Omit episodes without a heat ratio."),
    processor: ProcessorService = Depends(get_processor),
) -> PlainTextResponse:
    options = _build_options(processor, window_start, window_end, invert)
    report = await _run(processor, files, options)
    return PlainTextResponse(
        render_csv(report.result, drop_undefined=drop_undefined),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="heat_ratios.csv"'},
    )


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "POST datalogger CSV files to /heat-ratios."}
