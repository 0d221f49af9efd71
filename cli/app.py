from __future__ import annotations

from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Dict, List, Optional

import typer

from app.schemas import HeatRatioResponse
from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_result
from logging_config import configure_logging
from services.aggregator import HeatRatioWindow
from services.export import write_csv
from services.normalizer import ColumnMapping
from services.pipeline import HeatRatioOptions
from services.processor import ProcessorService


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Compute sap-flow heat ratios from datalogger CSV files.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


def _parse_columns(values: List[str]) -> ColumnMapping:
    known = {item.name for item in fields(ColumnMapping)}
    overrides: Dict[str, str] = {}
    for value in values:
        key, sep, column = value.partition("=")
        key = key.strip()
        if not sep or not column.strip() or key not in known:
            raise typer.BadParameter(
                f"Expected FIELD=COLUMN with FIELD one of {', '.join(sorted(known))}; got {value!r}.",
                param_hint="--column",
            )
        overrides[key] = column.strip()
    return ColumnMapping(**overrides)


def _build_options(
    window_start: Optional[int],
    window_end: Optional[int],
    invert: Optional[bool],
) -> HeatRatioOptions:
    defaults = HeatRatioOptions.from_settings()
    try:
        window = HeatRatioWindow(
            start=window_start if window_start is not None else defaults.window.start,
            end=window_end if window_end is not None else defaults.window.end,
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--window-start/--window-end") from exc
    return replace(
        defaults,
        window=window,
        invert_heat_ratios=defaults.invert_heat_ratios if invert is None else invert,
    )


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Heat ratio API base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for the API to respond.",
    ),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Emit pipeline logs to stderr at this level.",
    ),
) -> None:
    """Entry point for the CLI."""
    if log_level:
        configure_logging(log_level.upper())
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("compute")
def compute_command(
    files: List[Path] = typer.Argument(
        ..., exists=True, dir_okay=False, readable=True, help="Datalogger CSV files."
    ),
    window_start: Optional[int] = typer.Option(
        None, "--window-start", min=0, help="Heat pulse timer lower bound in ms."
    ),
    window_end: Optional[int] = typer.Option(
        None, "--window-end", min=0, help="Heat pulse timer upper bound in ms."
    ),
    invert: Optional[bool] = typer.Option(
        None, "--invert/--no-invert", help="Report 1/ratio for swapped probes."
    ),
    column: List[str] = typer.Option(
        [], "--column", "-c", help="Override an input column, e.g. node_id=sensor."
    ),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", dir_okay=False, help="Write the CSV export to this path."
    ),
    drop_undefined: bool = typer.Option(
        False, "--drop-undefined", help="Omit episodes without a heat ratio from the export."
    ),
) -> None:
    """Compute heat ratios locally without the API."""
    options = _build_options(window_start, window_end, invert)
    processor = ProcessorService(options=options, columns=_parse_columns(column))
    try:
        report = processor.process_paths(files)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="FILES") from exc

    if output is None:
        render_result(HeatRatioResponse.from_report(report, options).model_dump(mode="json"))
        return

    with output.open("w", newline="", encoding="utf-8") as handle:
        written = write_csv(report.result, handle, drop_undefined=drop_undefined)
    typer.secho(f"Wrote {written} rows to {output}", fg=typer.colors.GREEN)


@app.command("upload")
def upload_command(
    ctx: typer.Context,
    files: List[Path] = typer.Argument(
        ..., exists=True, dir_okay=False, readable=True, help="Datalogger CSV files."
    ),
    window_start: Optional[int] = typer.Option(None, "--window-start", min=0),
    window_end: Optional[int] = typer.Option(None, "--window-end", min=0),
    invert: Optional[bool] = typer.Option(None, "--invert/--no-invert"),
) -> None:
    """Send CSV files to a running heat ratio API and display the result."""
    state = _get_state(ctx)
    typer.echo(f"Uploading {len(files)} file(s) to {state.config.base_url} ...")
    payload = state.client.compute(
        files, window_start=window_start, window_end=window_end, invert=invert
    )
    typer.echo()
    render_result(payload)
