from __future__ import annotations

from typing import Any, Dict, Iterable

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def _format_ratio(value: Any) -> str:
    if value is None:
        return "undefined"
    return f"{value:.4f}"


def render_result(payload: Dict[str, Any]) -> None:
    echo_heading("Heat Ratio Result")
    echo_key_values(
        [
            ("status", payload.get("status")),
            ("row_count", payload.get("row_count")),
            ("window", f"{payload.get('window_start')}-{payload.get('window_end')} ms"),
            ("inverted", payload.get("inverted")),
            ("processing_ms", payload.get("processing_ms")),
        ]
    )

    ids = payload.get("ids") or []
    data = payload.get("data") or {}
    typer.echo()
    echo_heading("Nodes")
    if ids:
        for node_id in ids:
            records = data.get(node_id) or []
            defined = [r for r in records if r.get("mean_heat_ratio") is not None]
            typer.echo(f"node {node_id}: {len(records)} episodes, {len(defined)} with a heat ratio")
            for record in records:
                typer.echo(
                    f"  - {record.get('date')}: {_format_ratio(record.get('mean_heat_ratio'))}"
                )
    else:
        typer.echo("No heat-pulse episodes found.")

    errors = payload.get("errors") or []
    typer.echo()
    echo_heading("Errors")
    if errors:
        for error in errors:
            typer.echo(
                f"  - {error.get('source')} row {error.get('row_number')}: {error.get('reason')}"
            )
    else:
        typer.echo("No errors recorded.")
