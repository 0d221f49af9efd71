from __future__ import annotations

from contextlib import ExitStack
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the heat ratio service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def compute(
        self,
        paths: Sequence[Path],
        window_start: Optional[int] = None,
        window_end: Optional[int] = None,
        invert: Optional[bool] = None,
    ) -> Dict[str, Any]:
        for path in paths:
            if not path.is_file():
                raise typer.BadParameter(f"Path {path} is not a file.")

        params: Dict[str, Any] = {}
        if window_start is not None:
            params["window_start"] = window_start
        if window_end is not None:
            params["window_end"] = window_end
        if invert is not None:
            params["invert"] = str(invert).lower()

        try:
            with ExitStack() as stack:
                files = [
                    ("files", (path.name, stack.enter_context(path.open("rb")), "text/csv"))
                    for path in paths
                ]
                response = self._client.post("/heat-ratios", files=files, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        payload = response.json()
        if not isinstance(payload.get("ids"), list):
            raise typer.BadParameter("Unexpected response payload when computing heat ratios.")
        return payload

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("detail")
        except ValueError:
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
