from __future__ import annotations

import dataclasses
from pathlib import Path
from typing import Optional

import typer

from device.byte_source import DeviceOpenError, SerialByteSource
from logging_config import configure_logging
from services.driver import build_driver
from settings import get_settings

app = typer.Typer(
    help="Log numeric readings from a serial sensor with hourly and daily averages.",
    context_settings={"help_option_names": ["-h", "--help"]},
    add_completion=False,
)


@app.command()
def main(
    device: str = typer.Argument(..., help="Serial device path, port name or pyserial URL."),
    log_dir: Optional[Path] = typer.Option(
        None,
        "--log-dir",
        "-d",
        file_okay=False,
        help="Directory for the log files (defaults to SENSOR_LOG_DIR env or the working directory).",
    ),
    baud: Optional[int] = typer.Option(
        None,
        "--baud",
        min=1,
        help="Baud rate (defaults to SENSOR_BAUD_RATE env or 9600).",
    ),
) -> None:
    """Poll DEVICE forever, appending every reading to log_raw.txt."""
    configure_logging()
    settings = get_settings()
    overrides = {}
    if log_dir is not None:
        overrides["log_dir"] = str(log_dir)
    if baud is not None:
        overrides["baud_rate"] = baud
    if overrides:
        settings = dataclasses.replace(settings, **overrides)
    Path(settings.log_dir).mkdir(parents=True, exist_ok=True)

    typer.echo(f"connecting to {device}")
    source = SerialByteSource(device, baud_rate=settings.baud_rate, timeout=settings.read_timeout)
    try:
        with source:
            typer.echo("started")
            build_driver(source, settings).run()
    except DeviceOpenError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    except KeyboardInterrupt:
        typer.echo("Stopped.")
