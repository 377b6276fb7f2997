"""CLI entry point for the start/stop plugin."""

import asyncio
import json
import sys
from pathlib import Path

import click
import structlog
from pydantic import ValidationError

from start_stop.config.settings import (
    PluginInputs,
    StartStopSettings,
    decode_inputs,
    format_validation_errors,
)
from start_stop.exceptions import ConfigurationError, StartStopError
from start_stop.plugin import run_plugin
from start_stop.utils.logging_config import configure_logging

log = structlog.get_logger(__name__)


@click.group()
@click.option("--log-level", default="INFO", help="Logging level")
@click.pass_context
def cli(ctx: click.Context, log_level: str) -> None:
    """start-stop: /start and /stop task assignment for GitHub issues."""
    configure_logging(log_level)
    ctx.obj = {"log_level": log_level}


@cli.command()
@click.option("--host", default="0.0.0.0", help="Interface to bind")  # nosec B104
@click.option("--port", default=8000, type=int, help="Port to listen on")
@click.pass_context
def serve(ctx: click.Context, host: str, port: int) -> None:
    """Run the webhook server."""
    import uvicorn

    uvicorn.run(
        "start_stop.webhook_server:app",
        host=host,
        port=port,
        log_level=ctx.obj["log_level"].lower(),
    )


@cli.command("validate-config")
@click.argument("path", type=click.Path(dir_okay=False))
def validate_config(path: str) -> None:
    """Validate a YAML settings file and print the effective settings."""
    try:
        settings = StartStopSettings.from_yaml(path)
    except ConfigurationError as e:
        click.echo(f"Error: {e.message}", err=True)
        for error in e.errors:
            click.echo(f"  {error['path']}: {error['message']}", err=True)
        sys.exit(1)

    click.echo(json.dumps(settings.model_dump(mode="json", by_alias=True), indent=2))


def _load_inputs(path: Path) -> PluginInputs:
    try:
        return PluginInputs.model_validate_json(path.read_text())
    except ValidationError as e:
        raise ConfigurationError("Invalid event file", errors=format_validation_errors(e)) from e


@cli.command()
@click.argument("inputs_file", type=click.Path(exists=True, dir_okay=False))
def run(inputs_file: str) -> None:
    """Handle a single event read from a JSON file.

    The file holds the same body the host posts to the webhook server.
    """
    try:
        inputs = _load_inputs(Path(inputs_file))
        settings, env = decode_inputs(inputs.settings, inputs.env)
        result = asyncio.run(run_plugin(inputs, settings, env))
    except ConfigurationError as e:
        click.echo(f"Error: {e.message}", err=True)
        for error in e.errors:
            click.echo(f"  {error['path']}: {error['message']}", err=True)
        sys.exit(1)
    except StartStopError as e:
        click.echo(f"Error: {e.message}", err=True)
        log.debug("run_error", exc_info=True)
        sys.exit(1)
    except KeyboardInterrupt:
        click.echo("\nInterrupted by user", err=True)
        sys.exit(130)

    click.echo(json.dumps({"status": int(result.status), "output": result.output}))


if __name__ == "__main__":
    cli()
