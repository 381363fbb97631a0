"""Command line interface for running the issueflow router."""

from __future__ import annotations

import asyncio
import logging
import signal
from typing import Optional

import typer

from issueflow import EventRouter, SlackClient, TranscriptSearch, get_transport
from issueflow.config import ConfigError, IssueflowConfig, load_config

app = typer.Typer(help="CLI for the issueflow event router")

logger = logging.getLogger(__name__)


@app.callback()
def main() -> None:
    """issueflow CLI entry point."""
    pass


def _load(config_path: Optional[str], require_credentials: bool = True) -> IssueflowConfig:
    try:
        config = load_config(config_path)
        if require_credentials:
            config.validate_required()
    except ConfigError as e:
        typer.secho(str(e), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return config


async def _serve(config: IssueflowConfig, lifespan: Optional[float]) -> None:
    transport = get_transport(config=config)
    slack = SlackClient.from_config(config.slack)
    stop = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    await transport.connect()
    logger.info("Connected to queue transport")
    try:
        await EventRouter(config, transport, slack).run(stop, lifespan=lifespan)
    finally:
        logger.info("Shutting down...")
        await transport.disconnect()
        await slack.aclose()


@app.command("run")
def run(
    config_path: Optional[str] = typer.Option(
        None, "--config", help="Path to YAML config (default: $ISSUEFLOW_CONFIG or config.yaml)"
    ),
    lifespan: Optional[float] = typer.Option(
        None, help="Stop after this many seconds (default: run until signalled)"
    ),
) -> None:
    """
    Start one listener per inbound channel and route events until stopped.

    Configuration errors are reported before any listener starts and exit
    with status 1. SIGINT or SIGTERM stops the listeners after the events
    they are currently handling.

    Example:
        issueflow run --config /etc/issueflow.yaml
    """
    config = _load(config_path)
    logger.info("issueflow router starting")
    asyncio.run(_serve(config, lifespan))


@app.command("lookup")
def lookup(
    issue_url: str,
    config_path: Optional[str] = typer.Option(None, "--config"),
) -> None:
    """
    Find the status message announcing ``issue_url``.

    Searches the same bounded window of the status channel the router uses.

    Example:
        issueflow lookup https://github.com/org/repo/issues/42
        # Output: C0123456    1712345678.000100
    """
    config = _load(config_path)

    async def _find():
        slack = SlackClient.from_config(config.slack)
        try:
            search = TranscriptSearch(
                slack, config.workflow.status_channel_id, config.workflow.search_limit
            )
            return await search.find_by_resource(issue_url)
        finally:
            await slack.aclose()

    location = asyncio.run(_find())
    if location is None:
        typer.echo("Not found")
        raise typer.Exit(code=1)
    typer.echo(f"{location.channel}\t{location.ts}")


@app.command("config")
def show_config(config_path: Optional[str] = typer.Option(None, "--config")) -> None:
    """Print the effective configuration with secrets masked."""
    config = _load(config_path, require_credentials=False)
    data = config.model_dump()
    if data["slack"]["bot_token"]:
        data["slack"]["bot_token"] = "***"
    if data["redis"]["password"]:
        data["redis"]["password"] = "***"
    typer.echo(IssueflowConfig.model_validate(data).model_dump_json(indent=2))


if __name__ == "__main__":
    app()
