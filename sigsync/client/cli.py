"""Command-line front end for the SigSync client.

Usage:
    sigsync-client get
    sigsync-client set "new message"
    sigsync-client --url http://host:8080 get
"""

from __future__ import annotations

import asyncio
import logging
from typing import Annotated

import typer

from sigsync import config
from sigsync.client.protocol import ExchangeClient, ExchangeResult

app = typer.Typer(help="Signed read/write of the shared message.", no_args_is_help=True)


@app.callback()
def main(
    ctx: typer.Context,
    url: Annotated[str, typer.Option("--url", help="Server base URL")] = config.SERVER_URL,
) -> None:
    logging.basicConfig(level=config.LOG_LEVEL, format="%(levelname)s %(name)s: %(message)s")
    ctx.obj = url


def _report(result: ExchangeResult) -> None:
    if not result.ok:
        typer.secho(f"{result.state.value}: {result.reason}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    # only trusted/accepted data reaches stdout
    typer.echo(result.message)


async def _fetch(url: str) -> ExchangeResult:
    client = await ExchangeClient(base_url=url).start()
    return await client.fetch()


async def _sync(url: str, message: str) -> ExchangeResult:
    client = await ExchangeClient(base_url=url).start()
    return await client.sync(message)


@app.command()
def get(ctx: typer.Context) -> None:
    """Fetch the current message; print it only if its signature verifies."""
    _report(asyncio.run(_fetch(ctx.obj)))


@app.command("set")
def set_message(
    ctx: typer.Context,
    message: Annotated[str, typer.Argument(help="New message to sign and submit")],
) -> None:
    """Sign and submit a new message, then read back the server's copy."""
    _report(asyncio.run(_sync(ctx.obj, message)))


if __name__ == "__main__":
    app()
