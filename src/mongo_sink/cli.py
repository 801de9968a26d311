"""Typer CLI for MongoDB write sinks."""

from __future__ import annotations

import asyncio
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import typer
from bson import json_util
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from mongo_sink.client import create_client, get_collection
from mongo_sink.config.loader import load_sink_config
from mongo_sink.config.models import SinkConfig, WriteMode
from mongo_sink.intents import intent_from_dict, update_from_dict
from mongo_sink.observability.health import check_mongodb
from mongo_sink.observability.log_config import configure_logging
from mongo_sink.sinks.adapter import WriteSinkAdapter
from mongo_sink.sinks.factory import create_sink, wrap_client
from mongo_sink.sinks.results import Completion, Failed

console = Console()
app = typer.Typer(name="mongo-sink", help="MongoDB write sink CLI")


@app.callback()
def main(
    log_json: bool = typer.Option(False, "--log-json", help="Emit JSON logs"),
    log_level: str = typer.Option("WARNING", "--log-level", help="Log level"),
) -> None:
    configure_logging(json=log_json, level=log_level)


def _load(config_path: str) -> SinkConfig:
    path = Path(config_path)
    if not path.exists():
        console.print(f"[red]Config file not found: {path}[/red]")
        raise typer.Exit(1)
    try:
        return load_sink_config(path)
    except Exception as exc:
        console.print(f"[red]Validation error:[/red] {escape(str(exc))}")
        raise typer.Exit(1) from exc


def read_json_lines(path: Path) -> Iterator[dict[str, Any]]:
    """Yield one extended-JSON object per non-blank line, lazily."""
    with path.open() as f:
        for lineno, line in enumerate(f, start=1):
            if not line.strip():
                continue
            try:
                obj = json_util.loads(line)
            except ValueError as exc:
                msg = f"{path}:{lineno}: invalid JSON: {exc}"
                raise ValueError(msg) from exc
            if not isinstance(obj, dict):
                msg = f"{path}:{lineno}: expected a JSON object"
                raise ValueError(msg)
            yield obj


def _payloads(mode: WriteMode, rows: Iterator[dict[str, Any]]) -> Iterator[Any]:
    for row in rows:
        if mode in (WriteMode.UPDATE_ONE, WriteMode.UPDATE_MANY):
            yield update_from_dict(row, f"{mode} payload")
        else:
            yield row


def _report(completion: Completion) -> None:
    if isinstance(completion, Failed):
        cause = completion.cause
        console.print(
            f"[red]Failed[/red] after {completion.acknowledged} write(s): "
            f"{type(cause).__name__}: {escape(str(cause))}"
        )
        raise typer.Exit(1)
    console.print(f"[green]Completed[/green] — {completion.acknowledged} write(s)")


@app.command()
def validate(
    config_path: str = typer.Argument(..., help="Path to sink YAML"),
) -> None:
    """Validate a sink configuration file."""
    config = _load(config_path)
    console.print(f"[green]Valid[/green] — sink_id={config.sink_id}")
    console.print(f"  target: {config.mongo.database}.{config.mongo.collection}")
    console.print(f"  mode:   {config.mode}")
    if config.mode == WriteMode.INSERT_MANY:
        order = "ordered" if config.ordered else "unordered"
        console.print(f"  batch:  {config.batch_size} ({order})")
    retry = "enabled" if config.retry.enabled else "disabled"
    console.print(f"  retry:  {retry}")


@app.command()
def health(
    config_path: str = typer.Argument(..., help="Path to sink YAML"),
) -> None:
    """Check connectivity to the configured MongoDB deployment."""
    config = _load(config_path)

    async def _check() -> Any:
        client = create_client(config.mongo)
        try:
            return await check_mongodb(client, config.mongo)
        finally:
            await client.close()

    result = asyncio.run(_check())

    table = Table(title="Sink Health")
    table.add_column("Component", style="cyan")
    table.add_column("Status")
    table.add_column("Detail")
    style = "green" if result.healthy else "red"
    table.add_row(result.name, f"[{style}]{result.status}[/{style}]", result.detail)
    console.print(table)
    if not result.healthy:
        raise typer.Exit(1)


@app.command()
def write(
    config_path: str = typer.Argument(..., help="Path to sink YAML"),
    input_path: Path = typer.Argument(..., help="JSON-lines payload file"),
    mode: WriteMode | None = typer.Option(None, "--mode", help="Override write mode"),
    batch_size: int | None = typer.Option(
        None, "--batch-size", min=1, help="Override insert_many batch size"
    ),
    unordered: bool = typer.Option(
        False, "--unordered", help="Continue a batch after a failed document"
    ),
) -> None:
    """Stream payloads from a file through the configured sink.

    Lines are documents for insert modes, filters for delete modes and
    ``{"filter": ..., "update": ...}`` objects for update modes.
    """
    config = _load(config_path)
    updates: dict[str, Any] = {}
    if mode is not None:
        updates["mode"] = mode
    if batch_size is not None:
        updates["batch_size"] = batch_size
    if unordered:
        updates["ordered"] = False
    if updates:
        config = config.model_copy(update=updates)

    async def _run() -> Completion:
        client = create_client(config.mongo)
        try:
            sink = create_sink(config, get_collection(client, config.mongo))
            return await sink(_payloads(config.mode, read_json_lines(input_path)))
        finally:
            await client.close()

    _report(asyncio.run(_run()))


@app.command()
def apply(
    config_path: str = typer.Argument(..., help="Path to sink YAML"),
    input_path: Path = typer.Argument(..., help="JSON-lines intent file"),
) -> None:
    """Apply a file of mixed write intents (``{"op": "update_one", ...}``) in order."""
    config = _load(config_path)

    async def _run() -> Completion:
        client = create_client(config.mongo)
        try:
            collection = wrap_client(config, get_collection(client, config.mongo))
            adapter = WriteSinkAdapter(
                collection, ordered=config.ordered, sink_id=config.sink_id
            )
            intents = (intent_from_dict(row) for row in read_json_lines(input_path))
            return await adapter.run(intents)
        finally:
            await client.close()

    _report(asyncio.run(_run()))
