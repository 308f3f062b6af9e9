import asyncio
import json
import logging
import time
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from abiwatch.core.config import MonitorConfig, RpcConfig
from abiwatch.core.errors import AbiwatchError
from abiwatch.core.models import ConstructorArgument, EventLogRecord
from abiwatch.schema.abi import SchemaIndex

console = Console()


def _load_schema(abi_path: str) -> SchemaIndex:
    try:
        return SchemaIndex.parse(Path(abi_path))
    except AbiwatchError as e:
        raise click.ClickException(str(e)) from e


def _records_table(records: list[EventLogRecord], title: str) -> Table:
    table = Table(title=title, expand=True)
    table.add_column("block", justify="right")
    table.add_column("event", style="bold cyan")
    table.add_column("args")
    table.add_column("tx")
    for r in records:
        args = "  ".join(f"{k}={v}" for k, v in r.args.items())
        tx = f"{r.transaction_hash[:10]}...{r.transaction_hash[-8:]}"
        table.add_row(str(r.block_number), r.event_name, args, tx)
    return table


@click.group()
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
)
def cli(log_level: str) -> None:
    """abiwatch: ABI argument validation and contract event monitoring."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


@cli.command("constructor-args")
@click.argument("abi_path", type=click.Path(exists=True, dir_okay=False))
def constructor_args_cmd(abi_path: str) -> None:
    """List the constructor inputs declared by an ABI."""
    from abiwatch.validation import extract_constructor_arguments

    args = extract_constructor_arguments(_load_schema(abi_path))
    if not args:
        console.print("[yellow]no constructor inputs[/]")
        return
    table = Table(title="constructor")
    table.add_column("#", justify="right")
    table.add_column("name", style="bold")
    table.add_column("type")
    for i, a in enumerate(args):
        table.add_row(str(i), a.name, a.type)
    console.print(table)


@cli.command("validate")
@click.argument("abi_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--arg", "raw_args", multiple=True, help="name=value; repeat per input")
@click.option("--function", "function_name", default=None, help="Validate a function's inputs instead of the constructor")
def validate_cmd(abi_path: str, raw_args: tuple[str, ...], function_name: str | None) -> None:
    """Validate textual arguments against an ABI; exits 1 when invalid."""
    from abiwatch.validation import validate

    schema = _load_schema(abi_path)
    try:
        inputs = schema.lookup_function(function_name).inputs if function_name else schema.constructor_inputs
    except AbiwatchError as e:
        raise click.ClickException(str(e)) from e

    types = {p.name: p.type_str for p in inputs}
    provided: list[ConstructorArgument] = []
    for raw in raw_args:
        name, sep, value = raw.partition("=")
        if not sep:
            raise click.UsageError(f"--arg expects name=value, got {raw!r}")
        provided.append(ConstructorArgument(name=name, type=types.get(name, ""), value=value))

    result = validate(inputs, provided)
    console.print_json(json.dumps(result.to_dict()))
    if not result.valid:
        raise SystemExit(1)


@cli.command("history")
@click.argument("abi_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--rpc", required=True, help="RPC endpoint URL")
@click.option("--address", required=True, help="Contract address")
@click.option("--event", "event_name", default=None, help="Only show this event")
@click.option("--lookback", type=int, default=1_000, show_default=True, help="Blocks to scan back from head")
@click.option("--timeout", "timeout_s", type=int, default=20, show_default=True)
@click.option("--out", "out_path", type=click.Path(dir_okay=False), default=None, help="Export records as JSON")
def history_cmd(
    abi_path: str,
    rpc: str,
    address: str,
    event_name: str | None,
    lookback: int,
    timeout_s: int,
    out_path: str | None,
) -> None:
    """Load recent events for a contract from the last LOOKBACK blocks."""
    from abiwatch.clients.rpc import RPC
    from abiwatch.monitoring import EventMonitor

    schema = _load_schema(abi_path)

    async def run() -> None:
        async with RPC(RpcConfig(url=rpc, timeout_s=timeout_s)) as provider:
            monitor = EventMonitor(schema, provider, MonitorConfig(address=address, lookback_blocks=lookback))
            t0 = time.time()
            with console.status("[bold]loading history[/]"):
                await monitor.load_history()
            records = monitor.events(event_name)
            console.print(_records_table(records, f"{address} • last {lookback} blocks"))
            counts = "  ".join(f"{k}={v}" for k, v in monitor.counts().items())
            console.print(f"[bold]done[/]: {len(records)} events • {time.time() - t0:.2f}s • {counts}")
            if out_path:
                Path(out_path).write_text(monitor.export_json())
                console.print(f"exported to {out_path}")

    try:
        asyncio.run(run())
    except AbiwatchError as e:
        raise click.ClickException(str(e)) from e


@cli.command("watch")
@click.argument("abi_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--rpc", required=True, help="RPC endpoint URL")
@click.option("--address", required=True, help="Contract address")
@click.option("--poll", "poll_s", type=float, default=2.0, show_default=True, help="Filter polling interval (s)")
@click.option("--duration", type=float, default=None, help="Stop after this many seconds")
def watch_cmd(abi_path: str, rpc: str, address: str, poll_s: float, duration: float | None) -> None:
    """Print contract events as they are emitted (Ctrl-C to stop)."""
    from abiwatch.clients.rpc import RPC
    from abiwatch.monitoring import EventMonitor

    schema = _load_schema(abi_path)

    async def run() -> None:
        async with RPC(RpcConfig(url=rpc, poll_interval_s=poll_s)) as provider:
            async with EventMonitor(schema, provider, MonitorConfig(address=address)) as monitor:
                await monitor.start()
                names = ", ".join(ev.name for ev in monitor.event_definitions)
                console.print(f"[green]monitoring[/] {address}: {names}")
                seen: set[str] = set()
                deadline = None if duration is None else time.monotonic() + duration
                while deadline is None or time.monotonic() < deadline:
                    await asyncio.sleep(poll_s)
                    for r in reversed(monitor.events()):
                        if r.id in seen:
                            continue
                        seen.add(r.id)
                        args = "  ".join(f"{k}={v}" for k, v in r.args.items())
                        console.print(f"[cyan]{r.event_name}[/] block {r.block_number}  {args}")

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        console.print("[yellow]stopped[/]")
    except AbiwatchError as e:
        raise click.ClickException(str(e)) from e


if __name__ == "__main__":
    cli()
