"""
Main CLI entry point for the LP reward distributor.
"""

import json
import logging
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from config import Config
from lprewards.accumulator import RunningTotal
from lprewards.chain import ChainHead
from lprewards.driver import IntervalDriver
from lprewards.exceptions import ConfigurationError, LPRewardsError, UpstreamUnavailable
from lprewards.ledger import RewardsLedger
from lprewards.scheduler import RewardsScheduler
from lprewards.snapshot_loader import SnapshotLoader
from lprewards.subgraph_client import SubgraphClient
from lprewards.utils import checksum_address, format_token_amount, setup_logging, truncate_address

console = Console()


def build_driver() -> IntervalDriver:
    """Wire the subgraph clients, loader and driver from Config."""
    errors = Config.validate()
    if errors:
        raise ConfigurationError("; ".join(errors))

    pool_client = SubgraphClient(Config.SUBGRAPH_URL)
    wrapper_client = SubgraphClient(Config.WRAPPER_SUBGRAPH_URL)
    loader = SnapshotLoader(pool_client, wrapper_client)
    return IntervalDriver(loader, Config.POOL_ADDRESS, Config.WRAPPER_ADDRESS)


def build_leaderboard(running_total: RunningTotal, top: int = 20) -> Table:
    """
    Create rich table of the largest reward totals.

    Args:
        running_total: Totals from a finished pass
        top: Number of rows to show

    Returns:
        Rich Table for display
    """
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Address", style="cyan")
    table.add_column("Rewards (wei)", justify="right", style="green")
    table.add_column("Rewards", justify="right", style="yellow")

    for rank, (address, amount) in enumerate(running_total.top(top), start=1):
        table.add_row(
            str(rank),
            truncate_address(address, 8),
            str(amount),
            f"{format_token_amount(amount):,.6f}",
        )
    return table


def resolve_range(from_block: Optional[int], to_block: Optional[int]) -> tuple[int, int]:
    if from_block is not None and to_block is not None:
        return from_block, to_block

    head = ChainHead(Config.RPC_URL).get_latest_block()
    if to_block is None:
        to_block = head - 1
    if from_block is None:
        from_block = to_block - Config.LOOKBACK_BLOCKS
    return from_block, to_block


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def cli(debug):
    """LP reward distributor - split interval rewards across in-range liquidity."""
    log_level = "DEBUG" if debug else Config.LOG_LEVEL
    setup_logging(log_level, Config.LOG_FILE)


@cli.command()
def setup():
    """Validate configuration and test connections."""
    console.print("[bold]Checking LP reward distributor setup...[/bold]\n")

    errors = Config.validate()
    if errors:
        console.print("[bold red]Configuration errors:[/bold red]")
        for error in errors:
            console.print(f"  ❌ {error}")
        return

    console.print("✅ Configuration valid")
    console.print(f"   Pool:    {checksum_address(Config.POOL_ADDRESS)}")
    console.print(f"   Wrapper: {checksum_address(Config.WRAPPER_ADDRESS)}")

    try:
        block = ChainHead(Config.RPC_URL).get_latest_block()
        console.print(f"✅ Connected to RPC (block: {block})")
    except UpstreamUnavailable as e:
        console.print(f"[red]❌ RPC connection failed: {e}[/red]")
        return

    console.print("\n[bold green]Setup complete! Ready to calculate.[/bold green]")


@cli.command()
@click.option("--from-block", type=int, help="First snapshot block")
@click.option("--to-block", type=int, help="Exclusive end block")
@click.option("--step", type=int, default=Config.BLOCK_STEP, help="Blocks per interval")
@click.option("--budget", type=int, default=Config.BUDGET_PER_STEP, help="Reward per interval (wei)")
@click.option("--format", "output_format", type=click.Choice(["rich", "json"]), default="rich")
@click.option("--top", default=20, help="Rows to show in rich output")
def calculate(from_block, to_block, step, budget, output_format, top):
    """Run one pass and print the accumulated rewards."""
    try:
        driver = build_driver()
        from_block, to_block = resolve_range(from_block, to_block)
        running_total = driver.run(from_block, to_block, step, budget)
    except LPRewardsError as e:
        console.print(f"[red]Error calculating rewards: {e}[/red]")
        logging.exception("Calculation error")
        raise SystemExit(1)

    ledger = RewardsLedger()
    ledger.publish(running_total, to_block)

    if output_format == "json":
        click.echo(json.dumps(ledger.users(), indent=2))
        return

    summary = driver.last_summary
    console.print(build_leaderboard(running_total, top))
    console.print(
        f"\n[bold]Blocks:[/bold] {from_block} → {to_block}  "
        f"[bold]Intervals:[/bold] {summary.intervals_processed} "
        f"({summary.intervals_skipped} skipped)"
    )
    console.print(
        f"[bold]Credited:[/bold] {summary.total_credited}  "
        f"[bold]Unclaimed:[/bold] {summary.total_unclaimed}  "
        f"[bold]Truncation loss:[/bold] {summary.total_truncation_loss}"
    )


@cli.command()
@click.argument("address")
@click.option("--from-block", type=int, help="First snapshot block")
@click.option("--to-block", type=int, help="Exclusive end block")
@click.option("--step", type=int, default=Config.BLOCK_STEP, help="Blocks per interval")
@click.option("--budget", type=int, default=Config.BUDGET_PER_STEP, help="Reward per interval (wei)")
def user(address, from_block, to_block, step, budget):
    """Run one pass and print a single address's record."""
    try:
        driver = build_driver()
        from_block, to_block = resolve_range(from_block, to_block)
        running_total = driver.run(from_block, to_block, step, budget)
    except LPRewardsError as e:
        console.print(f"[red]Error calculating rewards: {e}[/red]")
        raise SystemExit(1)

    ledger = RewardsLedger()
    ledger.publish(running_total, to_block)
    record = ledger.user(address)
    if record is None:
        console.print(f"[yellow]No rewards for {address} in blocks {from_block} → {to_block}[/yellow]")
        return
    click.echo(json.dumps(record, indent=2))


@cli.command()
@click.option("--interval", default=Config.RECALC_INTERVAL, help="Recalculation interval in seconds")
@click.option("--top", default=20, help="Rows to show")
@click.option(
    "--output",
    type=click.Path(dir_okay=False),
    help="Write the published records to this JSON file after each pass",
)
def monitor(interval, top, output):
    """Recalculate periodically relative to the chain head."""
    try:
        scheduler = RewardsScheduler(build_driver(), ChainHead(Config.RPC_URL))
    except ConfigurationError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        raise SystemExit(1)

    def show(running_total: RunningTotal) -> None:
        console.print(build_leaderboard(running_total, top))
        console.print(f"[dim]Total distributed: {running_total.total_distributed}[/dim]")
        if output:
            scheduler.ledger.export(output)

    console.print(f"[bold]Recalculating every {interval}s. Ctrl+C to stop.[/bold]")
    try:
        scheduler.run_forever(interval_seconds=interval, on_pass=show)
    except KeyboardInterrupt:
        console.print("\n[yellow]Stopped.[/yellow]")


if __name__ == "__main__":
    cli()
