"""
CLI entry point for running the CookFi trader standalone.

Usage:
    python -m cookfi.trader.cli run                   # Run the workflow
    python -m cookfi.trader.cli run --cycles 1        # One cycle then stop
    python -m cookfi.trader.cli run --dry-run         # Decide but never sign
    python -m cookfi.trader.cli tokens                # Show discovered candidates
    python -m cookfi.trader.cli analyze <ADDRESS>     # Analyze + decide one token
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import sys

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from cookfi.trader.config import config, Config, ConfigError
from cookfi.trader.collectors.formatters import format_number, format_pair
from cookfi.trader.plugin import build_workflow
from cookfi.trader.schemas import ExecutionResult, Token, TokenAnalysis, TradeDecision
from cookfi.trader.utils.logger import get_logger

logger = get_logger(__name__)
console = Console()


def _with_dry_run(cfg: Config, dry_run: bool) -> Config:
    if not dry_run:
        return cfg
    return dataclasses.replace(
        cfg,
        execution=dataclasses.replace(cfg.execution, dry_run=True),
        twitter=dataclasses.replace(cfg.twitter, dry_run=True),
    )


async def results_printer(results: list[ExecutionResult]) -> None:
    """Pretty-print a cycle's executions to the terminal."""
    print_results(results)


def print_results(results: list[ExecutionResult]) -> None:
    table = Table(title="Executions")
    table.add_column("Token", style="cyan")
    table.add_column("Action")
    table.add_column("Confidence")
    table.add_column("Amount")
    table.add_column("Status")

    for r in results:
        color = {"BUY": "green", "SELL": "red"}.get(r.action.value, "yellow")
        status = "[green]ok[/]" if r.success else f"[red]{r.error}[/]"
        if r.success and r.error:
            status = f"[dim]{r.error}[/]"
        table.add_row(
            r.token.symbol if r.token else "?",
            f"[{color}]{r.action.value}[/]",
            f"{r.decision.confidence:.0f}" if r.decision else "-",
            f"{r.amount:.4f}" if r.amount is not None else "-",
            status,
        )
    console.print(table)


def print_tokens(tokens: list[Token]) -> None:
    table = Table(title=f"Candidate tokens ({len(tokens)})")
    table.add_column("Symbol", style="cyan")
    table.add_column("Name")
    table.add_column("Address", style="dim")
    table.add_column("Balance")
    for t in tokens:
        balance = f"{t.balance.amount:g}" if t.balance else "-"
        table.add_row(t.symbol[:12], t.name[:30], t.address, balance)
    console.print(table)


def print_decision(analysis: TokenAnalysis, decision: TradeDecision | None) -> None:
    token = analysis.token
    lines = [format_pair(p) for p in analysis.market_analysis[:3]] or ["[dim]no pairs[/]"]
    lines.append(f"Social posts: {len(analysis.social_analysis)}")

    if decision is None:
        console.print(Panel("\n".join(lines), title=f"{token.symbol}: no decision", border_style="yellow"))
        return

    color = {"BUY": "green", "SELL": "red"}.get(decision.recommendation.value, "yellow")
    lines += [
        "",
        f"Recommendation: [{color}]{decision.recommendation.value}[/]",
        f"Confidence: {decision.confidence:.0f}",
        f"Reasoning: {decision.reasoning}",
    ]
    if decision.risks:
        lines.append("Risks: " + "; ".join(decision.risks))
    if decision.opportunities:
        lines.append("Opportunities: " + "; ".join(decision.opportunities))
    console.print(Panel("\n".join(lines), title=token.symbol, border_style=color))


async def run_workflow(cfg: Config, max_cycles: int | None = None) -> None:
    """Start the workflow and print each cycle's executions."""
    console.print(
        Panel(
            "[bold]CookFi Trader[/]\n"
            f"Chain: {cfg.discovery.chain_id}\n"
            f"Confidence threshold: {cfg.execution.min_confidence:.0f}\n"
            f"Buy size: {cfg.execution.min_buy_amount}-{cfg.execution.max_buy_amount} SOL\n"
            f"Dry run: {cfg.execution.dry_run}",
            title="Starting",
            border_style="blue",
        )
    )

    workflow = build_workflow(cfg, cycle_callback=results_printer)

    try:
        await workflow.run(max_cycles=max_cycles)
    except (KeyboardInterrupt, asyncio.CancelledError):
        console.print("\n[yellow]Shutting down...[/]")
        await workflow.stop()


async def show_tokens(cfg: Config) -> None:
    workflow = build_workflow(cfg)
    tokens = await workflow.discovery.discover()
    print_tokens(tokens)


async def analyze_address(cfg: Config, address: str) -> None:
    workflow = build_workflow(cfg)
    known = {t.address: t for t in await workflow.discovery.discover()}
    token = known.get(address) or Token(
        symbol=address, name=address, address=address, chain_id=cfg.discovery.chain_id
    )

    analysis = await workflow.analyzer.analyze_token(token)
    decision = await workflow.decision_maker.analyze_token(analysis)
    print_decision(analysis, decision)

    if decision is not None:
        size = workflow.executor.calculate_buy_amount(decision.confidence)
        console.print(f"Buy size at this confidence: {format_number(size)} SOL")


def main() -> None:
    parser = argparse.ArgumentParser(description="CookFi DeFi trading agent")
    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Run the trading workflow")
    run_parser.add_argument(
        "--cycles",
        type=int,
        default=None,
        help="Max cycles to run (default: unlimited)",
    )
    run_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Log decisions and alerts without signing or posting",
    )

    subparsers.add_parser("tokens", help="Show discovered candidate tokens")

    analyze_parser = subparsers.add_parser("analyze", help="Analyze one token without trading")
    analyze_parser.add_argument("address", help="Token mint address")

    args = parser.parse_args()

    try:
        if args.command == "run":
            asyncio.run(run_workflow(_with_dry_run(config, args.dry_run), max_cycles=args.cycles))
        elif args.command == "tokens":
            asyncio.run(show_tokens(_with_dry_run(config, True)))
        elif args.command == "analyze":
            asyncio.run(analyze_address(_with_dry_run(config, True), args.address))
        else:
            parser.print_help()
    except ConfigError as e:
        console.print(f"[bold red]{e}[/]")
        sys.exit(2)


if __name__ == "__main__":
    main()
