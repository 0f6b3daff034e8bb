"""
Trading workflow — the agent's main loop.

Each cycle runs:
Discover Tokens → Analyze (market + social) → Decide (LLM) →
Execute (confidence-gated swaps) → Notify

Cycles run back to back with a fixed sleep. A failed cycle is logged and
followed by a shorter pause; there is no other recovery logic. Stopping
is cooperative: the flag is checked between segments, never mid-call.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Awaitable, Callable

from cookfi.trader.analysis.decision_maker import DecisionMaker
from cookfi.trader.analysis.discovery import TokenDiscovery
from cookfi.trader.analysis.token_analyzer import TokenAnalyzer
from cookfi.trader.config import config, WorkflowIntervals
from cookfi.trader.execution.executor import ExecutionService
from cookfi.trader.notifications.twitter import TwitterNotifier
from cookfi.trader.schemas import ExecutionResult
from cookfi.trader.utils.logger import get_logger

logger = get_logger(__name__)


class WorkflowState(str, Enum):
    IDLE = "idle"
    PROCESSING = "processing"
    SLEEPING = "sleeping"
    ERROR_BACKOFF = "error_backoff"
    STOPPED = "stopped"


class TradingWorkflow:
    """
    Runs the discovery → decision → execution loop.

    All collaborators are injected; see ``cookfi.trader.plugin`` for the
    production wiring.
    """

    def __init__(
        self,
        discovery: TokenDiscovery,
        analyzer: TokenAnalyzer,
        decision_maker: DecisionMaker,
        executor: ExecutionService,
        notifier: TwitterNotifier | None = None,
        intervals: WorkflowIntervals | None = None,
        cycle_callback: Callable[[list[ExecutionResult]], Awaitable[None]] | None = None,
    ):
        self.discovery = discovery
        self.analyzer = analyzer
        self.decision_maker = decision_maker
        self.executor = executor
        self.notifier = notifier
        self.intervals = intervals or config.intervals

        # Called with each cycle's executions, e.g. to print them
        self.cycle_callback = cycle_callback

        self.state = WorkflowState.IDLE
        self._processing = False
        self._stop_requested = False
        self._task: asyncio.Task | None = None

    @property
    def is_processing(self) -> bool:
        return self._processing

    async def process_cycle(self) -> list[ExecutionResult]:
        """Run the four steps once plus notification. Exceptions propagate."""
        # Step 1: Discover candidates
        tokens = await self.discovery.discover()
        if not tokens:
            logger.info("No candidate tokens this cycle")
            return []

        # Step 2: Market + social analysis, all tokens concurrently
        analyses = await self.analyzer.analyze_all(tokens)
        if not analyses:
            logger.info("No token analysis succeeded this cycle")
            return []

        # Step 3: LLM decisions, all tokens concurrently
        decided = await self.decision_maker.decide_all(analyses)

        # Step 4: Execute sequentially, one wallet
        results: list[ExecutionResult] = []
        for analysis, decision in decided:
            result = await self.executor.execute_decision(
                analysis.token, decision, analysis.market_analysis
            )
            results.append(result)

        # Step 5: Announce successful trades
        if self.notifier is not None and results:
            posted = await self.notifier.notify_successful_trades(results)
            if posted:
                logger.info(f"Posted {posted} trade alerts")

        if self.cycle_callback and results:
            try:
                await self.cycle_callback(results)
            except Exception as e:
                logger.error(f"Cycle callback failed: {e}")

        trades = [r for r in results if r.success and r.is_trade]
        logger.info(
            f"Cycle complete: {len(decided)} decisions, {len(trades)} trades",
            extra={
                "data": {
                    "candidates": len(tokens),
                    "analyzed": len(analyses),
                    "decisions": len(decided),
                    "trades": len(trades),
                    "failures": sum(1 for r in results if not r.success),
                }
            },
        )
        return results

    async def run_cycle(self) -> list[ExecutionResult] | None:
        """
        One guarded cycle.

        Returns None without doing anything when a cycle is already in
        progress. Exceptions from the cycle propagate to the caller.
        """
        if self._processing:
            logger.info("Already processing trading analysis, skipping")
            return None

        self._processing = True
        self.state = WorkflowState.PROCESSING
        try:
            return await self.process_cycle()
        finally:
            self._processing = False
            self.state = WorkflowState.IDLE

    async def _sleep(self, seconds: float, state: WorkflowState) -> None:
        self.state = state
        await asyncio.sleep(seconds)
        self.state = WorkflowState.IDLE

    async def run(self, max_cycles: int | None = None) -> None:
        """
        Loop until ``stop()`` is called.

        Args:
            max_cycles: If set, stop after this many cycles (for testing).
        """
        if self._processing:
            logger.info("Already processing trading analysis, skipping")
            return

        cycle_count = 0
        logger.info("Trading workflow starting...")

        while not self._stop_requested:
            cycle_count += 1
            logger.info(f"--- Cycle {cycle_count} ---")

            try:
                await self.run_cycle()
            except Exception as e:
                logger.error(f"Error in trading analysis loop: {e}", exc_info=True)
                if max_cycles and cycle_count >= max_cycles:
                    break
                await self._sleep(self.intervals.error_backoff, WorkflowState.ERROR_BACKOFF)
                continue

            if max_cycles and cycle_count >= max_cycles:
                logger.info(f"Reached max cycles ({max_cycles}), stopping")
                break

            logger.info(f"Sleeping {self.intervals.analysis:.0f}s until next cycle...")
            await self._sleep(self.intervals.analysis, WorkflowState.SLEEPING)

        self.state = WorkflowState.STOPPED
        logger.info("Trading workflow stopped")

    async def start(self, max_cycles: int | None = None) -> asyncio.Task:
        """Launch ``run()`` in the background. A second call returns the running task."""
        if self._task is not None and not self._task.done():
            logger.info("Trading workflow already running")
            return self._task
        logger.info("Starting trading workflow")
        # run() must not reset this; stop() may land before the task starts
        self._stop_requested = False
        self._task = asyncio.create_task(self.run(max_cycles=max_cycles))
        return self._task

    async def stop(self) -> None:
        """Ask the loop to exit once its current segment finishes."""
        self._stop_requested = True
        logger.info("Stopping trading workflow")

    async def wait(self) -> None:
        """Wait for a task started with ``start()`` to finish."""
        if self._task is not None:
            await self._task
